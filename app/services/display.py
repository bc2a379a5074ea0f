# app/services/display.py
#
# Display helpers
# Rupee formatting with Indian digit grouping and UTC -> local timestamps.
# Registered as Jinja filters in app/deps.py and reused by the CSV export.

from datetime import datetime, timedelta

from config import DISPLAY_UTC_OFFSET_MINUTES


def group_indian(integer_digits: str) -> str:
    """
    '12345678' -> '1,23,45,678' (last three digits, then groups of two).
    """
    if len(integer_digits) <= 3:
        return integer_digits

    head, tail = integer_digits[:-3], integer_digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups) + "," + tail


def format_inr(value, decimals: int = 2) -> str:
    """1234567.5 -> '₹12,34,567.50'"""
    if value is None:
        value = 0.0
    value = float(value)
    sign = "-" if value < 0 else ""
    text = f"{abs(value):.{decimals}f}"
    if "." in text:
        integer_part, fraction = text.split(".")
        return f"{sign}₹{group_indian(integer_part)}.{fraction}"
    return f"{sign}₹{group_indian(text)}"


def format_grams(value) -> str:
    if value is None:
        return "—"
    return f"{float(value):g} g"


def to_display_time(value: datetime) -> datetime:
    """Shift a naive UTC timestamp to the configured display offset."""
    return value + timedelta(minutes=DISPLAY_UTC_OFFSET_MINUTES)


def format_timestamp(value) -> str:
    """Naive UTC datetime -> 'DD/MM/YYYY, HH:MM:SS' in display time."""
    if value is None:
        return ""
    return to_display_time(value).strftime("%d/%m/%Y, %H:%M:%S")


def amount_text(amount) -> str:
    """
    Plain amount text used by search and CSV export:
    1000.0 -> '1000', 1500.5 -> '1500.5'.
    """
    value = float(amount)
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)
