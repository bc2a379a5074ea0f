# csv_export.py

import csv
from datetime import date
from typing import Iterable, Optional

import pandas as pd

from app.services.display import amount_text, format_timestamp

# Fixed export header, written unquoted
EXPORT_COLUMNS = ["Date & Time", "Amount", "Currency", "Receipt URL", "Notes"]


def investments_frame(records: Iterable) -> pd.DataFrame:
    """
    Build one row per record in the fixed export column order.
    Missing receipt/notes become empty strings.
    """
    rows = [
        {
            "Date & Time": format_timestamp(r.created_at),
            "Amount": amount_text(r.amount),
            "Currency": r.category,
            "Receipt URL": r.receipt_url or "",
            "Notes": r.notes or "",
        }
        for r in records
    ]
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def build_investments_csv(records: Iterable) -> str:
    """
    Serialize records to CSV text: plain header line, then every field
    double-quoted. Embedded quotes are doubled by the csv writer.
    """
    df = investments_frame(records)

    header = ",".join(EXPORT_COLUMNS)
    if df.empty:
        return header + "\n"

    body = df.to_csv(
        index=False,
        header=False,
        quoting=csv.QUOTE_ALL,
        lineterminator="\n",
    )
    return header + "\n" + body


def export_filename(today: Optional[date] = None) -> str:
    """investments_YYYY-MM-DD.csv"""
    today = today or date.today()
    return f"investments_{today.isoformat()}.csv"
