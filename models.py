# models.py
# Role: SQLAlchemy ORM models for the gold tracker domain.
#       Investment is one purchase record; AppSetting is a small key/value
#       table that holds the security code used by the session gate.

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Float, Text
from db import Base

# Allowed values for Investment.category
CATEGORIES = ("Gold", "Silver")


def utcnow() -> datetime:
    """Naive UTC timestamp (SQLite does not keep tzinfo)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Investment(Base):
    """
    ORM model representing a single gold/silver purchase.

    Rows are only ever inserted or deleted; there is no update path.
    `amount` is the rupee value paid, `grams` the optional physical weight.
    """

    __tablename__ = "investments"

    # Primary key
    id = Column(Integer, primary_key=True, index=True)

    # Assigned by the store on insert
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    # Rupee amount paid (always > 0)
    amount = Column(Float, nullable=False)

    # Optional weight in grams (> 0 when present)
    grams = Column(Float, nullable=True)

    # "Gold" or "Silver"
    category = Column(String(16), nullable=False)

    # Blob store path of the payment screenshot, e.g. "screenshots/1700000000000_a1b2c3.png"
    screenshot_path = Column(String, nullable=True)

    # Optional external receipt link
    receipt_url = Column(String, nullable=True)

    # Optional free-text notes
    notes = Column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Investment id={self.id} {self.category} {self.amount}>"


class AppSetting(Base):
    """Key/value application settings (currently only 'security_code')."""

    __tablename__ = "app_settings"

    id = Column(Integer, primary_key=True)
    setting_key = Column(String(64), nullable=False, unique=True)
    setting_value = Column(String, nullable=False)
