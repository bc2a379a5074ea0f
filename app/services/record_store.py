# app/services/record_store.py
#
# Record Store
# Thin wrapper around a SQLAlchemy session for the investments and
# app_settings tables. SQLAlchemy errors never leave this module: reads
# become LoadError, writes become PersistenceError.

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.errors import LoadError, PersistenceError
from models import AppSetting, Investment

logger = logging.getLogger(__name__)

SECURITY_CODE_KEY = "security_code"


class RecordStore:
    """Insert / select-all / delete-by-id over the investments table."""

    def __init__(self, db: Session):
        self.db = db

    # ---- Investments ----

    def insert(
        self,
        *,
        amount: float,
        category: str,
        grams: Optional[float] = None,
        screenshot_path: Optional[str] = None,
        receipt_url: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Investment:
        """Insert one record; id and created_at are assigned here."""
        record = Investment(
            amount=amount,
            grams=grams,
            category=category,
            screenshot_path=screenshot_path,
            receipt_url=receipt_url,
            notes=notes,
        )
        try:
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("[insert] ERROR during DB insert: %r", e)
            raise PersistenceError(f"Failed to save investment: {e}") from e

        logger.info("[insert] id=%s | %s | %s INR", record.id, record.category, record.amount)
        return record

    def select_all(self) -> List[Investment]:
        """All records, newest first."""
        try:
            return (
                self.db.query(Investment)
                .order_by(Investment.created_at.desc())
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("[select] ERROR loading investments: %r", e)
            raise LoadError(f"Failed to load investments: {e}") from e

    def delete_by_id(self, record_id: int) -> None:
        try:
            deleted = (
                self.db.query(Investment)
                .filter(Investment.id == record_id)
                .delete(synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("[delete] ERROR deleting id=%s: %r", record_id, e)
            raise PersistenceError(f"Error deleting entry: {e}") from e

        if not deleted:
            raise PersistenceError(f"Error deleting entry: no investment with id {record_id}")
        logger.info("[delete] removed investment id=%s", record_id)

    # ---- Settings ----

    def get_security_code(self) -> str:
        """
        Read the expected unlock code. Fetched on every call, never cached.
        """
        try:
            row = (
                self.db.query(AppSetting)
                .filter(AppSetting.setting_key == SECURITY_CODE_KEY)
                .one_or_none()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("[auth] ERROR reading security code: %r", e)
            row = None

        if row is None:
            raise PersistenceError(
                "Failed to verify security code. Please check your database setup."
            )
        return row.setting_value

    def ensure_security_code(self, code: str) -> bool:
        """
        Insert the security code row if it does not exist yet.
        Returns True when a row was created.
        """
        try:
            exists = (
                self.db.query(AppSetting.id)
                .filter(AppSetting.setting_key == SECURITY_CODE_KEY)
                .first()
            )
            if exists:
                return False
            self.db.add(AppSetting(setting_key=SECURITY_CODE_KEY, setting_value=code))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to store security code: {e}") from e

        logger.info("[settings] seeded security code from environment")
        return True
