# app/errors.py
"""
Error types shared by services and routes.

Services raise these; routes catch them and turn them into inline form
errors, banners, or transient notices. Nothing here is fatal to the app.
"""


class InvestmentError(Exception):
    """Base class for all expected application errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(InvestmentError):
    """Bad user input. Shown inline; nothing is stored."""


class LoadError(InvestmentError):
    """The record store could not be read."""


class PersistenceError(InvestmentError):
    """A write (insert/delete/upload) was rejected or the store is unreachable."""


class BlobStoreError(InvestmentError):
    """File I/O failure inside the blob store."""


class BlobNotFound(BlobStoreError):
    """No blob stored at the requested path, or a signed URL that no longer resolves."""


class ScreenshotUnavailable(InvestmentError):
    """A screenshot could not be opened (missing path, missing file, bad signed URL)."""


class LoginRequired(Exception):
    """Raised by the session dependency; converted into a redirect to /login."""
