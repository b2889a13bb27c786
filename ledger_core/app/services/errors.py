"""
Service-layer exceptions.

Every error carries the HTTP status it maps to; the application renders
them as ``{"error": message}`` at the request boundary.
"""

from typing import List, Optional


class LedgerError(Exception):
    """Base exception for ledger and catalog operations"""
    status_code = 500

    def __init__(self, message: str, details: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or []


class ValidationFailed(LedgerError):
    """Missing or malformed field, or an operation blocked by current state"""
    status_code = 400


class DuplicateKey(LedgerError):
    """Unique constraint violated"""
    status_code = 400


class NotFound(LedgerError):
    """Referenced entity is absent"""
    status_code = 404


class InsufficientInventory(LedgerError):
    """IN transaction would exceed what has been issued OUT"""
    status_code = 400

    def __init__(self, message: str, available: float = 0.0, requested: float = 0.0):
        super().__init__(message)
        self.available = available
        self.requested = requested


class PriceNotFound(LedgerError):
    """Neither a vendor assignment nor a chart entry prices the combination"""
    status_code = 404
