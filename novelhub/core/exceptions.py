"""
Domain errors raised by the budget/unlock services.
Routes translate them into HTTP responses (see novelhub.api.routes.errors).
"""
from typing import Any


class NovelhubError(Exception):
    """Base error; detail holds structured fields for logging and API payloads."""

    status_code = 500

    def __init__(self, message: str, detail: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or {}


class InvalidAmount(NovelhubError):
    status_code = 400


class NotFound(NovelhubError):
    status_code = 404

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} not found", {"entity": entity, "id": entity_id})
        self.entity = entity
        self.entity_id = entity_id


class TransactionAborted(NovelhubError):
    """Store failure inside a unit of work. Everything was rolled back; safe to retry."""

    status_code = 503


class TransactionRequired(NovelhubError):
    """Budget/mode mutation attempted on a session that is not inside a transaction."""


class RentalUnavailable(NovelhubError):
    status_code = 400


class LedgerImmutableError(NovelhubError):
    """Ledger rows are append-only."""


class PermissionDenied(NovelhubError):
    status_code = 403


class InsufficientBalance(NovelhubError):
    """The user's wallet cannot cover the payment."""

    status_code = 400
