from __future__ import annotations


class LedgerError(Exception):
    """Base class for failures raised by the ledger core."""

    kind = "error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(LedgerError):
    """Input rejected before anything was written."""

    kind = "validation"


class NotFoundError(LedgerError):
    """Unknown id, or an id that belongs to another tenant."""

    kind = "not_found"

    def __init__(self, resource: str) -> None:
        self.resource = resource
        super().__init__(f"{resource} not found")


class ConflictError(LedgerError):
    """The target row is not in a state that allows the operation."""

    kind = "conflict"


class InfrastructureError(LedgerError):
    """Storage failed mid-transaction; partial writes were rolled back."""

    kind = "infrastructure"
