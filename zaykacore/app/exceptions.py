from __future__ import annotations

"""Error taxonomy shared by the store, sync engine, ledger and reports."""


class CoreError(Exception):
    """Base class for errors surfaced to callers of the core."""

    code = "ERROR"
    status_code = 500

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint

    def to_dict(self) -> dict:
        data = {"code": self.code, "message": self.message}
        if self.hint:
            data["hint"] = self.hint
        return data


class NotAuthenticated(CoreError):
    """No valid tenant context for the calling flow."""

    code = "NOT_AUTHENTICATED"
    status_code = 401


class NotFound(CoreError):
    """The record does not exist for the tenant."""

    code = "NOT_FOUND"
    status_code = 404


class IOFailure(CoreError):
    """Local storage failed; the operation was rolled back."""

    code = "IO_FAILURE"
    status_code = 503


class InvalidAmount(CoreError, ValueError):
    """Ledger amounts must be positive, finite numbers."""

    code = "INVALID_AMOUNT"
    status_code = 400


class ExceedsBalance(CoreError, ValueError):
    """A payment larger than the outstanding credit balance."""

    code = "EXCEEDS_BALANCE"
    status_code = 409

    def __init__(self, amount, balance) -> None:
        super().__init__(
            f"Payment amount {amount} cannot exceed credit balance {balance}",
            hint="record a smaller payment",
        )
        self.amount = amount
        self.balance = balance


class OutstandingBalance(CoreError):
    """Customer deletion refused while credit is outstanding."""

    code = "OUTSTANDING_BALANCE"
    status_code = 409


class RemoteUnavailable(CoreError):
    """The remote service could not be reached or answered unsuccessfully."""

    code = "REMOTE_UNAVAILABLE"
    status_code = 503


class TenantMismatch(CoreError, PermissionError):
    """A record belongs to a different restaurant than the call's tenant."""

    code = "TENANT_MISMATCH"
    status_code = 403


__all__ = [
    "CoreError",
    "NotAuthenticated",
    "NotFound",
    "IOFailure",
    "InvalidAmount",
    "ExceedsBalance",
    "OutstandingBalance",
    "RemoteUnavailable",
    "TenantMismatch",
]
