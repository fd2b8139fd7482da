"""Error taxonomy for duel operations.

Every failure that aborts an operation before mutation is a DuelError
subclass carrying a stable ``code`` (the taxonomy member) and ``reason``
(the specific precondition that failed), so callers can branch on them
without parsing messages.
"""

from typing import Any


class DuelError(Exception):
    """Base exception for duel operations."""

    code = "duel_error"
    http_status = 400

    def __init__(self, message: str, reason: str | None = None, **details: Any):
        super().__init__(message)
        self.message = message
        self.reason = reason or self.code
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "error": self.code,
            "reason": self.reason,
            "detail": self.message,
        }
        if self.details:
            payload["context"] = self.details
        return payload


class NotFoundError(DuelError):
    """Duel, user or notification does not exist."""

    code = "not_found"
    http_status = 404

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            f"{resource.capitalize()} {resource_id} not found",
            reason=f"{resource}_not_found",
            resource_id=resource_id,
        )
        self.resource = resource
        self.resource_id = resource_id


class UnauthorizedError(DuelError):
    """Caller is not allowed to perform the action."""

    code = "unauthorized"
    http_status = 403


class InvalidStateError(DuelError):
    """Entity is in the wrong state for the action."""

    code = "invalid_state"
    http_status = 409


class InvalidInputError(DuelError):
    """Request value is malformed or missing."""

    code = "invalid_input"
    http_status = 400


class VerificationError(DuelError):
    """On-chain transaction could not be verified and verification is enforced."""

    code = "verification_failed"
    http_status = 402
