# krishisarthi/errors.py

from __future__ import annotations

from typing import Any, Dict, Optional


class MarketplaceError(Exception):
    """Base class for errors the API maps onto a JSON envelope."""

    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: Optional[str] = None, *, details: Any = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        self.details = details
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": False, "message": self.message}
        if self.details is not None:
            body["error"] = self.details
        return body


class ValidationError(MarketplaceError):
    status_code = 400
    default_message = "Validation failed"


class StateGuardError(MarketplaceError):
    status_code = 400
    default_message = "Operation not allowed in the current status"


class AuthenticationError(MarketplaceError):
    status_code = 401
    default_message = "Authentication required"


class AuthorizationError(MarketplaceError):
    status_code = 403
    default_message = "You are not allowed to perform this action"


class NotFoundError(MarketplaceError):
    status_code = 404
    default_message = "Not found"


class ConflictError(MarketplaceError):
    status_code = 409
    default_message = "Conflict"


def from_pydantic(exc) -> ValidationError:
    """Turn a pydantic ValidationError into ours with `field: message` entries."""
    fields = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "__root__")
        msg = err.get("msg", "invalid value")
        fields.append(f"{loc}: {msg}" if loc else msg)
    first = fields[0] if fields else "invalid payload"
    return ValidationError(f"Validation failed: {first}", details=fields)
