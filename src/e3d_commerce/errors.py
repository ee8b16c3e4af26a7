"""
e3d_commerce.errors

Domain error hierarchy.

Responsibilities:
- Give services a typed way to fail without knowing about HTTP.
- Carry a stable error code and the HTTP status the API layer should use.
"""

from __future__ import annotations

from typing import Any


class CommerceError(Exception):
    code = "COMMERCE_ERROR"
    http_status = 500

    def __init__(
        self,
        message: str,
        *,
        details: list[dict[str, Any]] | dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_response(self) -> dict[str, Any]:
        body: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return {"error": body}


class NotFoundError(CommerceError):
    code = "NOT_FOUND"
    http_status = 404


class ConflictError(CommerceError):
    code = "CONFLICT"
    http_status = 409


class InvalidInputError(CommerceError):
    code = "INVALID_INPUT"
    http_status = 400


class AuthenticationError(CommerceError):
    code = "UNAUTHENTICATED"
    http_status = 401


class AuthorizationError(CommerceError):
    code = "FORBIDDEN"
    http_status = 403


def validation_details(errors: Any) -> list[dict[str, Any]]:
    """Flatten pydantic error dicts into `{field, message, type}` entries."""
    return [
        {
            "field": ".".join(str(loc) for loc in e["loc"]),
            "message": str(e["msg"]).removeprefix("Value error, "),
            "type": e["type"],
        }
        for e in errors
    ]


# --- Module Notes -----------------------------------------------------------
# Handlers for these live in `api.errors`; routers may still raise HTTPException
# directly for request-shape problems.
