from __future__ import annotations


class ApiError(Exception):
    """Typed failure raised by the service layer and rendered by the HTTP layer."""

    status = 500
    default_code = "INTERNAL_ERROR"

    def __init__(self, message: str, *, code: str | None = None, fields: list[dict] | None = None, status: int | None = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.fields = list(fields or [])
        if status is not None:
            self.status = int(status)

    def to_payload(self) -> dict:
        payload = {
            "ok": False,
            "error": self.code,
            "message": self.message,
            "status": int(self.status),
        }
        if self.fields:
            payload["fields"] = list(self.fields)
        return payload


class ValidationFailed(ApiError):
    status = 400
    default_code = "VALIDATION_FAILED"


class Unauthenticated(ApiError):
    status = 401
    default_code = "UNAUTHENTICATED"


class Forbidden(ApiError):
    status = 403
    default_code = "FORBIDDEN"


class NotFound(ApiError):
    status = 404
    default_code = "NOT_FOUND"


class Conflict(ApiError):
    status = 409
    default_code = "CONFLICT"


class TooManyAttempts(ApiError):
    status = 429
    default_code = "TOO_MANY_ATTEMPTS"


class UpstreamFailure(ApiError):
    status = 502
    default_code = "UPSTREAM_FAILURE"
