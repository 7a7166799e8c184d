"""Application exception classes and handlers."""

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, code: str, status_code: int = 400) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(message)


# --- Authentication (401) ---


class AuthenticationError(AppException):
    """Caller could not be identified."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message=message, code="AUTHENTICATION_ERROR", status_code=401)


# --- Authorization (403) ---


class AuthorizationError(AppException):
    """Caller does not own the referenced session."""

    def __init__(self, message: str = "Not authorized to access this session") -> None:
        super().__init__(message=message, code="AUTHORIZATION_ERROR", status_code=403)


# --- Not Found (404) ---


class SessionNotFoundError(AppException):
    """Session does not exist or is not visible to the caller."""

    def __init__(self, session_id: str | None = None) -> None:
        message = "Session not found"
        if session_id:
            message = f"Session {session_id} not found"
        super().__init__(message=message, code="SESSION_NOT_FOUND", status_code=404)


# --- Conflict (409) ---


class ConflictError(AppException):
    """Session changed between read and write."""

    def __init__(
        self, message: str = "Session was modified concurrently, reload and retry"
    ) -> None:
        super().__init__(message=message, code="SESSION_CONFLICT", status_code=409)


# --- Validation (422) ---


class InvalidParameterError(AppException):
    """Caller-supplied parameter violates a stated constraint."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="VALIDATION_ERROR", status_code=422)


# --- Server side (5xx) ---


class ExportError(AppException):
    """Export document could not be written to its sink."""

    def __init__(self, message: str = "Failed to write export") -> None:
        super().__init__(message=message, code="EXPORT_FAILED", status_code=500)


class StoreError(AppException):
    """Record store rejected or failed a request."""

    def __init__(self, message: str = "Record store request failed") -> None:
        super().__init__(message=message, code="STORE_ERROR", status_code=503)


# --- Exception Handlers ---


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Central exception handler for AppException."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": {
                "code": exc.code,
                "message": exc.message,
            },
        },
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request body/query validation failures in the error envelope."""
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    detail = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "error": {
                "code": "VALIDATION_ERROR",
                "message": f"{location}: {detail}" if location else detail,
            },
        },
    )
