from typing import Any, Dict, List, Optional, Union
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from school_admin.core.logging import logger

ErrorMap = Dict[str, List[str]]


class BaseAPIError(Exception):
    """Base exception class for API errors"""
    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
        errors: Optional[ErrorMap] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        self.errors = errors or {}
        super().__init__(message)


class AuthenticationError(BaseAPIError):
    """Base class for authentication-related errors"""
    def __init__(
        self,
        message: str = "Authentication failed",
        error_code: str = "AUTH_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code=error_code,
            details=details
        )


class TokenError(AuthenticationError):
    """Raised when there's a token-related error"""
    def __init__(
        self,
        message: str = "Invalid or expired token",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="TOKEN_ERROR",
            details=details
        )


class PermissionDenied(BaseAPIError):
    """Raised when user doesn't have required permissions"""
    def __init__(
        self,
        message: str = "Permission denied",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="PERMISSION_DENIED",
            details=details
        )


class CrossTenantError(BaseAPIError):
    """Raised when a referenced entity belongs to another school.

    Entities addressed by the URL path surface as 403; entities referenced
    from a request body surface as 422 with the offending field named.
    """
    def __init__(
        self,
        message: str = "All entities must belong to the same school",
        field: Optional[str] = None,
        status_code: int = status.HTTP_422_UNPROCESSABLE_ENTITY,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code="CROSS_TENANT",
            details=details,
            errors={field: [message]} if field else None
        )


class NotFoundError(BaseAPIError):
    """Raised when a requested resource is not found"""
    def __init__(
        self,
        message: str = "Resource not found",
        details: Optional[Dict[str, Any]] = None,
        field: Optional[str] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND",
            details=details,
            errors={field: [message]} if field else None
        )


class ValidationError(BaseAPIError):
    """Raised when input validation fails"""
    def __init__(
        self,
        message: str = "Validation error",
        errors: Optional[ErrorMap] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="VALIDATION_ERROR",
            details=details,
            errors=errors
        )


class WrongModeError(BaseAPIError):
    """Raised when an operation does not match the school's stream setting"""
    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="WRONG_MODE",
            details=details
        )


class InvariantViolationError(BaseAPIError):
    """Raised when a write would break an assignment rule"""
    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        error_code: str = "INVARIANT_VIOLATION",
        details: Optional[Dict[str, Any]] = None,
        errors: Optional[ErrorMap] = None
    ):
        if errors is None and field:
            errors = {field: [message]}
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code=error_code,
            details=details,
            errors=errors
        )


class CapacityExceededError(InvariantViolationError):
    def __init__(self, message: str, field: str = "teacher_id", **kwargs):
        super().__init__(message, field=field, error_code="CAPACITY_EXCEEDED", **kwargs)


class AlreadyClassTeacherElsewhereError(InvariantViolationError):
    def __init__(self, message: str, field: str = "teacher_id", **kwargs):
        super().__init__(message, field=field, error_code="ALREADY_CLASS_TEACHER", **kwargs)


class ClassroomHasClassTeacherError(InvariantViolationError):
    def __init__(self, message: str, field: str = "is_class_teacher", **kwargs):
        super().__init__(message, field=field, error_code="CLASSROOM_HAS_CLASS_TEACHER", **kwargs)


class DuplicateAssignmentError(InvariantViolationError):
    def __init__(self, message: str, field: str = "teacher_id", **kwargs):
        super().__init__(message, field=field, error_code="DUPLICATE_ASSIGNMENT", **kwargs)


class DuplicateTermError(InvariantViolationError):
    def __init__(self, message: str, field: str = "term", **kwargs):
        super().__init__(message, field=field, error_code="DUPLICATE_TERM", **kwargs)


class UnqualifiedTeacherError(InvariantViolationError):
    def __init__(self, message: str, field: str = "teacher_id", **kwargs):
        super().__init__(message, field=field, error_code="UNQUALIFIED_TEACHER", **kwargs)


class ConcurrentAssignmentError(InvariantViolationError):
    """A database uniqueness backstop rejected the write"""
    def __init__(
        self,
        message: str = "The assignment conflicts with a concurrent change. Please retry.",
        **kwargs
    ):
        super().__init__(message, error_code="CONCURRENT_CONFLICT", **kwargs)


class DuplicateSubjectAssignmentError(BaseAPIError):
    """Raised when the same teaching duty is recorded twice"""
    def __init__(
        self,
        message: str = "This assignment already exists",
        details: Optional[Dict[str, Any]] = None,
        field: Optional[str] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code="DUPLICATE_SUBJECT_ASSIGNMENT",
            details=details,
            errors={field: [message]} if field else None
        )


class TransientStoreError(BaseAPIError):
    """Raised when the transaction failed and was rolled back"""
    def __init__(
        self,
        message: str = "The operation could not be completed. No changes were saved.",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="TRANSIENT_STORE_ERROR",
            details=details
        )


def get_error_message(
    error: Union[Exception, HTTPException, str],
    default_message: str = "An unexpected error occurred",
    include_details: bool = True
) -> Dict[str, Any]:
    """
    Formats an error into the API's error envelope.

    Args:
        error: The exception that was raised or error message string
        default_message: Fallback message if error type is not recognized
        include_details: Whether to include error details in response

    Returns:
        Dict containing the error code, message, status and field errors
    """
    error_response: Dict[str, Any] = {
        "success": False,
        "error_code": "INTERNAL_ERROR",
        "message": default_message,
        "status_code": 500,
        "errors": {}
    }

    if isinstance(error, str):
        error_response.update({
            "message": error,
            "error_code": "GENERAL_ERROR"
        })
        return error_response

    if isinstance(error, BaseAPIError):
        error_response.update({
            "error_code": error.error_code,
            "message": error.message,
            "status_code": error.status_code,
            "errors": error.errors
        })
        if include_details and error.details:
            error_response["details"] = error.details

    elif isinstance(error, HTTPException):
        error_response.update({
            "error_code": "HTTP_ERROR",
            "message": str(error.detail),
            "status_code": error.status_code
        })

    elif isinstance(error, SQLAlchemyError):
        error_response.update({
            "error_code": "DB_ERROR",
            "message": "Database error occurred",
            "status_code": 500
        })

    return error_response


def _request_errors(exc: RequestValidationError) -> ErrorMap:
    errors: ErrorMap = {}
    for item in exc.errors():
        loc = [str(part) for part in item.get("loc", ()) if part not in ("body", "query", "path")]
        key = ".".join(loc) or "request"
        errors.setdefault(key, []).append(item.get("msg", "Invalid value"))
    return errors


async def api_error_handler(request: Request, exc: BaseAPIError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=get_error_message(exc))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = ValidationError("The given data was invalid.", errors=_request_errors(exc))
    return JSONResponse(status_code=error.status_code, content=get_error_message(error))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=get_error_message(exc, include_details=False)
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BaseAPIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
