"""Custom error handlers and exceptions for the application."""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from typing import Optional, Union

from .logging_config import get_logger

logger = get_logger("error_handlers")


class AppException(Exception):
    """Base exception for application-specific errors."""

    def __init__(self, message: str, status_code: int = 500, details: Optional[dict] = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ResourceNotFoundError(AppException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: Union[int, str]):
        super().__init__(
            message=f"{resource} with identifier '{identifier}' not found",
            status_code=404,
            details={"resource": resource, "identifier": str(identifier)}
        )


class InvalidTransitionError(AppException):
    """Raised when a line or session cannot move to the requested state."""

    def __init__(self, message: str, **details):
        super().__init__(message=message, status_code=409, details=details)


class NotAReceiptError(AppException):
    """The scanned image is a payment slip or customer copy, not a receipt."""

    def __init__(self, keyword: Optional[str] = None):
        super().__init__(
            message="The scanned document is not an itemized receipt",
            status_code=422,
            details={"reason": "not_a_receipt", "keyword": keyword}
        )


class NoItemsFoundError(AppException):
    """Extraction found no item lines."""

    def __init__(self):
        super().__init__(
            message="No product lines were found on the receipt",
            status_code=422,
            details={"reason": "no_items_found"}
        )


class CatalogUnavailableError(AppException):
    """Raised when the product catalog cannot be searched."""

    def __init__(self, message: str, original_error: Optional[str] = None):
        super().__init__(
            message=f"Product catalog unavailable: {message}",
            status_code=503,
            details={"original_error": original_error}
        )


class EstimationUnavailableError(AppException):
    """Raised when the shelf-life service gives no usable answer."""

    def __init__(self, message: str, original_error: Optional[str] = None):
        super().__init__(
            message=f"Shelf-life estimation unavailable: {message}",
            status_code=503,
            details={"original_error": original_error}
        )


class CommitRowFailedError(AppException):
    """Raised when a single receipt line cannot be committed."""

    def __init__(self, line_index: int, message: str):
        super().__init__(
            message=f"Line {line_index} could not be committed: {message}",
            status_code=500,
            details={"line_index": line_index}
        )


async def app_exception_handler(request: Request, exc: AppException):
    """Handler for custom application exceptions."""
    logger.error(
        f"Application error: {exc.message}",
        extra={
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.message,
            "details": exc.details,
            "path": request.url.path
        }
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handler for request validation errors."""
    errors = []
    for error in exc.errors():
        errors.append({
            "field": " -> ".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"]
        })

    logger.warning(
        f"Validation error on {request.method} {request.url.path}",
        extra={"validation_errors": errors}
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "Validation failed",
            "validation_errors": errors,
            "path": request.url.path
        }
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
    """Handler for SQLAlchemy database errors."""
    error_msg = "Database error occurred"

    if isinstance(exc, IntegrityError):
        error_msg = "Data integrity constraint violated"
        status_code = status.HTTP_409_CONFLICT
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    logger.error(
        f"Database error: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "exception_type": type(exc).__name__
        },
        exc_info=True
    )

    return JSONResponse(
        status_code=status_code,
        content={
            "error": error_msg,
            "path": request.url.path
        }
    )


async def generic_exception_handler(request: Request, exc: Exception):
    """Handler for unexpected exceptions."""
    logger.critical(
        f"Unhandled exception: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "exception_type": type(exc).__name__
        },
        exc_info=True
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please contact support if the issue persists.",
            "path": request.url.path
        }
    )
