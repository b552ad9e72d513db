"""Exception hierarchy and global exception handlers for the FastAPI application."""

import traceback

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..messages import MessageCode, get_default_message
from src.utils.logger import get_logger

logger = get_logger(__name__)


class ExplorNaturaException(Exception):
    """Base exception for the ExplorNatura API with unified message codes."""

    def __init__(
        self,
        message_code: MessageCode,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict | None = None,
        headers: dict | None = None,
        message: str | None = None,
    ):
        self.message_code = message_code
        self.status_code = status_code
        self.message: str = message or get_default_message(message_code)
        self.details = details or {}
        self.headers = headers or {}
        super().__init__(self.message)

    def to_response_dict(self) -> dict:
        """Convert exception to API response format."""
        return {
            "message_code": self.message_code,
            "message": self.message,
            "details": self.details,
        }


class ConflictError(ExplorNaturaException):
    """Duplicate active key, duplicate host or an operation the state forbids."""

    def __init__(
        self,
        message_code: MessageCode = MessageCode.CONFLICT,
        details: dict | None = None,
        message: str | None = None,
    ):
        super().__init__(
            message_code, status.HTTP_409_CONFLICT, details, message=message
        )


class LimitExceededError(ExplorNaturaException):
    """The account's plan does not allow the requested domain configuration."""

    def __init__(
        self,
        message_code: MessageCode = MessageCode.DOMAIN_LIMIT_EXCEEDED,
        details: dict | None = None,
        message: str | None = None,
    ):
        super().__init__(
            message_code, status.HTTP_403_FORBIDDEN, details, message=message
        )


class NotFoundError(ExplorNaturaException):
    """Target does not exist or does not belong to the calling account."""

    def __init__(
        self,
        message_code: MessageCode = MessageCode.NOT_FOUND,
        details: dict | None = None,
        message: str | None = None,
    ):
        super().__init__(
            message_code, status.HTTP_404_NOT_FOUND, details, message=message
        )


def _serializable_errors(errors: list) -> list[dict]:
    serializable_errors = []
    for error in errors:
        error_dict = dict(error)
        error_dict.pop("ctx", None)
        if "input" in error_dict and hasattr(error_dict["input"], "isoformat"):
            error_dict["input"] = error_dict["input"].isoformat()
        serializable_errors.append(error_dict)
    return serializable_errors


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""

    @app.exception_handler(ExplorNaturaException)
    async def explornatura_exception_handler(
        request: Request, exc: ExplorNaturaException
    ) -> JSONResponse:
        """Handle custom ExplorNatura exceptions."""
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            "Request failed",
            path=request.url.path,
            method=request.method,
            status_code=exc.status_code,
            message_code=exc.message_code.value,
            details=exc.details,
        )

        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_response_dict(),
            headers=exc.headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Handle FastAPI and Starlette HTTP exceptions."""
        logger.warning(
            f"HTTP exception {exc.status_code}: {exc.detail}",
            path=request.url.path,
            method=request.method,
        )

        message_code = (
            MessageCode.NOT_FOUND
            if exc.status_code == status.HTTP_404_NOT_FOUND
            else MessageCode.BAD_REQUEST
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "message_code": message_code,
                "message": str(exc.detail),
                "details": {},
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle request validation errors."""
        try:
            serializable_errors = _serializable_errors(exc.errors())
        except (TypeError, ValueError):
            serializable_errors = [
                {"msg": "Validation error occurred", "type": "validation_error"}
            ]

        logger.warning(
            "Validation error occurred",
            path=request.url.path,
            method=request.method,
        )

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "message_code": MessageCode.INVALID_INPUT,
                "message": get_default_message(MessageCode.INVALID_INPUT),
                "details": {
                    "description": "Request validation failed",
                    "validation_errors": serializable_errors,
                },
            },
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(
        request: Request, exc: SQLAlchemyError
    ) -> JSONResponse:
        """Handle SQLAlchemy database errors."""
        logger.error(
            "Database error",
            path=request.url.path,
            method=request.method,
            exception_type=type(exc).__name__,
        )

        if isinstance(exc, IntegrityError):
            return JSONResponse(
                status_code=status.HTTP_409_CONFLICT,
                content={
                    "message_code": MessageCode.CONFLICT,
                    "message": "Data integrity constraint violated",
                    "details": {"database_error": "Constraint violation"},
                },
            )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "message_code": MessageCode.INTERNAL_ERROR,
                "message": "Database error occurred",
                "details": {"database_error": "Internal database error"},
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle all other unhandled exceptions."""
        logger.error(
            f"Unhandled exception: {str(exc)}",
            path=request.url.path,
            method=request.method,
            exception_type=type(exc).__name__,
            traceback=traceback.format_exc(),
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "message_code": MessageCode.INTERNAL_ERROR,
                "message": "Internal server error",
                "details": {"error_type": type(exc).__name__},
            },
        )
