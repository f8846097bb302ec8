from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.platform.logger import get_logger
from app.platform.response import api_response

logger = get_logger(__name__)


class AppError(Exception):
    """Base for errors that map onto the JSON envelope with a fixed status code."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str | None = None

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    @property
    def error(self) -> str:
        name = type(self).__name__
        return f"{name}.{self.code}" if self.code else name


class AuthError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED

    MISSING_PARAMETERS = "MissingParameters"
    MALFORMED_SIGNATURE = "MalformedSignature"
    SIGNATURE_MISMATCH = "SignatureMismatch"
    EXPIRED_MESSAGE = "ExpiredMessage"
    INVALID_CHALLENGE = "InvalidChallenge"


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST

    MISSING_FIELD = "MissingField"
    INVALID_ADDRESS = "InvalidAddress"
    SELF_REFERRAL = "SelfReferral"
    INVALID_BODY = "InvalidBody"


class StorageError(AppError):
    """Persistence failure. Only the generic message reaches the client."""


def add_exception_handlers(app: FastAPI):
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return api_response(message=exc.message, error=exc.error, status_code=exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return api_response(
            message=str(exc.detail) or "Error",
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return api_response(
            message="Validation failed",
            error=f"ValidationError.{ValidationError.INVALID_BODY}",
            status_code=status.HTTP_400_BAD_REQUEST,
            data={"errors": exc.errors()},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")
        return api_response(
            message="Internal server error",
            error="StorageError" if isinstance(exc, SQLAlchemyError) else "InternalError",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
