import logging
import traceback
from enum import Enum
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, NoResultFound
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings

logger = logging.getLogger(__name__)

FieldErrors = Dict[str, List[str]]


class ErrorKind(str, Enum):
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    VALIDATION = "validation"
    TOO_MANY_REQUESTS = "too_many_requests"
    INTERNAL = "internal"


STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.BAD_REQUEST: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.TOO_MANY_REQUESTS: status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

_DEFAULT_MESSAGES: Dict[ErrorKind, str] = {
    ErrorKind.BAD_REQUEST: "Bad request",
    ErrorKind.UNAUTHORIZED: "Unauthorized",
    ErrorKind.FORBIDDEN: "Forbidden",
    ErrorKind.NOT_FOUND: "Not found",
    ErrorKind.CONFLICT: "Conflict",
    ErrorKind.VALIDATION: "Validation failed",
    ErrorKind.TOO_MANY_REQUESTS: "Too many requests",
    ErrorKind.INTERNAL: "Internal server error",
}


class AppError(Exception):
    """Единая доменная ошибка: вид (kind) + сообщение + необязательная карта ошибок полей.

    HTTP-статус определяется только видом ошибки, в одной точке трансляции.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: Optional[str] = None,
        errors: Optional[FieldErrors] = None,
    ):
        self.kind = kind
        self.message = message or _DEFAULT_MESSAGES[kind]
        self.errors = errors
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]

    @property
    def is_operational(self) -> bool:
        return self.kind is not ErrorKind.INTERNAL

    @classmethod
    def bad_request(cls, message: Optional[str] = None) -> "AppError":
        return cls(ErrorKind.BAD_REQUEST, message)

    @classmethod
    def unauthorized(cls, message: Optional[str] = None) -> "AppError":
        return cls(ErrorKind.UNAUTHORIZED, message)

    @classmethod
    def forbidden(cls, message: Optional[str] = None) -> "AppError":
        return cls(ErrorKind.FORBIDDEN, message)

    @classmethod
    def not_found(cls, message: Optional[str] = None) -> "AppError":
        return cls(ErrorKind.NOT_FOUND, message)

    @classmethod
    def conflict(cls, message: Optional[str] = None) -> "AppError":
        return cls(ErrorKind.CONFLICT, message)

    @classmethod
    def validation(cls, errors: FieldErrors, message: Optional[str] = None) -> "AppError":
        return cls(ErrorKind.VALIDATION, message, errors=errors)

    @classmethod
    def too_many_requests(cls, message: Optional[str] = None) -> "AppError":
        return cls(ErrorKind.TOO_MANY_REQUESTS, message)

    @classmethod
    def internal(cls, message: Optional[str] = None) -> "AppError":
        return cls(ErrorKind.INTERNAL, message)


def is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    if getattr(orig, "pgcode", None) == "23505" or getattr(orig, "sqlstate", None) == "23505":
        return True
    text = str(orig).lower()
    return "unique" in text or "duplicate" in text


def is_foreign_key_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    if getattr(orig, "pgcode", None) == "23503" or getattr(orig, "sqlstate", None) == "23503":
        return True
    return "foreign key" in str(orig).lower()


def validation_errors_to_fields(errors: List[Dict[str, Any]]) -> FieldErrors:
    fields: FieldErrors = {}
    for error in errors:
        loc = list(error.get("loc", ()))
        if loc and loc[0] in ("body", "query", "path", "header"):
            loc = loc[1:]
        path = ".".join(str(part) for part in loc) or "value"
        fields.setdefault(path, []).append(error.get("msg", "Invalid value"))
    return fields


def _envelope(
    status_code: int,
    message: str,
    errors: Optional[FieldErrors] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    content: Dict[str, Any] = {"success": False, "message": message}
    if errors is not None:
        content["errors"] = errors
    if extra:
        content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


def app_error_handler(request: Request, err: AppError) -> JSONResponse:
    if err.is_operational:
        logger.warning("%s %s -> %s: %s", request.method, request.url.path, err.status_code, err.message)
    else:
        logger.error("%s %s -> %s: %s", request.method, request.url.path, err.status_code, err.message)
    return _envelope(err.status_code, err.message, errors=err.errors)


def request_validation_handler(request: Request, err: RequestValidationError) -> JSONResponse:
    return app_error_handler(request, AppError.validation(validation_errors_to_fields(err.errors())))


def integrity_error_handler(request: Request, err: IntegrityError) -> JSONResponse:
    if is_unique_violation(err):
        translated = AppError.conflict("A record with this value already exists")
    elif is_foreign_key_violation(err):
        translated = AppError.bad_request("Related record not found")
    else:
        logger.exception("Unhandled database integrity error", exc_info=err)
        translated = AppError.internal("Database error")
    return app_error_handler(request, translated)


def no_result_handler(request: Request, err: NoResultFound) -> JSONResponse:
    return app_error_handler(request, AppError.not_found("Record not found"))


def http_exception_handler(request: Request, err: StarletteHTTPException) -> JSONResponse:
    logger.warning("%s %s -> %s: %s", request.method, request.url.path, err.status_code, err.detail)
    response = _envelope(err.status_code, str(err.detail))
    if err.headers:
        response.headers.update(err.headers)
    return response


def unknown_exception_handler(request: Request, err: Exception) -> JSONResponse:
    logger.exception("Unknown error occurred on %s %s", request.method, request.url.path, exc_info=err)
    if settings.is_production:
        return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, _DEFAULT_MESSAGES[ErrorKind.INTERNAL])
    stack = "".join(traceback.format_exception(type(err), err, err.__traceback__))
    return _envelope(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        str(err) or err.__class__.__name__,
        extra={"stack": stack},
    )


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(NoResultFound, no_result_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unknown_exception_handler)
