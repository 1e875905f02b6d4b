"""Translation of failures into JSON error responses.

Routes raise :class:`ApiError` with one of the closed :class:`ErrorKind`
values; the handlers registered by :func:`register_error_handlers` turn those,
request validation failures, unmatched routes and unexpected exceptions into
the response bodies clients see.
"""
import logging
from enum import Enum

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from courses_api.core import config

logger = logging.getLogger(__name__)

PAGE_NOT_FOUND_MESSAGE = 'Page Not Found'
INVALID_JSON_MESSAGE = 'The request body must be valid JSON'
ACCESS_DENIED_MESSAGE = 'Access Denied'


class ErrorKind(str, Enum):
    VALIDATION = 'validation'
    UNIQUENESS = 'uniqueness'
    NOT_FOUND = 'not_found'
    UNAUTHORIZED = 'unauthorized'
    FORBIDDEN = 'forbidden'
    INTERNAL = 'internal'


DEFAULT_STATUS_CODES = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNIQUENESS: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class ApiError(Exception):
    """A failure that ends the current request with a known response."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str | None = None,
        errors: list[str] | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message or ', '.join(errors or []) or kind.value)
        self.kind = kind
        self.message = message
        self.errors = list(errors or [])
        self.status_code = status_code or DEFAULT_STATUS_CODES[kind]


def build_error_body(exc: ApiError) -> dict:
    if exc.kind in (ErrorKind.VALIDATION, ErrorKind.UNIQUENESS):
        return {'errors': exc.errors or ([exc.message] if exc.message else [])}
    if exc.kind in (ErrorKind.NOT_FOUND, ErrorKind.UNAUTHORIZED, ErrorKind.FORBIDDEN):
        return {'message': exc.message}
    if exc.kind is ErrorKind.INTERNAL:
        return {'message': exc.message, 'error': {}}
    raise ValueError(f'Unhandled error kind: {exc.kind!r}')


def describe_validation_error(error: dict) -> str:
    if error.get('type') == 'json_invalid':
        return INVALID_JSON_MESSAGE
    if error.get('type') == 'value_error':
        ctx_error = (error.get('ctx') or {}).get('error')
        if ctx_error is not None:
            return str(ctx_error)

    location = [str(part) for part in error.get('loc', ()) if part not in ('body', 'path', 'query')]
    if error.get('type') == 'missing' and location:
        return f'Please provide a value for "{location[-1]}"'
    if location:
        return f'{location[-1]}: {error.get("msg")}'
    return str(error.get('msg'))


def validation_messages(exc: RequestValidationError) -> list[str]:
    return [describe_validation_error(error) for error in exc.errors()]


async def api_error_handler(_request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=build_error_body(exc))


async def request_validation_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={'errors': validation_messages(exc)},
    )


async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return JSONResponse(status_code=exc.status_code, content={'message': PAGE_NOT_FOUND_MESSAGE})
    return JSONResponse(
        status_code=exc.status_code,
        content={'message': exc.detail},
        headers=getattr(exc, 'headers', None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    if config.ENABLE_GLOBAL_ERROR_LOGGING:
        logger.error('Global error handler: %s %s', request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={'message': str(exc), 'error': {}},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
