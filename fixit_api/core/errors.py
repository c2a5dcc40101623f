"""Error taxonomy and the handlers that render it as ``{message, errors?}``."""

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

GENERIC_SERVER_MESSAGE = 'Server error'


class AppError(HTTPException):
    """Base class for errors the API reports to clients."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = GENERIC_SERVER_MESSAGE

    def __init__(self, message: str | None = None, errors: list[dict] | None = None, headers: dict | None = None):
        super().__init__(
            status_code=type(self).status_code,
            detail=message or type(self).default_message,
            headers=headers,
        )
        self.errors = errors


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Validation failed'


class AuthError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = 'Not authorized'


class InvalidCredentialsError(AuthError):
    # Bad login credentials are a 400, token problems a 401.
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Invalid email or password'


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = 'Access denied'


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Not found'


class ConflictError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Conflict'


class StorageError(AppError):
    """Upload or signing failure. Clients only ever see the generic message."""

    default_message = 'Storage error'


class InvalidUploadError(StorageError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Only image uploads are allowed'


def error_body(message: str, errors: list[dict] | None = None) -> dict:
    body = {'message': message}
    if errors:
        body['errors'] = errors
    return body


def _field_errors(exc: RequestValidationError) -> list[dict]:
    field_errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get('loc', ()) if part not in ('body', 'query', 'path')]
        message = error.get('msg', 'Invalid value')
        if message.startswith('Value error, '):
            message = message[len('Value error, '):]
        field_errors.append({'field': '.'.join(location), 'msg': message})
    return field_errors


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error('%s %s failed: %s', request.method, request.url.path, exc.detail, exc_info=exc.__cause__)
        message = GENERIC_SERVER_MESSAGE
    else:
        message = exc.detail
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, exc.errors),
        headers=exc.headers,
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == 'Not Found':
        message = 'Route not found'
    else:
        message = exc.detail if isinstance(exc.detail, str) else GENERIC_SERVER_MESSAGE
    return JSONResponse(status_code=exc.status_code, content=error_body(message), headers=exc.headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body('Validation failed', _field_errors(exc)),
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception('Database error on %s %s', request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(GENERIC_SERVER_MESSAGE),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception('Unhandled error on %s %s', request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(GENERIC_SERVER_MESSAGE),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
