"""
Centralized exception handling for the Fleet Registry API.

This module provides:
- Base APIException class extending FastAPI's HTTPException.
- Category bases (NotFound, AlreadyExists, InvalidArgument,
  FailedPrecondition, Internal) every domain exception belongs to.
- `handle()`, the single place where raw DB, Redis and Pydantic errors are
  classified before they reach a caller.

Usage:
    - Raise specific exceptions in route handlers or in the store.
    - Use `handle()` to normalize raw exceptions into API-friendly responses.
"""

from traceback import format_exception
from logging import getLogger
from fastapi import status, HTTPException
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from psycopg2.errorcodes import (
    UNIQUE_VIOLATION,
    FOREIGN_KEY_VIOLATION,
    NOT_NULL_VIOLATION,
    CHECK_VIOLATION,
    QUERY_CANCELED,
)
from pydantic import ValidationError
from redis.exceptions import RedisError
from sqlalchemy import Column


# ---------------------------------------------------------------------------
# Utility functions
# ---------------------------------------------------------------------------
def sqlState(e: DBAPIError) -> str | None:
    """
    Return the SQLSTATE of a DBAPI error.

    PostgreSQL (psycopg2) reports it directly. SQLite only reports a message,
    so the constraint kind is recovered from its wording.
    """
    code = getattr(e.orig, "pgcode", None)
    if code:
        return code
    message = str(e.orig)
    if "UNIQUE constraint failed" in message:
        return UNIQUE_VIOLATION
    if "FOREIGN KEY constraint failed" in message:
        return FOREIGN_KEY_VIOLATION
    if "NOT NULL constraint failed" in message:
        return NOT_NULL_VIOLATION
    if "CHECK constraint failed" in message:
        return CHECK_VIOLATION
    return None


def formatIntegrityError(e: IntegrityError) -> str:
    """
    Format a database integrity error into a user-friendly message.
    """
    diag = getattr(e.orig, "diag", None)
    errorMessage = getattr(diag, "message_detail", None) or str(e.orig)
    errorMessage = errorMessage.translate({ord(i): None for i in '\\"\\.\\(\\)'})
    errorMessage = errorMessage.replace("Key ", "For ")
    errorMessage = errorMessage.replace("=", " value ")
    return errorMessage


def logException(e: Exception) -> None:
    """Log an exception with traceback using Uvicorn's error logger."""
    detail = str(format_exception(type(e), e, e.__traceback__))
    logger = getLogger("uvicorn.error")
    logger.error(detail)


# ---------------------------------------------------------------------------
# Base Exception
# ---------------------------------------------------------------------------
class APIException(HTTPException):
    """
    Base class for all application-specific exceptions.

    Provides default handling of status_code, detail, and headers.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    detail = None
    headers = None

    def __init__(self, *args, **kwargs):
        kwargs.setdefault("status_code", self.status_code)
        kwargs.setdefault("detail", self.detail)
        kwargs.setdefault("headers", self.headers)
        super().__init__(*args, **kwargs)


# ---------------------------------------------------------------------------
# Exception handling entrypoint
# ---------------------------------------------------------------------------
def handle(e: Exception):
    """
    Normalize and re-raise exceptions as API-friendly errors.

    Storage errors are never re-raised verbatim. Constraint violations are
    mapped to their category, a server side statement cancel becomes
    DeadlineExceeded and everything else from the storage layer is logged
    and reported as StorageError.
    """
    if isinstance(e, APIException):
        raise e
    if isinstance(e, IntegrityError):
        code = sqlState(e)
        if code == UNIQUE_VIOLATION:
            raise UniqueViolation(formatIntegrityError(e))
        if code == FOREIGN_KEY_VIOLATION:
            raise ForeignKeyViolation(formatIntegrityError(e))
        if code == NOT_NULL_VIOLATION:
            raise NotNullViolation(formatIntegrityError(e))
        if code == CHECK_VIOLATION:
            raise CheckViolation(formatIntegrityError(e))
    if isinstance(e, DBAPIError) and sqlState(e) == QUERY_CANCELED:
        raise DeadlineExceeded()
    if isinstance(e, SQLAlchemyError):
        logException(e)
        raise StorageError() from e
    if isinstance(e, ValidationError):
        raise PydanticError(detail=e.errors())
    if isinstance(e, RedisError):
        raise RedisDBError(detail=str(e))

    logException(e)
    raise e


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------
class NotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    headers = {"X-Error": "NotFound"}


class AlreadyExists(APIException):
    status_code = status.HTTP_409_CONFLICT
    headers = {"X-Error": "AlreadyExists"}


class InvalidArgument(APIException):
    status_code = status.HTTP_406_NOT_ACCEPTABLE
    headers = {"X-Error": "InvalidArgument"}


class FailedPrecondition(APIException):
    status_code = status.HTTP_412_PRECONDITION_FAILED
    headers = {"X-Error": "FailedPrecondition"}


class Internal(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    headers = {"X-Error": "Internal"}


# ---------------------------------------------------------------------------
# NotFound
# ---------------------------------------------------------------------------
class InvalidIdentifier(NotFound):
    detail = "Invalid ID provided"
    headers = {"X-Error": "InvalidIdentifier"}


# ---------------------------------------------------------------------------
# AlreadyExists
# ---------------------------------------------------------------------------
class UniqueViolation(AlreadyExists):
    headers = {"X-Error": "UniqueViolation"}

    def __init__(self, detail: str):
        super().__init__(detail=detail)


# ---------------------------------------------------------------------------
# InvalidArgument
# ---------------------------------------------------------------------------
class PydanticError(InvalidArgument):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    headers = {"X-Error": "PydanticError"}

    def __init__(self, detail: str):
        super().__init__(detail=detail)


class ForeignKeyViolation(InvalidArgument):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    headers = {"X-Error": "ForeignKeyViolation"}

    def __init__(self, detail: str):
        super().__init__(detail=detail)


class NotNullViolation(InvalidArgument):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    headers = {"X-Error": "NotNullViolation"}

    def __init__(self, detail: str):
        super().__init__(detail=detail)


class CheckViolation(InvalidArgument):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    headers = {"X-Error": "CheckViolation"}

    def __init__(self, detail: str):
        super().__init__(detail=detail)


class InvalidValue(InvalidArgument):
    headers = {"X-Error": "InvalidValue"}

    def __init__(self, column_name: Column):
        detail = f"Invalid {column_name.key} is provided"
        super().__init__(detail=detail)


class InvalidStateTransition(InvalidArgument):
    headers = {"X-Error": "InvalidStateTransition"}

    def __init__(self, column_name: Column):
        detail = f"The {column_name.key} cannot be set to the provided value"
        super().__init__(detail=detail)


class InvalidPageToken(InvalidArgument):
    detail = "Invalid page token provided"
    headers = {"X-Error": "InvalidPageToken"}


class InvalidFieldMask(InvalidArgument):
    headers = {"X-Error": "InvalidFieldMask"}

    def __init__(self, fields: list[str]):
        detail = f"Unknown fields in update mask: {', '.join(fields)}"
        super().__init__(detail=detail)


class InvalidFilter(InvalidArgument):
    headers = {"X-Error": "InvalidFilter"}

    def __init__(self, names: list[str]):
        detail = f"Unknown filters: {', '.join(names)}"
        super().__init__(detail=detail)


class InvalidSSOState(InvalidArgument):
    detail = "The SSO state is unknown or expired"
    headers = {"X-Error": "InvalidSSOState"}


# ---------------------------------------------------------------------------
# FailedPrecondition
# ---------------------------------------------------------------------------
class LicenseExpired(FailedPrecondition):
    detail = "The driving license of the driver is expired"
    headers = {"X-Error": "LicenseExpired"}


class DataInUse(FailedPrecondition):
    headers = {"X-Error": "DataInUse"}

    def __init__(self, orm_class):
        detail = f"The {orm_class.__name__} is currently in use"
        super().__init__(detail=detail)


class InactiveResource(FailedPrecondition):
    headers = {"X-Error": "InactiveResource"}

    def __init__(self, orm_class):
        detail = (
            f"The status of {orm_class.__name__} is not in an active or useful state"
        )
        super().__init__(detail=detail)


class InactiveAccount(FailedPrecondition):
    detail = "The account is not in active status"
    headers = {"X-Error": "InactiveAccount"}


class ConcurrentModification(FailedPrecondition):
    headers = {"X-Error": "ConcurrentModification"}

    def __init__(self, orm_class):
        detail = f"The status of {orm_class.__name__} was changed by another request"
        super().__init__(detail=detail)


# ---------------------------------------------------------------------------
# Internal
# ---------------------------------------------------------------------------
class CorruptedValue(Internal):
    headers = {"X-Error": "CorruptedValue"}

    def __init__(self, orm_class):
        detail = f"A stored {orm_class.__name__} holds an unknown value"
        super().__init__(detail=detail)


class AllocatorUnavailable(Internal):
    headers = {"X-Error": "AllocatorUnavailable"}

    def __init__(self, detail: str):
        super().__init__(detail=detail)


class StorageError(Internal):
    detail = "The storage backend failed to process the request"
    headers = {"X-Error": "StorageError"}


# ---------------------------------------------------------------------------
# Others
# ---------------------------------------------------------------------------
class InvalidCredentials(APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Invalid email or password"
    headers = {"X-Error": "InvalidCredentials"}


class DeadlineExceeded(APIException):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    detail = "The request deadline was exceeded"
    headers = {"X-Error": "DeadlineExceeded"}


class RedisDBError(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    headers = {"X-Error": "RedisAPIError"}

    def __init__(self, detail: str):
        super().__init__(detail=detail)
