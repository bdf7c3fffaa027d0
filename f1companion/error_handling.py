"""
Error classification and problem document rendering.

Every exception that escapes a request ends up in ``classify``, which maps it
to a status code, a title, a client-safe detail message, whether the raw
exception may be attached to the response, and the level it is logged at.

Two tiers are distinguished:

- domain errors (``LeagueAppError`` subclasses) are expected business facts and
  always produce a 4xx without the exception attached, logged as warnings;
- storage faults are triaged by the engine-reported error code (SQLSTATE for
  PostgreSQL drivers, extended result names for SQLite), never by message
  text. Constraint violations are the client's to fix (4xx), a missing relation
  is a deployment defect (503), anything else is a 500.

Responses follow RFC 7807 (``application/problem+json``).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from http import HTTPStatus
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .exceptions import (
    AlreadyInLeagueError,
    AuthenticationRequiredError,
    DuplicateTeamError,
    InvalidArgumentError,
    InvalidLeagueInviteTokenError,
    InvalidOperationError,
    LeagueAppError,
    LeagueFullError,
    LeagueIsPrivateError,
    LeagueNotFoundError,
    NotLeagueOwnerError,
    TeamNotFoundError,
    TokenGenerationFailedError,
    UserProfileNotFoundError,
)

logger = logging.getLogger(__name__)

PROBLEM_JSON = "application/problem+json"
PROBLEM_TYPE_BASE = "https://httpstatuses.com"


class StorageErrorCode(str, Enum):
    """Storage engine error codes the classifier understands (PostgreSQL SQLSTATE)."""

    UNDEFINED_TABLE = "42P01"
    UNIQUE_VIOLATION = "23505"
    FOREIGN_KEY_VIOLATION = "23503"
    NOT_NULL_VIOLATION = "23502"


# sqlite3 exposes extended result codes by name on Python 3.11+
SQLITE_ERROR_NAMES = {
    "SQLITE_CONSTRAINT_UNIQUE": StorageErrorCode.UNIQUE_VIOLATION,
    "SQLITE_CONSTRAINT_PRIMARYKEY": StorageErrorCode.UNIQUE_VIOLATION,
    "SQLITE_CONSTRAINT_FOREIGNKEY": StorageErrorCode.FOREIGN_KEY_VIOLATION,
    "SQLITE_CONSTRAINT_NOTNULL": StorageErrorCode.NOT_NULL_VIOLATION,
}


@dataclass(frozen=True)
class ProblemClassification:
    status: int
    title: str
    detail: str
    disclose_exception: bool
    log_level: int


def _client_error(status: int, title: str, detail: str) -> ProblemClassification:
    return ProblemClassification(status, title, detail, False, logging.WARNING)


def _server_error(status: int, title: str, detail: str) -> ProblemClassification:
    return ProblemClassification(status, title, detail, True, logging.ERROR)


def _engine_code(error: BaseException) -> Optional[StorageErrorCode]:
    sqlstate = getattr(error, "pgcode", None) or getattr(error, "sqlstate", None)
    if sqlstate:
        try:
            return StorageErrorCode(sqlstate)
        except ValueError:
            return None
    return SQLITE_ERROR_NAMES.get(getattr(error, "sqlite_errorname", None))


def storage_error_code(exc: BaseException) -> Optional[StorageErrorCode]:
    """
    Find the engine error code for a storage exception.

    Driver exceptions carry the code directly. SQLAlchemy wraps them in a
    DBAPIError, so one layer is unwrapped (``.orig``) before giving up.
    """
    code = _engine_code(exc)
    if code is None and isinstance(exc, DBAPIError) and exc.orig is not None:
        code = _engine_code(exc.orig)
    return code


def _has_engine_code(exc: BaseException) -> bool:
    for error in (exc, getattr(exc, "orig", None)):
        if error is None:
            continue
        if getattr(error, "pgcode", None) or getattr(error, "sqlstate", None):
            return True
        if getattr(error, "sqlite_errorname", None):
            return True
    return False


def _status_phrase(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return "Error"


def classify_storage_error(code: StorageErrorCode) -> ProblemClassification:
    match code:
        case StorageErrorCode.UNDEFINED_TABLE:
            return _server_error(
                503,
                "Service Configuration Error",
                "The service is not properly configured. Please contact support."
            )
        case StorageErrorCode.UNIQUE_VIOLATION:
            return _client_error(409, "Duplicate Resource", "This resource already exists.")
        case StorageErrorCode.FOREIGN_KEY_VIOLATION:
            return _client_error(400, "Invalid Reference", "The referenced resource does not exist.")
        case StorageErrorCode.NOT_NULL_VIOLATION:
            return _client_error(400, "Missing Required Field", "A required field is missing.")


def classify(exc: BaseException) -> ProblemClassification:
    """Map any exception raised while serving a request to a problem classification."""
    match exc:
        # Not found
        case LeagueNotFoundError():
            return _client_error(404, "League Not Found", exc.message)
        case TeamNotFoundError():
            return _client_error(404, "Team Required", "Please create a team before joining or creating a league.")
        case InvalidLeagueInviteTokenError():
            return _client_error(404, "Invalid Invite", exc.message)

        # Authentication / authorization
        case AuthenticationRequiredError():
            return _client_error(401, "Authentication Required", "Valid authentication is required.")
        case UserProfileNotFoundError():
            return _client_error(
                400,
                "User Profile Required",
                "Please complete your registration before accessing this resource."
            )
        case NotLeagueOwnerError():
            return _client_error(403, "Permission Denied", exc.message)
        case LeagueIsPrivateError():
            return _client_error(403, "Private League", exc.message)

        # Conflicts
        case LeagueFullError():
            return _client_error(409, "League Full", exc.message)
        case AlreadyInLeagueError():
            return _client_error(409, "Already in League", exc.message)
        case DuplicateTeamError():
            return _client_error(409, "Duplicate Team", "You already have a team. Each user can only create one team.")
        case StaleDataError():
            return _client_error(
                409,
                "Concurrency Conflict",
                "The data was modified by another user. Please refresh and try again."
            )

        # Invalid requests
        case InvalidArgumentError():
            return _client_error(400, "Invalid Argument", exc.message)
        case InvalidOperationError():
            return _client_error(400, "Invalid Operation", exc.message)
        case RequestValidationError():
            return _client_error(422, "Validation Failed", "The request did not pass validation.")
        case StarletteHTTPException() if exc.status_code < 500:
            return _client_error(exc.status_code, _status_phrase(exc.status_code), str(exc.detail))

        # Fatal
        case TokenGenerationFailedError():
            return _server_error(500, "Invite Generation Failed", "Could not create an invite link. Please try again later.")

    code = storage_error_code(exc)
    if code is not None:
        return classify_storage_error(code)

    if isinstance(exc, SQLAlchemyError) or _has_engine_code(exc):
        return _server_error(500, "Database Error", "A database error occurred. Please try again later.")

    return _server_error(500, "Internal Server Error", "An unexpected error occurred. Please try again later.")


def problem_document(exc: BaseException, classification: ProblemClassification, path: str) -> Dict[str, Any]:
    document: Dict[str, Any] = {
        "type": f"{PROBLEM_TYPE_BASE}/{classification.status}",
        "title": classification.title,
        "status": classification.status,
        "detail": classification.detail,
        "instance": path,
    }
    if classification.disclose_exception:
        document["exception"] = {
            "type": exc.__class__.__name__,
            "message": str(exc),
        }
    elif isinstance(exc, LeagueAppError) and exc.details:
        document["context"] = exc.details
    elif isinstance(exc, RequestValidationError):
        document["errors"] = exc.errors()
    return document


def problem_response(request: Request, exc: BaseException) -> JSONResponse:
    classification = classify(exc)
    path = request.url.path

    if classification.status >= 500:
        logger.log(
            classification.log_level,
            "Unhandled exception: %s. Status: %s. Path: %s",
            exc, classification.status, path,
            exc_info=exc
        )
    else:
        logger.log(
            classification.log_level,
            "Client error: %s. Status: %s. Path: %s",
            exc, classification.status, path
        )

    return JSONResponse(
        status_code=classification.status,
        content=jsonable_encoder(problem_document(exc, classification, path)),
        media_type=PROBLEM_JSON,
    )


async def handle_exception(request: Request, exc: Exception) -> JSONResponse:
    return problem_response(request, exc)


def register_exception_handlers(app: FastAPI) -> None:
    """Route every failure through the classifier."""
    app.add_exception_handler(LeagueAppError, handle_exception)
    app.add_exception_handler(SQLAlchemyError, handle_exception)
    app.add_exception_handler(RequestValidationError, handle_exception)
    app.add_exception_handler(StarletteHTTPException, handle_exception)
    app.add_exception_handler(Exception, handle_exception)
