"""Error kinds and their HTTP mapping.

User errors (AppError subclasses) carry a message that is returned verbatim
as {"error": message}. Anything else is a system error: it is logged with a
fresh reference and only {"error_reference": reference} leaves the process.
"""

import logging
from typing import Optional
from uuid import uuid4

from starlette.exceptions import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.requests import Request

from groupplan.core.logging import get_request_id


class AppError(Exception):
    code = "app_error"
    status_code = 400

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code


class ValidationError(AppError, ValueError):
    code = "validation_error"
    status_code = 422


class ConflictError(ValidationError):
    """An entry overlaps another entry by the same user on the same plan."""
    code = "conflict"


class NotFoundError(AppError, LookupError):
    code = "not_found"
    status_code = 404


class UnauthorizedError(AppError):
    code = "unauthorized"
    status_code = 401


class ForbiddenError(UnauthorizedError):
    """Authenticated, but not the owner of the resource."""
    code = "forbidden"
    status_code = 403


def user_error_payload(message: str) -> dict:
    return {"error": message}


def system_error_response(exc: BaseException) -> JSONResponse:
    """Log `exc` under a new reference and return the opaque 500 envelope."""
    reference = str(uuid4())
    logger = logging.getLogger("groupplan")
    logger.error(
        "[%s] unhandled.exception",
        reference,
        exc_info=(type(exc), exc, exc.__traceback__),
        extra={"request_id": get_request_id(), "error_reference": reference, "error_code": "internal_error"},
    )
    return JSONResponse(status_code=500, content={"error_reference": reference})


async def app_error_handler(request: Request, exc: AppError):
    logger = logging.getLogger("groupplan")
    logger.warning(
        "app.error %s: %s",
        exc.code,
        exc.message,
        extra={"error_code": exc.code, "status": exc.status_code},
    )
    return JSONResponse(status_code=exc.status_code, content=user_error_payload(exc.message))


async def http_error_handler(request: Request, exc: HTTPException):
    message = exc.detail if isinstance(exc.detail, str) and exc.detail else "HTTP error"
    logger = logging.getLogger("groupplan")
    logger.warning("http.error", extra={"status": exc.status_code})
    return JSONResponse(
        status_code=exc.status_code,
        content=user_error_payload(message),
        headers=getattr(exc, "headers", None),
    )


def _describe_validation_error(exc: RequestValidationError) -> str:
    problems = []
    for err in exc.errors():
        # Drop the "body"/"path"/"query" prefix, keep the field path
        loc = [str(part) for part in err.get("loc", ())[1:]]
        field = ".".join(loc) or "request"
        problems.append(f"{field}: {err.get('msg', 'invalid value')}")
    return "; ".join(problems) or "invalid request"


async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    message = _describe_validation_error(exc)
    logger = logging.getLogger("groupplan")
    logger.warning("request.invalid: %s", message, extra={"status": 422})
    return JSONResponse(status_code=422, content=user_error_payload(message))


async def unhandled_exception_handler(request: Request, exc: Exception):
    return system_error_response(exc)
