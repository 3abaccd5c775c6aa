from http import HTTPStatus
from typing import List, Union

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger(__name__)

Message = Union[str, List[str]]


class APIError(Exception):
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, msg: Message):
        super().__init__(msg)
        self.msg = msg


class BadRequestError(APIError):
    status_code = HTTPStatus.BAD_REQUEST


class UnauthenticatedError(APIError):
    status_code = HTTPStatus.UNAUTHORIZED


class UnauthorizedError(APIError):
    status_code = HTTPStatus.FORBIDDEN


class NotFoundError(APIError):
    status_code = HTTPStatus.NOT_FOUND


def envelope(status_code: int, msg: Message, **extra) -> dict:
    body = {"status": HTTPStatus(status_code).phrase, "statusCode": int(status_code), "msg": msg}
    body.update(extra)
    return body


def validation_messages(exc: RequestValidationError) -> List[str]:
    messages = []
    for err in exc.errors():
        if err["type"] == "value_error":
            messages.append(str(err["ctx"]["error"]))
        elif err["type"] == "missing":
            messages.append(f"{err['loc'][-1]} is required")
        else:
            field = err["loc"][-1] if err.get("loc") else "body"
            messages.append(f"{field}: {err['msg']}")
    return messages


def classify_validation_error(messages: List[str]) -> APIError:
    """Pick the error category for a failed validation from its first message."""
    first = messages[0] if messages else ""
    if first.startswith("no products"):
        return NotFoundError(messages)
    if first.startswith("not authorized"):
        return UnauthorizedError("not authorized to access this route")
    return BadRequestError(messages)


async def api_error_handler(request: Request, exc: APIError):
    return JSONResponse(status_code=exc.status_code, content=envelope(exc.status_code, exc.msg))


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return await api_error_handler(request, classify_validation_error(validation_messages(exc)))


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    # Routing misses come through here; any other framework error keeps its code.
    if exc.status_code == HTTPStatus.NOT_FOUND:
        return JSONResponse(status_code=exc.status_code, content={"msg": "not found"})
    return JSONResponse(status_code=exc.status_code, content=envelope(exc.status_code, str(exc.detail)),
                        headers=getattr(exc, "headers", None))


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("unhandled_error", method=request.method, path=request.url.path, exc_info=exc)
    return JSONResponse(status_code=HTTPStatus.INTERNAL_SERVER_ERROR, content={"msg": "something went wrong"})


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
