"""
Rendering of service results and errors into the response envelope
``{"status", "response", "data"}``, plus the application-wide exception
handlers.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from blog_api.results import ServiceResult

logger = logging.getLogger(__name__)


def json_envelope(status_code: int, response: str, data=None, **extra) -> JSONResponse:
    body = {"status": status_code, "response": response, "data": data}
    body.update(extra)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def envelope_response(result: ServiceResult, **extra) -> JSONResponse:
    """Render *result* including its operation-specific extras."""
    body = result.to_envelope()
    body.update(extra)
    return JSONResponse(status_code=result.status, content=jsonable_encoder(body))


def error_response(status_code: int, response: str, **extra) -> JSONResponse:
    return json_envelope(status_code, response, None, **extra)


def _format_validation_error(error: dict) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    message = error.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [_format_validation_error(e) for e in exc.errors()]
    return error_response(400, "Bad Request", errors=errors)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    response = error_response(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, "Internal Server Error.")


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
