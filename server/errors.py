"""Exception handlers

Translate the exception hierarchy into the standard error envelope.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config import config, get_logger
from exceptions import EvoteError
from server.metrics import metrics
from server.utils.responses import error_response

logger = get_logger(__name__).bind(component="api")


async def evote_error_handler(request: Request, exc: EvoteError) -> JSONResponse:
    if exc.status_code >= 500:
        metrics.record_error("api", exc)
        logger.error("request failed", path=request.url.path, kind=exc.kind, error=str(exc))
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.message, kind=exc.kind),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(part) for part in err.get("loc", ())[1:]), "message": err.get("msg")}
        for err in exc.errors()
    ]
    message = errors[0]["message"] if errors else "Invalid request"
    return JSONResponse(
        status_code=422,
        content=error_response(message, kind="ValidationError", errors=errors),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    metrics.record_error("api", exc)
    logger.error("unhandled exception", path=request.url.path, error=str(exc), exc_info=True)
    extras = {}
    if config.expose_error_details():
        extras = {"error": str(exc), "type": type(exc).__name__}
    return JSONResponse(
        status_code=500,
        content=error_response("Internal server error", kind="InternalError", **extras),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(EvoteError, evote_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
