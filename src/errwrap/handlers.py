"""FastAPI exception handlers that turn errors into the standard error body.

Register them once on the application::

    app = FastAPI()
    register_exception_handlers(app)

Raised ErrorWrappers, and wrappers chained below other exceptions, answer
with their own status and ``{"action", "message"}``. Anything else is
decoded to a generic 500.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from errwrap.config import settings
from errwrap.exceptions import ErrorWrapper, decode_error
from errwrap.logging import get_logger

logger = get_logger(__name__)


def _log_error(request: Request, err: ErrorWrapper, exc: Exception) -> None:
    fields = {
        "status_code": err.code,
        "path": request.url.path,
        "method": request.method,
        "error": err,
        "root_action": err.dig().action,
    }
    if err.code >= 500:
        logger.error("http_error", exc_info=exc, **fields)
    elif settings.log_client_errors:
        logger.warning("http_error", **fields)


async def error_wrapper_handler(request: Request, exc: Exception) -> JSONResponse:
    """Respond with the wrapper's status code and client projection."""
    err = decode_error(exc)
    _log_error(request, err, exc)
    return JSONResponse(status_code=err.code, content=err.as_json_response())


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle exceptions that are not ErrorWrappers themselves.

    - A wrapper found in the cause chain is logged and answered like a raised one
    - Otherwise logs the full traceback as a generic 500
    - Masks the exception text unless EXPOSE_UNHANDLED_MESSAGES is set
    """
    err = decode_error(exc)
    if err.cause is not exc:
        return await error_wrapper_handler(request, exc)

    logger.exception(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=err,
    )
    content = err.as_json_response()
    if not settings.expose_unhandled_messages:
        content["message"] = settings.unhandled_message
    return JSONResponse(status_code=err.code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """Install the error handlers on a FastAPI app."""
    app.add_exception_handler(ErrorWrapper, error_wrapper_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
