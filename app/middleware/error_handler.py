"""
Global error handling middleware.

Routers translate the errors they expect into HTTPException; anything that
still escapes is turned into a JSON body of the form
``{"error": <name>, "detail": <message>}`` here.
"""
import logging
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Callable

from app.domain.errors import SampleGridError


logger = logging.getLogger(__name__)


def _error_response(status_code: int, error: str, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "detail": detail})


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Last line of defence for exceptions raised while serving a request.

    Domain errors keep their own status code (client errors are logged as
    warnings, upstream failures as errors), ValueError becomes 400 and
    anything else becomes an opaque 500 with the traceback logged.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        context = {"path": request.url.path, "method": request.method}

        try:
            return await call_next(request)

        except SampleGridError as e:
            level = logging.ERROR if e.status_code >= 500 else logging.WARNING
            logger.log(level, f"{type(e).__name__} on {request.method} {request.url.path}: "
                              f"{e.message}", extra={**context, "status_code": e.status_code})
            return _error_response(e.status_code, type(e).__name__, e.message)

        except ValueError as e:
            logger.warning(f"Invalid request value: {e}", extra=context)
            return _error_response(status.HTTP_400_BAD_REQUEST, "Invalid request", str(e))

        except Exception as e:
            logger.exception(f"Unhandled exception: {e}", extra=context)
            return _error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "Internal server error",
                "An unexpected error occurred",
            )
