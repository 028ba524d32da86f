"""
Application errors carrying an HTTP status and a machine-readable code
"""
import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError

from backend.utils.responses import error_response

logger = logging.getLogger(__name__)


class AppError(Exception):

    def __init__(self, message: str, status_code: int = 500, code: str = "INTERNAL_ERROR"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
    return error_response(exc.code, status=exc.status_code, message=exc.message)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return error_response(
        "VALIDATION_ERROR",
        status=400,
        message="Validation failed",
        data={"errors": errors},
    )
