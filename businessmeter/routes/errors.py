# routes/errors.py
import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from businessmeter.db.results import StoreResult

logger = logging.getLogger(__name__)

STORAGE_UNAVAILABLE = "پایگاه داده در دسترس نیست"


class ApiError(Exception):
    """Rendered as `{"error": message}` with the given status code."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def unwrap(result: StoreResult, not_found: str = "یافت نشد"):
    """Value of an ok result; 404 for not_found, 503 for storage errors."""
    if result.is_error:
        raise ApiError(503, STORAGE_UNAVAILABLE)
    if result.is_not_found:
        raise ApiError(404, not_found)
    return result.value


async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.info("Rejected request to %s: %s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=400,
        content={
            "error": "درخواست نامعتبر است",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
