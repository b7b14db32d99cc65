"""Translate checkout errors into HTTP responses.

Every error body has the same shape: ``{"error": <message>, "code": <code>}``.
Register after Protean's own handlers so the more specific mappings here win.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError
from sqlalchemy.exc import OperationalError

from checkout.errors import CheckoutError, ConcurrentUpdate, RateLimited, StoreUnavailable
from checkout.utils.logging import get_logger

logger = get_logger(__name__)


def _error_response(exc: CheckoutError) -> JSONResponse:
    headers = {"Retry-After": str(exc.retry_after)} if isinstance(exc, RateLimited) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(CheckoutError)
    async def checkout_error_handler(request: Request, exc: CheckoutError):
        if exc.status_code >= 500:
            logger.error("request_failed", path=request.url.path, code=exc.code, error=exc.message, context=exc.context)
        else:
            logger.info("request_rejected", path=request.url.path, code=exc.code, error=exc.message)
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": _describe_validation_error(exc), "code": "validation_error"},
        )

    @app.exception_handler(ExpectedVersionError)
    async def version_conflict_handler(request: Request, exc: ExpectedVersionError):
        return _error_response(ConcurrentUpdate("A concurrent checkout changed the same records; retry the request"))

    @app.exception_handler(OperationalError)
    async def store_unavailable_handler(request: Request, exc: OperationalError):
        logger.error("store_unavailable", path=request.url.path, error=str(exc))
        return _error_response(StoreUnavailable("Order store is temporarily unavailable"))
