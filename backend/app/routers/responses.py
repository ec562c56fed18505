"""Engine error → HTTP response mapping shared by the layover routers."""

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

from fastapi.responses import JSONResponse

from app.config import settings
from app.services.layover.errors import LayoverEngineError

logger = logging.getLogger(__name__)

T = TypeVar("T")

STATUS_BY_ERROR = {
    "invalid_request": 400,
    "no_valid_selection": 409,
    "experiences_unavailable": 409,
    "invariant_violation": 500,
}


class RequestTimedOut(Exception):
    pass


def error_response(exc: LayoverEngineError) -> JSONResponse:
    status = STATUS_BY_ERROR.get(exc.error, 500)
    if status >= 500:
        logger.error(f"Engine failure ({exc.error}): {exc.message}")
    return JSONResponse(status_code=status, content=exc.to_dict())


def timeout_response(operation: str) -> JSONResponse:
    return JSONResponse(
        status_code=504,
        content={
            "error": "timeout",
            "message": f"{operation} did not finish within {settings.layover_request_timeout_seconds}s",
            "retryable": True,
        },
    )


async def with_timeout(awaitable: Awaitable[T]) -> T:
    try:
        return await asyncio.wait_for(awaitable, timeout=settings.layover_request_timeout_seconds)
    except asyncio.TimeoutError as e:
        raise RequestTimedOut() from e
