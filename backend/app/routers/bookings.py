"""Layover booking router — flight + experiences, committed all-or-nothing."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.dependencies import get_booking_orchestrator
from app.routers.responses import RequestTimedOut, error_response, timeout_response, with_timeout
from app.schemas.layover import BookingRequest
from app.services.layover.booking import BookingOrchestrator
from app.services.layover.errors import LayoverEngineError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", status_code=201)
async def create_booking(
    req: BookingRequest,
    orchestrator: BookingOrchestrator = Depends(get_booking_orchestrator),
):
    """Re-validate the selection and book every experience, or none."""
    try:
        query = req.to_query()
    except ValueError as e:
        return JSONResponse(status_code=400, content={"error": "invalid_request", "message": str(e)})

    try:
        booking = await with_timeout(orchestrator.book(query))
    except RequestTimedOut:
        logger.warning(f"Booking timed out for flight {query.flight_id}")
        return timeout_response("Booking")
    except LayoverEngineError as e:
        return error_response(e)

    return booking.to_dict()
