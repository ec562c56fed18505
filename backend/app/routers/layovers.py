"""Layover discovery router."""

import logging

from fastapi import APIRouter, Depends

from app.dependencies import get_discovery_engine
from app.routers.responses import RequestTimedOut, error_response, timeout_response, with_timeout
from app.schemas.layover import DiscoveryRequest
from app.services.layover.engine import LayoverDiscoveryEngine
from app.services.layover.errors import LayoverEngineError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/discover")
async def discover_layovers(
    req: DiscoveryRequest,
    engine: LayoverDiscoveryEngine = Depends(get_discovery_engine),
):
    """Ranked layover opportunities with experiences, bundles and insights."""
    query = req.to_query()
    try:
        result = await with_timeout(engine.discover(query))
    except RequestTimedOut:
        logger.warning(f"Discovery timed out for {query.origin}->{query.destination or '*'}")
        return timeout_response("Layover discovery")
    except LayoverEngineError as e:
        return error_response(e)

    return result.to_dict()
