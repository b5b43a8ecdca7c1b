"""
Health check endpoints.

/health and /liveness report the process; /readiness also checks that the
RPC node answers.
"""

from aiohttp import web
from loguru import logger

from api.handlers.common import get_services
from app.config.constants import BLOCK_EXPLORER_URL


async def health_handler(request: web.Request) -> web.Response:
    """
    Health check endpoint.

    Returns:
        JSON response with chain configuration
    """
    services = get_services(request)
    return web.json_response(
        {
            "status": "healthy",
            "chain_id": services.chain.chain_id,
            "contract": services.chain.contract_address,
            "explorer": BLOCK_EXPLORER_URL,
            "sessions": len(services.sessions),
        }
    )


async def readiness_handler(request: web.Request) -> web.Response:
    """
    Readiness check endpoint.

    Returns:
        JSON response indicating if the RPC node is reachable
    """
    services = get_services(request)
    try:
        connected = await services.chain.web3.is_connected()
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        connected = False

    if not connected:
        return web.json_response({"status": "not_ready", "ready": False}, status=503)
    return web.json_response({"status": "ready", "ready": True})


async def liveness_handler(request: web.Request) -> web.Response:
    """
    Liveness check endpoint.

    Returns:
        JSON response indicating if the process is alive
    """
    return web.json_response({"status": "alive", "alive": True})
