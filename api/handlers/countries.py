"""Supported countries endpoint."""

from aiohttp import web

from api.handlers.common import get_services
from app.config.constants import SUPPORTED_COUNTRIES


async def countries_handler(request: web.Request) -> web.Response:
    """Destination countries and the stablecoins they can be paid in."""
    services = get_services(request)
    tokens = [
        {"symbol": t.symbol, "name": t.name, "address": t.address, "decimals": t.decimals}
        for t in services.registry.all()
    ]
    return web.json_response({"countries": SUPPORTED_COUNTRIES, "tokens": tokens})
