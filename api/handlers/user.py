"""User stats endpoint."""

from aiohttp import web

from api.handlers.common import get_services, require_address


async def user_stats_handler(request: web.Request) -> web.Response:
    """
    Aggregate totals and tier for an address.

    Query: address (required).
    """
    services = get_services(request)
    address = require_address(request.query.get("address"))
    stats = await services.accounts.get_user_stats(address)
    return web.json_response(stats)
