"""
HTTP API server.

Thin aiohttp adapters over the remittance core.
"""

import asyncio

from aiohttp import web
from loguru import logger

from api.handlers.common import SERVICES_KEY
from api.handlers.contacts import contacts_routes, recipients_routes
from api.handlers.countries import countries_handler
from api.handlers.health import health_handler, liveness_handler, readiness_handler
from api.handlers.rewards import rewards_data_handler, withdraw_handler
from api.handlers.transfers import (
    create_transfer_handler,
    group_payment_handler,
    history_handler,
)
from api.handlers.user import user_stats_handler
from api.initialization.services import ServiceContainer
from api.middlewares.error_handler import error_middleware


def create_app(services: ServiceContainer) -> web.Application:
    """
    Build the aiohttp application.

    Args:
        services: Service container shared by all handlers

    Returns:
        web.Application
    """
    app = web.Application(middlewares=[error_middleware])
    app[SERVICES_KEY] = services

    app.router.add_get("/health", health_handler)
    app.router.add_get("/readiness", readiness_handler)
    app.router.add_get("/liveness", liveness_handler)

    app.router.add_get("/transfers/history", history_handler)
    app.router.add_post("/transfers/create", create_transfer_handler)
    app.router.add_post("/transfers/group", group_payment_handler)

    app.router.add_get("/user/stats", user_stats_handler)
    app.router.add_get("/rewards/data", rewards_data_handler)
    app.router.add_post("/rewards/withdraw", withdraw_handler)
    app.router.add_get("/countries/list", countries_handler)

    app.router.add_routes(contacts_routes())
    app.router.add_routes(recipients_routes())

    return app


async def start_api_server(
    services: ServiceContainer,
    host: str = "0.0.0.0",
    port: int = 8080,
) -> tuple[web.AppRunner, web.TCPSite]:
    """
    Start the API server.

    Args:
        services: Service container
        host: Host to bind to
        port: Port to bind to

    Returns:
        Tuple of (AppRunner, TCPSite) for cleanup
    """
    app = create_app(services)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()

    logger.info(f"Remittance API started on {host}:{port}")
    logger.info(f"  - Health: http://{host}:{port}/health")
    logger.info(f"  - History: http://{host}:{port}/transfers/history")

    return runner, site


async def stop_api_server(
    runner: web.AppRunner,
    timeout: int = 5,
) -> None:
    """
    Stop the API server gracefully.

    Args:
        runner: AppRunner to cleanup
        timeout: Maximum time to wait for cleanup in seconds
    """
    logger.info("Stopping API server...")
    try:
        await asyncio.wait_for(runner.cleanup(), timeout=timeout)
        logger.info("API server stopped successfully")
    except TimeoutError:
        logger.warning(f"API server cleanup timed out after {timeout}s")
    except Exception as e:
        logger.error(f"Error stopping API server: {e}")
