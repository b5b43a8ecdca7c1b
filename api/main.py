"""
API main entry point.

Initializes services from settings and serves the HTTP API until
interrupted.
"""

import asyncio
import sys
import warnings
from pathlib import Path


# Suppress eth_utils network warnings about invalid ChainId
warnings.filterwarnings(
    "ignore",
    message=".*does not have a valid ChainId.*",
    category=UserWarning,
)

from loguru import logger  # noqa: E402


# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from api.initialization.logging import setup_logging  # noqa: E402
from api.initialization.services import build_services  # noqa: E402
from api.initialization.shutdown import shutdown_handler  # noqa: E402
from api.server import start_api_server, stop_api_server  # noqa: E402
from app.config.settings import settings  # noqa: E402


async def main() -> None:
    """Initialize and run the API server."""
    setup_logging()

    services = build_services(settings)
    runner, _ = await start_api_server(
        services, host=settings.api_host, port=settings.api_port
    )

    try:
        await asyncio.Event().wait()
    finally:
        await stop_api_server(runner)
        await shutdown_handler(services)


def run() -> None:
    """Console entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("API stopped by user (KeyboardInterrupt)")
    except Exception as e:
        logger.exception(f"API crashed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
