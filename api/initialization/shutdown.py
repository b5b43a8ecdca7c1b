"""
API Initialization - Shutdown Module.

Module: shutdown.py
Handles graceful shutdown of the API server.
Closes the RPC provider session and the Redis connection.
"""

from loguru import logger

from api.initialization.services import ServiceContainer


async def shutdown_handler(services: ServiceContainer) -> None:
    """Handle graceful shutdown."""
    logger.info("Graceful shutdown initiated...")

    # Close RPC provider session
    try:
        provider = services.chain.web3.provider
        disconnect = getattr(provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()
            logger.info("RPC provider session closed")
    except Exception as e:
        logger.warning(f"Error closing RPC provider: {e}")

    # Close Redis connection
    if services.redis is not None:
        try:
            await services.redis.aclose()
            logger.info("Redis connection closed")
        except Exception as e:
            logger.warning(f"Error closing Redis: {e}")

    logger.info("Graceful shutdown complete")
