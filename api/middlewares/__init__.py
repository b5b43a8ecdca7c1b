"""HTTP middlewares."""

from .error_handler import error_middleware, error_response


__all__ = ["error_middleware", "error_response"]
