"""
API Initialization Module.

This module contains all initialization logic split into focused modules:
- logging: Logger configuration
- services: Chain client, caches and remittance services wiring
- shutdown: Graceful shutdown handler
"""

__all__ = []
