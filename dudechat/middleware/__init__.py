"""
Middleware package for the DudeChat server.
"""

from .correlation_middleware import CorrelationMiddleware

__all__ = ["CorrelationMiddleware"]
