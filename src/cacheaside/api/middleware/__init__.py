"""HTTP middleware for cacheaside."""

from cacheaside.api.middleware.correlation import CorrelationMiddleware

__all__ = ["CorrelationMiddleware"]
