"""API routers for cacheaside."""

from cacheaside.api.routers import health, metrics, products, system

__all__ = ["health", "metrics", "products", "system"]
