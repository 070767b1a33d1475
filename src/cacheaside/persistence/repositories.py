"""Backing sources consulted by the cache-aside loader on a confirmed miss.

Any object with ``async lookup(identifier) -> Product | None`` satisfies
ProductSource. Two implementations are provided:
- ProductRepository: SQLAlchemy async session over the products table
- InMemoryProductSource: dict-backed, for tests and local runs
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cacheaside.models import Product
from cacheaside.persistence.tables import ProductTable


@runtime_checkable
class ProductSource(Protocol):
    """Lookup contract for the backing store."""

    async def lookup(self, identifier: str) -> Product | None:
        """Return the product, or None if there is no record."""
        ...


class ProductRepository:
    """Repository for product rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def lookup(self, identifier: str) -> Product | None:
        """Fetch one product by id."""
        stmt = select(ProductTable).where(ProductTable.id == identifier)
        result = await self.session.execute(stmt)
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return row.to_model()

    async def save(self, product: Product) -> None:
        """Insert or update a product."""
        await self.session.merge(ProductTable.from_model(product))
        await self.session.flush()

    async def delete(self, identifier: str) -> bool:
        """Delete a product. Returns True if it existed."""
        row = await self.session.get(ProductTable, identifier)
        if row is None:
            return False
        await self.session.delete(row)
        await self.session.flush()
        return True


class InMemoryProductSource:
    """Dict-backed product source."""

    def __init__(self, products: Iterable[Product] = ()):
        self._products = {product.id: product for product in products}
        self.lookups = 0

    async def lookup(self, identifier: str) -> Product | None:
        self.lookups += 1
        return self._products.get(identifier)

    def add(self, product: Product) -> None:
        self._products[product.id] = product
