"""SQLAlchemy ORM models for the product source."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from cacheaside.models import Product


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class ProductTable(Base):
    """Products served through the cache-aside loader."""

    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    # Kept as text; the record is cached verbatim
    price: Mapped[str] = mapped_column(String(32), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def to_model(self) -> Product:
        """Convert the row to a Product."""
        return Product(id=self.id, name=self.name, price=self.price)

    @classmethod
    def from_model(cls, product: Product) -> ProductTable:
        """Build a row from a Product."""
        return cls(id=product.id, name=product.name, price=product.price)
