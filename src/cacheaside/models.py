"""Product record served through the cache.

The cached representation is canonical JSON (sorted keys, compact) so
that every process writes byte-identical values for the same record.
"""

from __future__ import annotations

import orjson
from pydantic import BaseModel, ConfigDict

ORJSON_OPTIONS = orjson.OPT_SORT_KEYS | orjson.OPT_NON_STR_KEYS


class Product(BaseModel):
    """A product as stored in the backing database."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    name: str
    price: str

    def to_cache_value(self) -> str:
        """Serialize to the canonical string written to the cache."""
        return orjson.dumps(self.model_dump(), option=ORJSON_OPTIONS).decode()

    @classmethod
    def from_cache_value(cls, value: str | bytes) -> Product:
        """Parse a value previously produced by to_cache_value()."""
        return cls.model_validate(orjson.loads(value))
