"""cacheaside: lock-guarded cache-aside over Redis."""

__version__ = "0.1.0"
