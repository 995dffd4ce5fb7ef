from .base import Base
from .schema import ensure_schema
from .store import Store

__all__ = ["Base", "ensure_schema", "Store"]
