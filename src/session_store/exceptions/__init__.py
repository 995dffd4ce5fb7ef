
# session_store/
# │
# ├── exceptions/
# │   ├── __init__.py
# │   ├── base.py                    # App-level errors (RepositoryError, DuplicateError, ...)
# │   ├── integrity_classifier.py    # SQLite constraint classification
# │   └── mapper.py                  # Map SQLAlchemy errors to app-level errors

from .base import (
    RepositoryError,
    NotFoundError,
    DuplicateError,
    InvalidInputError,
    StoreUnavailableError,
)

__all__ = [
    "RepositoryError",
    "NotFoundError",
    "DuplicateError",
    "InvalidInputError",
    "StoreUnavailableError",
]
