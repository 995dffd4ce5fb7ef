"""
This Base class is used as the declarative base for all SQLAlchemy ORM models.
Import this Base class in any model module that defines ORM classes.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


# Naming convention for constraints.
# Secondary indexes are named explicitly on the models (idx_<table>_<column>),
# so only the unique constraint relies on the convention.
Base.metadata.naming_convention = {
    "uq": "uq_%(table_name)s_%(column_0_name)s",
}
