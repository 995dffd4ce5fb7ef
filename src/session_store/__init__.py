"""Analysis session and conversation store backed by SQLite."""

__version__ = "0.1.0"
