from pathlib import Path

from session_store.config.settings import Settings


def make_test_settings(tmp_path: Path, **overrides) -> Settings:
    """Settings pointing at a throwaway database; never reads the developer's .env."""
    values = {
        "ENV": "testing",
        "TESTING": True,
        "DATABASE_PATH": tmp_path / "data" / "conversations.db",
        "LOG_FORMAT": "json",
        "LOG_LEVEL": "INFO",
        "LOG_TO_STDOUT": True,
        "LOG_DIR": tmp_path / "logs",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)
