def to_uppercase(value: str | None) -> str | None:
    """
    Converts a string to uppercase if it's not None.
    """
    if value is None:
        return None
    return value.upper()


def to_lowercase(value: str | None) -> str | None:
    """
    Converts a string to lowercase if it's not None.
    """
    if value is None:
        return None
    return value.lower()


def split_comma_separated(value: str | None) -> list[str]:
    """
    Split a comma-separated env value into stripped, non-empty items.

        "http://a.test, http://b.test" -> ["http://a.test", "http://b.test"]
    """
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]
