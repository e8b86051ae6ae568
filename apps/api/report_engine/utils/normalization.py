"""Normalization helpers for user-supplied query input."""

LIKE_ESCAPE = "\\"


def escape_like_string(value: str) -> str:
    """Escape LIKE wildcards so the value matches literally (use with escape='\\\\')."""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", f"{LIKE_ESCAPE}%")
        .replace("_", f"{LIKE_ESCAPE}_")
    )
