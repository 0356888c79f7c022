"""Search and pagination helpers shared by the list endpoints."""


def escape_ilike(value: str) -> str:
    r"""
    Escape %, _ and \ so they match literally in a LIKE/ILIKE pattern.

    Use with escape="\\" on the ilike() call.
    """
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def contains_pattern(term: str) -> str:
    """ILIKE pattern matching the trimmed term anywhere in a column."""
    return f"%{escape_ilike(term.strip())}%"


def page_offset(page: int, limit: int) -> int:
    """Rows to skip for a 1-based page number."""
    return (page - 1) * limit


def has_more(page: int, limit: int, shown: int, total: int) -> bool:
    """True when rows remain after the current page."""
    return page_offset(page, limit) + shown < total
