"""
Shared validation functions for Pydantic schemas.

Length limits come from settings so deployments can tune them without code
changes; tag rules are fixed because tag names double as URL slugs.
"""
import re

from core.config import get_settings

# Tag format: lowercase alphanumeric segments joined by '-', '.', '+' or '#',
# optionally ending in '+' or '#' (e.g. 'machine-learning', 'node.js', 'c++', 'c#')
TAG_PATTERN = re.compile(r"^[a-z0-9]+([-.+#][a-z0-9]+)*[+#]*$")
MAX_TAG_LENGTH = 50

# Whitespace and underscore runs collapse to a single hyphen
_TAG_SEPARATOR_RUN = re.compile(r"[\s_]+")

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]{3,50}$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 8


def validate_and_normalize_tag(tag: str) -> str:
    """
    Normalize and validate a single tag.

    Args:
        tag: The tag string to validate.

    Returns:
        The normalized tag (trimmed, lowercase, separators collapsed to '-').

    Raises:
        ValueError: If tag is empty, too long, or has invalid format.
    """
    normalized = _TAG_SEPARATOR_RUN.sub("-", tag.strip().lower())
    if not normalized:
        raise ValueError("Tag name cannot be empty")
    if len(normalized) > MAX_TAG_LENGTH:
        raise ValueError(f"Tag exceeds maximum length of {MAX_TAG_LENGTH} characters")
    if not TAG_PATTERN.match(normalized):
        raise ValueError(
            f"Invalid tag format: '{normalized}'. "
            "Use lowercase letters, numbers, and hyphens (e.g., 'machine-learning').",
        )
    return normalized


def validate_and_normalize_tags(tags: list[str]) -> list[str]:
    """
    Normalize and validate a list of tags.

    Returns:
        List of normalized tags with empty strings filtered out and duplicates
        removed (preserving first occurrence order).

    Raises:
        ValueError: If any tag has invalid format.
    """
    normalized = []
    seen: set[str] = set()
    for tag in tags:
        if not tag.strip():
            continue  # Skip empty tags silently
        validated = validate_and_normalize_tag(tag)
        if validated not in seen:
            seen.add(validated)
            normalized.append(validated)
    return normalized


def validate_title_length(title: str | None) -> str | None:
    """Validate that title doesn't exceed maximum length."""
    settings = get_settings()
    if title is not None and len(title) > settings.max_title_length:
        raise ValueError(
            f"Title exceeds maximum length of {settings.max_title_length:,} characters "
            f"(got {len(title):,} characters).",
        )
    return title


def validate_description_length(description: str | None) -> str | None:
    """Validate that description doesn't exceed maximum length."""
    settings = get_settings()
    if description is not None and len(description) > settings.max_description_length:
        max_len = settings.max_description_length
        raise ValueError(
            f"Description exceeds maximum length of {max_len:,} characters "
            f"(got {len(description):,} characters).",
        )
    return description


def validate_comment_length(content: str) -> str:
    """Validate that a comment is non-blank and within the length limit."""
    settings = get_settings()
    stripped = content.strip()
    if not stripped:
        raise ValueError("Comment cannot be empty")
    if len(stripped) > settings.max_comment_length:
        raise ValueError(
            f"Comment exceeds maximum length of {settings.max_comment_length:,} characters",
        )
    return stripped


def validate_url_length(url: str | None) -> str | None:
    """Validate that a URL doesn't exceed maximum length."""
    settings = get_settings()
    if url is not None and len(url) > settings.max_url_length:
        raise ValueError(f"URL exceeds maximum length of {settings.max_url_length:,} characters")
    return url


def validate_username(username: str) -> str:
    """Usernames are 3-50 characters of letters, digits, '_' or '-'."""
    username = username.strip()
    if not USERNAME_PATTERN.match(username):
        raise ValueError(
            "Username must be 3-50 characters: letters, numbers, underscores or hyphens",
        )
    return username


def validate_email(email: str) -> str:
    """Trim and lowercase an email address after a basic format check."""
    email = email.strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValueError("Invalid email address")
    return email
