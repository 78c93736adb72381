"""
Validation helpers for user-entered names and tags.

Each validate_* function returns an error message, or None when the value is
valid. The require_* variants raise ValidationError instead.
"""
import re
from typing import Iterable, List, Optional

from stremio_manager.core.exceptions import ValidationError

MAX_NAME_LENGTH = 100
MAX_TAG_LENGTH = 50

TAG_PATTERN = re.compile(r"^[a-z0-9-]+$")


def validate_name(name: Optional[str], label: str = "Name") -> Optional[str]:
    if not name or not name.strip():
        return f"{label} is required"
    if len(name.strip()) > MAX_NAME_LENGTH:
        return f"{label} is too long (max {MAX_NAME_LENGTH} characters)"
    return None


def validate_tag_name(tag: Optional[str]) -> Optional[str]:
    if not tag or not tag.strip():
        return "Tag name cannot be empty"

    trimmed = tag.strip()
    if len(trimmed) > MAX_TAG_LENGTH:
        return f"Tag name is too long (max {MAX_TAG_LENGTH} characters)"
    if not TAG_PATTERN.match(trimmed):
        return "Tag name must be lowercase alphanumeric with hyphens only"
    return None


def validate_tags(tags: Iterable[str]) -> Optional[str]:
    for tag in tags:
        error = validate_tag_name(tag)
        if error:
            return error
    return None


def normalize_tag_name(tag: str) -> str:
    """Lowercase, trim, turn whitespace runs into hyphens and drop anything else."""
    tag = re.sub(r"\s+", "-", tag.lower().strip())
    return re.sub(r"[^a-z0-9-]", "", tag)


def normalize_tags(tags: Iterable[str]) -> List[str]:
    """Normalize tags, dropping empties and duplicates while keeping order."""
    normalized: List[str] = []
    for tag in tags:
        value = normalize_tag_name(tag)
        if value and value not in normalized:
            normalized.append(value)
    return normalized


def require_name(name: Optional[str], label: str = "Name") -> str:
    error = validate_name(name, label)
    if error:
        raise ValidationError(error)
    return name.strip()


def require_tags(tags: Iterable[str]) -> List[str]:
    tags = normalize_tags(tags)
    error = validate_tags(tags)
    if error:
        raise ValidationError(error)
    return tags
