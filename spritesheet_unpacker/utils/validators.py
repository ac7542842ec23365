"""Validation helpers for user inputs."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..core.errors import InvalidImageError, ValidationError


ALLOWED_IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".tif", ".tiff", ".webp"}


def validate_image_path(path: Path) -> Path:
    """Ensure the image path exists and appears to be a supported format."""

    if not path:
        raise InvalidImageError(Path("<unset>"), reason="No path provided")
    if not path.exists():
        raise InvalidImageError(path, reason="File not found")
    if not path.is_file():
        raise InvalidImageError(path, reason="Not a file")
    if path.suffix.lower() not in ALLOWED_IMAGE_EXTENSIONS:
        raise InvalidImageError(path, reason="Unsupported format")
    return path


def validate_positive(value: int, field: str) -> int:
    """Ensure an integer parameter is greater than zero."""

    if value <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    return value


def validate_non_negative(value: int, field: str) -> int:
    """Ensure an integer parameter is zero or greater."""

    if value < 0:
        raise ValidationError(f"{field} must be zero or greater")
    return value


def validate_alpha_threshold(value: int) -> int:
    """Alpha thresholds are compared against 8-bit alpha values."""

    if value < 0 or value > 255:
        raise ValidationError("Alpha threshold must be between 0 and 255")
    return value


def parse_selection(value: str | None, count: int) -> list[int]:
    """Parse a selection like '0,2,5-7' into slice indices.

    An empty value selects everything. Ranges are inclusive and indices keep
    the order they were written in.
    """

    if value is None or value.strip() == "":
        return list(range(count))
    indices: list[int] = []
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        start_text, _, end_text = part.partition("-")
        try:
            start = int(start_text)
            end = int(end_text) if end_text else start
        except ValueError as exc:
            raise ValidationError(f"Selection must be indices or ranges like 0,2,5-7 (got {part!r})") from exc
        if end < start:
            raise ValidationError(f"Selection range {part!r} is reversed")
        indices.extend(range(start, end + 1))
    for index in indices:
        if index < 0 or index >= count:
            raise ValidationError(f"Selection index {index} out of range (0..{count - 1})")
    return indices


def validate_name_pattern(pattern: str | None) -> Optional[str]:
    """Ensure a slice name pattern formats cleanly with an index."""

    if pattern is None or pattern == "":
        return None
    try:
        pattern.format(index=0)
    except (KeyError, IndexError, ValueError) as exc:
        raise ValidationError(f"Name pattern must only use {{index}}: {exc}") from exc
    if "/" in pattern or "\\" in pattern:
        raise ValidationError("Name pattern must not contain path separators")
    return pattern
