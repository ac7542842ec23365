"""Domain-specific exceptions for the spritesheet unpacker."""

from pathlib import Path


class SlicerError(Exception):
    """Base class for every failure raised by the slicing core."""


class InvalidImageError(SlicerError, ValueError):
    """Raised when the source image is missing, unsupported or undecodable."""

    def __init__(self, path: Path | str, reason: str | None = None):
        self.path = Path(path)
        message = f"Invalid image file: {path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class ValidationError(SlicerError, ValueError):
    """Raised when user-provided parameters fail validation."""


class MarginTooLargeError(ValidationError):
    """Raised when the grid margin leaves no usable area."""

    def __init__(self, image_width: int, image_height: int, margin: int):
        self.image_width = image_width
        self.image_height = image_height
        self.margin = margin
        super().__init__(
            f"Margin too large for this image: {image_width}x{image_height} with margin {margin} "
            "leaves no usable area."
        )


class GridMismatchError(ValidationError):
    """Raised when the usable area is not an exact multiple of the cell size."""

    def __init__(self, image_width: int, image_height: int, margin: int, cell_width: int, cell_height: int):
        self.image_width = image_width
        self.image_height = image_height
        self.margin = margin
        self.cell_width = cell_width
        self.cell_height = cell_height
        super().__init__(
            f"Grid doesn't fit: ({image_width}x{image_height}) with margin {margin} "
            f"is not divisible by {cell_width}x{cell_height}."
        )


class EmptySelectionError(ValidationError):
    """Raised when an export is requested with no slices selected."""

    def __init__(self, message: str = "No slices selected for export."):
        super().__init__(message)


class ProcessingError(SlicerError, RuntimeError):
    """Raised when the pipeline fails unexpectedly."""


class ExportError(ProcessingError):
    """Raised when writing an export fails part way through."""

    def __init__(self, message: str, index: int | None = None, path: Path | None = None):
        self.index = index
        self.path = path
        super().__init__(message)


class SliceCancelledError(ProcessingError):
    """Raised when a caller-supplied cancel check asks a long run to stop."""
