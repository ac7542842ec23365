"""Uniform grid partitioning."""

from __future__ import annotations

import logging
from pathlib import Path

from . import GridSliceSettings, SliceRect, SliceSet
from .errors import GridMismatchError, MarginTooLargeError
from .image_loader import read_size
from ..utils import validators

logger = logging.getLogger(__name__)


def _resolve_grid(
    image_width: int, image_height: int, cell_width: int, cell_height: int, margin: int
) -> tuple[int, int]:
    """Return (columns, rows) for an exact tiling or raise."""

    usable_width = image_width - 2 * margin
    usable_height = image_height - 2 * margin
    if usable_width <= 0 or usable_height <= 0:
        raise MarginTooLargeError(image_width, image_height, margin)
    if usable_width % cell_width != 0 or usable_height % cell_height != 0:
        raise GridMismatchError(image_width, image_height, margin, cell_width, cell_height)
    return usable_width // cell_width, usable_height // cell_height


def slice_grid(
    image_width: int,
    image_height: int,
    cell_width: int,
    cell_height: int,
    margin: int = 0,
    source_path: str = "",
) -> SliceSet:
    """Partition the image into equal cells in row-major order.

    Cells are left unnamed.
    """

    validators.validate_positive(image_width, "Image width")
    validators.validate_positive(image_height, "Image height")
    validators.validate_positive(cell_width, "Cell width")
    validators.validate_positive(cell_height, "Cell height")
    validators.validate_non_negative(margin, "Margin")

    columns, rows = _resolve_grid(image_width, image_height, cell_width, cell_height, margin)
    slices = tuple(
        SliceRect(
            x=margin + col * cell_width,
            y=margin + row * cell_height,
            width=cell_width,
            height=cell_height,
        )
        for row in range(rows)
        for col in range(columns)
    )

    logger.info("Grid: %s slices (%sx%s, margin %s)", len(slices), cell_width, cell_height, margin)
    return SliceSet(source_path=source_path, image_width=image_width, image_height=image_height, slices=slices)


def slice_grid_file(path: Path, settings: GridSliceSettings) -> SliceSet:
    """Read the image size from ``path`` and grid it."""

    width, height = read_size(path)
    return slice_grid(
        width,
        height,
        settings.cell_width,
        settings.cell_height,
        settings.margin,
        source_path=str(path),
    )
