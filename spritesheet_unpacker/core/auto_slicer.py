"""Opaque-region detection by 4-connected flood fill."""

from __future__ import annotations

import logging
from collections import deque
from pathlib import Path
from typing import Callable, Optional

from . import AutoSliceSettings, SliceRect, SliceSet
from .errors import SliceCancelledError
from .image_loader import PixelSource, alpha_plane, load_image
from ..utils import validators

logger = logging.getLogger(__name__)

CANCEL_CHECK_INTERVAL = 4096

CancelCheck = Callable[[], bool]


def slice_auto(
    pixels: PixelSource,
    alpha_threshold: int = 8,
    min_width: int = 2,
    min_height: int = 2,
    pad: int = 1,
    source_path: str = "",
    cancel_check: Optional[CancelCheck] = None,
) -> SliceSet:
    """Return one padded bounding box per connected opaque region.

    Pixels are scanned row-major; a pixel is opaque when its alpha is at
    least ``alpha_threshold``. Every pixel is marked visited exactly once,
    including the pixels of components that end up too small to keep.
    Padding is clamped to the image but never reconciled between
    neighbours, so boxes of adjacent sprites may overlap.
    """

    validators.validate_alpha_threshold(alpha_threshold)
    validators.validate_non_negative(min_width, "Minimum width")
    validators.validate_non_negative(min_height, "Minimum height")
    validators.validate_non_negative(pad, "Padding")

    alpha = alpha_plane(pixels)
    height, width = alpha.shape
    opaque = (alpha >= alpha_threshold).ravel().tolist()
    visited = bytearray(width * height)

    slices: list[SliceRect] = []
    skipped = 0
    for start in range(width * height):
        if visited[start]:
            continue
        if not opaque[start]:
            visited[start] = 1
            continue

        _check_cancel(cancel_check)
        min_x, min_y, max_x, max_y, _ = _flood_fill(opaque, visited, width, height, start, cancel_check)
        comp_w = max_x - min_x + 1
        comp_h = max_y - min_y + 1
        if comp_w < min_width or comp_h < min_height:
            skipped += 1
            logger.debug("Skipping %sx%s component at (%s, %s)", comp_w, comp_h, min_x, min_y)
            continue

        x = max(0, min_x - pad)
        y = max(0, min_y - pad)
        end_x = min(width - 1, max_x + pad)
        end_y = min(height - 1, max_y + pad)
        slices.append(
            SliceRect(
                x=x,
                y=y,
                width=end_x - x + 1,
                height=end_y - y + 1,
                name=f"slice_{len(slices):03d}",
            )
        )

    logger.info("Auto: %s slices (%s components below %sx%s skipped)", len(slices), skipped, min_width, min_height)
    return SliceSet(source_path=source_path, image_width=width, image_height=height, slices=tuple(slices))


def slice_auto_file(
    path: Path,
    settings: Optional[AutoSliceSettings] = None,
    cancel_check: Optional[CancelCheck] = None,
) -> SliceSet:
    """Decode ``path`` and run :func:`slice_auto` over it."""

    settings = settings or AutoSliceSettings()
    image = load_image(path)
    return slice_auto(
        image,
        alpha_threshold=settings.alpha_threshold,
        min_width=settings.min_width,
        min_height=settings.min_height,
        pad=settings.pad,
        source_path=str(path),
        cancel_check=cancel_check,
    )


def _flood_fill(
    opaque: list[bool],
    visited: bytearray,
    width: int,
    height: int,
    start: int,
    cancel_check: Optional[CancelCheck] = None,
) -> tuple[int, int, int, int, int]:
    """Breadth-first fill from ``start``; return (min_x, min_y, max_x, max_y, pixel_count).

    Neighbours are marked visited when first seen, opaque or not, so each
    pixel enters the queue at most once.
    """

    min_x = max_x = start % width
    min_y = max_y = start // width
    visited[start] = 1
    queue = deque([start])
    count = 0

    while queue:
        index = queue.popleft()
        count += 1
        if cancel_check is not None and count % CANCEL_CHECK_INTERVAL == 0:
            _check_cancel(cancel_check)

        cx = index % width
        cy = index // width
        if cx < min_x:
            min_x = cx
        elif cx > max_x:
            max_x = cx
        if cy < min_y:
            min_y = cy
        elif cy > max_y:
            max_y = cy

        if cx > 0:
            _visit(index - 1, opaque, visited, queue)
        if cx < width - 1:
            _visit(index + 1, opaque, visited, queue)
        if cy > 0:
            _visit(index - width, opaque, visited, queue)
        if cy < height - 1:
            _visit(index + width, opaque, visited, queue)

    return min_x, min_y, max_x, max_y, count


def _visit(index: int, opaque: list[bool], visited: bytearray, queue: deque) -> None:
    if visited[index]:
        return
    visited[index] = 1
    if opaque[index]:
        queue.append(index)


def _check_cancel(cancel_check: Optional[CancelCheck]) -> None:
    if cancel_check is not None and cancel_check():
        raise SliceCancelledError("Slicing cancelled")
