"""Export a selection of slices as individual PNG files plus a manifest."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from PIL import Image

from . import ExportSettings, SliceRect, SliceSet
from . import image_loader, manifest_writer
from .errors import EmptySelectionError, ExportError, SliceCancelledError
from ..utils import file_tools

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def export_slices(
    source_path: Path | str,
    subset: SliceSet,
    out_dir: Path | str,
    settings: Optional[ExportSettings] = None,
    cancel_check: Optional[Callable[[], bool]] = None,
    progress: Optional[ProgressCallback] = None,
) -> int:
    """Crop every slice of ``subset`` from ``source_path`` into ``out_dir``.

    Slices are written in order as ``<name>.png``; same-named slices
    overwrite each other. A failing slice stops the export and earlier
    files are left on disk. The manifest is written last, only when every
    slice succeeded. Returns the number of slices exported.
    """

    settings = settings or ExportSettings()
    if len(subset) == 0:
        raise EmptySelectionError()

    out_dir = Path(out_dir)
    try:
        file_tools.ensure_directory(out_dir)
    except OSError as exc:
        raise ExportError(f"Could not create output directory {out_dir}: {exc}", path=out_dir) from exc

    image = image_loader.load_image(Path(source_path))
    if image.size != (subset.image_width, subset.image_height):
        logger.warning(
            "Decoded %s is %sx%s but the slice set describes %sx%s",
            source_path,
            image.width,
            image.height,
            subset.image_width,
            subset.image_height,
        )

    total = len(subset)
    for index, rect in enumerate(subset):
        if cancel_check is not None and cancel_check():
            raise SliceCancelledError(f"Export cancelled after {index} of {total} slices")
        target = file_tools.slice_output_path(out_dir, rect.name)
        try:
            _write_slice(image, rect, target, settings.atomic_writes)
        except ExportError as exc:
            exc.index = index
            exc.path = target
            raise
        except (OSError, ValueError) as exc:
            raise ExportError(f"Failed to export slice {index} to {target}: {exc}", index=index, path=target) from exc
        logger.debug("Wrote slice %s to %s", index, target)
        if progress is not None:
            progress(index + 1, total)

    try:
        manifest_writer.write_manifest(subset, out_dir, name=settings.manifest_name, atomic=settings.atomic_writes)
    except OSError as exc:
        manifest_path = out_dir / settings.manifest_name
        raise ExportError(f"Failed to write manifest {manifest_path}: {exc}", path=manifest_path) from exc

    logger.info("Exported %s slice(s) to: %s", total, out_dir)
    return total


def _write_slice(image: Image.Image, rect: SliceRect, target: Path, atomic: bool) -> None:
    cropped = image_loader.crop(image, rect)
    if atomic:
        with file_tools.atomic_target(target) as tmp_path:
            image_loader.save_png(cropped, tmp_path)
    else:
        image_loader.save_png(cropped, target)
