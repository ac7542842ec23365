"""Filesystem helpers."""

from __future__ import annotations

import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)


def ensure_directory(path: Path) -> Path:
    """Create a directory if it does not exist."""

    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)
    return path


def slice_output_path(out_dir: Path, name: str, suffix: str = ".png") -> Path:
    """Return the file a slice named ``name`` is written to.

    Names are used verbatim, so two slices with the same name (including
    two empty names) resolve to the same file.
    """

    if not suffix.startswith("."):
        suffix = "." + suffix
    return out_dir / f"{name}{suffix}"


@contextmanager
def atomic_target(path: Path) -> Iterator[Path]:
    """Yield a temporary sibling of ``path`` and move it into place on success."""

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        yield tmp_path
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()
