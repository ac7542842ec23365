"""Manifest writing and reading."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from . import SliceSet
from .errors import ValidationError
from ..utils import file_tools

logger = logging.getLogger(__name__)

MANIFEST_NAME = "atlas.json"


def write_manifest(
    slice_set: SliceSet,
    out_dir: Path,
    name: str = MANIFEST_NAME,
    atomic: bool = False,
) -> Path:
    """Serialize ``slice_set`` as pretty-printed JSON inside ``out_dir``."""

    manifest_path = out_dir / name
    payload = json.dumps(slice_set.to_manifest(), indent=2)

    if atomic:
        with file_tools.atomic_target(manifest_path) as tmp_path:
            tmp_path.write_text(payload, encoding="utf-8")
    else:
        manifest_path.write_text(payload, encoding="utf-8")
    logger.info("Wrote manifest to %s", manifest_path)
    return manifest_path


def read_manifest(path: Path) -> SliceSet:
    """Load a manifest written by :func:`write_manifest`."""

    path = Path(path)
    if not path.is_file():
        raise ValidationError(f"Manifest not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Manifest is not valid JSON: {path} ({exc})") from exc
    if not isinstance(data, dict):
        raise ValidationError(f"Manifest must be a JSON object: {path}")
    return SliceSet.from_manifest(data)
