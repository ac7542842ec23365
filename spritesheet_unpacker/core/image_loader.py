"""Pixel source: decode, alpha extraction and cropping via Pillow."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from . import SliceRect
from .errors import ExportError, InvalidImageError, ValidationError
from ..utils import validators

logger = logging.getLogger(__name__)

PixelSource = Union[Image.Image, np.ndarray]


def load_image(path: Path) -> Image.Image:
    """Decode the image at ``path`` fully into an RGBA buffer."""

    validated_path = validators.validate_image_path(Path(path))
    try:
        with Image.open(validated_path) as img:
            img.load()
            image = img.convert("RGBA")
    except UnidentifiedImageError as exc:
        raise InvalidImageError(validated_path, reason="Unrecognised image data") from exc
    except (OSError, ValueError) as exc:
        raise InvalidImageError(validated_path, reason=f"Could not decode: {exc}") from exc

    logger.debug("Decoded %s -> %sx%s", validated_path, image.width, image.height)
    return image


def read_size(path: Path) -> tuple[int, int]:
    """Return (width, height) of the image at ``path``."""

    validated_path = validators.validate_image_path(Path(path))
    try:
        with Image.open(validated_path) as img:
            return img.size
    except UnidentifiedImageError as exc:
        raise InvalidImageError(validated_path, reason="Unrecognised image data") from exc
    except (OSError, ValueError) as exc:
        raise InvalidImageError(validated_path, reason=f"Could not read header: {exc}") from exc


def alpha_plane(pixels: PixelSource) -> np.ndarray:
    """Return an ``h x w`` uint8 alpha plane for an image or pixel array."""

    if isinstance(pixels, Image.Image):
        if "A" in pixels.getbands():
            return np.asarray(pixels.getchannel("A"), dtype=np.uint8)
        if pixels.mode in ("P", "PA") or "transparency" in pixels.info:
            return np.asarray(pixels.convert("RGBA").getchannel("A"), dtype=np.uint8)
        # No transparency information: every pixel counts as opaque.
        return np.full((pixels.height, pixels.width), 255, dtype=np.uint8)

    array = np.asarray(pixels)
    if array.ndim == 3 and array.shape[2] == 4:
        alpha = array[:, :, 3]
    elif array.ndim == 2:
        alpha = array
    else:
        raise ValidationError(f"Expected an RGBA image or an HxW(x4) array, got shape {array.shape}")
    if alpha.dtype != np.uint8 and alpha.size and (alpha.min() < 0 or alpha.max() > 255):
        raise ValidationError(
            f"Alpha values must be between 0 and 255, got {alpha.min()}..{alpha.max()}"
        )
    return np.ascontiguousarray(alpha, dtype=np.uint8)


def crop(image: Image.Image, rect: SliceRect) -> Image.Image:
    """Crop exactly ``rect`` out of ``image``."""

    if rect.right > image.width or rect.bottom > image.height:
        raise ExportError(
            f"Slice '{rect.name}' ({rect.x},{rect.y},{rect.width},{rect.height}) "
            f"does not fit the decoded image {image.width}x{image.height}"
        )
    return image.crop(rect.box)


def save_png(image: Image.Image, path: Path) -> Path:
    """Persist an image as PNG regardless of the target suffix."""

    image.save(path, format="PNG")
    return path
