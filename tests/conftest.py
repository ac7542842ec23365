import numpy as np
import pytest
from PIL import Image


def rgba_from_alpha(alpha: np.ndarray) -> Image.Image:
    """Build an RGBA image whose colour encodes position and whose alpha is ``alpha``."""

    height, width = alpha.shape
    ys, xs = np.mgrid[0:height, 0:width]
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    pixels[..., 0] = (xs * 13) % 256
    pixels[..., 1] = (ys * 29) % 256
    pixels[..., 2] = 200
    pixels[..., 3] = alpha
    return Image.fromarray(pixels, "RGBA")


@pytest.fixture
def two_sprite_alpha() -> np.ndarray:
    """10x6 sheet: a 3x4 sprite top right, a 2x2 sprite left, a stray pixel."""

    alpha = np.zeros((6, 10), dtype=np.uint8)
    alpha[0:4, 6:9] = 255
    alpha[1:3, 1:3] = 255
    alpha[5, 0] = 255
    return alpha


@pytest.fixture
def sheet_path(tmp_path, two_sprite_alpha):
    path = tmp_path / "sheet.png"
    rgba_from_alpha(two_sprite_alpha).save(path)
    return path


@pytest.fixture
def grid_sheet_path(tmp_path):
    path = tmp_path / "grid.png"
    rgba_from_alpha(np.full((16, 16), 255, dtype=np.uint8)).save(path)
    return path
