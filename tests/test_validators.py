from pathlib import Path

import pytest

from spritesheet_unpacker.core.errors import InvalidImageError, ValidationError
from spritesheet_unpacker.utils import validators


def test_parse_selection_defaults_to_everything():
    assert validators.parse_selection(None, 3) == [0, 1, 2]
    assert validators.parse_selection("  ", 2) == [0, 1]


def test_parse_selection_keeps_written_order():
    assert validators.parse_selection("4, 0,2-3", 5) == [4, 0, 2, 3]


@pytest.mark.parametrize("value", ["5", "a", "3-1", "-1"])
def test_parse_selection_rejects_bad_values(value):
    with pytest.raises(ValidationError):
        validators.parse_selection(value, 5)


def test_validate_image_path(tmp_path):
    with pytest.raises(InvalidImageError, match="File not found"):
        validators.validate_image_path(tmp_path / "missing.png")

    text = tmp_path / "notes.txt"
    text.write_text("hi")
    with pytest.raises(InvalidImageError, match="Unsupported format"):
        validators.validate_image_path(text)

    image = tmp_path / "sheet.WEBP"
    image.write_bytes(b"")
    assert validators.validate_image_path(image) == image


def test_validate_image_path_rejects_directory(tmp_path):
    folder = tmp_path / "sprites.png"
    folder.mkdir()
    with pytest.raises(InvalidImageError, match="Not a file"):
        validators.validate_image_path(folder)


def test_name_pattern():
    assert validators.validate_name_pattern("") is None
    assert validators.validate_name_pattern("cell_{index:03d}") == "cell_{index:03d}"
    with pytest.raises(ValidationError):
        validators.validate_name_pattern("{row}")
    with pytest.raises(ValidationError):
        validators.validate_name_pattern("../{index}")
