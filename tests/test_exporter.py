import json

import numpy as np
import pytest
from PIL import Image

from spritesheet_unpacker.core import ExportSettings, SliceRect, SliceSet
from spritesheet_unpacker.core import auto_slicer, exporter, grid_slicer, manifest_writer
from spritesheet_unpacker.core.errors import (
    EmptySelectionError,
    ExportError,
    InvalidImageError,
    SliceCancelledError,
)


def test_export_writes_crops_and_manifest(tmp_path, sheet_path):
    slices = auto_slicer.slice_auto_file(sheet_path)
    out_dir = tmp_path / "out" / "nested"

    count = exporter.export_slices(sheet_path, slices, out_dir)

    assert count == 2
    source = np.asarray(Image.open(sheet_path).convert("RGBA"))
    for rect in slices:
        with Image.open(out_dir / f"{rect.name}.png") as exported:
            assert exported.format == "PNG"
            assert exported.size == (rect.width, rect.height)
            crop = source[rect.y : rect.bottom, rect.x : rect.right]
            assert np.array_equal(np.asarray(exported.convert("RGBA")), crop)

    manifest = json.loads((out_dir / "atlas.json").read_text(encoding="utf-8"))
    assert list(manifest) == ["SourcePath", "ImageWidth", "ImageHeight", "Slices"]
    assert manifest["Slices"][0] == {"X": 5, "Y": 0, "Width": 5, "Height": 5, "Name": "slice_000"}


def test_manifest_round_trip_of_subset(tmp_path, sheet_path):
    subset = auto_slicer.slice_auto_file(sheet_path).subset([1, 0])
    exporter.export_slices(sheet_path, subset, tmp_path / "out")

    reread = manifest_writer.read_manifest(tmp_path / "out" / "atlas.json")
    assert reread == subset
    assert [r.name for r in reread] == ["slice_001", "slice_000"]


def test_empty_selection_touches_nothing(tmp_path, sheet_path):
    empty = SliceSet(str(sheet_path), 10, 6)
    out_dir = tmp_path / "never"
    with pytest.raises(EmptySelectionError):
        exporter.export_slices(sheet_path, empty, out_dir)
    assert not out_dir.exists()


def test_failure_mid_loop_keeps_earlier_files(tmp_path, grid_sheet_path):
    slices = grid_slicer.slice_grid(16, 16, 8, 8).with_names("slice_{index}").subset([0, 1, 2])
    out_dir = tmp_path / "out"
    out_dir.mkdir()
    # A directory squatting on the second target makes its write fail.
    (out_dir / "slice_1.png").mkdir()

    with pytest.raises(ExportError) as excinfo:
        exporter.export_slices(grid_sheet_path, slices, out_dir)

    assert excinfo.value.index == 1
    assert excinfo.value.path == out_dir / "slice_1.png"
    assert isinstance(excinfo.value.__cause__, OSError)
    assert (out_dir / "slice_0.png").is_file()
    assert not (out_dir / "slice_2.png").exists()
    assert not (out_dir / "atlas.json").exists()


def test_same_names_overwrite(tmp_path, grid_sheet_path):
    slices = grid_slicer.slice_grid(16, 16, 8, 8, source_path=str(grid_sheet_path))
    out_dir = tmp_path / "out"

    assert exporter.export_slices(grid_sheet_path, slices, out_dir) == 4

    assert sorted(p.name for p in out_dir.iterdir()) == [".png", "atlas.json"]
    assert len(manifest_writer.read_manifest(out_dir / "atlas.json")) == 4


def test_atomic_writes_leave_no_temporary_files(tmp_path, sheet_path):
    slices = auto_slicer.slice_auto_file(sheet_path)
    out_dir = tmp_path / "out"

    exporter.export_slices(sheet_path, slices, out_dir, ExportSettings(atomic_writes=True))

    assert sorted(p.name for p in out_dir.iterdir()) == ["atlas.json", "slice_000.png", "slice_001.png"]


def test_custom_manifest_name(tmp_path, sheet_path):
    slices = auto_slicer.slice_auto_file(sheet_path)
    exporter.export_slices(sheet_path, slices, tmp_path, ExportSettings(manifest_name="sheet.json"))
    assert (tmp_path / "sheet.json").is_file()
    assert not (tmp_path / "atlas.json").exists()


def test_progress_reports_each_slice(tmp_path, sheet_path):
    calls = []
    exporter.export_slices(
        sheet_path, auto_slicer.slice_auto_file(sheet_path), tmp_path, progress=lambda done, total: calls.append((done, total))
    )
    assert calls == [(1, 2), (2, 2)]


def test_cancel_before_first_slice(tmp_path, sheet_path):
    with pytest.raises(SliceCancelledError):
        exporter.export_slices(sheet_path, auto_slicer.slice_auto_file(sheet_path), tmp_path, cancel_check=lambda: True)
    assert not (tmp_path / "slice_000.png").exists()
    assert not (tmp_path / "atlas.json").exists()


def test_decode_failure_is_surfaced(tmp_path):
    broken = tmp_path / "broken.png"
    broken.write_bytes(b"\x89PNG garbage")
    slices = SliceSet(str(broken), 4, 4, [SliceRect(0, 0, 2, 2, "a")])
    with pytest.raises(InvalidImageError):
        exporter.export_slices(broken, slices, tmp_path / "out")


def test_rect_outside_decoded_image_fails(tmp_path, sheet_path):
    slices = SliceSet(str(sheet_path), 32, 32, [SliceRect(0, 0, 4, 4, "ok"), SliceRect(20, 20, 4, 4, "far")])
    with pytest.raises(ExportError) as excinfo:
        exporter.export_slices(sheet_path, slices, tmp_path)
    assert excinfo.value.index == 1
    assert (tmp_path / "ok.png").is_file()
