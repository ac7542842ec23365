"""Command-line entry point for spritesheet slicing workflows."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .core import AutoSliceSettings, ExportSettings, GridSliceSettings, SliceSet
from .core import auto_slicer, exporter, grid_slicer, manifest_writer
from .core.errors import EmptySelectionError, ExportError, InvalidImageError, ProcessingError, ValidationError
from .utils import file_tools, validators

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(name)s: %(message)s",
    )


def _add_output_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--output",
        type=Path,
        help="Export the selected slices into this directory (omit to print the slice set)",
    )
    parser.add_argument(
        "--select",
        help="Slices to export, e.g. '0,2,5-7' (default: all)",
    )
    parser.add_argument(
        "--atomic",
        action="store_true",
        help="Write each file to a temporary name and move it into place",
    )
    parser.add_argument(
        "--manifest-only",
        action="store_true",
        help="Write only atlas.json for the selection into --output, without cropping",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="spritesheet-unpacker",
        description="Cut a spritesheet into individual sprites and an atlas.json manifest.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    auto = subparsers.add_parser("auto", help="Detect sprites as connected opaque regions")
    auto.add_argument("image", type=Path, help="Path to source spritesheet")
    auto.add_argument(
        "--alpha-threshold",
        type=int,
        default=8,
        help="Minimum alpha for a pixel to count as opaque (default: 8)",
    )
    auto.add_argument("--min-width", type=int, default=2, help="Drop regions narrower than this (default: 2)")
    auto.add_argument("--min-height", type=int, default=2, help="Drop regions shorter than this (default: 2)")
    auto.add_argument("--pad", type=int, default=1, help="Pixels added around each region (default: 1)")
    _add_output_arguments(auto)

    grid = subparsers.add_parser("grid", help="Cut the sheet into equal cells")
    grid.add_argument("image", type=Path, help="Path to source spritesheet")
    grid.add_argument(
        "--cell",
        type=int,
        nargs=2,
        metavar=("WIDTH", "HEIGHT"),
        required=True,
        help="Cell size (px)",
    )
    grid.add_argument("--margin", type=int, default=0, help="Border skipped on every side (default: 0)")
    grid.add_argument(
        "--name-pattern",
        help="Name cells with a pattern such as 'cell_{index:03d}' (default: cells stay unnamed)",
    )
    _add_output_arguments(grid)

    inspect = subparsers.add_parser("inspect", help="Summarise an existing atlas.json")
    inspect.add_argument("manifest", type=Path, help="Path to atlas.json")
    inspect.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def _slice(args: argparse.Namespace) -> SliceSet:
    if args.command == "auto":
        settings = AutoSliceSettings(
            alpha_threshold=args.alpha_threshold,
            min_width=args.min_width,
            min_height=args.min_height,
            pad=args.pad,
        )
        return auto_slicer.slice_auto_file(args.image, settings)

    cell_width, cell_height = args.cell
    slices = grid_slicer.slice_grid_file(
        args.image, GridSliceSettings(cell_width=cell_width, cell_height=cell_height, margin=args.margin)
    )
    pattern = validators.validate_name_pattern(args.name_pattern)
    if pattern:
        slices = slices.with_names(pattern)
    return slices


def _write_manifest_only(subset: SliceSet, out_dir: Path, atomic: bool) -> Path:
    if len(subset) == 0:
        raise EmptySelectionError()
    try:
        file_tools.ensure_directory(out_dir)
        return manifest_writer.write_manifest(subset, out_dir, atomic=atomic)
    except OSError as exc:
        raise ExportError(f"Failed to write manifest into {out_dir}: {exc}", path=out_dir) from exc


def _inspect(path: Path) -> None:
    slice_set = manifest_writer.read_manifest(path)
    print(f"{slice_set.source_path} ({slice_set.image_width}x{slice_set.image_height}), {len(slice_set)} slices")
    for index, rect in enumerate(slice_set):
        print(f"{index:4d}  {rect.name or '-':<20} {rect.x:>5},{rect.y:<5} {rect.width}x{rect.height}")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        if args.command == "inspect":
            _inspect(args.manifest)
            return 0

        slices = _slice(args)
        selection = validators.parse_selection(args.select, len(slices))
        subset = slices.subset(selection)
        if args.manifest_only and args.output is None:
            raise ValidationError("--manifest-only requires --output")
        if args.output is None:
            print(json.dumps(subset.to_manifest(), indent=2))
            return 0

        if args.manifest_only:
            manifest_path = _write_manifest_only(subset, args.output, args.atomic)
            print(f"Wrote manifest for {len(subset)} slice(s) to: {manifest_path}")
            return 0

        count = exporter.export_slices(
            args.image, subset, args.output, ExportSettings(atomic_writes=args.atomic)
        )
    except (ValidationError, InvalidImageError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except ProcessingError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(f"Exported {count} slice(s) to: {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
