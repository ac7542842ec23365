"""Core slicing scaffolding: the slice data model and run settings."""

__all__ = [
    "SliceRect",
    "SliceSet",
    "AutoSliceSettings",
    "GridSliceSettings",
    "ExportSettings",
]

from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Iterator, Mapping

from .errors import ValidationError


@dataclass(frozen=True)
class SliceRect:
    """One axis-aligned region of the source image."""

    x: int
    y: int
    width: int
    height: int
    name: str = ""

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValidationError(f"Slice size must be positive, got {self.width}x{self.height}")
        if self.x < 0 or self.y < 0:
            raise ValidationError(f"Slice origin must be non-negative, got ({self.x}, {self.y})")

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def box(self) -> tuple[int, int, int, int]:
        """Pillow crop box (left, top, right, bottom)."""

        return (self.x, self.y, self.right, self.bottom)

    def to_manifest(self) -> dict[str, Any]:
        return {"X": self.x, "Y": self.y, "Width": self.width, "Height": self.height, "Name": self.name}

    @classmethod
    def from_manifest(cls, data: Mapping[str, Any]) -> "SliceRect":
        try:
            return cls(
                x=int(data["X"]),
                y=int(data["Y"]),
                width=int(data["Width"]),
                height=int(data["Height"]),
                name=str(data.get("Name") or ""),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError(f"Malformed slice entry: {data!r}") from exc


@dataclass(frozen=True)
class SliceSet:
    """Ordered slices plus the metadata of the image they were cut from.

    Instances are values: ``subset`` and ``with_names`` build new sets and
    never touch the original.
    """

    source_path: str
    image_width: int
    image_height: int
    slices: tuple[SliceRect, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.image_width <= 0 or self.image_height <= 0:
            raise ValidationError(
                f"Image size must be positive, got {self.image_width}x{self.image_height}"
            )
        object.__setattr__(self, "slices", tuple(self.slices))
        for index, rect in enumerate(self.slices):
            if rect.right > self.image_width or rect.bottom > self.image_height:
                raise ValidationError(
                    f"Slice {index} ({rect.x},{rect.y},{rect.width},{rect.height}) "
                    f"exceeds image bounds {self.image_width}x{self.image_height}"
                )

    def __len__(self) -> int:
        return len(self.slices)

    def __iter__(self) -> Iterator[SliceRect]:
        return iter(self.slices)

    def subset(self, indices: Iterable[int]) -> "SliceSet":
        """Return a new set holding the slices at ``indices``, in that order."""

        picked = []
        for index in indices:
            if index < 0 or index >= len(self.slices):
                raise ValidationError(f"Slice index {index} out of range (0..{len(self.slices) - 1})")
            picked.append(self.slices[index])
        return replace(self, slices=tuple(picked))

    def with_names(self, pattern: str) -> "SliceSet":
        """Return a new set with every slice renamed via ``pattern.format(index=i)``."""

        try:
            renamed = tuple(replace(rect, name=pattern.format(index=i)) for i, rect in enumerate(self.slices))
        except (KeyError, IndexError, ValueError) as exc:
            raise ValidationError(f"Invalid name pattern {pattern!r}: {exc}") from exc
        return replace(self, slices=renamed)

    def to_manifest(self) -> dict[str, Any]:
        return {
            "SourcePath": self.source_path,
            "ImageWidth": self.image_width,
            "ImageHeight": self.image_height,
            "Slices": [rect.to_manifest() for rect in self.slices],
        }

    @classmethod
    def from_manifest(cls, data: Mapping[str, Any]) -> "SliceSet":
        try:
            return cls(
                source_path=str(data["SourcePath"]),
                image_width=int(data["ImageWidth"]),
                image_height=int(data["ImageHeight"]),
                slices=tuple(SliceRect.from_manifest(item) for item in data["Slices"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ValidationError(f"Malformed manifest: missing or invalid {exc}") from exc


@dataclass
class AutoSliceSettings:
    """Parameters for opaque-region detection."""

    alpha_threshold: int = 8
    min_width: int = 2
    min_height: int = 2
    pad: int = 1


@dataclass
class GridSliceSettings:
    """Parameters for uniform grid partitioning."""

    cell_width: int
    cell_height: int
    margin: int = 0


@dataclass
class ExportSettings:
    """Options controlling how an export is written to disk."""

    atomic_writes: bool = False
    manifest_name: str = "atlas.json"
