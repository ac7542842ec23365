"""FastAPI surface for spritesheet slicing and export."""

from __future__ import annotations

import json
import logging
import os
import uuid
from pathlib import Path
from typing import Any, Literal, Optional

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field, field_validator, model_validator
from starlette.concurrency import run_in_threadpool

from ..core import ExportSettings, SliceSet
from ..core import auto_slicer, exporter, grid_slicer, image_loader
from ..core.errors import InvalidImageError, ProcessingError, ValidationError
from ..utils import file_tools, validators

logger = logging.getLogger(__name__)

DEFAULT_ARTIFACTS_DIR = Path(os.environ.get("SSU_ARTIFACTS_DIR", "artifacts"))
MAX_UPLOAD_BYTES = int(os.environ.get("SSU_MAX_UPLOAD_MB", "50")) * 1024 * 1024
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("SSU_ALLOWED_ORIGINS", "http://localhost:8000").split(",")
    if origin.strip()
]


class SliceRequest(BaseModel):
    """Incoming settings payload for slicing a spritesheet."""

    mode: Literal["auto", "grid"] = "auto"
    alpha_threshold: int = Field(8, ge=0, le=255)
    min_width: int = Field(2, ge=0)
    min_height: int = Field(2, ge=0)
    pad: int = Field(1, ge=0)
    cell_width: Optional[int] = Field(None, ge=1)
    cell_height: Optional[int] = Field(None, ge=1)
    margin: int = Field(0, ge=0)
    name_pattern: Optional[str] = None

    @field_validator("name_pattern")
    @classmethod
    def _check_name_pattern(cls, value):
        return validators.validate_name_pattern(value)

    @model_validator(mode="after")
    def _require_cells_for_grid(self):
        if self.mode == "grid" and (self.cell_width is None or self.cell_height is None):
            raise ValueError("Grid mode requires cell_width and cell_height")
        return self


class ExportRequest(SliceRequest):
    """Slice settings plus which slices to export."""

    selection: Optional[list[int]] = None
    atomic_writes: bool = False

    @field_validator("selection", mode="before")
    @classmethod
    def _parse_selection(cls, value):
        if value in (None, "", "null"):
            return None
        if isinstance(value, str):
            return [int(part) for part in value.split(",") if part.strip()]
        return value


class SliceResponse(BaseModel):
    """Slice set returned to the client in manifest shape."""

    count: int
    manifest: dict[str, Any]


class ExportResponse(BaseModel):
    """Payload returned after an export completes."""

    count: int
    manifest_url: str
    files: list[str]


def create_app(artifacts_dir: Optional[Path] = None, max_upload_bytes: int = MAX_UPLOAD_BYTES) -> FastAPI:
    artifacts = file_tools.ensure_directory(Path(artifacts_dir or DEFAULT_ARTIFACTS_DIR).resolve())
    uploads_dir = file_tools.ensure_directory(artifacts / "uploads")
    exports_dir = file_tools.ensure_directory(artifacts / "exports")

    app = FastAPI(title="Spritesheet Unpacker", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.mount("/artifacts", StaticFiles(directory=artifacts), name="artifacts")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/slice", response_model=SliceResponse)
    async def slice_image(
        request: Request,
        image: UploadFile = File(...),
        settings: str = Form("{}"),
    ) -> SliceResponse:
        request_settings = _parse_settings(SliceRequest, settings)
        _enforce_size_limit(request, max_upload_bytes)
        local_image = _write_upload_file(image, uploads_dir, max_upload_bytes)
        try:
            slice_set = await _guarded(_run_slice, local_image, request_settings, _source_name(image))
        finally:
            _cleanup_file(local_image)
        return SliceResponse(count=len(slice_set), manifest=slice_set.to_manifest())

    @app.post("/api/export", response_model=ExportResponse)
    async def export_image(
        request: Request,
        image: UploadFile = File(...),
        settings: str = Form("{}"),
    ) -> ExportResponse:
        request_settings = _parse_settings(ExportRequest, settings)
        _enforce_size_limit(request, max_upload_bytes)
        local_image = _write_upload_file(image, uploads_dir, max_upload_bytes)
        out_dir = exports_dir / uuid.uuid4().hex
        try:
            subset = await _guarded(_run_export, local_image, request_settings, _source_name(image), out_dir)
        finally:
            _cleanup_file(local_image)

        names = dict.fromkeys(file_tools.slice_output_path(out_dir, rect.name) for rect in subset)
        return ExportResponse(
            count=len(subset),
            manifest_url=_artifact_url(out_dir / ExportSettings().manifest_name, artifacts),
            files=[_artifact_url(path, artifacts) for path in names],
        )

    return app


def _parse_settings(model: type[BaseModel], settings: str) -> Any:
    try:
        payload = json.loads(settings) if settings else {}
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid settings JSON: {exc}") from exc
    try:
        return model.model_validate(payload)
    except Exception as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


async def _guarded(func, *args):
    """Run blocking core work off the event loop and map domain errors to HTTP."""

    try:
        return await run_in_threadpool(func, *args)
    except (InvalidImageError, ValidationError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ProcessingError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except Exception as exc:  # pragma: no cover - defensive
        logger.exception("Unexpected failure while slicing")
        raise HTTPException(status_code=500, detail="Unexpected error") from exc


def _run_slice(image_path: Path, request: SliceRequest, source_name: str) -> SliceSet:
    """Decode the upload and slice it with the requested mode."""

    image = image_loader.load_image(image_path)
    if request.mode == "grid":
        slice_set = grid_slicer.slice_grid(
            image.width,
            image.height,
            request.cell_width,
            request.cell_height,
            request.margin,
            source_path=source_name,
        )
    else:
        slice_set = auto_slicer.slice_auto(
            image,
            alpha_threshold=request.alpha_threshold,
            min_width=request.min_width,
            min_height=request.min_height,
            pad=request.pad,
            source_path=source_name,
        )
    if request.name_pattern:
        slice_set = slice_set.with_names(request.name_pattern)
    return slice_set


def _run_export(image_path: Path, request: ExportRequest, source_name: str, out_dir: Path) -> SliceSet:
    """Slice, narrow to the selection and export."""

    slice_set = _run_slice(image_path, request, source_name)
    selection = request.selection if request.selection is not None else range(len(slice_set))
    subset = slice_set.subset(selection)
    exporter.export_slices(image_path, subset, out_dir, ExportSettings(atomic_writes=request.atomic_writes))
    return subset


def _source_name(file: UploadFile) -> str:
    return Path(file.filename or "upload.png").name


def _artifact_url(path: Path, artifacts: Path) -> str:
    try:
        rel = path.relative_to(artifacts)
        return f"/artifacts/{rel.as_posix()}"
    except ValueError:
        return f"/artifacts/{path.name}"


def _write_upload_file(file: UploadFile, target_dir: Path, max_bytes: int) -> Path:
    suffix = Path(file.filename or "").suffix.lower()
    if suffix not in validators.ALLOWED_IMAGE_EXTENSIONS:
        raise HTTPException(status_code=400, detail="Unsupported file type")
    target = target_dir / f"{uuid.uuid4().hex}{suffix}"
    written = 0
    with target.open("wb") as handle:
        while True:
            chunk = file.file.read(1024 * 1024)
            if not chunk:
                break
            written += len(chunk)
            if written > max_bytes:
                handle.close()
                target.unlink(missing_ok=True)
                raise HTTPException(status_code=413, detail="File too large")
            handle.write(chunk)
    return target


def _enforce_size_limit(request: Request, max_bytes: int) -> None:
    """Simple guardrail on upload size based on Content-Length."""

    content_length = request.headers.get("content-length")
    if not content_length:
        return
    try:
        size = int(content_length)
    except ValueError:
        return
    if size > max_bytes:
        raise HTTPException(status_code=413, detail="Upload exceeds limit")


def _cleanup_file(path: Path) -> None:
    """Remove a temporary upload if it exists."""

    try:
        path.unlink(missing_ok=True)
    except OSError:
        logger.debug("Cleanup failed for %s", path)


if __name__ == "__main__":  # pragma: no cover
    import uvicorn

    uvicorn.run("spritesheet_unpacker.web.server:create_app", factory=True, host="0.0.0.0", port=8000)
