from __future__ import annotations

import io
from typing import Literal

from fastapi import FastAPI, HTTPException, Response
from pydantic import BaseModel, Field, field_validator
from starlette.concurrency import run_in_threadpool

from pixel_relation.export import (
    DEFAULT_BACKGROUND_HEX,
    ExportOptions,
    bitmap_to_image,
    export_bitmap,
    suggested_filename,
)
from pixel_relation.models import GRID_SIZES, InvalidIndex, Pixel, PixelGrid
from pixel_relation.session import EditSession

PixelRow = tuple[int, int, int, int, bool]


class GridPayload(BaseModel):
    size: int = Field(..., description=f"Grid side length, one of {GRID_SIZES}")
    pixels: list[PixelRow] = Field(
        ..., description="Row-major cells as [r, g, b, a, selected]"
    )

    @field_validator("size")
    @classmethod
    def _supported_size(cls, value: int) -> int:
        if value not in GRID_SIZES:
            raise ValueError(f"size must be one of {GRID_SIZES}")
        return value


class PreviewRequest(GridPayload):
    base_index: int = Field(..., ge=0, description="Index of the base cell")
    base_color: str = Field(..., description="New base color as hex")
    keep_lightness: bool = Field(
        default=False,
        description="Keep the base cell's saturation and lightness",
    )


class DeltaItem(BaseModel):
    dh: float
    ds: float
    dl: float


class PreviewResponse(BaseModel):
    size: int
    pixels: list[PixelRow]
    base_index: int
    base_color: str
    deltas: list[DeltaItem | None]


class ExportRequest(GridPayload):
    background: Literal["transparent", "color"] = "transparent"
    background_hex: str = DEFAULT_BACKGROUND_HEX
    only_selected: bool = False
    scale: float = Field(default=1, gt=0, le=64, description="Upscale factor")


app = FastAPI(
    title="Pixel Relation API",
    version="1.0.0",
    description="Recolor pixel-art selections relative to a base pixel.",
)


def _to_grid(payload: GridPayload) -> PixelGrid:
    return PixelGrid(
        payload.size,
        [Pixel(r, g, b, a, selected) for r, g, b, a, selected in payload.pixels],
    )


def _encode_png(grid: PixelGrid, options: ExportOptions) -> bytes:
    buffer = io.BytesIO()
    bitmap_to_image(export_bitmap(grid, options)).save(buffer, format="PNG")
    return buffer.getvalue()


@app.post("/preview", response_model=PreviewResponse)
def preview(payload: PreviewRequest) -> PreviewResponse:
    try:
        session = EditSession(_to_grid(payload), keep_lightness=payload.keep_lightness)
        session.confirm(payload.base_index)
        session.set_base_color(payload.base_color)
    except (InvalidIndex, ValueError) as exc:
        raise HTTPException(status_code=400, detail=f"failed_to_build_preview: {exc}") from exc

    result = session.preview()
    return PreviewResponse(
        size=result.size,
        pixels=[tuple(p.to_list()) for p in result.pixels],
        base_index=session.base_index,
        base_color=session.base_color,
        deltas=[
            None if d is None else DeltaItem(dh=d.dh, ds=d.ds, dl=d.dl)
            for d in session.relation.deltas
        ],
    )


@app.post("/export")
async def export(payload: ExportRequest) -> Response:
    try:
        grid = _to_grid(payload)
        scale = int(payload.scale) if float(payload.scale).is_integer() else payload.scale
        options = ExportOptions(
            background=payload.background,
            background_hex=payload.background_hex,
            only_selected=payload.only_selected,
            scale=scale,
        )
    except (InvalidIndex, ValueError) as exc:
        raise HTTPException(status_code=400, detail=f"failed_to_export: {exc}") from exc

    content = await run_in_threadpool(_encode_png, grid, options)
    filename = suggested_filename(grid.size, payload.only_selected)
    return Response(
        content=content,
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
