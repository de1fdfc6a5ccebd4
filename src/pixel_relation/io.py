from __future__ import annotations

import io
import json
import logging
from pathlib import Path

import numpy as np
import requests
from PIL import Image

from .export import bitmap_to_image
from .models import GRID_SIZES, ColorRelation, PixelGrid

logger = logging.getLogger(__name__)


def read_image_rgba(image_path: str | Path) -> Image.Image:
    path_str = str(image_path)
    if path_str.startswith(("http://", "https://")):
        response = requests.get(path_str, timeout=10)
        response.raise_for_status()
        with Image.open(io.BytesIO(response.content)) as image:
            return image.convert("RGBA")

    with Image.open(Path(image_path)) as image:
        return image.convert("RGBA")


def grid_from_image(image: Image.Image, grid_size: int) -> PixelGrid:
    if grid_size not in GRID_SIZES:
        raise ValueError(
            f"unsupported grid size {grid_size}. Use one of {', '.join(map(str, GRID_SIZES))}"
        )
    resized = image.convert("RGBA").resize(
        (grid_size, grid_size), resample=Image.Resampling.BILINEAR
    )
    return PixelGrid.from_rgba(np.asarray(resized, dtype=np.uint8))


def image_to_grid(image_path: str | Path, grid_size: int) -> PixelGrid:
    """Rasterize an image file or URL into an unselected ``grid_size`` grid."""
    image = read_image_rgba(image_path)
    grid = grid_from_image(image, grid_size)
    logger.info(
        "loaded %s (%dx%d) into a %dx%d grid",
        image_path,
        image.width,
        image.height,
        grid_size,
        grid_size,
    )
    return grid


def save_bitmap(bitmap: np.ndarray, output_path: str | Path) -> Path:
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    bitmap_to_image(bitmap).save(path, format="PNG")
    return path


def write_relation_json(relation: ColorRelation, output_path: str | Path) -> None:
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(relation.to_dict(), indent=2)
    path.write_text(payload + "\n", encoding="utf-8")
