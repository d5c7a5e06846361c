from __future__ import annotations

import numpy as np
from PIL import Image

from WrapDimensions import DimensionSpec
from WrapGuides import draw_wrap_guides


# Mirror padding is larger than the structural border so the reflected
# bands are sourced from content that sits well inside the fold.
MIRROR_PADDING_FACTOR = 1.5


def mirror_padding_px(dims: DimensionSpec) -> int:
    return int(round(dims.border_width_px * MIRROR_PADDING_FACTOR))


def _reflect_pad(tile: np.ndarray, top: int, bottom: int, left: int, right: int) -> np.ndarray:
    """
    Center tile + 8 reflected copies in one pass.

    Edges flip one axis, corners flip both. Reflection is about the first/last
    tile pixel, so out[y, p - d] == out[y, p + d]. The result is flush to the
    canvas on the outward side and to the tile on the inward side.
    """
    return np.pad(tile, ((top, bottom), (left, right), (0, 0)), mode="reflect")


def mirror_tile(
    source: Image.Image,
    dims: DimensionSpec,
    *,
    guides: bool = True,
    guide_color="white",
    label_color="black",
) -> Image.Image:
    """
    Mirror-Tile overlay.

    source:
        snapshot of the design surface (any mode). Not modified.
    guides:
        False for the export variant (no dashed rectangles / labels).
    """
    w, h = dims.total_px
    img = source.convert("RGBA")
    if img.size != (w, h):
        img = img.resize((w, h), Image.BILINEAR)

    src = np.array(img, dtype=np.uint8)

    # Padding cannot exceed half the canvas minus one pixel of tile
    p = mirror_padding_px(dims)
    p = max(0, min(p, (w - 2) // 2, (h - 2) // 2))

    if p == 0:
        out = src.copy()
    else:
        tile = src[p : h - p, p : w - p]
        out = _reflect_pad(tile, p, h - p - tile.shape[0], p, w - p - tile.shape[1])

    result = Image.fromarray(np.ascontiguousarray(out))

    if guides:
        draw_wrap_guides(result, dims, guide_color=guide_color, label_color=label_color)

    return result
