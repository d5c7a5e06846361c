# WrapCompositor.py
# Canvas Wrap: effect dispatch
#
# - One entry point per mode: composite(mode, snapshot, dims, params)
# - Results are full rasters computed off-surface; callers write them in one go
# - flatten() builds the single deliverable raster used by export

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum

from PIL import Image

from FrameBorder import DEFAULT_BLUR_RADIUS, blur_wrap, solid_border
from MirrorWrap import mirror_tile
from WrapDimensions import DimensionSpec
from WrapErrors import ConfigurationError
from WrapGuides import image_wrap_guides

logger = logging.getLogger(__name__)


class EffectMode(str, Enum):
    NONE = "none"
    MIRROR = "mirror"
    BORDER = "border"
    IMAGE_WRAP = "imageWrap"

    @classmethod
    def parse(cls, value) -> "EffectMode":
        if isinstance(value, cls):
            return value
        key = (str(value or "none")).strip()
        for m in cls:
            if key == m.value or key.lower() == m.value.lower() or key.upper() == m.name:
                return m
        raise ConfigurationError(f"Unknown effect mode: {value!r}")


# ==========================================================
# Overlay layers
# ==========================================================

MIRROR_WRAP = "mirrorWrap"
BORDER_ELEMENT = "borderElement"
IMAGE_WRAP = "imageWrap"
BLUR_OVERLAY = "blurOverlay"

OVERLAY_NAMES = (MIRROR_WRAP, BORDER_ELEMENT, IMAGE_WRAP, BLUR_OVERLAY)

# Only the border is part of the physical product
OVERLAY_SHOW_IN_EXPORT = {
    MIRROR_WRAP: False,
    BORDER_ELEMENT: True,
    IMAGE_WRAP: False,
    BLUR_OVERLAY: False,
}

MODE_OVERLAYS: dict[EffectMode, tuple[str, ...]] = {
    EffectMode.NONE: (),
    EffectMode.MIRROR: (MIRROR_WRAP,),
    EffectMode.BORDER: (BORDER_ELEMENT,),
    EffectMode.IMAGE_WRAP: (IMAGE_WRAP, BLUR_OVERLAY),
}


@dataclass(frozen=True)
class WrapParams:
    border_color: object = "#000000"
    blur_radius: float = DEFAULT_BLUR_RADIUS
    guides: bool = True
    guide_color: object = "white"
    label_color: object = "black"

    def for_export(self, scale: float) -> "WrapParams":
        """Guide-free copy with pixel-valued params rescaled to export DPI."""
        return replace(self, guides=False, blur_radius=float(self.blur_radius) * float(scale))


def needs_snapshot(mode: EffectMode) -> bool:
    return mode in (EffectMode.MIRROR, EffectMode.IMAGE_WRAP)


# ==========================================================
# Dispatch
# ==========================================================

def composite(
    mode: EffectMode,
    snapshot: Image.Image | None,
    dims: DimensionSpec,
    params: WrapParams | None = None,
) -> dict[str, Image.Image]:
    """
    Computes every overlay raster that belongs to `mode`.

    Returns {overlay_name: RGBA image sized dims.total_px}. Empty for NONE.
    Solid border does not read the snapshot; the others require it.
    """
    mode = EffectMode.parse(mode)
    params = params or WrapParams()

    if needs_snapshot(mode) and snapshot is None:
        raise ValueError(f"mode {mode.value} requires a source snapshot")

    if mode is EffectMode.NONE:
        return {}

    if mode is EffectMode.MIRROR:
        return {
            MIRROR_WRAP: mirror_tile(
                snapshot,
                dims,
                guides=params.guides,
                guide_color=params.guide_color,
                label_color=params.label_color,
            )
        }

    if mode is EffectMode.BORDER:
        return {BORDER_ELEMENT: solid_border(dims, params.border_color)}

    # IMAGE_WRAP: guides and blur are always produced together
    return {
        IMAGE_WRAP: image_wrap_guides(dims, guide_color=params.guide_color, label_color=params.label_color)
        if params.guides
        else Image.new("RGBA", dims.total_px, (0, 0, 0, 0)),
        BLUR_OVERLAY: blur_wrap(
            snapshot,
            dims,
            blur_radius=params.blur_radius,
            guides=params.guides,
            label_color=params.label_color,
        ),
    }


def flatten(
    mode: EffectMode,
    snapshot: Image.Image,
    dims: DimensionSpec,
    params: WrapParams | None = None,
) -> Image.Image:
    """
    Single deliverable raster: snapshot with the mode's overlays on top.

    Mirror output already contains the (unmirrored) design at its center,
    so it replaces the snapshot instead of being layered over it.
    """
    mode = EffectMode.parse(mode)
    base = snapshot.convert("RGBA")
    if base.size != dims.total_px:
        logger.debug("flatten: resizing snapshot %s -> %s", base.size, dims.total_px)
        base = base.resize(dims.total_px, Image.BILINEAR)

    layers = composite(mode, base, dims, params)

    if mode is EffectMode.MIRROR:
        return layers[MIRROR_WRAP]

    out = base.copy()
    for name in MODE_OVERLAYS[mode]:
        out.alpha_composite(layers[name])
    return out
