# WrapDimensions.py
# Canvas Wrap: dimension model
#
# Pure functions only. Every pixel value is derived from (inches, dpi);
# nothing here caches a pixel value independent of its DPI.

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from WrapErrors import ConfigurationError


# ==========================================================
# Product catalog (inner area, inches)
# ==========================================================

PRODUCT_SIZES: dict[str, Tuple[int, int]] = {
    "8x10": (8, 10),
    "9x9": (9, 9),
    "12x12": (12, 12),
    "10x16": (10, 16),
    "14x14": (14, 14),
    "16x20": (16, 20),
    "18x18": (18, 18),
    "20x20": (20, 20),
}

DEFAULT_SIZE = "8x10"

# Back border is a fixed fraction of the border width
BACK_BORDER_RATIO = 3.0


@dataclass(frozen=True)
class DimensionSpec:
    dpi: float
    inner_width: int
    inner_height: int
    border_width_px: float
    back_border_px: float

    @property
    def wrap_px(self) -> float:
        return self.border_width_px + self.back_border_px

    @property
    def total_width(self) -> float:
        return total_size((self.inner_width, self.inner_height), self.border_width_px, self.back_border_px)[0]

    @property
    def total_height(self) -> float:
        return total_size((self.inner_width, self.inner_height), self.border_width_px, self.back_border_px)[1]

    @property
    def total_px(self) -> Tuple[int, int]:
        """Raster size (w, h) of the full canvas."""
        return int(round(self.total_width)), int(round(self.total_height))

    @property
    def wrap_inset_px(self) -> int:
        """Inset of the purchasable (inner) area from the canvas edge."""
        return int(round(self.wrap_px))

    @property
    def back_inset_px(self) -> int:
        return int(round(self.back_border_px))


# ==========================================================
# Primitives
# ==========================================================

def _check_dpi(dpi: float) -> float:
    dpi = float(dpi)
    if dpi <= 0:
        raise ConfigurationError(f"dpi must be > 0 (got {dpi})")
    return dpi


def derive_border(border_width_inches: float, dpi: float) -> float:
    return float(border_width_inches) * _check_dpi(dpi)


def derive_back_border(border_width_inches: float, dpi: float) -> float:
    """Back border in px, one third of the border at the same dpi."""
    return derive_border(border_width_inches, dpi) / BACK_BORDER_RATIO


def inner_size(size_key: str, dpi: float) -> Tuple[int, int]:
    """Pixel size of the inner (product) area for a catalog key."""
    key = (size_key or "").strip().lower().replace(" ", "")
    if key not in PRODUCT_SIZES:
        raise ConfigurationError(f'Unknown product size "{size_key}"')
    dpi = _check_dpi(dpi)
    w_in, h_in = PRODUCT_SIZES[key]
    return int(round(w_in * dpi)), int(round(h_in * dpi))


def total_size(inner: Tuple[float, float], border_px: float, back_border_px: float) -> Tuple[float, float]:
    pad = 2.0 * (float(border_px) + float(back_border_px))
    return inner[0] + pad, inner[1] + pad


def build_dimensions(size_key: str, dpi: float, border_width_inches: float) -> DimensionSpec:
    if float(border_width_inches) <= 0:
        raise ConfigurationError(f"border width must be > 0 in (got {border_width_inches})")

    w, h = inner_size(size_key, dpi)
    border_px = derive_border(border_width_inches, dpi)
    back_px = derive_back_border(border_width_inches, dpi)

    return DimensionSpec(
        dpi=float(dpi),
        inner_width=w,
        inner_height=h,
        border_width_px=border_px,
        back_border_px=back_px,
    )
