from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple


@dataclass(frozen=True)
class Geometry:
    x: float
    y: float
    width: float
    height: float


def scale_factors(old_total: Tuple[float, float], new_total: Tuple[float, float]) -> Tuple[float, float]:
    ow, oh = float(old_total[0]), float(old_total[1])
    if ow <= 0 or oh <= 0:
        raise ValueError(f"old total size must be > 0 (got {old_total})")
    return float(new_total[0]) / ow, float(new_total[1]) / oh


def rescale_geometry(geom: Geometry, scale_x: float, scale_y: float) -> Geometry:
    """
    Origin-anchored, per-axis affine scale. Aspect ratio of the element is
    not preserved when scale_x != scale_y.
    """
    return Geometry(
        x=geom.x * scale_x,
        y=geom.y * scale_y,
        width=geom.width * scale_x,
        height=geom.height * scale_y,
    )


def rescale_elements(elements: Iterable, scale_x: float, scale_y: float) -> int:
    """
    Applies rescale_geometry to design elements (anything with x/y/width/height
    and a set(**attrs) method). Returns how many elements were touched.
    """
    n = 0
    for el in elements:
        g = rescale_geometry(Geometry(el.x, el.y, el.width, el.height), scale_x, scale_y)
        el.set(x=g.x, y=g.y, width=g.width, height=g.height)
        n += 1
    return n
