# DesignSurface.py
# Canvas Wrap: minimal in-memory design surface
#
# Stands in for the editor's page model: ordered elements, change
# notifications on every mutation, and raster snapshots on demand.

from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from PIL import Image, UnidentifiedImageError

from WrapErrors import SnapshotFailure


_ELEMENT_ATTRS = (
    "x",
    "y",
    "width",
    "height",
    "src",
    "visible",
    "selectable",
    "draggable",
    "always_on_top",
    "show_in_export",
    "name",
)

_ids = itertools.count(1)


@dataclass(eq=False)
class DesignElement:
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    src: Any = None  # PIL.Image | path | None
    visible: bool = True
    selectable: bool = True
    draggable: bool = True
    always_on_top: bool = False
    show_in_export: bool = True
    name: str = ""
    id: int = field(default_factory=lambda: next(_ids))
    _surface: Optional["DesignSurface"] = field(default=None, repr=False)

    def get(self, attr: str):
        if attr not in _ELEMENT_ATTRS and attr != "id":
            raise AttributeError(f"Unknown element attribute: {attr}")
        return getattr(self, attr)

    def set(self, **attrs) -> None:
        """Atomic multi-attribute update; notifies the surface once."""
        for k in attrs:
            if k not in _ELEMENT_ATTRS:
                raise AttributeError(f"Unknown element attribute: {k}")
        for k, v in attrs.items():
            setattr(self, k, v)
        if self._surface is not None:
            self._surface._emit_change()


class DesignSurface:
    """
    Single page holding DesignElements in z-order (index 0 = bottom).
    """

    def __init__(self, width: int, height: int, *, background="#ffffff"):
        self.width = int(width)
        self.height = int(height)
        self.background = background

        self._elements: list[DesignElement] = []
        self._listeners: list[Callable[[], Any]] = []
        self._lock = threading.RLock()

    # ==================================================
    # Notifications
    # ==================================================

    def on_change(self, callback: Callable[[], Any]) -> Callable[[], None]:
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            try:
                self._listeners.remove(callback)
            except ValueError:
                pass

        return _unsubscribe

    def _emit_change(self) -> None:
        for cb in list(self._listeners):
            cb()

    # ==================================================
    # Mutation
    # ==================================================

    def set_page_size(self, width: int, height: int) -> None:
        with self._lock:
            self.width = int(round(width))
            self.height = int(round(height))
        self._emit_change()

    def add_element(self, **attrs) -> DesignElement:
        el = DesignElement(**attrs)
        with self._lock:
            el._surface = self
            self._elements.append(el)
        self._emit_change()
        return el

    def remove_element(self, element: DesignElement) -> None:
        with self._lock:
            self._elements.remove(element)
            element._surface = None
        self._emit_change()

    def move_to_bottom(self, element: DesignElement) -> None:
        with self._lock:
            self._elements.remove(element)
            self._elements.insert(0, element)
        self._emit_change()

    # ==================================================
    # Queries
    # ==================================================

    @property
    def elements(self) -> list[DesignElement]:
        with self._lock:
            return list(self._elements)

    def find(self, predicate: Callable[[DesignElement], bool]) -> Optional[DesignElement]:
        for el in self.elements:
            if predicate(el):
                return el
        return None

    def filter(self, predicate: Callable[[DesignElement], bool]) -> list[DesignElement]:
        return [el for el in self.elements if predicate(el)]

    def render_order(self) -> list[DesignElement]:
        els = self.elements
        return [e for e in els if not e.always_on_top] + [e for e in els if e.always_on_top]

    # ==================================================
    # Rendering
    # ==================================================

    @staticmethod
    def _load_source(src) -> Optional[Image.Image]:
        if src is None:
            return None
        if isinstance(src, Image.Image):
            return src.convert("RGBA")
        try:
            with Image.open(Path(src)) as im:
                return im.convert("RGBA")
        except (OSError, UnidentifiedImageError) as e:
            raise SnapshotFailure(f"cannot load element source {src!r}: {e}") from e

    def render_snapshot(
        self,
        size: Optional[tuple[int, int]] = None,
        exclude: Optional[Callable[[DesignElement], bool]] = None,
    ) -> Image.Image:
        """
        Renders visible, export-enabled elements to an RGBA raster.

        size:
            target pixel size; element geometry is scaled per axis from the
            page size. Default = page size.
        exclude:
            extra predicate; matching elements are skipped.
        """
        with self._lock:
            page_w, page_h = self.width, self.height
            order = self.render_order()

        if page_w <= 0 or page_h <= 0:
            raise SnapshotFailure(f"invalid page size {page_w}x{page_h}")

        out_w, out_h = (int(size[0]), int(size[1])) if size else (page_w, page_h)
        sx = out_w / page_w
        sy = out_h / page_h

        canvas = Image.new("RGBA", (out_w, out_h), self.background if self.background else (0, 0, 0, 0))

        for el in _renderable(order, exclude):
            img = self._load_source(el.src)
            if img is None:
                continue

            x0 = int(round(el.x * sx))
            y0 = int(round(el.y * sy))
            w = int(round(el.width * sx))
            h = int(round(el.height * sy))
            if w <= 0 or h <= 0:
                continue
            if img.size != (w, h):
                img = img.resize((w, h), Image.BILINEAR)

            layer = Image.new("RGBA", (out_w, out_h), (0, 0, 0, 0))
            layer.paste(img, (x0, y0))
            canvas.alpha_composite(layer)

        return canvas


def _renderable(order: Iterable[DesignElement], exclude) -> Iterable[DesignElement]:
    for el in order:
        if not el.visible or not el.show_in_export:
            continue
        if exclude is not None and exclude(el):
            continue
        yield el
