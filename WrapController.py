# WrapController.py
# Canvas Wrap: session controller
#
# Holds the wrap session state (mode, product size, border), owns the four
# overlay layers on the design surface and keeps them in sync with edits.
# Every programmatic overlay write runs inside scheduler.internal_mutation().

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from PIL import Image, ImageColor

from CanvasRescale import rescale_elements, scale_factors
from DesignSurface import DesignElement, DesignSurface
from ExportRequest import ExportRequest
from ExportService import ExportService
from WrapCompositor import (
    MODE_OVERLAYS,
    OVERLAY_NAMES,
    OVERLAY_SHOW_IN_EXPORT,
    EffectMode,
    WrapParams,
    composite,
    needs_snapshot,
)
from WrapDimensions import DimensionSpec, build_dimensions
from WrapErrors import ConfigurationError, OverlayUninitialized, SnapshotFailure
from WrapScheduler import WrapScheduler
from WrapSettings import BORDER_WIDTH_MAX_IN, BORDER_WIDTH_MIN_IN, WrapSettings, load_settings

logger = logging.getLogger(__name__)


# ======================================================
# WrapState (explicit, no globals)
# ======================================================

@dataclass
class WrapState:
    mode: EffectMode = EffectMode.NONE
    size_key: str = "8x10"
    border_width_inches: float = 0.75
    border_color: str = "#000000"
    dims: Optional[DimensionSpec] = None


# ======================================================
# WrapController
# ======================================================

class WrapController:
    """
    Session object for one design surface.

    Design constraints:
    - Overlays are created once by setup() and never destroyed.
    - Overlay rasters are computed off-surface and written with one set() each.
    - A regeneration result is dropped if a newer regeneration or mode switch
      started after it (sequence counter).
    """

    def __init__(
        self,
        surface: Optional[DesignSurface] = None,
        *,
        settings: Optional[WrapSettings] = None,
        after: Optional[Callable[[int, Callable[[], Any]], Any]] = None,
        cancel: Optional[Callable[[Any], Any]] = None,
        setup: bool = True,
    ):
        self.settings = settings or load_settings()

        self.state = WrapState(
            size_key=self.settings.default_size,
            border_width_inches=self.settings.border_width_inches,
            border_color=self.settings.border_color,
        )
        self.state.dims = build_dimensions(
            self.state.size_key, self.settings.preview_dpi, self.state.border_width_inches
        )

        if surface is None:
            surface = DesignSurface(*self.state.dims.total_px, background=self.settings.background)
        self.surface = surface

        self.scheduler = WrapScheduler(
            self.regenerate,
            delay_ms=self.settings.debounce_ms,
            after=after,
            cancel=cancel,
        )

        self._lock = threading.RLock()
        self._regen_seq = 0
        self._overlays: dict[str, DesignElement] = {}
        self._unsubscribe: Optional[Callable[[], None]] = None

        if setup:
            self.setup()

    # ==================================================
    # Setup / teardown
    # ==================================================

    def setup(self) -> None:
        with self._lock:
            if self._overlays:
                return

            w, h = self.state.dims.total_px
            with self.scheduler.internal_mutation():
                self.surface.set_page_size(w, h)
                for name in OVERLAY_NAMES:
                    self._overlays[name] = self.surface.add_element(
                        name=name,
                        width=w,
                        height=h,
                        src=None,
                        visible=False,
                        selectable=False,
                        draggable=False,
                        always_on_top=True,
                        show_in_export=OVERLAY_SHOW_IN_EXPORT[name],
                    )

            self._unsubscribe = self.surface.on_change(self._on_surface_change)
            logger.debug("overlays ready at %sx%s", w, h)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.scheduler.shutdown()

    # ==================================================
    # Accessors
    # ==================================================

    @property
    def dimensions(self) -> DimensionSpec:
        return self.state.dims

    @property
    def mode(self) -> EffectMode:
        return self.state.mode

    def overlay(self, name: str) -> DesignElement:
        self._require_overlays()
        return self._overlays[name]

    def is_overlay(self, element: DesignElement) -> bool:
        return any(element is o for o in self._overlays.values())

    def design_elements(self) -> list[DesignElement]:
        return self.surface.filter(lambda el: not self.is_overlay(el))

    def _require_overlays(self) -> None:
        if not self._overlays:
            raise OverlayUninitialized("overlay layers are not set up (call setup() first)")

    def _params(self) -> WrapParams:
        return WrapParams(
            border_color=self.state.border_color,
            blur_radius=self.settings.blur_radius,
            guides=True,
            guide_color=self.settings.guide_color,
            label_color=self.settings.label_color,
        )

    # ==================================================
    # Snapshot + overlay writes
    # ==================================================

    def _source_snapshot(self) -> Image.Image:
        """Design content only: every overlay is excluded from the capture."""
        try:
            return self.surface.render_snapshot(exclude=self.is_overlay)
        except SnapshotFailure:
            raise
        except Exception as e:
            raise SnapshotFailure(f"render_snapshot failed: {e}") from e

    def _compose(self, mode: EffectMode) -> dict[str, Image.Image]:
        snapshot = self._source_snapshot() if needs_snapshot(mode) else None
        return composite(mode, snapshot, self.state.dims, self._params())

    def _write_overlays(self, mode: EffectMode, rasters: dict[str, Image.Image]) -> None:
        """Mode's overlays shown with their new rasters, all others hidden."""
        w, h = self.state.dims.total_px
        owned = MODE_OVERLAYS[mode]
        with self.scheduler.internal_mutation():
            for name in OVERLAY_NAMES:
                if name not in owned and self._overlays[name].visible:
                    self._overlays[name].set(visible=False)
            for name in owned:
                self._overlays[name].set(src=rasters[name], width=w, height=h, visible=True)

    # ==================================================
    # Change notifications
    # ==================================================

    def _on_surface_change(self) -> None:
        # Border does not depend on design content
        if needs_snapshot(self.state.mode):
            self.scheduler.notify()

    def regenerate(self) -> bool:
        """
        Scheduler callback. Never raises; returns True if overlays were written.
        """
        with self._lock:
            if not self._overlays:
                logger.error("regeneration aborted: overlay layers are not set up")
                return False

            mode = self.state.mode
            if mode is EffectMode.NONE:
                return False

            self._regen_seq += 1
            seq = self._regen_seq
            dims = self.state.dims
            params = self._params()

            try:
                snapshot = self._source_snapshot() if needs_snapshot(mode) else None
            except SnapshotFailure as e:
                logger.warning("regeneration skipped, keeping previous overlay: %s", e)
                return False

        # Compose off-lock; the raster is private until written below
        try:
            rasters = composite(mode, snapshot, dims, params)
        except Exception:
            logger.exception("compositing failed for mode %s", mode.value)
            return False

        with self._lock:
            if seq != self._regen_seq or mode is not self.state.mode or dims != self.state.dims:
                logger.debug("discarding stale regeneration #%s", seq)
                return False
            self._write_overlays(mode, rasters)
            return True

    # ==================================================
    # Setters (state mutation is explicit and minimal)
    # ==================================================

    def set_effect_mode(self, mode, **params) -> None:
        """
        Activates one mode; the overlays of the other three are hidden.

        params (optional): border_color, border_width_inches
        """
        try:
            mode = EffectMode.parse(mode)
        except ConfigurationError:
            logger.error("unknown effect mode: %r", mode)
            raise

        with self._lock:
            try:
                self._require_overlays()
            except OverlayUninitialized:
                logger.error("set_effect_mode(%s) aborted: overlays not set up", mode.value)
                raise

            # Validate everything before touching state
            try:
                color = self._validate_color(params.pop("border_color")) if "border_color" in params else None
                width = (
                    self._validate_border_width(params.pop("border_width_inches"))
                    if "border_width_inches" in params
                    else None
                )
                if params:
                    raise ConfigurationError(f"unknown effect params: {sorted(params)}")
            except ConfigurationError as e:
                logger.error("set_effect_mode(%s) aborted: %s", mode.value, e)
                raise

            if width is not None:
                self._resize(self.state.size_key, width)
            if color is not None:
                self.state.border_color = color

            self._regen_seq += 1
            try:
                rasters = self._compose(mode)
            except SnapshotFailure as e:
                logger.error("set_effect_mode(%s) aborted: %s", mode.value, e)
                raise

            self.state.mode = mode
            self._write_overlays(mode, rasters)
            logger.info("effect mode -> %s", mode.value)

    def set_border_color(self, color) -> None:
        with self._lock:
            self.state.border_color = self._validate_color(color)
            if self.state.mode is EffectMode.BORDER:
                self._reapply()

    def set_border_width(self, inches: float) -> None:
        with self._lock:
            self._resize(self.state.size_key, self._validate_border_width(inches))
            self._reapply()

    def set_product_size(self, size_key: str) -> None:
        logger.info("resizing canvas to: %s", size_key)
        with self._lock:
            self._resize(size_key, self.state.border_width_inches)
            self._reapply()

    def upload_image(self, image) -> DesignElement:
        """
        Adds an image (PIL image or path) covering the full canvas, at the
        bottom of the z-order.
        """
        if isinstance(image, (str, Path)):
            with Image.open(image) as im:
                image = im.convert("RGBA")
        elif not isinstance(image, Image.Image):
            raise TypeError(f"upload_image expects a PIL image or a path (got {type(image).__name__})")

        w, h = self.surface.width, self.surface.height
        el = self.surface.add_element(name="upload", src=image, x=0, y=0, width=w, height=h)
        self.surface.move_to_bottom(el)
        return el

    # ==================================================
    # Resize
    # ==================================================

    def _resize(self, size_key: str, border_width_inches: float) -> None:
        try:
            new_dims = build_dimensions(size_key, self.settings.preview_dpi, border_width_inches)
        except ConfigurationError as e:
            logger.error("resize aborted: %s", e)
            raise

        old_total = self.state.dims.total_px
        new_total = new_dims.total_px
        sx, sy = scale_factors(old_total, new_total)

        with self.scheduler.internal_mutation():
            self.surface.set_page_size(*new_total)
            for o in self._overlays.values():
                o.set(width=new_total[0], height=new_total[1])
            n = rescale_elements(self.design_elements(), sx, sy)

        self.state.dims = new_dims
        self.state.size_key = size_key.strip().lower().replace(" ", "")
        self.state.border_width_inches = float(border_width_inches)
        logger.debug("rescaled %s elements by (%.4f, %.4f)", n, sx, sy)

    def _reapply(self) -> None:
        mode = self.state.mode
        if mode is EffectMode.NONE or not self._overlays:
            return
        self._regen_seq += 1
        try:
            rasters = self._compose(mode)
        except SnapshotFailure as e:
            logger.warning("could not re-apply %s, keeping previous overlay: %s", mode.value, e)
            return
        self._write_overlays(mode, rasters)

    # ==================================================
    # Validation
    # ==================================================

    @staticmethod
    def _validate_color(color) -> str:
        if isinstance(color, str):
            try:
                ImageColor.getrgb(color)
            except ValueError:
                raise ConfigurationError(f"invalid color: {color!r}") from None
            return color
        try:
            r, g, b = (int(c) for c in tuple(color)[:3])
        except (TypeError, ValueError):
            raise ConfigurationError(f"invalid color: {color!r}") from None
        r, g, b = (max(0, min(c, 255)) for c in (r, g, b))
        return f"#{r:02x}{g:02x}{b:02x}"

    @staticmethod
    def _validate_border_width(inches) -> float:
        try:
            v = float(inches)
        except (TypeError, ValueError):
            raise ConfigurationError(f"invalid border width: {inches!r}") from None
        if v <= 0:
            raise ConfigurationError(f"border width must be > 0 in (got {v})")
        return max(BORDER_WIDTH_MIN_IN, min(v, BORDER_WIDTH_MAX_IN))

    # ==================================================
    # Preview + export
    # ==================================================

    def render_preview(self) -> Image.Image:
        """Design snapshot with the visible overlays stacked on top (guides included)."""
        with self._lock:
            out = self._source_snapshot()
            for name in OVERLAY_NAMES:
                o = self._overlays.get(name)
                if o is None or not o.visible or not isinstance(o.src, Image.Image):
                    continue
                layer = o.src if o.src.size == out.size else o.src.resize(out.size, Image.BILINEAR)
                out.alpha_composite(layer.convert("RGBA"))
            return out

    def build_export_request(self, size_key: Optional[str] = None, output_path: Optional[Path] = None) -> ExportRequest:
        return ExportRequest(
            size_key=size_key or self.state.size_key,
            mode=self.state.mode,
            border_width_inches=self.state.border_width_inches,
            export_dpi=self.settings.export_dpi,
            preview_dpi=self.settings.preview_dpi,
            params=self._params(),
            output_path=Path(output_path) if output_path is not None else None,
        )

    def export_high_res(self, size_key: Optional[str] = None, output_path: Optional[Path] = None) -> Image.Image:
        """
        Final deliverable at export DPI. Works with any mode, NONE included.
        """
        request = self.build_export_request(size_key, output_path)
        with self._lock, self.scheduler.internal_mutation():
            try:
                return ExportService.run(request, surface=self.surface, exclude=self.is_overlay)
            except ConfigurationError as e:
                logger.error("export aborted: %s", e)
                raise
