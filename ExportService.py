from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from PIL import Image

from DesignSurface import DesignElement, DesignSurface
from ExportRequest import ExportRequest
from WrapCompositor import flatten
from WrapDimensions import build_dimensions

logger = logging.getLogger(__name__)


class ExportService:
    """Runs an ExportRequest against a design surface."""

    @staticmethod
    def _save(image: Image.Image, path: Path, dpi: int) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        image.save(path, format="PNG", dpi=(dpi, dpi))

    @staticmethod
    def run(
        request: ExportRequest,
        *,
        surface: DesignSurface,
        exclude: Optional[Callable[[DesignElement], bool]] = None,
    ) -> Image.Image:
        """Renders the deliverable raster.

        The snapshot is rendered straight at the export pixel size with the
        overlay layers excluded, then composited with guide-free params.
        """
        dims = build_dimensions(request.size_key, request.export_dpi, request.border_width_inches)

        snapshot = surface.render_snapshot(size=dims.total_px, exclude=exclude)
        params = request.params.for_export(request.scale)

        out = flatten(request.mode, snapshot, dims, params)

        logger.info(
            "export %s mode=%s dpi=%s -> %sx%s",
            request.size_key,
            request.mode.value,
            request.export_dpi,
            out.size[0],
            out.size[1],
        )

        if request.output_path is not None:
            ExportService._save(out, request.output_path, int(request.export_dpi))
            logger.info("export written to %s", request.output_path)

        return out
