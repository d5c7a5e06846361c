from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from WrapCompositor import EffectMode, WrapParams


@dataclass(frozen=True)
class ExportRequest:
    """Immutable request for one high-resolution export.

    - Dimensions are re-derived at export_dpi (never a bitmap upscale of the preview).
    - preview_dpi is only used to rescale pixel-valued params (blur radius).
    - output_path=None: the raster is only returned, nothing is written.
    """

    size_key: str
    mode: EffectMode
    border_width_inches: float

    export_dpi: int = 300
    preview_dpi: int = 72

    params: WrapParams = field(default_factory=WrapParams)

    output_path: Optional[Path] = None

    @property
    def scale(self) -> float:
        return float(self.export_dpi) / float(self.preview_dpi)
