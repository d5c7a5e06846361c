from __future__ import annotations

import argparse
import logging
from pathlib import Path

from WrapCompositor import EffectMode
from WrapController import WrapController
from WrapDimensions import PRODUCT_SIZES
from WrapErrors import WrapError
from WrapSettings import load_settings


def _no_timer(_delay_ms, fn):
    # Headless run: no debounce loop, regenerations are driven explicitly
    return None


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Export a canvas wrap (mirror / border / image wrap) at print DPI.")
    ap.add_argument("image", type=str, help="Design image (PNG/JPG)")
    ap.add_argument("--size", default=None, choices=sorted(PRODUCT_SIZES), help="Product size, e.g. 8x10")
    ap.add_argument("--mode", default="mirror", choices=[m.value for m in EffectMode], help="Wrap effect")
    ap.add_argument("--border_width", type=float, default=None, help="Border width in inches (default from settings)")
    ap.add_argument("--border_color", type=str, default=None, help="Border color for --mode border, e.g. #1e1e1e")
    ap.add_argument("--out", required=True, type=str, help="Output PNG")
    ap.add_argument("--preview", type=str, default="", help="Also write the on-screen preview (with guides) here")
    ap.add_argument("--settings", type=str, default="", help="settings.json (default: beside the app)")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(name)s: %(message)s",
    )

    settings = load_settings(Path(args.settings) if args.settings else None)
    ctl = WrapController(settings=settings, after=_no_timer)

    try:
        if args.size:
            ctl.set_product_size(args.size)
        if args.border_width is not None:
            ctl.set_border_width(args.border_width)
        if args.border_color:
            ctl.set_border_color(args.border_color)

        ctl.upload_image(Path(args.image))
        ctl.set_effect_mode(args.mode)

        if args.preview:
            preview_path = Path(args.preview)
            preview_path.parent.mkdir(parents=True, exist_ok=True)
            ctl.render_preview().save(preview_path, format="PNG")

        out = ctl.export_high_res(output_path=Path(args.out))
    except (WrapError, OSError) as e:
        raise SystemExit(f"export failed: {e}")
    finally:
        ctl.close()

    print(f"OK: {args.out} ({out.size[0]}x{out.size[1]} @ {settings.export_dpi} dpi, mode={args.mode})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
