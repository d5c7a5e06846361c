from __future__ import annotations

from functools import lru_cache

from PIL import Image, ImageDraw, ImageFont

from WrapDimensions import DimensionSpec


GUIDE_DASH = (5, 5)  # on, off (px)
GUIDE_LINE_WIDTH = 2

_FONT_CANDIDATES = (
    "DejaVuSans.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
    "/System/Library/Fonts/Helvetica.ttc",
    "arial.ttf",
)


@lru_cache(maxsize=8)
def load_font(size: int) -> ImageFont.ImageFont:
    for path in _FONT_CANDIDATES:
        try:
            return ImageFont.truetype(path, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def label_font_size(dpi: float) -> int:
    return max(12, int(round(dpi / 6.0)))


# ==========================================================
# Primitives
# ==========================================================

def draw_dashed_rect(
    draw: ImageDraw.ImageDraw,
    box: tuple[int, int, int, int],
    *,
    fill,
    width: int = GUIDE_LINE_WIDTH,
    dash: tuple[int, int] = GUIDE_DASH,
) -> None:
    """
    Dashed rectangle outline. ImageDraw has no dash pattern, so each side is
    drawn as a run of short segments.
    """
    x0, y0, x1, y1 = box
    on, off = dash
    step = max(1, on + off)

    for dx in range(x0, x1, step):
        end = min(dx + on, x1)
        draw.line([(dx, y0), (end, y0)], fill=fill, width=width)
        draw.line([(dx, y1), (end, y1)], fill=fill, width=width)
    for dy in range(y0, y1, step):
        end = min(dy + on, y1)
        draw.line([(x0, dy), (x0, end)], fill=fill, width=width)
        draw.line([(x1, dy), (x1, end)], fill=fill, width=width)


def draw_centered_text(draw: ImageDraw.ImageDraw, xy: tuple[float, float], text: str, *, font, fill) -> None:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    x = xy[0] - (left + right) / 2.0
    y = xy[1] - (top + bottom) / 2.0
    draw.text((x, y), text, font=font, fill=fill)


# ==========================================================
# Wrap guides
# ==========================================================

def draw_wrap_guides(
    image: Image.Image,
    dims: DimensionSpec,
    *,
    side_label: str = "Sides",
    guide_color="white",
    label_color="black",
) -> None:
    """
    Draws the two nested dashed rectangles (fold line at border+back, back
    edge at back) and the band labels onto `image` in place.
    """
    w, h = image.size
    wrap = dims.wrap_inset_px
    back = dims.back_inset_px

    draw = ImageDraw.Draw(image)
    draw_dashed_rect(draw, (wrap, wrap, w - wrap - 1, h - wrap - 1), fill=guide_color)
    if back > 0:
        draw_dashed_rect(draw, (back, back, w - back - 1, h - back - 1), fill=guide_color)

    font = load_font(label_font_size(dims.dpi))
    cx = w / 2.0
    draw_centered_text(draw, (cx, back + dims.border_width_px / 2.0), side_label, font=font, fill=label_color)
    draw_centered_text(draw, (cx, h - back - dims.border_width_px / 2.0), side_label, font=font, fill=label_color)
    if back > 0:
        draw_centered_text(draw, (cx, dims.back_border_px / 2.0), "Back", font=font, fill=label_color)
        draw_centered_text(draw, (cx, h - dims.back_border_px / 2.0), "Back", font=font, fill=label_color)


def image_wrap_guides(dims: DimensionSpec, *, guide_color="white", label_color="black") -> Image.Image:
    """Guide-only overlay for Image Wrap mode (no image content)."""
    out = Image.new("RGBA", dims.total_px, (0, 0, 0, 0))
    draw_wrap_guides(out, dims, guide_color=guide_color, label_color=label_color)
    return out
