import numpy as np
from PIL import Image, ImageColor, ImageDraw, ImageFilter

from WrapDimensions import DimensionSpec
from WrapGuides import draw_centered_text, label_font_size, load_font


DEFAULT_BLUR_RADIUS = 7.0


def _normalize_rgba(color) -> np.ndarray:
    """
    Acepta un color PIL ("#rrggbb", "red") o (r,g,b[,a]) en [0..1] o
    [0..255]. Devuelve RGBA uint8.
    """
    if isinstance(color, str):
        c = ImageColor.getcolor(color, "RGBA")
        return np.array(c, dtype=np.uint8)

    c = np.array(color, dtype=np.float32)
    if c.shape[0] not in (3, 4):
        raise ValueError(f"color must be RGB or RGBA (got {color!r})")
    if np.max(c) <= 1.0:
        c = c * 255.0
    if c.shape[0] == 3:
        c = np.append(c, 255.0)
    return np.clip(np.round(c), 0, 255).astype(np.uint8)


def clear_inner(arr: np.ndarray, inset: int) -> np.ndarray:
    """Borra (alpha=0, rgb=0) el rectángulo interior a `inset` px de cada lado, in place."""
    h, w = arr.shape[:2]
    if inset * 2 >= w or inset * 2 >= h:
        return arr
    arr[inset : h - inset, inset : w - inset] = 0
    return arr


# ==========================================================
# Solid border
# ==========================================================

def solid_border(dims: DimensionSpec, color="#000000") -> Image.Image:
    """
    Marco opaco de ancho border+back alrededor de un centro transparente.
    """
    w, h = dims.total_px
    px = _normalize_rgba(color)

    out = np.empty((h, w, 4), dtype=np.uint8)
    out[:, :] = px
    clear_inner(out, dims.wrap_inset_px)

    return Image.fromarray(out)


# ==========================================================
# Blur wrap
# ==========================================================

def blur_wrap(
    source: Image.Image,
    dims: DimensionSpec,
    *,
    blur_radius: float = DEFAULT_BLUR_RADIUS,
    guides: bool = True,
    label_color="black",
) -> Image.Image:
    """
    Copia desenfocada del diseño, visible solo en la banda de wrap.

    Primero va el snapshot nítido y encima el desenfocado, así las zonas
    totalmente transparentes del blur siguen mostrando el diseño.
    """
    w, h = dims.total_px
    img = source.convert("RGBA")
    if img.size != (w, h):
        img = img.resize((w, h), Image.BILINEAR)

    canvas = img.copy()
    if blur_radius > 0:
        blurred = img.filter(ImageFilter.GaussianBlur(radius=float(blur_radius)))
        canvas.alpha_composite(blurred)

    if guides:
        draw = ImageDraw.Draw(canvas)
        font = load_font(label_font_size(dims.dpi))
        cx = w / 2.0
        back = dims.back_border_px
        draw_centered_text(draw, (cx, back + dims.border_width_px / 2.0), "Side", font=font, fill=label_color)
        if dims.back_inset_px > 0:
            draw_centered_text(draw, (cx, back / 2.0), "Back", font=font, fill=label_color)

    out = np.array(canvas, dtype=np.uint8)
    clear_inner(out, dims.wrap_inset_px)

    return Image.fromarray(out)
