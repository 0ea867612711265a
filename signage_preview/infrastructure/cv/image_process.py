import io
import logging
from typing import Optional, Tuple

from PIL import Image, ImageColor, ImageDraw, ImageFont

logger = logging.getLogger(__name__)

Box = Tuple[int, int, int, int]  # left, top, width, height


def new_canvas(width: int, height: int, color: str) -> Image.Image:
    return Image.new("RGBA", (max(1, width), max(1, height)), ImageColor.getcolor(color, "RGBA"))


def decode_image(b: Optional[bytes]) -> Optional[Image.Image]:
    if b is None:
        return None
    img = Image.open(io.BytesIO(b))
    img.load()
    return img.convert("RGBA")


def crop_to_fill(image_pil: Image.Image, target_w: int, target_h: int) -> Image.Image:
    source_w, source_h = image_pil.size
    target_ratio = target_w / target_h
    source_ratio = source_w / source_h

    if source_ratio > target_ratio:
        scale_factor = target_h / source_h
        scaled_w = max(target_w, int(source_w * scale_factor))
        scaled_h = target_h
        resized_image = image_pil.resize((scaled_w, scaled_h), Image.Resampling.LANCZOS)
        crop_x = (scaled_w - target_w) // 2
        return resized_image.crop((crop_x, 0, crop_x + target_w, scaled_h))
    else:
        scale_factor = target_w / source_w
        scaled_w = target_w
        scaled_h = max(target_h, int(source_h * scale_factor))
        resized_image = image_pil.resize((scaled_w, scaled_h), Image.Resampling.LANCZOS)
        crop_y = (scaled_h - target_h) // 2
        return resized_image.crop((0, crop_y, scaled_w, crop_y + target_h))


def paste_zone_image(canvas: Image.Image, photo: Image.Image, box: Box) -> None:
    left, top, w, h = box
    tile = crop_to_fill(photo, w, h)
    canvas.paste(tile, (left, top), mask=tile)


def load_font(size: int, font_path: Optional[str] = None):
    if font_path:
        try:
            return ImageFont.truetype(font_path, size)
        except OSError as e:
            logger.warning(f"Font {font_path} not loadable ({e}), using the default font.")
    return ImageFont.load_default(size)


def draw_label(canvas: Image.Image, box: Box, text: str, font, fill: str = "#000000", padding: int = 4) -> None:
    """Draw ``text`` clipped to ``box``."""
    left, top, w, h = box
    tile = Image.new("RGBA", (w, h), (0, 0, 0, 0))
    ImageDraw.Draw(tile).text((padding, padding), text, font=font, fill=ImageColor.getcolor(fill, "RGBA"))
    canvas.paste(tile, (left, top), mask=tile)


def encode_image(img: Image.Image, fmt: str = "png", quality: int = 88) -> bytes:
    fmt = (fmt or "png").lower()
    # Map to a valid Pillow format string
    if fmt in ("jpg", "jpeg"):
        # JPEG can't have alpha
        if img.mode != "RGB":
            img = img.convert("RGB")
        save_kwargs = dict(format="JPEG", quality=quality, optimize=True)
    elif fmt == "png":
        save_kwargs = dict(format="PNG", optimize=True)
    else:
        save_kwargs = dict(format=fmt.upper())

    buf = io.BytesIO()
    img.save(buf, **save_kwargs)
    return buf.getvalue()
