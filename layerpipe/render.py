from pathlib import Path
from typing import Tuple

from PIL import Image, ImageOps


Size = Tuple[int, int]

# Modes each encoder accepts without conversion.
_ENCODER_MODES = {
    "JPEG": ("RGB", "L", "CMYK"),
    "WEBP": ("RGB", "RGBA"),
    "PNG": ("RGB", "RGBA", "L", "LA", "P", "1", "I", "I;16"),
}


def probe_size(path: Path) -> Size:
    """
    Read pixel dimensions from the image header without decoding pixels.
    """
    with Image.open(path) as img:
        return img.size


def exceeds(size: Size, bound: Size) -> bool:
    return size[0] > bound[0] or size[1] > bound[1]


def fit_inside(img: Image.Image, bound: Size) -> Image.Image:
    """
    Scale down, preserving aspect ratio, until both sides are within `bound`.
    Never enlarges.
    """
    img = img.copy()
    img.thumbnail(bound, Image.LANCZOS)
    return img


def cover_fit(img: Image.Image, size: Size) -> Image.Image:
    """
    Scale to fill `size` exactly, cropping the overflow around the center.
    Upscales when the source is smaller than the target.
    """
    return ImageOps.fit(img, size, method=Image.LANCZOS, centering=(0.5, 0.5))


def save_image(img: Image.Image, path: Path, encoder: str, quality: int) -> None:
    allowed = _ENCODER_MODES.get(encoder)
    if allowed is not None and img.mode not in allowed:
        has_alpha = "A" in img.mode or "transparency" in img.info
        target = "RGBA" if has_alpha and "RGBA" in allowed else "RGB"
        img = img.convert(target)

    if encoder == "PNG":
        img.save(path, format="PNG", optimize=True)
    else:
        img.save(path, format=encoder, quality=quality)
