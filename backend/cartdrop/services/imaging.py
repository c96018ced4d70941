"""Greyscale normalisation for order photos.

Every photo is desaturated before upload:

    grey = round(0.299·R + 0.587·G + 0.114·B)

and written back into all three colour channels. Pixel dimensions and
the encoded format stay the same; an alpha band, if present, is copied
through untouched. All work happens in memory.
"""

from dataclasses import dataclass
from io import BytesIO

import numpy as np
from PIL import Image, UnidentifiedImageError

from cartdrop.middleware.exceptions import ImageProcessingError

LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])

# Pillow encoder options per format
_SAVE_OPTIONS: dict[str, dict] = {
    "JPEG": {"quality": 95},
    "WEBP": {"quality": 95},
}


@dataclass
class NormalizedImage:
    data: bytes
    filename: str
    content_type: str
    width: int
    height: int


def luminance(rgb: np.ndarray) -> np.ndarray:
    """Per-pixel luma of an (H, W, 3) array, rounded to uint8."""
    grey = rgb.astype(np.float64) @ LUMA_WEIGHTS
    return np.clip(np.rint(grey), 0, 255).astype(np.uint8)


def _to_rgb_array(img: Image.Image) -> tuple[np.ndarray, np.ndarray | None]:
    """Split an image into an RGB array and an optional alpha band."""
    has_alpha = img.mode in ("RGBA", "LA", "PA") or (
        img.mode == "P" and "transparency" in img.info
    )
    if has_alpha:
        rgba = np.asarray(img.convert("RGBA"))
        return rgba[..., :3], rgba[..., 3]
    return np.asarray(img.convert("RGB")), None


def desaturate(
    data: bytes,
    filename: str,
    content_type: str | None = None,
) -> NormalizedImage:
    """Return a greyscale copy of an encoded image.

    Raises ImageProcessingError if the bytes can't be decoded or the
    result can't be written back in the source format.
    """
    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            fmt = img.format
            rgb, alpha = _to_rgb_array(img)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise ImageProcessingError(filename, str(exc) or "unreadable image") from exc

    if fmt is None:
        raise ImageProcessingError(filename, "unknown image format")

    grey = luminance(rgb)
    bands = [grey, grey, grey] if alpha is None else [grey, grey, grey, alpha]
    out = Image.fromarray(np.stack(bands, axis=-1))

    buf = BytesIO()
    try:
        out.save(buf, format=fmt, **_SAVE_OPTIONS.get(fmt, {}))
    except (OSError, ValueError, KeyError) as exc:
        raise ImageProcessingError(filename, f"cannot encode as {fmt}") from exc

    return NormalizedImage(
        data=buf.getvalue(),
        filename=f"greyscale_{filename}",
        content_type=content_type or Image.MIME.get(fmt, "application/octet-stream"),
        width=out.width,
        height=out.height,
    )
