import io
from typing import Any

from PIL import Image, ImageOps

from imagevariants.config import JPEG_QUALITY
from imagevariants.errors import DecodeFailure, EncodeFailure
from imagevariants.models import ImageFormat

# Modes each encoder accepts without conversion
_ENCODABLE_MODES = {
    ImageFormat.PNG:  {"1", "L", "LA", "I", "P", "RGB", "RGBA"},
    ImageFormat.JPEG: {"L", "RGB", "CMYK"},
}


def decode(data: bytes) -> Image.Image:
    """Decode raw bytes into a fully loaded, upright image.

    EXIF orientation is applied so the reported size matches what a
    viewer displays. The source format survives on ``.format``.
    """
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
        fmt = img.format
        img = ImageOps.exif_transpose(img)
    except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as exc:
        raise DecodeFailure(f"cannot decode image: {exc}") from exc
    img.format = fmt
    return img


def sniff_format(img: Image.Image) -> ImageFormat:
    return ImageFormat.from_pil(img.format)


def resize(img: Image.Image, width: int, height: int) -> Image.Image:
    """Scale to fit inside ``width`` x ``height``, keeping the aspect ratio."""
    ratio = min(width / img.width, height / img.height)
    size  = (max(1, round(img.width * ratio)), max(1, round(img.height * ratio)))
    return img.resize(size, resample=Image.LANCZOS)


def encode(img: Image.Image, fmt: ImageFormat) -> bytes:
    accepted = _ENCODABLE_MODES.get(fmt)
    if accepted is not None and img.mode not in accepted:
        img = img.convert("RGBA" if fmt is ImageFormat.PNG and "A" in img.getbands() else "RGB")

    save_kwargs: dict[str, Any] = {}
    if fmt is ImageFormat.JPEG:
        save_kwargs.update({"quality": JPEG_QUALITY, "optimize": True})

    buf = io.BytesIO()
    try:
        img.save(buf, format=fmt.pil_name, **save_kwargs)
    except (OSError, ValueError, KeyError) as exc:
        raise EncodeFailure(f"cannot encode {img.mode} image as {fmt.name}: {exc}") from exc
    return buf.getvalue()
