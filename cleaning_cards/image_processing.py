from __future__ import annotations

from typing import Optional, Tuple
import io

from PIL import Image, ImageOps, UnidentifiedImageError

from .errors import HeicConversionFailed, ImageDecodeFailed
from .models import RoomPhoto

HEIC_MIME_MARKERS = ("heic", "heif")
HEIC_EXTENSIONS = (".heic", ".heif")


def is_heic(mime_type: Optional[str], filename: Optional[str]) -> bool:
    mime = (mime_type or "").lower()
    name = (filename or "").lower()
    return any(m in mime for m in HEIC_MIME_MARKERS) or name.endswith(HEIC_EXTENSIONS)


def _encode_jpeg(im: Image.Image, quality: int) -> bytes:
    buf = io.BytesIO()
    try:
        im.save(buf, format="JPEG", quality=quality, optimize=True)
    except OSError:
        buf = io.BytesIO()
        im.save(buf, format="JPEG", quality=min(quality, 95), optimize=False)
    out = buf.getvalue()
    if not out:
        raise ImageDecodeFailed("JPEG encoding resulted in empty bytes")
    return out


def _heic_via_pillow(data: bytes, quality: int) -> bytes:
    from pillow_heif import register_heif_opener

    register_heif_opener()
    with Image.open(io.BytesIO(data)) as im:
        return _encode_jpeg(im.convert("RGB"), quality)


def _pyheif_to_image(heif_file) -> Image.Image:
    return Image.frombytes(heif_file.mode, heif_file.size, heif_file.data, "raw", heif_file.mode, heif_file.stride)


def _heic_via_pyheif(data: bytes, quality: int) -> bytes:
    # separate binding with its own bundled libheif
    import pyheif

    return _encode_jpeg(_pyheif_to_image(pyheif.read(data)).convert("RGB"), quality)


def convert_heic_to_jpeg(data: bytes, quality: int = 85) -> bytes:
    """Convert HEIC/HEIF bytes to JPEG, trying a second decoder if the first fails."""
    try:
        return _heic_via_pillow(data, quality)
    except Exception as primary_error:
        try:
            return _heic_via_pyheif(data, quality)
        except Exception as e:
            raise HeicConversionFailed(
                f"HEIC conversion failed (primary: {primary_error}; fallback: {e})"
            ) from e


def _orientation(w: int, h: int) -> str:
    if h > w:
        return "portrait"
    if w > h:
        return "landscape"
    return "square"


def resize_image_bytes(data: bytes, max_size: int = 1280, quality: int = 75) -> Tuple[bytes, int, int, str]:
    """Downscale so the longer edge is at most max_size and re-encode as JPEG.

    Returns (jpeg_bytes, width, height, orientation).
    """
    try:
        im = Image.open(io.BytesIO(data))
        im.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ImageDecodeFailed(f"failed to decode image: {e}") from e
    with im:
        im = ImageOps.exif_transpose(im)
        im = im.convert("RGB")
        w, h = im.size
        orientation = _orientation(w, h)
        scale = min(1.0, float(max_size) / max(w, h))
        if scale < 1.0:
            new_size = (max(1, round(w * scale)), max(1, round(h * scale)))
            im = im.resize(new_size, Image.LANCZOS)
        final_w, final_h = im.size
        return _encode_jpeg(im, quality), final_w, final_h, orientation


def prepare_photo(
    data: bytes,
    filename: Optional[str] = None,
    mime_type: Optional[str] = None,
    max_size: int = 1280,
    quality: int = 75,
    heic_quality: int = 85,
    locale: Optional[str] = None,
) -> RoomPhoto:
    """Turn a captured or picked image into an upload-ready RoomPhoto."""
    if mime_type and not mime_type.lower().startswith("image/"):
        raise ImageDecodeFailed(f"not an image: {mime_type}")
    if not data:
        raise ImageDecodeFailed("image is empty")
    if is_heic(mime_type, filename):
        data = convert_heic_to_jpeg(data, heic_quality)
    jpeg, w, h, orientation = resize_image_bytes(data, max_size, quality)
    return RoomPhoto(jpeg=jpeg, width=w, height=h, orientation=orientation, locale=locale)
