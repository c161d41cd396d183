from __future__ import annotations

import mimetypes
import os
from typing import Optional

from .image_processing import prepare_photo
from .models import RoomPhoto


def load_photo(path: str, max_size: int = 1280, quality: int = 75, heic_quality: int = 85, locale: Optional[str] = None) -> RoomPhoto:
    with open(path, "rb") as f:
        data = f.read()
    mime_type, _ = mimetypes.guess_type(path)
    if mime_type is None and path.lower().endswith((".heic", ".heif")):
        mime_type = "image/heic"
    return prepare_photo(
        data,
        filename=os.path.basename(path),
        mime_type=mime_type,
        max_size=max_size,
        quality=quality,
        heic_quality=heic_quality,
        locale=locale,
    )


def base64_to_data_url(b64: str) -> str:
    return f"data:image/jpeg;base64,{b64}"
