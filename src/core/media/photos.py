# src/core/media/photos.py
"""
Local photo loading for the CLI and tests.

Reads files as-is (no resizing or recompression) into `Photo` records with
1-based ids in input order. The MIME type comes from Pillow's format probe,
falling back to the file extension when the bytes are not a readable image.
"""

from __future__ import annotations

import io
import logging
import mimetypes
from collections.abc import Iterable
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from src.schemas.models import Photo

logger = logging.getLogger(__name__)

IMAGE_EXTS = {".jpg", ".jpeg", ".png", ".webp", ".gif", ".bmp", ".tif", ".tiff", ".heic"}


def list_images(folder: str | Path) -> list[Path]:
    """Image files directly inside `folder`, sorted case-insensitively by name."""
    base = Path(folder)
    if not base.is_dir():
        raise NotADirectoryError(f"Photo folder not found: {base}")
    return [p for p in sorted(base.iterdir(), key=lambda x: x.name.lower()) if p.is_file() and p.suffix.lower() in IMAGE_EXTS]


def detect_mime_type(data: bytes, filename: str = "") -> str:
    try:
        with Image.open(io.BytesIO(data)) as im:
            mime = Image.MIME.get(im.format or "")
    except (UnidentifiedImageError, OSError, ValueError):
        mime = None
    if mime:
        return mime
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or "image/jpeg"


def load_photos(paths: Iterable[str | Path]) -> list[Photo]:
    photos: list[Photo] = []
    for idx, path in enumerate(paths, start=1):
        p = Path(path)
        data = p.read_bytes()
        photos.append(Photo(photo_id=idx, content=data, original_name=p.name, mime_type=detect_mime_type(data, p.name)))
    logger.info("Loaded %d photo(s)", len(photos))
    return photos
