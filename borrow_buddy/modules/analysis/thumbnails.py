"""
Resized copies of tool photos.
Each size is written next to the original as {name}_{size}{ext}.
"""
import io
import os
import logging
from typing import Dict, Tuple
from PIL import Image
from fastapi import HTTPException
from supabase import Client
from borrow_buddy.config import settings

logger = logging.getLogger(__name__)

FORMATS = {
    ".png": ("PNG", "image/png"),
    ".webp": ("WEBP", "image/webp"),
}
DEFAULT_FORMAT = ("JPEG", "image/jpeg")


def thumbnail_path(image_path: str, size_name: str) -> str:
    base, file_name = os.path.split(image_path)
    stem, ext = os.path.splitext(file_name)
    name = f"{stem}_{size_name}{ext or '.jpg'}"
    return f"{base}/{name}" if base else name


def resize_image(image_bytes: bytes, max_dim: int, ext: str, quality: int = None) -> Tuple[bytes, str]:
    """Shrink so the longest side is at most max_dim, keeping the aspect ratio. Never upscales."""
    fmt, mime = FORMATS.get(ext.lower(), DEFAULT_FORMAT)
    img = Image.open(io.BytesIO(image_bytes))
    img.thumbnail((max_dim, max_dim), Image.Resampling.LANCZOS)

    if fmt == "JPEG" and img.mode != "RGB":
        if img.mode in ("RGBA", "LA", "P"):
            img = img.convert("RGBA")
            background = Image.new("RGB", img.size, (255, 255, 255))
            background.paste(img, mask=img.split()[-1])
            img = background
        else:
            img = img.convert("RGB")

    output = io.BytesIO()
    if fmt == "JPEG":
        img.save(output, format=fmt, quality=quality or settings.thumbnail_jpeg_quality, optimize=True)
    else:
        img.save(output, format=fmt)
    return output.getvalue(), mime


def generate_thumbnails(supabase: Client, image_path: str, bucket: str) -> Dict[str, str]:
    """Upload every configured size of image_path and return public URLs keyed by size, plus original"""
    storage = supabase.storage.from_(bucket)
    try:
        original = storage.download(image_path)
    except Exception as e:
        logger.error(f"Download of {bucket}/{image_path} failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to download original image")

    ext = os.path.splitext(image_path)[1]
    urls = {}
    for size_name, max_dim in settings.get_thumbnail_sizes().items():
        path = thumbnail_path(image_path, size_name)
        try:
            content, mime = resize_image(original, max_dim, ext)
            storage.upload(path, content, file_options={"content-type": mime, "upsert": "true"})
            urls[size_name] = storage.get_public_url(path)
        except Exception as e:
            logger.error(f"Thumbnail {size_name} for {image_path} failed: {e}")
            continue

    urls["original"] = storage.get_public_url(image_path)
    logger.info(f"Generated {len(urls) - 1} thumbnail(s) for {bucket}/{image_path}")
    return urls
