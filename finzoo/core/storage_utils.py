# finzoo/core/storage_utils.py
import secrets
import string
import time

from finzoo.core.config import get_settings
from finzoo.core.supabase_client import supabase_admin

settings = get_settings()

IMAGE_FOLDER = "pets"
VIDEO_FOLDER = "pets/videos"

_ALPHABET = string.ascii_lowercase + string.digits


def upload_to_storage(path: str, file_bytes: bytes, content_type: str) -> str:
    """
    Upload raw bytes to the pet media bucket and return a public URL.

    Files are never overwritten: generated names are unique, and an
    existing object at `path` makes the upload fail.

    Args:
        path: Full object path inside the bucket.
              Example: "pets/1718000000000-k3x9qa.jpg"
        file_bytes: File content in bytes.
        content_type: MIME type stored with the object.

    Returns:
        Public URL to the uploaded file.

    Raises:
        Any exception raised by Supabase client if upload fails.
    """
    bucket = supabase_admin().storage.from_(settings.STORAGE_BUCKET)
    bucket.upload(
        path,
        file_bytes,
        {"content-type": content_type, "cache-control": "3600", "upsert": "false"},
    )
    return bucket.get_public_url(path)


def generate_filename(ext: str) -> str:
    """
    Generate a collision-resistant filename.

    Args:
        ext: File extension without dot (e.g. "png", "mp4")

    Returns:
        A filename like "<epoch-millis>-<6 random chars>.png"
    """
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(6))
    return f"{int(time.time() * 1000)}-{suffix}.{ext}"


def file_extension(filename: str | None, default: str) -> str:
    """Lower-cased extension of an uploaded filename, or `default`."""
    if filename and "." in filename:
        ext = filename.rsplit(".", 1)[1].lower()
        if ext:
            return ext
    return default
