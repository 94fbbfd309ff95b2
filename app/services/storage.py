#app/services/storage.py
import base64
import logging
import time

import requests
from app.core.config import settings

logger = logging.getLogger(__name__)

ALLOWED = {"image/jpeg", "image/png", "image/webp", "image/gif"}
CONTENT_TYPES = {"jpg": "image/jpeg", "jpeg": "image/jpeg", "png": "image/png", "gif": "image/gif", "webp": "image/webp"}


class StorageError(Exception):
    pass


def content_type_for(filename: str) -> str:
    if "." not in filename:
        return "image/jpeg"
    return CONTENT_TYPES.get(filename.rsplit(".", 1)[-1].lower(), "application/octet-stream")


def make_object_key(filename: str) -> str:
    ext = (filename.rsplit(".", 1)[-1] if "." in filename else "") or "jpg"
    return f"issues/{int(time.time() * 1000)}.{ext.lower()}"


def public_url(path: str) -> str:
    return f"{settings.supabase_url}/storage/v1/object/public/{settings.supabase_bucket}/{path}"


def upload_image(data: bytes, content_type: str, path: str) -> str:
    """Uploads to Supabase Storage via REST; returns public URL (bucket must be public)."""
    if not (settings.supabase_url and settings.supabase_service_role):
        # storage not configured (local development): inline the image
        b64 = base64.b64encode(data).decode("utf-8")
        return f"data:{content_type};base64,{b64}"
    url = f"{settings.supabase_url}/storage/v1/object/{settings.supabase_bucket}/{path}"
    try:
        r = requests.post(url, headers={
            "Authorization": f"Bearer {settings.supabase_service_role}",
            "Content-Type": content_type,
            "x-upsert": "false",
        }, data=data, timeout=30)
        r.raise_for_status()
    except requests.RequestException as e:
        logger.error(f"Storage upload failed for {path}: {e}", exc_info=True)
        raise StorageError(str(e)) from e
    return public_url(path)
