import base64
import mimetypes
import uuid
from datetime import datetime, timezone
from typing import Optional


def gen_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_data_uri(data: bytes, mime: str = "image/jpeg") -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def strip_data_uri_prefix(value: str) -> str:
    """
    "data:image/jpeg;base64,AAAA" -> "AAAA".
    Values without a prefix are returned unchanged.
    """
    if value.startswith("data:") and "," in value:
        return value.split(",", 1)[1]
    return value


def data_uri_to_bytes(value: str) -> bytes:
    return base64.b64decode(strip_data_uri_prefix(value))


def extension_for_content_type(content_type: Optional[str], default: str = ".png") -> str:
    """
    "image/jpeg; charset=binary" -> ".jpg". Unknown or non-image types fall back to ``default``.
    """
    mime = (content_type or "").split(";", 1)[0].strip().lower()
    if not mime.startswith("image/"):
        return default
    if mime == "image/jpeg":
        return ".jpg"
    return mimetypes.guess_extension(mime) or default
