"""Attachment checks and inline encoding for uploaded book files."""

import base64
import os
from typing import Tuple
from urllib.parse import quote

from ..errors import ValidationError


ALLOWED_TYPES = {
    ".pdf": "application/pdf",
    ".txt": "text/plain",
}


def encode_attachment(filename: str, content: bytes, max_bytes: int = 2 * 1024 * 1024) -> Tuple[str, str]:
    """Validate an uploaded file and return ``(file_name, data_url)``.

    Only ``.pdf`` and ``.txt`` files up to ``max_bytes`` are accepted.
    The data URL is self-describing (MIME type + base64 payload) so it
    can be stored as a plain string on the book record.
    """
    name = os.path.basename(filename or "")
    ext = os.path.splitext(name)[1].lower()
    if ext not in ALLOWED_TYPES:
        raise ValidationError("Only PDF or TXT files are allowed", {"file": "Unsupported type"})
    if len(content) > max_bytes:
        raise ValidationError(
            f"File too large (max {max_bytes // (1024 * 1024)}MB for demo)",
            {"file": "Too large"},
        )
    mime = ALLOWED_TYPES[ext]
    payload = base64.b64encode(content).decode("ascii")
    return name, f"data:{mime};base64,{payload}"


def decode_attachment(data_url: str) -> Tuple[str, bytes]:
    """Split a data URL back into ``(mime_type, raw_bytes)``."""
    header, _, payload = (data_url or "").partition(",")
    if not header.startswith("data:") or not header.endswith(";base64"):
        raise ValidationError("Not a base64 data URL")
    mime = header[len("data:"):-len(";base64")].split(";")[0] or "application/octet-stream"
    return mime, base64.b64decode(payload)


def content_disposition(filename: str) -> str:
    """Build an ``attachment`` header value that is safe for any file name.

    Headers are Latin-1 on the wire, so the plain ``filename`` parameter
    carries an ASCII stand-in and ``filename*`` carries the UTF-8 name.
    """
    ascii_name = "".join(
        c if 32 <= ord(c) < 127 and c not in '"\\' else "_" for c in filename
    ) or "download"
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename, safe='')}"
