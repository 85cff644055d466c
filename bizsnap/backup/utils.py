"""Utility functions for backup/restore operations."""

import base64
import binascii
import gzip
import hashlib
import re
import zlib
from datetime import datetime
from typing import Any, Dict, Optional

from cryptography.fernet import Fernet, InvalidToken

from .._utils import canonical_json, generate_id, utf8_size

COMPRESSION_LEVELS = {"fast": 1, "balanced": 6, "maximum": 9}

# Every character that is not a letter or digit of any script, or whitespace
_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w\s]", re.UNICODE)


def compute_checksum(data: Dict[str, Any]) -> str:
    """Compute SHA-256 checksum of a data map.

    The map is serialized canonically (sorted keys, compact separators) so the
    digest only depends on content, never on key insertion order.

    Args:
        data: Collection name -> records

    Returns:
        SHA-256 checksum as lowercase hex string
    """
    return hashlib.sha256(canonical_json(data).encode("utf-8")).hexdigest()


def verify_checksum(data: Dict[str, Any], expected_checksum: str) -> bool:
    """Verify a data map against an expected checksum."""
    return compute_checksum(data) == expected_checksum


def generate_backup_id(now: Optional[datetime] = None, prefix: str = "backup") -> str:
    """Generate backup ID in format: <prefix>_<epoch ms>_<random>."""
    return generate_id(prefix, now)


def payload_size(data: Dict[str, Any], settings: Dict[str, Any]) -> int:
    """Byte length of the serialized data and settings."""
    return utf8_size(canonical_json({"data": data, "settings": settings}))


def build_export_filename(name: str, created_at: datetime, extension: str = ".omran") -> str:
    """Derive a file name from the backup name and creation date.

    Args:
        name: Backup name, possibly in a non-Latin script
        created_at: Backup creation timestamp

    Returns:
        e.g. ``Weekly_backup_2026-10-19.omran`` for "Weekly/backup"
    """
    safe_name = _UNSAFE_FILENAME_CHARS.sub("_", name)
    return f"{safe_name}_{created_at.date().isoformat()}{extension}"


def format_file_size(size: int) -> str:
    """Human-readable size, e.g. ``1.5 KB``."""
    if size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB"]
    i = 0
    while size >= 1024 ** (i + 1) and i < len(units) - 1:
        i += 1
    return f"{round(size / 1024 ** i, 2):g} {units[i]}"


def compress_text(text: str, level: str = "balanced") -> str:
    """Gzip ``text`` and return it base64-encoded."""
    compressed = gzip.compress(text.encode("utf-8"), compresslevel=COMPRESSION_LEVELS[level])
    return base64.b64encode(compressed).decode("ascii")


def decompress_text(payload: str) -> str:
    """Inverse of :func:`compress_text`.

    Raises:
        ValueError: If ``payload`` is not base64-encoded gzip data
    """
    try:
        raw = base64.b64decode(payload.strip(), validate=True)
        return gzip.decompress(raw).decode("utf-8")
    except (binascii.Error, OSError, EOFError, UnicodeDecodeError, zlib.error) as e:
        raise ValueError(f"not a compressed backup payload: {e}") from e


def encrypt_text(text: str, key: str, level: str = "balanced") -> str:
    """Compress then encrypt with Fernet (AES-128-CBC + HMAC-SHA256)."""
    compressed = gzip.compress(text.encode("utf-8"), compresslevel=COMPRESSION_LEVELS[level])
    return Fernet(key.encode("utf-8")).encrypt(compressed).decode("ascii")


def decrypt_text(token: str, key: str) -> str:
    """Inverse of :func:`encrypt_text`.

    Raises:
        ValueError: On a wrong key, a malformed key, or a tampered token
    """
    try:
        compressed = Fernet(key.encode("utf-8")).decrypt(token.strip().encode("ascii"))
        return gzip.decompress(compressed).decode("utf-8")
    except (InvalidToken, binascii.Error, OSError, EOFError, UnicodeError, zlib.error) as e:
        raise ValueError(f"cannot decrypt backup payload: {e}") from e
    except ValueError as e:
        # Fernet rejects keys that are not 32 url-safe base64 bytes
        raise ValueError(f"invalid encryption key: {e}") from e
