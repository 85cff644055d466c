import json
import logging
import os
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

logger = logging.getLogger("bizsnap")


def canonical_json(obj: Any) -> str:
    """Serialize with stable key ordering and compact separators."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


def utf8_size(text: str) -> int:
    return len(text.encode("utf-8"))


def generate_id(prefix: str, now: Optional[datetime] = None) -> str:
    """Opaque unique id: <prefix>_<epoch ms>_<9 random hex chars>."""
    now = now or datetime.now(timezone.utc)
    return f"{prefix}_{int(now.timestamp() * 1000)}_{uuid.uuid4().hex[:9]}"


def load_json(file_name: str) -> Optional[Any]:
    if not os.path.exists(file_name):
        return None
    with open(file_name, encoding="utf-8") as f:
        return json.load(f)


def write_json(json_obj: Any, file_name: str) -> None:
    with open(file_name, "w", encoding="utf-8") as f:
        json.dump(json_obj, f, indent=2, ensure_ascii=False, default=str)
