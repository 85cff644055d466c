"""JSON file store client: one file per namespace, rewritten on every mutation."""

import copy
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..base import BaseStoreClient
from .._utils import load_json, logger, write_json


@dataclass
class JsonStoreClient(BaseStoreClient):
    _data: Dict[str, Any] = field(init=False, default_factory=dict)

    def __post_init__(self):
        working_dir = self.global_config.get("working_dir", "./bizsnap_data")
        os.makedirs(working_dir, exist_ok=True)
        self._file_name = os.path.join(working_dir, f"kv_store_{self.namespace}.json")
        self._data = load_json(self._file_name) or {}
        logger.info(f"Load KV {self.namespace} with {len(self._data)} keys")

    async def get(self, key: str, default: Optional[Any] = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)
        self._flush()

    async def delete(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._flush()

    async def all_keys(self) -> List[str]:
        return list(self._data.keys())

    async def drop(self) -> None:
        self._data = {}
        self._flush()

    def _flush(self) -> None:
        # Atomic replace; the store file is never observed half-written
        tmp_name = f"{self._file_name}.tmp"
        write_json(self._data, tmp_name)
        os.replace(tmp_name, self._file_name)
        logger.debug(f"Persisted KV namespace {self.namespace} ({len(self._data)} keys)")
