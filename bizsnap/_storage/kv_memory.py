"""In-process store client, mainly for tests and ephemeral sessions."""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..base import BaseStoreClient


@dataclass
class MemoryStoreClient(BaseStoreClient):
    _data: Dict[str, Any] = field(init=False, default_factory=dict)

    async def get(self, key: str, default: Optional[Any] = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def all_keys(self) -> List[str]:
        return list(self._data.keys())

    async def drop(self) -> None:
        self._data = {}
