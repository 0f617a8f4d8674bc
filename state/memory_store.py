from __future__ import annotations

import copy
import time
from typing import Any, Dict, List, Optional

from .base import SAVED_AT, SelectionStore, select_survivors


class InMemorySelectionStore(SelectionStore):
    """Process-local store; state lives as long as the user session."""

    def __init__(self, namespace: str = "default") -> None:
        self.namespace = namespace
        self._records: Dict[str, Dict[str, Any]] = {}

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        rec = self._records.get(key)
        return copy.deepcopy(rec) if rec is not None else None

    def set(self, key: str, value: Dict[str, Any], now: Optional[float] = None) -> None:
        rec = copy.deepcopy(value)
        rec[SAVED_AT] = time.time() if now is None else now
        self._records[key] = rec

    def delete(self, key: str) -> None:
        self._records.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._records)

    def prune_by_ttl_and_size(self, ttl_seconds, max_items, now=None) -> int:
        now = time.time() if now is None else now
        before = len(self._records)
        self._records = select_survivors(self._records, ttl_seconds, max_items, now)
        return before - len(self._records)
