from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

SAVED_AT = "saved_at"


class SelectionStore(ABC):
    """
    Per-user key/value store for selection state and expansion cache.

    Values are JSON-serialisable dicts. Every record carries a `saved_at`
    epoch timestamp that is refreshed on each write, so pruning by it gives
    both TTL expiry and least-recently-used eviction.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: Dict[str, Any], now: Optional[float] = None) -> None:
        """Store `value` under `key`, stamping `saved_at` (defaults to now)."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def keys(self) -> List[str]:
        raise NotImplementedError

    @abstractmethod
    def prune_by_ttl_and_size(
        self,
        ttl_seconds: Optional[float],
        max_items: Optional[int],
        now: Optional[float] = None,
    ) -> int:
        """
        Drop records older than `ttl_seconds`, then keep only the
        `max_items` most recently saved. Either bound may be None.

        Returns the number of records removed.
        """
        raise NotImplementedError

    def items(self) -> Dict[str, Dict[str, Any]]:
        out = {}
        for key in self.keys():
            value = self.get(key)
            if value is not None:
                out[key] = value
        return out


def select_survivors(
    records: Dict[str, Dict[str, Any]],
    ttl_seconds: Optional[float],
    max_items: Optional[int],
    now: float,
) -> Dict[str, Dict[str, Any]]:
    """Shared pruning rule for all store backends."""
    kept = {}
    for key, rec in records.items():
        saved_at = float(rec.get(SAVED_AT) or 0.0)
        if ttl_seconds is not None and now - saved_at > ttl_seconds:
            continue
        kept[key] = rec

    if max_items is not None and len(kept) > max_items:
        ordered = sorted(kept.items(), key=lambda kv: float(kv[1].get(SAVED_AT) or 0.0))
        drop = len(kept) - max(0, max_items)
        for key, _rec in ordered[:drop]:
            kept.pop(key, None)
    return kept
