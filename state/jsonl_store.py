"""
JSONL-backed selection store.

Keeps a small JSONL file per (user, bucket) so prompt history and stats
survive restarts. Writes append one line; pruning and deletes rewrite the
file with the surviving records. Later lines win when the file is replayed.
The file is compacted once it holds more than twice as many lines as live
records, so repeated writes to the same keys stay bounded.
"""

from __future__ import annotations

import json
import logging
import os
import time
from typing import Any, Dict, List, Optional

from .base import SAVED_AT, SelectionStore, select_survivors

COMPACT_MIN_LINES = 32


class JsonlSelectionStore(SelectionStore):
    def __init__(self, path: str) -> None:
        self.path = path
        self._records: Dict[str, Dict[str, Any]] = {}
        self._loaded = False
        self.skipped_lines = 0
        self.line_count = 0

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        if not os.path.exists(self.path):
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    self.line_count += 1
                    try:
                        rec = json.loads(line)
                    except json.JSONDecodeError:
                        self.skipped_lines += 1
                        continue
                    key = rec.get("key") if isinstance(rec, dict) else None
                    if not key:
                        self.skipped_lines += 1
                        continue
                    if rec.get("deleted"):
                        self._records.pop(key, None)
                    else:
                        self._records[key] = rec.get("value") or {}
        except OSError as e:
            # State can rebuild over time; start empty rather than fail the request
            logging.warning(f"Could not read selection store {self.path}: {type(e).__name__}")
            self._records.clear()
        if self.skipped_lines:
            logging.warning(f"Skipped {self.skipped_lines} unreadable lines in {self.path}")

    def _append(self, line: Dict[str, Any]) -> None:
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(json.dumps(line, ensure_ascii=False) + "\n")
        self.line_count += 1
        if self.line_count > max(2 * len(self._records), COMPACT_MIN_LINES):
            self._rewrite()

    def _rewrite(self) -> None:
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        tmp_path = self.path + ".tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            for key, value in self._records.items():
                f.write(json.dumps({"key": key, "value": value}, ensure_ascii=False) + "\n")
        os.replace(tmp_path, self.path)
        self.line_count = len(self._records)

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        self._ensure_loaded()
        rec = self._records.get(key)
        return dict(rec) if rec is not None else None

    def set(self, key: str, value: Dict[str, Any], now: Optional[float] = None) -> None:
        self._ensure_loaded()
        rec = dict(value)
        rec[SAVED_AT] = time.time() if now is None else now
        self._records[key] = rec
        self._append({"key": key, "value": rec})

    def delete(self, key: str) -> None:
        self._ensure_loaded()
        if self._records.pop(key, None) is not None:
            self._append({"key": key, "deleted": True})

    def keys(self) -> List[str]:
        self._ensure_loaded()
        return list(self._records)

    def prune_by_ttl_and_size(self, ttl_seconds, max_items, now=None) -> int:
        self._ensure_loaded()
        now = time.time() if now is None else now
        before = len(self._records)
        self._records = select_survivors(self._records, ttl_seconds, max_items, now)
        removed = before - len(self._records)
        if removed or self.skipped_lines:
            self._rewrite()
            self.skipped_lines = 0
        return removed
