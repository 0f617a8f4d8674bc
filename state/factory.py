from __future__ import annotations

import hashlib
import logging
import os
from typing import Optional

from .base import SelectionStore
from .memory_store import InMemorySelectionStore
from .jsonl_store import JsonlSelectionStore
from config import Config, load_config


def user_namespace(user_id: str) -> str:
    """Stable, filesystem-safe namespace that does not expose the raw user id."""
    return hashlib.sha256((user_id or "anonymous").encode("utf-8")).hexdigest()[:16]


def get_selection_store(user_id: str, bucket: str, cfg: Optional[Config] = None) -> SelectionStore:
    """
    Return a SelectionStore for one user and one bucket ("stats", "expansion").

    STATE_BACKEND=memory -> process-local dict (default)
    STATE_BACKEND=jsonl  -> JSONL file under STATE_DIR/<namespace>/<bucket>.jsonl
    """
    cfg = cfg or load_config()
    ns = user_namespace(user_id)
    backend = cfg.state_backend

    if backend == "memory":
        return InMemorySelectionStore(namespace=f"{ns}:{bucket}")

    if backend == "jsonl":
        path = os.path.join(cfg.state_dir, ns, f"{bucket}.jsonl")
        logging.debug(f"Using JSONL selection store at {path}")
        return JsonlSelectionStore(path)

    logging.warning(f"Unknown STATE_BACKEND='{backend}', falling back to 'memory'.")
    return InMemorySelectionStore(namespace=f"{ns}:{bucket}")
