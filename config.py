from __future__ import annotations

from dataclasses import dataclass
import os
from typing import List


def _csv(raw: str) -> List[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


@dataclass
class Config:
    ollama_endpoints: List[str]
    ollama_models: List[str]
    ollama_timeout_seconds: float
    ollama_keep_alive: str
    expansion_enabled: bool
    expansion_min_confidence: float
    expansion_cache_ttl_seconds: int
    expansion_cache_max_keys: int
    prompt_stats_max_items: int
    recent_entry_limit: int
    state_backend: str
    state_dir: str
    user_id_header: str
    max_content_length: int
    max_sessions: int
    expansion_wait_seconds: float


def load_config() -> Config:
    g = os.getenv
    return Config(
        ollama_endpoints=_csv(g(
            "OLLAMA_ENDPOINTS",
            "http://127.0.0.1:11434/api/generate,http://localhost:11434/api/generate",
        )),
        ollama_models=_csv(g("OLLAMA_MODELS", "gemma3:4b,llama3.2:3b")),
        ollama_timeout_seconds=float(g("OLLAMA_TIMEOUT_SECONDS", "15")),
        ollama_keep_alive=g("OLLAMA_KEEP_ALIVE", "30m"),
        expansion_enabled=g("EXPANSION_ENABLED", "true").lower() == "true",
        expansion_min_confidence=float(g("EXPANSION_MIN_CONFIDENCE", "0.55")),
        expansion_cache_ttl_seconds=int(g("EXPANSION_CACHE_TTL_SECONDS", str(20 * 60))),
        expansion_cache_max_keys=int(g("EXPANSION_CACHE_MAX_KEYS", "40")),
        prompt_stats_max_items=int(g("PROMPT_STATS_MAX_ITEMS", "500")),
        recent_entry_limit=int(g("RECENT_ENTRY_LIMIT", "12")),
        state_backend=g("STATE_BACKEND", "memory").lower(),
        state_dir=g("STATE_DIR", "data/selection_state"),
        user_id_header=g("USER_ID_HEADER", "X-User-Id"),
        max_content_length=int(g("MAX_CONTENT_LENGTH", "20000")),
        max_sessions=int(g("MAX_SESSIONS", "1000")),
        expansion_wait_seconds=float(g("EXPANSION_WAIT_SECONDS", "8")),
    )
