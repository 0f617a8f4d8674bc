"""
Optional template expansion through a local Ollama model.

The engine is complete without it: the default adapter is a no-op, and every
adapter failure degrades to the local catalog. Expanded templates are
admitted only after template validation and the controlled-vocabulary check,
cached per snapshot key with a TTL, and requested at most once at a time per
snapshot key.
"""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any, Dict, Iterable, List, Optional, Tuple

from config import Config, load_config
from generator_prompts import TEMPLATE_SYSTEM_PROMPT, get_expansion_prompt
from llm_client import GenerationCancelled, generate_json_with_fallbacks
from prompt_engine.gating import template_matches
from prompt_engine.selection import FALLBACK_COUNT, build_prompt_batch, render_template
from prompt_engine.snapshot import LOW_SIGNAL, SENSITIVE_MODE
from prompt_engine.validation import normalize_prompt_key, sanitize_template_candidate, validate_prompt
from schemas.prompting import ContextSnapshot, ExpansionCacheEntry, Template
from state.base import SAVED_AT, SelectionStore
from state.memory_store import InMemorySelectionStore

MIN_CONFIDENCE = 0.55
CACHE_TTL_SECONDS = 20 * 60
CACHE_MAX_KEYS = 40
MAX_TEMPLATES_PER_KEY = 80


class ExpansionUnavailable(Exception):
    """The adapter could not produce any usable templates."""


class ExpansionAdapter(ABC):
    @abstractmethod
    def expand(self, snapshot: ContextSnapshot, cancel: Optional[threading.Event] = None) -> List[Template]:
        """Return validated templates for the snapshot or raise ExpansionUnavailable."""
        raise NotImplementedError


class NoOpExpansionAdapter(ExpansionAdapter):
    def expand(self, snapshot, cancel=None):
        raise ExpansionUnavailable("Expansion is disabled")


def templates_from_response(parsed: Dict[str, Any]) -> List[Template]:
    raw = parsed.get("templates") if isinstance(parsed, dict) else None
    if not isinstance(raw, list):
        return []
    cleaned = [sanitize_template_candidate(item) for item in raw]
    return dedupe_templates(t for t in cleaned if t is not None)


class OllamaExpansionAdapter(ExpansionAdapter):
    """Asks each endpoint x model in turn for `{"templates": [...]}`."""

    def __init__(
        self,
        endpoints: List[str],
        models: List[str],
        timeout_seconds: float = 15,
        keep_alive: Optional[str] = "30m",
    ) -> None:
        self.endpoints = endpoints
        self.models = models
        self.timeout_seconds = timeout_seconds
        self.keep_alive = keep_alive

    @classmethod
    def from_config(cls, cfg: Config) -> "OllamaExpansionAdapter":
        return cls(cfg.ollama_endpoints, cfg.ollama_models, cfg.ollama_timeout_seconds, cfg.ollama_keep_alive)

    def expand(self, snapshot, cancel=None):
        try:
            return generate_json_with_fallbacks(
                get_expansion_prompt(snapshot),
                self.endpoints,
                self.models,
                extract=templates_from_response,
                timeout=self.timeout_seconds,
                keep_alive=self.keep_alive,
                cancel=cancel,
                system=TEMPLATE_SYSTEM_PROMPT,
            )
        except GenerationCancelled as e:
            raise ExpansionUnavailable("Expansion cancelled") from e
        except ValueError as e:
            raise ExpansionUnavailable(str(e)) from e


def dedupe_templates(templates: Iterable[Template]) -> List[Template]:
    """First template wins per id."""
    by_id: Dict[str, Template] = {}
    for t in templates:
        if t.id and t.text and t.id not in by_id:
            by_id[t.id] = t
    return list(by_id.values())


def snapshot_cache_key(snapshot: ContextSnapshot) -> str:
    raw = "::".join([
        "|".join(snapshot.domains),
        "|".join(snapshot.actions),
        "|".join(snapshot.states),
        "|".join(snapshot.modes),
        snapshot.week_mode or "weekday",
        snapshot.tone or "gentle",
        snapshot.timeframe or "today",
        snapshot.timeframe_next or "tomorrow",
        snapshot.timeframe_end or "tonight",
    ])
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()


class ExpansionCache:
    """Expanded templates per snapshot key, bounded by TTL and key count."""

    def __init__(self, store: SelectionStore, ttl_seconds: float = CACHE_TTL_SECONDS, max_keys: int = CACHE_MAX_KEYS) -> None:
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.max_keys = max_keys

    def prune(self, now: Optional[float] = None) -> int:
        return self.store.prune_by_ttl_and_size(self.ttl_seconds, self.max_keys, now=now)

    def get_entry(self, key: str, now: Optional[float] = None) -> Optional[ExpansionCacheEntry]:
        now = time.time() if now is None else now
        rec = self.store.get(key)
        if rec is None:
            return None
        if now - float(rec.get(SAVED_AT) or 0.0) > self.ttl_seconds:
            self.store.delete(key)
            return None
        try:
            return ExpansionCacheEntry(
                snapshot_key=key,
                templates=rec.get("templates") or [],
                saved_at=float(rec.get(SAVED_AT) or 0.0),
            )
        except ValueError as e:
            logging.warning(f"Dropping unreadable expansion cache entry: {type(e).__name__}")
            self.store.delete(key)
            return None

    def get(self, key: str, now: Optional[float] = None) -> List[Template]:
        entry = self.get_entry(key, now=now)
        return dedupe_templates(entry.templates) if entry else []

    def put(self, key: str, templates: List[Template], now: Optional[float] = None) -> List[Template]:
        merged = dedupe_templates(self.get(key, now=now) + list(templates))[-MAX_TEMPLATES_PER_KEY:]
        if not merged:
            return []
        self.store.set(key, {
            "snapshot_key": key,
            "templates": [t.model_dump(mode="json") for t in merged],
        }, now=now)
        self.prune(now=now)
        return merged


class JoinedCancel:
    """
    Cancel token shared by every caller waiting on one expansion.

    Reads as set only once all joined callers have cancelled; a caller
    without a token keeps the request alive.
    """

    def __init__(self) -> None:
        self._tokens: List[threading.Event] = []
        self._pinned = False
        self._lock = threading.Lock()

    def add(self, cancel: Optional[threading.Event]) -> None:
        with self._lock:
            if cancel is None:
                self._pinned = True
            else:
                self._tokens.append(cancel)

    def is_set(self) -> bool:
        with self._lock:
            return not self._pinned and bool(self._tokens) and all(t.is_set() for t in self._tokens)


class PromptExpander:
    """
    Gated, cached, single-flight expansion for one user.

    Concurrent callers asking for the same snapshot key share one pending
    future. All cache mutation happens under `cache_lock`.
    """

    def __init__(
        self,
        adapter: Optional[ExpansionAdapter] = None,
        cache: Optional[ExpansionCache] = None,
        min_confidence: float = MIN_CONFIDENCE,
        enabled: bool = True,
        executor: Optional[ThreadPoolExecutor] = None,
        cache_lock: Optional[threading.RLock] = None,
    ) -> None:
        self.adapter = adapter or NoOpExpansionAdapter()
        self.cache = cache or ExpansionCache(InMemorySelectionStore("expansion"))
        self.min_confidence = min_confidence
        self.enabled = enabled
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="expansion")
        self._cache_lock = cache_lock or threading.RLock()
        self._inflight_lock = threading.RLock()
        self._inflight: Dict[str, Tuple[Future, JoinedCancel]] = {}

    @classmethod
    def from_config(
        cls,
        cfg: Config,
        cache: ExpansionCache,
        adapter: Optional[ExpansionAdapter] = None,
        executor: Optional[ThreadPoolExecutor] = None,
        cache_lock: Optional[threading.RLock] = None,
    ) -> "PromptExpander":
        if adapter is None:
            adapter = OllamaExpansionAdapter.from_config(cfg) if cfg.expansion_enabled else NoOpExpansionAdapter()
        return cls(adapter, cache, cfg.expansion_min_confidence, cfg.expansion_enabled, executor, cache_lock)

    def should_expand(self, snapshot: ContextSnapshot) -> bool:
        if not self.enabled:
            return False
        if snapshot.confidence < self.min_confidence:
            return False
        return LOW_SIGNAL not in snapshot.modes and SENSITIVE_MODE not in snapshot.modes

    def cached_templates(self, snapshot: ContextSnapshot) -> List[Template]:
        with self._cache_lock:
            return self.cache.get(snapshot_cache_key(snapshot))

    def in_flight(self, snapshot: ContextSnapshot) -> bool:
        with self._inflight_lock:
            return snapshot_cache_key(snapshot) in self._inflight

    def submit(self, snapshot: ContextSnapshot, cancel: Optional[threading.Event] = None) -> Optional[Future]:
        """Start (or join) the expansion for this snapshot. None when gated off."""
        if not self.should_expand(snapshot):
            return None
        key = snapshot_cache_key(snapshot)
        with self._inflight_lock:
            pending = self._inflight.get(key)
            if pending is not None:
                future, joined = pending
                joined.add(cancel)
                return future
            joined = JoinedCancel()
            joined.add(cancel)
            future = self._executor.submit(self._run, key, snapshot, joined)
            self._inflight[key] = (future, joined)
            future.add_done_callback(lambda f: self._clear(key, f))
        return future

    def _clear(self, key: str, future: Future) -> None:
        with self._inflight_lock:
            pending = self._inflight.get(key)
            if pending is not None and pending[0] is future:
                del self._inflight[key]

    def _run(self, key: str, snapshot: ContextSnapshot, cancel: JoinedCancel) -> List[Template]:
        try:
            templates = self.adapter.expand(snapshot, cancel)
        except ExpansionUnavailable as e:
            logging.warning(f"Prompt expansion unavailable: {e}")
            return []
        except Exception as e:
            logging.error(f"Prompt expansion failed: {type(e).__name__}")
            return []

        if cancel.is_set():
            logging.info("Prompt expansion cancelled before results were admitted")
            return []

        templates = dedupe_templates(t for t in (sanitize_template_candidate(t) for t in templates) if t is not None)
        if not templates:
            return []
        with self._cache_lock:
            merged = self.cache.put(key, templates)
        logging.info(f"Cached {len(templates)} expanded templates ({len(merged)} for this context)")
        return merged

    def expand(
        self,
        snapshot: ContextSnapshot,
        cancel: Optional[threading.Event] = None,
        wait_seconds: Optional[float] = None,
    ) -> List[Template]:
        """
        Cached plus freshly expanded templates for the snapshot.

        Blocks up to `wait_seconds` (None waits for the adapter's own timeouts).
        Never raises; a gated, failed, cancelled or slow expansion returns
        whatever the cache already holds.
        """
        cached = self.cached_templates(snapshot)
        future = self.submit(snapshot, cancel)
        if future is None:
            return cached
        try:
            fresh = future.result(timeout=wait_seconds)
        except FutureTimeout:
            logging.warning("Prompt expansion still running; using cached templates")
            return cached
        if cancel is not None and cancel.is_set():
            return cached
        return dedupe_templates(cached + fresh)

    def shutdown(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=False)


def render_expanded_prompts(templates: Iterable[Template], snapshot: ContextSnapshot, max_results: int = FALLBACK_COUNT) -> List[str]:
    out: List[str] = []
    seen = set()
    for tpl in templates:
        if not template_matches(tpl, snapshot):
            continue
        rendered = render_template(tpl.text, snapshot)
        key = normalize_prompt_key(rendered)
        if not key or key in seen or not validate_prompt(rendered):
            continue
        seen.add(key)
        out.append(rendered)
        if len(out) >= max_results:
            break
    return out


def generate_prompts_with_ollama(
    snapshot: ContextSnapshot,
    cancel: Optional[threading.Event] = None,
    expander: Optional[PromptExpander] = None,
    rng=None,
    wait_seconds: Optional[float] = None,
) -> List[str]:
    """
    Up to 24 validated prompts: expanded ones first, then the local batch.

    The local batch is always computed, so the result is never empty even
    when Ollama is missing.
    """
    safe_batch = build_prompt_batch(snapshot, set(), FALLBACK_COUNT, rng=rng)
    if cancel is not None and cancel.is_set():
        return safe_batch

    owns_expander = expander is None
    if expander is None:
        expander = PromptExpander.from_config(load_config(), ExpansionCache(InMemorySelectionStore("expansion")))
    try:
        templates = expander.expand(snapshot, cancel, wait_seconds=wait_seconds)
    finally:
        if owns_expander:
            expander.shutdown()

    if not templates or (cancel is not None and cancel.is_set()):
        return safe_batch

    out: List[str] = []
    seen = set()
    for p in render_expanded_prompts(templates, snapshot) + safe_batch:
        key = normalize_prompt_key(p)
        if key in seen or not validate_prompt(p):
            continue
        seen.add(key)
        out.append(p)
    return out[:FALLBACK_COUNT]
