"""
Per-user wiring: selection state, expansion cache, expander and selector,
guarded by one RLock per user.
"""

from __future__ import annotations

import logging
import random
import threading
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Callable, Iterable, List, Optional

from config import Config, load_config
from prompt_engine.catalog import TEMPLATE_LIBRARY
from prompt_engine.expansion import ExpansionAdapter, ExpansionCache, PromptExpander, generate_prompts_with_ollama
from prompt_engine.feedback import SelectionState
from prompt_engine.selection import CANDIDATE_COUNT, PromptSelector, build_prompt_batch
from prompt_engine.snapshot import build_prompt_context
from schemas.prompting import ContextSnapshot, PromptPick, PromptStats
from state.factory import get_selection_store


class UserSession:
    def __init__(
        self,
        user_id: str,
        cfg: Optional[Config] = None,
        adapter: Optional[ExpansionAdapter] = None,
        executor: Optional[ThreadPoolExecutor] = None,
        seed: Optional[int] = None,
    ) -> None:
        self.user_id = user_id
        self.cfg = cfg or load_config()
        self.lock = threading.RLock()
        self.rng = random.Random(seed)

        self.state = SelectionState(
            get_selection_store(user_id, "stats", self.cfg),
            max_items=self.cfg.prompt_stats_max_items,
        )
        cache = ExpansionCache(
            get_selection_store(user_id, "expansion", self.cfg),
            ttl_seconds=self.cfg.expansion_cache_ttl_seconds,
            max_keys=self.cfg.expansion_cache_max_keys,
        )
        self.expander = PromptExpander.from_config(self.cfg, cache, adapter=adapter, executor=executor, cache_lock=self.lock)
        self.selector = PromptSelector(
            self.state,
            rng=self.rng,
            templates_provider=self.expander.cached_templates,
            on_refill=self._refill,
        )

    def _refill(self, snapshot: ContextSnapshot) -> None:
        if self.expander.submit(snapshot) is None:
            logging.info("Pool refill skipped; expansion is gated off for this context")

    def context(self, entries: Optional[Iterable[Any]] = None, now: Optional[datetime] = None) -> ContextSnapshot:
        return build_prompt_context(entries or [], now=now, limit=self.cfg.recent_entry_limit)

    def next_prompt(
        self,
        entries: Optional[Iterable[Any]] = None,
        current: Optional[str] = None,
        exclude: Any = None,
        now: Optional[datetime] = None,
    ) -> PromptPick:
        snapshot = self.context(entries, now=now)
        with self.lock:
            return self.selector.next_prompt(current=current, exclude=exclude, snapshot=snapshot)

    def candidates(self, entries: Optional[Iterable[Any]] = None, now: Optional[datetime] = None) -> List[str]:
        snapshot = self.context(entries, now=now)
        with self.lock:
            templates = list(TEMPLATE_LIBRARY) + self.expander.cached_templates(snapshot)
            return build_prompt_batch(snapshot, set(), CANDIDATE_COUNT, templates=templates, rng=self.rng)

    def expanded_prompts(
        self,
        entries: Optional[Iterable[Any]] = None,
        cancel: Optional[threading.Event] = None,
        now: Optional[datetime] = None,
        wait_seconds: Optional[float] = None,
    ) -> List[str]:
        snapshot = self.context(entries, now=now)
        if wait_seconds is None:
            wait_seconds = self.cfg.expansion_wait_seconds
        with self.lock:
            rng = random.Random(self.rng.random())
        # The network wait happens outside the session lock
        return generate_prompts_with_ollama(snapshot, cancel, self.expander, rng=rng, wait_seconds=wait_seconds)

    def mark_shown(self, prompt_text: str) -> Optional[PromptStats]:
        with self.lock:
            return self.state.mark_shown(prompt_text)

    def mark_completed(self, prompt_text: str, content: Optional[str]) -> Optional[PromptStats]:
        with self.lock:
            return self.state.mark_completed(prompt_text, content)

    def close(self) -> None:
        self.expander.shutdown()


class SessionRegistry:
    """
    Lazily created UserSessions sharing one expansion worker pool.

    At most `max_sessions` are kept; the least recently used one is closed
    and dropped when a new user arrives. Its stores are rebuilt on the next
    request (persistent with the jsonl backend).
    """

    def __init__(
        self,
        cfg: Optional[Config] = None,
        adapter_factory: Optional[Callable[[Config], ExpansionAdapter]] = None,
        max_workers: int = 4,
        max_sessions: Optional[int] = None,
    ) -> None:
        self.cfg = cfg or load_config()
        self.adapter_factory = adapter_factory
        self.max_sessions = max(1, max_sessions if max_sessions is not None else self.cfg.max_sessions)
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="expansion")
        self._sessions: "OrderedDict[str, UserSession]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def get(self, user_id: str) -> UserSession:
        user_id = user_id or "anonymous"
        with self._lock:
            session = self._sessions.get(user_id)
            if session is not None:
                self._sessions.move_to_end(user_id)
                return session
            adapter = self.adapter_factory(self.cfg) if self.adapter_factory else None
            session = UserSession(user_id, self.cfg, adapter=adapter, executor=self._executor)
            self._sessions[user_id] = session
            while len(self._sessions) > self.max_sessions:
                _evicted_id, evicted = self._sessions.popitem(last=False)
                evicted.close()
                logging.info(f"Evicted idle session ({len(self._sessions)} active)")
            return session

    def shutdown(self) -> None:
        with self._lock:
            for session in self._sessions.values():
                session.close()
            self._sessions.clear()
        self._executor.shutdown(wait=False)


    def __init__(
        self,
        cfg: Optional[Config] = None,
        adapter_factory: Optional[Callable[[Config], ExpansionAdapter]] = None,
        max_workers: int = 4,
    ) -> None:
        self.cfg = cfg or load_config()
        self.adapter_factory = adapter_factory
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="expansion")
        self._sessions: Dict[str, UserSession] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> UserSession:
        user_id = user_id or "anonymous"
        with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                adapter = self.adapter_factory(self.cfg) if self.adapter_factory else None
                session = UserSession(user_id, self.cfg, adapter=adapter, executor=self._executor)
                self._sessions[user_id] = session
            return session

    def shutdown(self) -> None:
        with self._lock:
            self._sessions.clear()
        self._executor.shutdown(wait=False)
