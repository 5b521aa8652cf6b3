"""
catalog.py — Catalog Cache and catalog stores.

The matcher reads the additive catalog through one CatalogCache object
constructed at startup and injected where needed.

    EMPTY ──get_catalog()──▶ LOADING ──ok──▶ LOADED
                               │
                               └──error/empty──▶ FALLBACK ──retry_interval──▶ LOADING

  - Exactly one fetch per load cycle: callers arriving while LOADING await the
    same in-flight task, including callers on other threads' event loops.
  - FALLBACK serves the bundled offline catalog; it is never preferred over
    live data, and the live store is retried after `retry_interval` seconds.
  - Invalidation is explicit: `max_age` (None = never) and `invalidate()`.

Stores only need an `async fetch_all()` returning dicts or AdditiveEntry objects.
"""

import os
import json
import time
import asyncio
import sqlite3
import logging
import threading
import concurrent.futures
from enum import Enum
from functools import lru_cache, partial
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Union

from pydantic import ValidationError

from additive_search.config import CatalogConfig
from additive_search.models import AdditiveEntry

logger = logging.getLogger(__name__)

DATA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data')
FALLBACK_CATALOG_PATH = os.path.join(DATA_DIR, 'fallback_additives.json')

RawRecord = Union[dict, AdditiveEntry]
FetchAll = Callable[[], Awaitable[Iterable[RawRecord]]]


class CatalogState(str, Enum):
    EMPTY = 'empty'
    LOADING = 'loading'
    LOADED = 'loaded'
    FALLBACK = 'fallback'


class CatalogUnavailable(Exception):
    """The live store returned nothing usable."""


def _copy_outcome(shared: concurrent.futures.Future, task: asyncio.Task):
    """Mirror a finished load task onto a future other event loops can await."""
    if task.cancelled():
        shared.cancel()
    elif task.exception() is not None:
        shared.set_exception(task.exception())
    else:
        shared.set_result(task.result())


def build_catalog(records: Iterable[RawRecord], source: str = 'store') -> List[AdditiveEntry]:
    """
    Validate raw records into AdditiveEntry objects.
    Invalid rows are skipped; for duplicate ids the first occurrence wins.
    """
    entries: List[AdditiveEntry] = []
    seen_ids = set()
    skipped = 0
    for record in records:
        try:
            entry = record if isinstance(record, AdditiveEntry) else AdditiveEntry.model_validate(record)
        except ValidationError as e:
            skipped += 1
            logger.warning(f"Skipping invalid {source} catalog row: {e.error_count()} errors "
                           f"(id={record.get('id') if isinstance(record, dict) else '?'})")
            continue
        if entry.id in seen_ids:
            skipped += 1
            logger.warning(f"Skipping duplicate {source} catalog id '{entry.id}'")
            continue
        seen_ids.add(entry.id)
        entries.append(entry)
    if skipped:
        logger.warning(f"{source} catalog: {skipped} rows skipped, {len(entries)} kept")
    return entries


@lru_cache(maxsize=None)
def _read_fallback(path: str) -> tuple:
    with open(path, encoding='utf-8') as fh:
        data = json.load(fh)
    return tuple(build_catalog(data, source='fallback'))


def load_fallback_catalog(path: str = FALLBACK_CATALOG_PATH) -> List[AdditiveEntry]:
    """The bundled offline fallback catalog (read from disk once per path)."""
    return list(_read_fallback(path))


# ═══════════════════════════════════════════════════════
#  SQLite store
# ═══════════════════════════════════════════════════════

def init_additives_table(db_path: str):
    """Create the additives table if it doesn't exist."""
    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS additives (
            id                TEXT PRIMARY KEY,
            name              TEXT NOT NULL,
            hazard_level      TEXT,
            description_short TEXT DEFAULT '',
            description_full  TEXT DEFAULT '',
            aliases           TEXT DEFAULT '',
            active            INTEGER NOT NULL DEFAULT 1
        )
    """)
    conn.commit()
    conn.close()


class SqliteAdditiveStore:
    """Read-only access to all active additives; aliases are '|'-separated."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def read_all(self) -> List[dict]:
        conn = self._get_conn()
        try:
            cursor = conn.cursor()
            cursor.execute("""
                SELECT id, name, hazard_level, description_short, description_full, aliases
                FROM additives
                WHERE active = 1
                ORDER BY rowid
            """)
            return [dict(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    async def fetch_all(self) -> List[dict]:
        return await asyncio.to_thread(self.read_all)


# ═══════════════════════════════════════════════════════
#  Cache
# ═══════════════════════════════════════════════════════

class CatalogCache:
    """Process-wide catalog snapshot with lazy, exactly-once loading."""

    def __init__(self, fetch_all: FetchAll,
                 fallback: Optional[Callable[[], List[AdditiveEntry]]] = None,
                 config: Optional[CatalogConfig] = None,
                 clock: Callable[[], float] = time.monotonic):
        self._fetch_all = fetch_all
        self._fallback = fallback or load_fallback_catalog
        self.config = (config or CatalogConfig()).validate()
        self._clock = clock

        self.state = CatalogState.EMPTY
        self._entries: Optional[List[AdditiveEntry]] = None
        self._lock = threading.Lock()
        self._inflight: Optional[asyncio.Task] = None
        self._inflight_loop: Optional[asyncio.AbstractEventLoop] = None
        self._shared: Optional[concurrent.futures.Future] = None
        self._loaded_at: Optional[float] = None
        self._failed_at: Optional[float] = None
        self.fetch_count = 0
        self.last_error: Optional[str] = None

    @classmethod
    def from_store(cls, store, **kwargs) -> 'CatalogCache':
        return cls(store.fetch_all, **kwargs)

    def _is_fresh(self) -> bool:
        if self._entries is None or self.state is CatalogState.LOADING:
            return False
        now = self._clock()
        if self.state is CatalogState.FALLBACK:
            return now - self._failed_at < self.config.retry_interval
        if self.config.max_age is None:
            return True
        return now - self._loaded_at < self.config.max_age

    def _start_load(self, loop: asyncio.AbstractEventLoop):
        task = loop.create_task(self._load())
        shared: concurrent.futures.Future = concurrent.futures.Future()
        task.add_done_callback(partial(_copy_outcome, shared))
        self._inflight, self._inflight_loop, self._shared = task, loop, shared

    async def get_catalog(self) -> List[AdditiveEntry]:
        """
        The current snapshot, loading it first if needed. Safe to call from
        several threads, each driving its own event loop: callers on the
        loading loop await the task, the others await its thread-safe mirror.
        """
        loop = asyncio.get_running_loop()
        while True:
            with self._lock:
                if self._is_fresh():
                    return self._entries
                if self._inflight is None or self._inflight.done():
                    self._start_load(loop)
                task, task_loop, shared = self._inflight, self._inflight_loop, self._shared

            # shield: one cancelled caller must not cancel the shared load
            if task_loop is loop:
                return await asyncio.shield(task)
            try:
                return await asyncio.shield(asyncio.wrap_future(shared))
            except asyncio.CancelledError:
                if not shared.cancelled():
                    raise
                # the loading loop shut down mid-load; start over on this one
                logger.warning("Catalog load abandoned by its event loop; retrying")

    async def _load(self) -> List[AdditiveEntry]:
        previous = self.state
        self.state = CatalogState.LOADING
        self.fetch_count += 1
        started = self._clock()
        try:
            records = await self._fetch_all()
            entries = build_catalog(records or [], source='live')
            if not entries:
                raise CatalogUnavailable("live store returned an empty catalog")
        except Exception as e:
            self.last_error = f"{type(e).__name__}: {e}"
            entries = self._fallback()
            self._entries = entries
            self._failed_at = self._clock()
            self.state = CatalogState.FALLBACK
            logger.warning(f"Catalog load failed ({self.last_error}); serving offline "
                           f"fallback catalog with {len(entries)} entries")
            return entries
        else:
            self._entries = entries
            self._loaded_at = self._clock()
            self._failed_at = None
            self.last_error = None
            self.state = CatalogState.LOADED
            logger.info(f"Catalog loaded: {len(entries)} additives "
                        f"in {(self._loaded_at - started) * 1000:.0f}ms")
            return entries
        finally:
            with self._lock:
                self._inflight = self._inflight_loop = self._shared = None
            if self.state is CatalogState.LOADING:
                # cancelled mid-load or fallback unreadable: keep what was served before
                self.state = previous if self._entries is not None else CatalogState.EMPTY

    def invalidate(self):
        """Drop the snapshot; the next get_catalog() reloads from the live store."""
        self._entries = None
        self._loaded_at = None
        self._failed_at = None
        if self.state is not CatalogState.LOADING:
            self.state = CatalogState.EMPTY
        logger.info("Catalog cache invalidated")

    async def refresh(self) -> List[AdditiveEntry]:
        self.invalidate()
        return await self.get_catalog()

    def get_entry(self, additive_id: str) -> Optional[AdditiveEntry]:
        """Look up an entry in the current snapshot without triggering a load."""
        for entry in self._entries or ():
            if entry.id == additive_id:
                return entry
        return None

    def status(self) -> dict[str, Any]:
        source = None
        if self.state is CatalogState.LOADED:
            source = 'live'
        elif self.state is CatalogState.FALLBACK:
            source = 'fallback'
        return {
            'state': self.state.value,
            'source': source,
            'entries': len(self._entries) if self._entries is not None else 0,
            'fetch_count': self.fetch_count,
            'max_age': self.config.max_age,
            'retry_interval': self.config.retry_interval,
            'last_error': self.last_error,
        }
