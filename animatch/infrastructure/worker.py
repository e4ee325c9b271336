"""Background worker serializing catalog writes and recognition.

RecognitionEngine does no locking, and every ``recognize`` mutates its query
cache. The worker gives the engine and the catalog store a single owner
thread: callers submit commands from any thread and block on the reply.
Every catalog write is followed by ``engine.invalidate()`` on the same
thread, so the next recognition sees fresh data.
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Future
from typing import Any, Callable, Iterable, Optional

from animatch.core.models import Anime, CacheStats, MatchResult
from animatch.core.recognition import RecognitionEngine
from .catalog_store import CatalogStore

logger = logging.getLogger(__name__)

_STOP = object()


class RecognitionWorker:
    """Owns a CatalogStore and a RecognitionEngine on one thread."""

    def __init__(
        self,
        store: CatalogStore,
        engine: Optional[RecognitionEngine] = None,
        name: str = "animatch-recognition",
    ) -> None:
        self.store = store
        self.engine = engine if engine is not None else RecognitionEngine(store)
        self._commands: queue.Queue = queue.Queue()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        # Guards _started/_stopping and orders submissions before the sentinel.
        self._state_lock = threading.Lock()
        self._started = False
        self._stopping = False

    def __enter__(self) -> "RecognitionWorker":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    @property
    def running(self) -> bool:
        return self._thread.is_alive()

    @property
    def stopping(self) -> bool:
        return self._stopping

    def start(self) -> None:
        with self._state_lock:
            if self._started:
                return
            self._started = True
            self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Finish queued commands, then end the worker thread.

        Submissions made after ``stop`` begins are rejected with RuntimeError.
        """
        with self._state_lock:
            if not self._started:
                return
            if not self._stopping:
                self._stopping = True
                self._commands.put(_STOP)
        self._thread.join(timeout)

    # Commands
    def recognize(self, title: str) -> MatchResult:
        return self._submit(self.engine.recognize, title)

    def stats(self) -> CacheStats:
        return self._submit(self.engine.stats)

    def invalidate(self) -> None:
        self._submit(self.engine.invalidate)

    def insert_anime(self, anime: Anime) -> int:
        return self._submit(self._write, self.store.insert_anime, anime)

    def upsert_anime(self, anime: Anime, service: str) -> int:
        return self._submit(self._write, self.store.upsert_anime, anime, service)

    def import_anime(self, records: Iterable[Anime]) -> int:
        return self._submit(self._write, self.store.import_anime, list(records))

    def _write(self, operation: Callable[..., Any], *args: Any) -> Any:
        # A failed batch may still have touched the catalog.
        try:
            return operation(*args)
        finally:
            self.engine.invalidate()

    def _submit(self, func: Callable[..., Any], *args: Any) -> Any:
        future: Future = Future()
        with self._state_lock:
            if self._stopping or not self.running:
                raise RuntimeError("Recognition worker is not running")
            self._commands.put((future, func, args))
        return future.result()

    def _run(self) -> None:
        logger.debug("Recognition worker started")
        while True:
            command = self._commands.get()
            if command is _STOP:
                break
            future, func, args = command
            if not future.set_running_or_notify_cancel():
                continue
            try:
                future.set_result(func(*args))
            except Exception as exc:
                logger.debug("Recognition worker command failed: %s", exc)
                future.set_exception(exc)
        self._fail_pending()
        logger.debug("Recognition worker stopped")

    def _fail_pending(self) -> None:
        """Reject anything left behind the stop sentinel."""
        while True:
            try:
                command = self._commands.get_nowait()
            except queue.Empty:
                return
            if command is _STOP:
                continue
            future, _func, _args = command
            if future.set_running_or_notify_cancel():
                future.set_exception(RuntimeError("Recognition worker stopped"))
