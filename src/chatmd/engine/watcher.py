"""File-change notification and the single-consumer watch loop.

watchdog delivers events on its own observer thread; they are forwarded onto
an :class:`asyncio.Queue` and consumed one at a time, so at most one tick is
ever in flight. Bursts coalesce because every tick re-reads the whole
document instead of replaying individual events.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..errors import StartupError, TickError
from .session import ChatSession, TickResult

__all__ = ["DocumentEventHandler", "ChangeNotifier", "WatchLoop"]

LOGGER = logging.getLogger(__name__)


class DocumentEventHandler(FileSystemEventHandler):
    """Forwards modifications of a single file to ``notify``."""

    def __init__(self, path: Path | str, notify: Callable[[], None]) -> None:
        super().__init__()
        self._path = Path(path).resolve()
        self._notify = notify

    def on_modified(self, event: FileSystemEvent) -> None:
        self._dispatch_if_match(event, event.src_path)

    def on_created(self, event: FileSystemEvent) -> None:
        self._dispatch_if_match(event, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        # Editors that save via rename surface the document as the move target.
        self._dispatch_if_match(event, getattr(event, "dest_path", ""))

    def _dispatch_if_match(self, event: FileSystemEvent, raw_path: Any) -> None:
        if event.is_directory or not raw_path:
            return
        if isinstance(raw_path, bytes):
            raw_path = raw_path.decode("utf-8", errors="replace")
        if Path(raw_path).resolve() != self._path:
            return
        self._notify()


class ChangeNotifier:
    """Runs a watchdog observer on the document's directory and feeds an asyncio queue."""

    def __init__(self, path: Path | str, *, observer_factory: Callable[[], Any] = Observer) -> None:
        self._path = Path(path).resolve()
        self._observer_factory = observer_factory
        self._observer: Any | None = None
        self._queue: asyncio.Queue[Path] = asyncio.Queue()
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def queue(self) -> asyncio.Queue[Path]:
        return self._queue

    def start(self, loop: asyncio.AbstractEventLoop | None = None) -> asyncio.Queue[Path]:
        """Begin watching; raises :class:`StartupError` if the observer cannot start."""

        self._loop = loop or asyncio.get_running_loop()
        handler = DocumentEventHandler(self._path, self._notify_threadsafe)
        try:
            observer = self._observer_factory()
            observer.schedule(handler, str(self._path.parent), recursive=False)
            observer.start()
        except Exception as exc:
            raise StartupError(f"Unable to watch {self._path}: {exc}") from exc
        self._observer = observer
        LOGGER.debug("Watching %s for changes", self._path)
        return self._queue

    def stop(self) -> None:
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        observer.join(timeout=2.0)

    def _notify_threadsafe(self) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._queue.put_nowait, self._path)


class WatchLoop:
    """Consumes change notifications and runs one session tick per (coalesced) burst."""

    def __init__(
        self,
        session: ChatSession,
        queue: asyncio.Queue[Path],
        *,
        debounce_seconds: float = 0.05,
    ) -> None:
        self._session = session
        self._queue = queue
        self._debounce = max(0.0, float(debounce_seconds))
        self._ticks = 0

    @property
    def ticks(self) -> int:
        return self._ticks

    async def run(self) -> None:
        """Process notifications until cancelled."""

        while True:
            await self.handle_next()

    async def handle_next(self) -> TickResult | None:
        """Wait for a notification, sleep out the debounce window, drain what queued meanwhile, and tick once.

        Recoverable tick errors are logged and reported as ``None``.
        """

        await self._queue.get()
        if self._debounce:
            await asyncio.sleep(self._debounce)
        drained = self._drain()
        if drained:
            LOGGER.debug("Coalesced %s queued change notification(s)", drained)
        LOGGER.debug("Detect: file change in %s", self._session.path)
        self._ticks += 1
        try:
            return await self._session.process_tick()
        except TickError as exc:
            LOGGER.error("Error: %s", exc)
        except Exception:  # pragma: no cover - keep watching after unexpected failures
            LOGGER.exception("Unexpected error while processing %s", self._session.path)
        return None

    def _drain(self) -> int:
        drained = 0
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return drained
            drained += 1
