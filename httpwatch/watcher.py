"""httpwatch watcher - re-run the request files when they change.

The watchdog observer thread pushes events onto a queue. A single loop
thread reads the queue and feeds a debounce table: each changed path gets
its own timer, reset by every new event, and a reload runs once the path
has been quiet for the debounce window.

Per path:  Idle --event--> PendingReload --event--> PendingReload (reset)
           PendingReload --quiet window--> reload --> Idle
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass
from fnmatch import fnmatch
from pathlib import Path

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_MODIFIED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from httpwatch.config import RunConfig

logger = logging.getLogger(__name__)

ACTIONABLE_EVENTS = (EVENT_TYPE_CREATED, EVENT_TYPE_MODIFIED)

_CLOSED = object()


def _to_path(src_path: bytes | str) -> Path:
    """Convert watchdog src_path to Path, handling bytes case."""
    if isinstance(src_path, bytes):
        return Path(src_path.decode())
    return Path(src_path)


@dataclass(frozen=True)
class WatchEvent:
    path: str
    event_type: str


class DebounceTable:
    """Path -> pending timer, guarded by one lock.

    ``touch(path)`` starts the path's timer or restarts it if one is
    pending. When it fires, ``callback(path)`` runs on the timer thread and
    the entry is removed afterwards, unless a newer timer replaced it.
    """

    def __init__(self, window: float, callback: Callable[[str], None]):
        self.window = window
        self._callback = callback
        self._timers: dict[str, threading.Timer] = {}
        self._lock = threading.Lock()

    def touch(self, path: str) -> None:
        with self._lock:
            pending = self._timers.get(path)
            if pending is not None:
                pending.cancel()
            timer = threading.Timer(self.window, lambda: self._fire(path, timer))
            timer.daemon = True
            self._timers[path] = timer
            timer.start()

    def _fire(self, path: str, timer: threading.Timer) -> None:
        try:
            self._callback(path)
        finally:
            with self._lock:
                if self._timers.get(path) is timer:
                    del self._timers[path]

    def pending(self) -> list[str]:
        with self._lock:
            return list(self._timers)

    def cancel_all(self) -> None:
        with self._lock:
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()


class _EventForwarder(FileSystemEventHandler):
    """Hands file events from the observer thread to the coordinator."""

    def __init__(self, coordinator: WatchCoordinator):
        self.coordinator = coordinator

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self.coordinator.notify(str(_to_path(event.src_path)), event.event_type)


class WatchCoordinator:
    """Watches the configured path and calls ``reload(path)`` after changes.

    Reloads never overlap: a timer that fires while a reload is running
    waits for it to finish. Anything ``reload`` raises is put back on the
    queue and logged by the loop.
    """

    def __init__(
        self,
        config: RunConfig,
        reload: Callable[[str], object],
        log: logging.Logger | None = None,
        observer_factory: Callable[[], object] = Observer,
    ):
        self.config = config
        self._reload_fn = reload
        self._log = log or logger
        self._observer_factory = observer_factory
        self._observer = None
        self._thread: threading.Thread | None = None
        self._events: queue.Queue = queue.Queue()
        self._run_lock = threading.Lock()
        self.debounce = DebounceTable(config.debounce, self._reload)

    # ── event intake ─────────────────────────────────────────────────────

    def notify(self, path: str, event_type: str) -> None:
        self._events.put(WatchEvent(path, event_type))

    def report_error(self, error: Exception) -> None:
        self._events.put(error)

    def close(self) -> None:
        """Close the event queue; the loop exits once it reaches this."""
        self._events.put(_CLOSED)

    def should_handle(self, event: WatchEvent) -> bool:
        """Creates and writes of the watched file(s), minus exclusions."""
        if event.event_type not in ACTIONABLE_EVENTS:
            return False
        path = Path(event.path).absolute()
        if self.config.watch_file:
            return path == Path(self.config.watch_file).absolute()
        if self.config.exclude_file and (
            fnmatch(path.name, self.config.exclude_file)
            or fnmatch(str(path), self.config.exclude_file)
        ):
            return False
        if self.config.exclude_folder and path.is_relative_to(
            Path(self.config.exclude_folder).absolute(),
        ):
            return False
        return True

    # ── loop ─────────────────────────────────────────────────────────────

    def run(self) -> None:
        """Consume events until the queue is closed."""
        while True:
            item = self._events.get()
            if item is _CLOSED:
                self._log.debug("Watcher closed")
                return
            if isinstance(item, Exception):
                self._log.error("Watch error: %s", item)
                continue
            if not self.should_handle(item):
                continue
            self._log.debug("Event %s on %s", item.event_type, item.path)
            self.debounce.touch(item.path)

    def _reload(self, path: str) -> None:
        with self._run_lock:
            self._log.debug("Reloading after change to %s", path)
            try:
                self._reload_fn(path)
            except Exception as e:
                self.report_error(e)

    # ── lifecycle ────────────────────────────────────────────────────────

    def _watch_dir(self) -> Path:
        if self.config.watch_file:
            return Path(self.config.watch_file).absolute().parent
        return Path(self.config.watch_folder).absolute()

    def start(self) -> None:
        """Arm the observer and start the event loop thread.

        A watched folder is observed with its subfolders; a watched file
        through its parent directory only.
        """
        self._observer = self._observer_factory()
        self._observer.schedule(
            _EventForwarder(self),
            str(self._watch_dir()),
            recursive=bool(self.config.watch_folder),
        )
        self._observer.start()
        self._thread = threading.Thread(target=self.run, name="httpwatch-loop", daemon=True)
        self._thread.start()
        self._log.debug("Watching %s", self.config.watch_path)

    def wait(self, poll: float = 0.5) -> None:
        """Block until the loop thread exits."""
        while self._thread is not None and self._thread.is_alive():
            self._thread.join(poll)

    def stop(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None
        self.close()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        self.debounce.cancel_all()
