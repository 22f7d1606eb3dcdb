"""Directory watches — refresh triggers for the views tree.

One non-recursive watchdog subscription per directory. Every change
(create, delete, modify, move) is treated the same way: the registered
callback runs and the caller rescans everything. Open and
close-without-write events are ignored, otherwise reading the templates
during a refresh would trigger the next one.

Callbacks never run on watchdog's dispatch thread. Events only mark the
callback as pending; a single daemon worker runs pending callbacks after a
short settle delay, so an editor save that fires a burst of events costs
one refresh, and a callback is free to reschedule watches.

Free-threading safety:
    - ``watch()``, ``replace()`` and ``close_all()`` hold an RLock, so concurrent
      refreshes cannot leak or double-close subscriptions
    - The pending-callback set has its own Lock and is only held briefly
"""

from __future__ import annotations

import contextlib
import logging
import threading
import time
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import TypeAlias

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver, ObservedWatch

logger = logging.getLogger("whiskers.watch")

ChangeCallback: TypeAlias = Callable[[], object]

CHANGE_EVENTS = frozenset({
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
})


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, callback: ChangeCallback, notify: Callable[[ChangeCallback], None]) -> None:
        super().__init__()
        self._callback = callback
        self._notify = notify

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type not in CHANGE_EVENTS:
            return
        logger.debug("Change detected: %s %s", event.event_type, event.src_path)
        self._notify(self._callback)


class DirectoryWatch:
    """An active subscription for one directory. ``close()`` is idempotent.

    watchdog keys watches by path, so two subscriptions to the same
    directory share one observed watch. Closing a handle removes only its
    own handler; the watch is unscheduled with the last one.
    """

    __slots__ = ("_handler", "_release", "_watch", "path")

    def __init__(
        self,
        release: Callable[[ObservedWatch, FileSystemEventHandler], None],
        watch: ObservedWatch,
        handler: FileSystemEventHandler,
        path: Path,
    ) -> None:
        self._release = release
        self._watch: ObservedWatch | None = watch
        self._handler = handler
        self.path = path

    @property
    def closed(self) -> bool:
        return self._watch is None

    def close(self) -> None:
        watch, self._watch = self._watch, None
        if watch is None:
            return
        self._release(watch, self._handler)

    def __repr__(self) -> str:
        state = "closed" if self.closed else "active"
        return f"DirectoryWatch({str(self.path)!r}, {state})"


class WatchSet:
    """The set of directory subscriptions owned by one template engine.

    Usage::

        watches = WatchSet()
        watches.replace(scan_directories(root), refresh)
        ...
        watches.close()

    Args:
        observer_factory: Builds the watchdog observer, started on first use.
        settle: Seconds to wait after the first event of a burst before
            running callbacks.
    """

    __slots__ = (
        "_active",
        "_lock",
        "_observer",
        "_observer_factory",
        "_pending",
        "_pending_lock",
        "_closed",
        "_refs",
        "_settle",
        "_wakeup",
        "_worker",
    )

    def __init__(
        self,
        observer_factory: Callable[[], BaseObserver] = Observer,
        *,
        settle: float = 0.05,
    ) -> None:
        self._observer_factory = observer_factory
        self._observer: BaseObserver | None = None
        self._settle = settle
        self._active: list[DirectoryWatch] = []
        self._refs: dict[ObservedWatch, int] = {}
        self._lock = threading.RLock()
        self._pending: dict[int, ChangeCallback] = {}
        self._pending_lock = threading.Lock()
        self._wakeup = threading.Event()
        self._worker: threading.Thread | None = None
        self._closed = False

    # -- Subscriptions --

    @property
    def paths(self) -> list[Path]:
        """Directories covered by the managed subscriptions."""
        with self._lock:
            return [w.path for w in self._active]

    def __len__(self) -> int:
        with self._lock:
            return len(self._active)

    def watch(self, path: str | Path, on_change: ChangeCallback) -> DirectoryWatch:
        """Subscribe to changes directly inside *path*.

        The returned handle is not managed by ``replace()``; the caller
        closes it. ``close()`` on the set stops it along with the observer.

        Raises:
            OSError: If *path* cannot be watched.
        """
        directory = Path(path)
        handler = _ChangeHandler(on_change, self._notify)
        with self._lock:
            observer = self._ensure_started()
            try:
                observed = observer.schedule(handler, str(directory), recursive=False)
            except OSError:
                # watchdog registers the handler before starting the emitter
                with contextlib.suppress(KeyError):
                    observer.remove_handler_for_watch(
                        handler, ObservedWatch(str(directory), recursive=False),
                    )
                raise
            self._refs[observed] = self._refs.get(observed, 0) + 1
        logger.debug(" [WATCH] %s", directory)
        return DirectoryWatch(self._release, observed, handler, directory)

    def replace(self, directories: Iterable[str | Path], on_change: ChangeCallback) -> list[DirectoryWatch]:
        """Close every managed subscription, then watch each of *directories*.

        Directories that cannot be watched (removed since they were listed)
        are logged and skipped.
        """
        with self._lock:
            self._close_active()
            for directory in directories:
                try:
                    self._active.append(self.watch(directory, on_change))
                except OSError:
                    logger.warning("Could not watch %s", directory, exc_info=True)
            return list(self._active)

    def close_all(self) -> None:
        """Close every managed subscription. The observer keeps running."""
        with self._lock:
            self._close_active()

    def _close_active(self) -> None:
        active, self._active = self._active, []
        for watch in active:
            watch.close()

    def _release(self, watch: ObservedWatch, handler: FileSystemEventHandler) -> None:
        with self._lock:
            remaining = self._refs.get(watch, 0) - 1
            if remaining > 0:
                self._refs[watch] = remaining
            else:
                self._refs.pop(watch, None)
            observer = self._observer
            if observer is None:
                return
            # Already gone if the observer was stopped or the directory deleted
            with contextlib.suppress(KeyError):
                if remaining > 0:
                    observer.remove_handler_for_watch(handler, watch)
                else:
                    observer.unschedule(watch)

    # -- Lifecycle --

    def _ensure_started(self) -> BaseObserver:
        if self._closed:
            msg = "WatchSet is closed"
            raise RuntimeError(msg)
        if self._observer is None:
            observer = self._observer_factory()
            observer.daemon = True
            observer.start()
            self._observer = observer
            self._worker = threading.Thread(
                target=self._run, name="whiskers-refresh", daemon=True,
            )
            self._worker.start()
        return self._observer

    def close(self) -> None:
        """Close every subscription and stop the observer and worker threads."""
        self._closed = True
        self.close_all()
        self._wakeup.set()
        observer, self._observer = self._observer, None
        self._refs.clear()
        if observer is not None:
            observer.stop()
            if observer is not threading.current_thread():
                observer.join(timeout=2.0)
        worker, self._worker = self._worker, None
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout=2.0)

    def __enter__(self) -> WatchSet:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- Callback dispatch --

    def _notify(self, callback: ChangeCallback) -> None:
        with self._pending_lock:
            self._pending[id(callback)] = callback
        self._wakeup.set()

    def _run(self) -> None:
        while True:
            self._wakeup.wait()
            if self._closed:
                return
            if self._settle:
                # Let the rest of the burst arrive
                time.sleep(self._settle)
            self._wakeup.clear()
            with self._pending_lock:
                pending, self._pending = self._pending, {}
            for callback in pending.values():
                if self._closed:
                    return
                try:
                    callback()
                except Exception:
                    logger.exception("Watch callback failed")
