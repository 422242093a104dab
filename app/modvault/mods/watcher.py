"""Debounced filesystem watcher for a mods directory.

A watchdog observer pushes raw event paths into a queue. A single
coalescing thread drains the queue and, once no new event has arrived for
the debounce window, hands the whole batch to the reconcile callback.
"""

import logging
import os
import queue
import threading
from collections.abc import Callable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

# Callback receiving the set of paths touched during one burst
ReconcileCallback = Callable[[frozenset[str]], None]


def _is_hidden(path: str, roots: tuple[Path, ...]) -> bool:
    for root in roots:
        try:
            parts = Path(path).relative_to(root).parts
        except ValueError:
            continue
        return any(part.startswith(".") for part in parts)
    return True


class _ForwardingHandler(FileSystemEventHandler):
    def __init__(self, watcher: "ModWatcher") -> None:
        super().__init__()
        self._watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type in ("opened", "closed_no_write"):
            return
        self._watcher.notify(os.fsdecode(event.src_path))
        dest = getattr(event, "dest_path", "")
        if dest:
            self._watcher.notify(os.fsdecode(dest))


class ModWatcher:
    """Watches a mods directory and triggers one reconcile per burst.

    Args:
        root: Directory to watch recursively.
        callback: Called with the batch of changed paths.
        debounce_seconds: Quiet period before the batch is delivered.
    """

    def __init__(
        self,
        root: Path,
        callback: ReconcileCallback,
        debounce_seconds: float = 0.5,
    ) -> None:
        self._root = root.resolve()
        self._roots = (self._root, root.absolute())
        self._callback = callback
        self._debounce = debounce_seconds
        self._events: queue.Queue[str] = queue.Queue()
        self._stop = threading.Event()
        self._observer: Observer | None = None
        self._worker: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    def start(self, *, observe: bool = True) -> None:
        """Start the coalescing thread and, unless disabled, the observer.

        Args:
            observe: If False, only events passed to notify() are processed.
        """
        if self.running:
            return
        self._stop.clear()
        self._worker = threading.Thread(target=self._run, name="modvault-watch", daemon=True)
        self._worker.start()

        if observe:
            observer = Observer()
            observer.schedule(_ForwardingHandler(self), str(self._root), recursive=True)
            observer.daemon = True
            observer.start()
            self._observer = observer
            logger.info("Watching %s", self._root)

    def notify(self, path: str) -> None:
        """Queue a changed path. Paths inside dot-directories are ignored."""
        if _is_hidden(path, self._roots):
            return
        self._events.put(path)

    def stop(self, timeout: float | None = 5.0) -> None:
        """Stop both threads. Events still pending are discarded."""
        self._stop.set()
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=timeout)
            self._observer = None
        if self._worker is not None:
            self._worker.join(timeout=timeout)
            self._worker = None
        logger.debug("Watcher for %s stopped", self._root)

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                first = self._events.get(timeout=0.1)
            except queue.Empty:
                continue

            batch = {first}
            while not self._stop.is_set():
                try:
                    batch.add(self._events.get(timeout=self._debounce))
                except queue.Empty:
                    break

            if self._stop.is_set():
                return

            logger.debug("Reconciling after %d changed paths", len(batch))
            try:
                self._callback(frozenset(batch))
            except Exception:
                logger.exception("Reconcile after filesystem change failed")
