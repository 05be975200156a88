"""Filesystem watching for Sty.

Watches the project root with watchdog and feeds every relevant change into
the debounced scheduler entrypoint. A fatal rebuild error stops the watcher
and is raised from :meth:`SiteWatcher.run`.

Key classes:
- SiteWatcher: Owns the observer, the debounced entrypoint and the run loop.
- _ChangeHandler: Watchdog event handler that forwards changed paths.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .build import BuildError, _format_error_message
from .scheduler import Debouncer, RebuildScheduler

logger = logging.getLogger(__name__)

_WATCHED_EVENTS = (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    EVENT_TYPE_DELETED,
)


def _as_str(path) -> str:
    return path.decode() if isinstance(path, bytes) else str(path)


class SiteWatcher:
    """Runs the scheduler in response to filesystem events.

    Attributes:
        scheduler: Scheduler whose reactions run on change.
        error: The fatal error that stopped the watcher, if any.
    """

    def __init__(self, scheduler: RebuildScheduler, debounce_seconds: float | None = None):
        self.scheduler = scheduler
        if debounce_seconds is None:
            debounce_seconds = scheduler.compiler.config.debounce_seconds
        self.trigger = Debouncer(self._react, debounce_seconds)
        self.error: BuildError | None = None
        self._stopped = threading.Event()
        self._observer: Observer | None = None

    @property
    def root_dir(self) -> Path:
        return self.scheduler.compiler.root_dir

    def _react(self, path: str) -> None:
        try:
            self.scheduler.react(path)
        except BuildError as exc:
            self.error = exc
            self._stopped.set()
        except Exception as exc:
            self.error = BuildError(Path(path), _format_error_message(exc), exc)
            self._stopped.set()

    def start(self) -> None:
        handler = _ChangeHandler(self)
        observer = Observer()
        observer.schedule(handler, str(self.root_dir), recursive=True)
        observer.start()
        self._observer = observer
        logger.info("Watching %s for changes", self.root_dir)

    def stop(self) -> None:
        self.trigger.cancel()
        self._stopped.set()
        if self._observer:
            self._observer.stop()
            self._observer.join()
            self._observer = None

    def run(self) -> None:
        """Watch until interrupted or until a rebuild fails.

        Raises:
            BuildError: The error that stopped the watcher.
        """
        self.start()
        try:
            while not self._stopped.wait(1):
                pass
        except KeyboardInterrupt:
            pass
        finally:
            self.stop()
        if self.error is not None:
            raise self.error


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, watcher: SiteWatcher):
        super().__init__()
        self.watcher = watcher

    def on_any_event(self, event):
        if event.is_directory or event.event_type not in _WATCHED_EVENTS:
            return
        dest = getattr(event, "dest_path", "")
        path = _as_str(dest or event.src_path)
        # Output, node_modules and hidden paths classify as nothing
        if not self.watcher.scheduler.classify(path):
            return
        self.watcher.trigger(path)
