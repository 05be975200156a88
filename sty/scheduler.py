"""Rebuild scheduling for Sty.

When a watched file changes, the scheduler classifies the path and runs the
smallest set of recompilations that keeps the output correct:

- data file or any template: full compile
- asset: delete copied assets and copy them again
- content file: recompose global data, recompile content items and page templates
- page template: recompose global data, recompile page templates

Each matching kind fires its reaction, in the order above. Reactions are
serialized, and the entrypoint the watcher calls is debounced so a burst of
events becomes one reaction for the most recent path.

Key classes:
- RebuildScheduler: Maps a changed path to reactions and runs them.
- Debouncer: Trailing-edge debounce around a callable.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

from .build import SiteCompiler
from .changes import FileKind, classify

logger = logging.getLogger(__name__)


class Debouncer:
    """Delay calls to ``func`` until no new call has arrived for ``wait`` seconds.

    Every call restarts the timer and replaces the pending arguments, so the
    function finally runs once with the latest ones. Calls are coalesced,
    never queued.

    Attributes:
        wait: Quiet period in seconds.
    """

    def __init__(self, func: Callable[..., Any], wait: float):
        self.func = func
        self.wait = wait
        self._timer: threading.Timer | None = None
        self._lock = threading.Lock()

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            timer = threading.Timer(self.wait, self._fire, args=(args, kwargs))
            timer.daemon = True
            self._timer = timer
            timer.start()

    def _fire(self, args: tuple, kwargs: dict) -> None:
        with self._lock:
            if self._timer is None or self._timer is not threading.current_thread():
                return
            self._timer = None
        self.func(*args, **kwargs)

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def cancel(self) -> None:
        """Drop the pending call, if any."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None


class RebuildScheduler:
    """Chooses and runs recompilations for changed paths.

    Attributes:
        compiler: Compiler that performs the work.
    """

    def __init__(self, compiler: SiteCompiler):
        self.compiler = compiler
        self._lock = threading.Lock()

    def classify(self, path: Path | str) -> set[FileKind]:
        return classify(path, self.compiler.root_dir, self.compiler.config.output_dir_name)

    def react(self, path: Path | str) -> list[str]:
        """Run every reaction ``path`` calls for.

        Args:
            path: Path reported by the watcher.

        Returns:
            Names of the reactions that ran, in order.

        Raises:
            BuildError: If a reaction fails. Reactions after it do not run.
        """
        kinds = self.classify(path)
        fired: list[str] = []
        if not kinds:
            return fired
        with self._lock:
            logger.info("Change detected in %s", path)
            # inputs changed: nothing memoized before this event is trustworthy
            self.compiler.cache.clear()
            if FileKind.DATA in kinds or FileKind.TEMPLATE in kinds:
                self.compiler.compile()
                fired.append("full")
            if FileKind.ASSET in kinds:
                self.compiler.delete_assets()
                self.compiler.copy_assets()
                fired.append("assets")
            if FileKind.CONTENT in kinds:
                data = self.compiler.global_data(refresh=True)
                self.compiler.compile_content_items(data)
                self.compiler.compile_template_items(data)
                fired.append("content")
            if FileKind.PAGE_TEMPLATE in kinds:
                data = self.compiler.global_data(refresh=True)
                self.compiler.compile_template_items(data)
                fired.append("page_templates")
        return fired

    def debounced(self, wait: float | None = None) -> Debouncer:
        """Return a debounced entrypoint around :meth:`react`."""
        if wait is None:
            wait = self.compiler.config.debounce_seconds
        return Debouncer(self.react, wait)
