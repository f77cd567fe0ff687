"""Units of work and their progress signals.

A unit reports ``initialize(total, start)`` once (twice when the bound is
recomputed after a counting pass), any number of ``progress(n)`` ticks where
``-1`` means "advance by one, count not meaningful", status lines, and
exactly one ``finished()``.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Optional

from stig_checklist.core.logging import LOG

INDETERMINATE = -1


def _noop(*_args) -> None:
    return None


@dataclass
class Progress:
    """Sink for progress signals. Every callable defaults to a no-op."""

    initialize: Callable[[int, int], None] = _noop
    progress: Callable[[int], None] = _noop
    update_status: Callable[[str], None] = _noop
    finished: Callable[[], None] = _noop


class Worker:
    """Base for one unit of work.

    Subclasses implement :meth:`process`. :meth:`run` guarantees a single
    ``finished()`` even when ``process`` raises; the exception is logged and
    re-raised on the calling thread.
    """

    name = "worker"

    def __init__(self, progress: Optional[Progress] = None):
        self.progress = progress or Progress()

    def process(self) -> None:
        raise NotImplementedError

    def run(self) -> None:
        try:
            with LOG.scope(op=self.name):
                try:
                    self.process()
                except Exception as exc:
                    LOG.e(f"{self.name} failed: {exc}", exc=True)
                    self.progress.update_status(f"{self.name} failed: {exc}")
                    raise
        finally:
            self.progress.finished()

    def start(self) -> threading.Thread:
        """Run on a daemon thread and return it."""
        thread = threading.Thread(target=self._run_quietly, name=self.name, daemon=True)
        thread.start()
        return thread

    def _run_quietly(self) -> None:
        # Already logged and reported through update_status by run()
        try:
            self.run()
        except Exception:
            return
