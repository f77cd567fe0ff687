"""Logging for import, upgrade and export runs."""

from __future__ import annotations
from typing import Any, Dict, Iterator
from contextlib import contextmanager, suppress
import threading
import logging
import logging.handlers
import sys

from stig_checklist.core.config import Cfg

CONSOLE_FORMAT = "[%(levelname)s] %(message)s"
FILE_FORMAT = "[%(asctime)s] [%(levelname)-8s] [%(threadName)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_LOG_BYTES = 5 * 1024 * 1024


class _ContextFilter(logging.Filter):
    """Prefix each record with the calling thread's context pairs."""

    def __init__(self, local: threading.local):
        super().__init__()
        self.local = local

    def prefix(self) -> str:
        data = getattr(self.local, "data", None)
        if not data:
            return ""
        return "[" + ", ".join(f"{k}={v}" for k, v in data.items()) + "] "

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self.prefix() + str(record.msg)
        return True


class Log:
    """
    Named logger shared by every worker thread.

    ``Log(name)`` always returns the same object for a name. Context set
    through ctx() or scope() belongs to the current thread only, so a
    benchmark import running in the background does not tag the messages of
    an export started from the command line.
    """

    _instances: Dict[str, "Log"] = {}
    _lock = threading.RLock()

    def __new__(cls, name: str) -> "Log":
        with cls._lock:
            inst = cls._instances.get(name)
            if inst is None:
                inst = super().__new__(cls)
                inst._attach(name)
                cls._instances[name] = inst
            return inst

    def _attach(self, name: str) -> None:
        self.name = name
        self._local = threading.local()
        self._filter = _ContextFilter(self._local)
        self.log = logging.getLogger(name)
        self.log.setLevel(logging.DEBUG)
        self.log.propagate = False
        for handler in list(self.log.handlers):
            self.log.removeHandler(handler)
        self.log.addFilter(self._filter)
        self._add_handlers()

    def _add_handlers(self) -> None:
        self._console = logging.StreamHandler(sys.stderr)
        self._console.setLevel(logging.WARNING)
        self._console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        self.log.addHandler(self._console)

        # An unwritable log directory leaves console output only
        with suppress(OSError):
            rotating = logging.handlers.RotatingFileHandler(
                str(Cfg.LOG_DIR / f"{self.name}.log"),
                maxBytes=MAX_LOG_BYTES,
                backupCount=Cfg.KEEP_LOGS,
                encoding="utf-8",
                delay=True,
            )
            rotating.setLevel(logging.DEBUG)
            rotating.setFormatter(logging.Formatter(FILE_FORMAT, DATE_FORMAT))
            self.log.addHandler(rotating)

    def set_console_level(self, level: int) -> None:
        self._console.setLevel(level)

    # context -------------------------------------------------------------

    @property
    def context(self) -> Dict[str, Any]:
        """Copy of this thread's context pairs."""
        return dict(getattr(self._local, "data", {}))

    def ctx(self, **kw: Any) -> None:
        if not hasattr(self._local, "data"):
            self._local.data = {}
        self._local.data.update(kw)

    def clear(self) -> None:
        self._local.data = {}

    @contextmanager
    def scope(self, **kw: Any) -> Iterator["Log"]:
        """Add context for the body, then restore whatever was there before."""
        saved = self.context
        self.ctx(**kw)
        try:
            yield self
        finally:
            self._local.data = saved

    def prefix(self) -> str:
        return self._filter.prefix()

    # emit ----------------------------------------------------------------

    def d(self, msg: str) -> None:
        self.log.debug(msg)

    def i(self, msg: str) -> None:
        self.log.info(msg)

    def w(self, msg: str) -> None:
        self.log.warning(msg)

    def e(self, msg: str, exc: bool = False) -> None:
        """Error; ``exc=True`` attaches the active traceback."""
        self.log.error(msg, exc_info=exc)

    def c(self, msg: str, exc: bool = False) -> None:
        self.log.critical(msg, exc_info=exc)

    debug = d
    info = i
    warning = w

    def error(self, msg: str, exc_info: bool = False) -> None:
        self.e(msg, exc_info)

    def critical(self, msg: str, exc_info: bool = False) -> None:
        self.c(msg, exc_info)


LOG = Log("stig_checklist")
