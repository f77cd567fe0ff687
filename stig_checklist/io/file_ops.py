"""
File operations for checklists, snapshots and benchmark bundles.

Writes land in a temporary sibling first and are renamed over the target,
so a failed export or snapshot never leaves a truncated file behind. Reads
tolerate the encodings DISA content shows up in, and zip bundles are
unpacked into memory.
"""

from __future__ import annotations
import os
import tempfile
import time
import shutil
import zipfile
from contextlib import contextmanager, suppress
from datetime import datetime, timezone
from functools import wraps
from pathlib import Path
from typing import Callable, Dict, Iterator, IO, Tuple, Union

from stig_checklist.core.config import Cfg
from stig_checklist.core.constants import ENCODINGS, LARGE_FILE_THRESHOLD, MAX_RETRIES, RETRY_DELAY
from stig_checklist.core.logging import LOG
from stig_checklist.exceptions import FileError, ValidationError
from stig_checklist.xml.sanitizer import San

TMP_PREFIX = ".stig_tmp_"


def retry(
    attempts: int = MAX_RETRIES,
    delay: float = RETRY_DELAY,
    exceptions: Tuple[type, ...] = (OSError,),
) -> Callable:
    """Call again on ``exceptions``, doubling ``delay`` between tries.

    The last error is re-raised once ``attempts`` calls have failed; any
    other exception propagates immediately.
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            wait = delay
            for attempt in range(1, attempts):
                try:
                    return func(*args, **kwargs)
                except exceptions as err:
                    LOG.d(f"{func.__name__} attempt {attempt}/{attempts} failed: {err}")
                    time.sleep(wait)
                    wait *= 2
            return func(*args, **kwargs)

        return wrapper

    return decorator


def _existing_file(path: Union[str, Path]) -> Path:
    try:
        return San.path(path, exist=True, file=True)
    except ValidationError as exc:
        raise FileError(str(exc), {"path": path}) from exc


class FO:
    """File operations used by the repository and the exporters."""

    @staticmethod
    @contextmanager
    def atomic(target: Union[str, Path], mode: str = "wb", enc: str = "utf-8", bak: bool = False) -> Iterator[IO]:
        """Yield a handle whose contents replace ``target`` on clean exit.

        Args:
            target: File to write; missing parent directories are created
            mode: "wb" for bytes, "w" for text
            enc: Text encoding when ``mode`` is "w"
            bak: Copy an existing target into ``Cfg.BACKUP_DIR`` first

        Raises:
            FileError: The target is unusable or the write failed. The
                original file is left as it was.

        Any other exception raised by the caller's block propagates as is,
        after the temporary file is removed.
        """
        try:
            target = San.path(target, mkpar=True)
        except ValidationError as exc:
            raise FileError(f"Invalid write target: {exc}", {"target": target}) from exc

        binary = "b" in mode
        try:
            fd, name = tempfile.mkstemp(dir=str(target.parent), prefix=f"{TMP_PREFIX}{os.getpid()}_", suffix=".tmp")
        except OSError as exc:
            raise FileError(f"Cannot write to {target.parent}: {exc}", {"target": target}) from exc
        tmp = Path(name)

        try:
            if binary:
                handle = os.fdopen(fd, mode)
            else:
                handle = os.fdopen(fd, mode, encoding=enc, errors="replace", newline="\n")
            with handle:
                yield handle
                handle.flush()
                with suppress(OSError):
                    os.fsync(handle.fileno())
            if bak and target.is_file():
                FO._backup(target)
            FO._replace(tmp, target)
        except OSError as exc:
            with suppress(OSError):
                tmp.unlink()
            raise FileError(f"Atomic write failed: {exc}", {"target": target}) from exc
        except BaseException:
            with suppress(OSError):
                tmp.unlink()
            raise

    @staticmethod
    @retry()
    def _replace(tmp: Path, target: Path) -> None:
        # Windows scanners briefly lock freshly written files
        tmp.replace(target)

    @staticmethod
    def _backup(target: Path) -> Path:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
        copy = Cfg.BACKUP_DIR / f"{target.stem}_{stamp}{target.suffix}.bak"
        shutil.copy2(str(target), str(copy))
        stale = sorted(Cfg.BACKUP_DIR.glob(f"{target.stem}_*.bak"), key=lambda p: p.stat().st_mtime, reverse=True)
        for old in stale[Cfg.KEEP_BACKUPS:]:
            with suppress(OSError):
                old.unlink()
        return copy

    @staticmethod
    def read(path: Union[str, Path]) -> str:
        """Decode a text file with the first encoding in ENCODINGS that fits.

        A leading byte-order mark is dropped.
        """
        path = _existing_file(path)
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise FileError(f"Cannot read {path}: {exc}") from exc
        for encoding in ENCODINGS:
            try:
                text = raw.decode(encoding)
            except UnicodeError:
                continue
            return text[1:] if text.startswith("\ufeff") else text
        raise FileError(f"Unable to decode file with any known encoding: {path}")

    @staticmethod
    def read_bytes(path: Union[str, Path]) -> bytes:
        path = _existing_file(path)
        size = path.stat().st_size
        if size > LARGE_FILE_THRESHOLD:
            LOG.w(f"Large input file ({size} bytes): {path.name}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise FileError(f"Cannot read {path}: {exc}") from exc

    @staticmethod
    def extract_archive(path: Union[str, Path], suffix_filter: str = "") -> Dict[str, bytes]:
        """Read the members of a zip bundle into memory.

        Only members whose name ends with ``suffix_filter`` (any case) are
        kept. Directories are ignored, and members over
        ``Cfg.MAX_ARCHIVE_MEMBER`` bytes are skipped with a warning. The
        mapping preserves archive order.
        """
        path = _existing_file(path)
        suffix = suffix_filter.lower()
        members: Dict[str, bytes] = {}
        try:
            with zipfile.ZipFile(path) as archive:
                for info in archive.infolist():
                    name = info.filename
                    if info.is_dir() or not name.lower().endswith(suffix):
                        continue
                    if info.file_size > Cfg.MAX_ARCHIVE_MEMBER:
                        LOG.w(f"Skipping oversized archive member {name} ({info.file_size} bytes)")
                        continue
                    members[name] = archive.read(info)
        except zipfile.BadZipFile as exc:
            raise FileError(f"Not a zip archive: {path}", {"error": exc}) from exc
        except OSError as exc:
            raise FileError(f"Cannot read archive {path}: {exc}") from exc

        LOG.d(f"Extracted {len(members)} member(s) from {path.name}")
        return members


__all__ = ["FO", "retry"]
