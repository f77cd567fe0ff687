"""STIG ingestion: archives and loose XCCDF documents into the repository."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from stig_checklist.core.config import Cfg
from stig_checklist.core.constants import XCCDF_SUFFIXES
from stig_checklist.core.logging import LOG
from stig_checklist.exceptions import FileError
from stig_checklist.io.file_ops import FO
from stig_checklist.models import Stig
from stig_checklist.parser.xccdf import ParseResult, XccdfParser
from stig_checklist.processor.resolver import CciResolver
from stig_checklist.processor.worker import INDETERMINATE, Progress, Worker
from stig_checklist.repository.base import Repository
from stig_checklist.xml.sanitizer import San


def is_benchmark_name(name: str) -> bool:
    """True for archive members that hold an XCCDF benchmark."""
    lowered = name.lower()
    return any(lowered.endswith(suffix.lower()) for suffix in XCCDF_SUFFIXES)


class StigImporter(Worker):
    """Parses STIG archives (or loose XCCDF files) and persists them.

    Args:
        repo: Destination repository
        paths: Archives or XML files handled by :meth:`process`
        progress: Progress sink
        enable_supplements: Keep non-benchmark archive members as supplements
            (defaults to ``Cfg.ENABLE_SUPPLEMENTS``)
    """

    name = "import_stig"

    def __init__(
        self,
        repo: Repository,
        paths: Sequence[Union[str, Path]] = (),
        progress: Optional[Progress] = None,
        enable_supplements: Optional[bool] = None,
    ):
        super().__init__(progress)
        self.repo = repo
        self.paths = list(paths)
        self.enable_supplements = Cfg.ENABLE_SUPPLEMENTS if enable_supplements is None else enable_supplements
        self.resolver = CciResolver(repo)
        self.parser = XccdfParser(self.resolver)
        self.added: List[Stig] = []
        self.skipped: List[str] = []
        self.errors: List[str] = []

    def process(self) -> None:
        self.progress.initialize(len(self.paths), 0)
        for path in self.paths:
            path = Path(path)
            self.progress.update_status(f"Importing {path.name}…")
            try:
                if path.suffix.lower() == ".zip":
                    self.add_archive(path)
                else:
                    self.add_document(FO.read_bytes(path), path.name)
            except FileError as exc:
                LOG.e(f"Unable to import {path}: {exc}")
                self.errors.append(f"{path.name}: {exc}")
            self.progress.progress(INDETERMINATE)
        self.progress.update_status("Done!")

    def add_archive(self, path: Union[str, Path]) -> List[Stig]:
        """Parse every benchmark member of one archive.

        Raises:
            FileError: If the archive cannot be read
        """
        self.progress.update_status(f"Extracting {Path(path).name}…")
        members = FO.extract_archive(path)
        documents = {name: data for name, data in members.items() if is_benchmark_name(name)}
        if not documents:
            LOG.w(f"No XCCDF benchmark found in {Path(path).name}")
            self.skipped.append(Path(path).name)
            return []

        supplements = {name: data for name, data in members.items() if name not in documents}
        added: List[Stig] = []
        for name, data in documents.items():
            stig = self.add_document(data, name, supplements)
            if stig is not None:
                added.append(stig)
        return added

    def add_document(self, data: bytes, name: str, supplements: Optional[Dict[str, bytes]] = None) -> Optional[Stig]:
        """Parse and persist one benchmark; None when nothing was stored."""
        file_name = San.file_name(name)
        self.progress.update_status(f"Parsing {file_name}…")
        result = self.parser.parse(data, file_name, supplements if self.enable_supplements else None)
        return self._store(result)

    def _store(self, result: ParseResult) -> Optional[Stig]:
        name = result.stig.file_name
        if result.error:
            self.errors.append(f"{name}: {result.error}")
        if not result.ok:
            # Archives routinely carry extra XML that is not a checklist
            LOG.d(f"{name} holds no checks, skipped")
            self.skipped.append(name)
            return None

        with self.repo.deferred():
            self.resolver.remap_unmapped(result.checks)
            stig = self.repo.add_stig(result.stig, result.checks, result.supplements)
        if stig is None:
            self.skipped.append(name)
            return None
        self.added.append(stig)
        return stig

    def summary(self) -> Dict[str, Any]:
        return {
            "ok": not self.errors,
            "added": [s.display_name for s in self.added],
            "skipped": list(self.skipped),
            "errors": list(self.errors),
        }
