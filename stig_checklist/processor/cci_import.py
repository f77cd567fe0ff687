"""CCI catalog import from a DISA CCI list (loose XML or zipped)."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Dict, Optional, Union

from stig_checklist.core.logging import LOG
from stig_checklist.io.file_ops import FO
from stig_checklist.parser.cci_list import parse_cci_list
from stig_checklist.processor.worker import INDETERMINATE, Progress, Worker
from stig_checklist.repository.base import Repository


class CciCatalogImporter(Worker):
    """Adds every CCI of a catalog document not already in the repository."""

    name = "import_cci"

    def __init__(self, repo: Repository, path: Optional[Union[str, Path]] = None, progress: Optional[Progress] = None):
        super().__init__(progress)
        self.repo = repo
        self.path = path
        self.result: Dict[str, int] = {}

    def process(self) -> None:
        if self.path is None:
            raise ValueError("CciCatalogImporter needs a catalog path")
        self.result = self.import_file(self.path)

    def import_file(self, path: Union[str, Path]) -> Dict[str, int]:
        """Import a catalog file.

        Raises:
            FileError: If the file or archive cannot be read
            ParseError: If a catalog document is not valid XML
        """
        path = Path(path)
        self.progress.update_status(f"Reading {path.name}…")
        if path.suffix.lower() == ".zip":
            documents = FO.extract_archive(path, ".xml")
        else:
            documents = {path.name: FO.read_bytes(path)}

        totals = {"added": 0, "replaced": 0, "existing": 0}
        for name, data in documents.items():
            counts = self.import_bytes(data)
            LOG.i(
                f"{name}: {counts['added']} CCI(s) added, {counts['replaced']} placeholder(s) replaced, "
                f"{counts['existing']} already present"
            )
            for key in totals:
                totals[key] += counts[key]
        return totals

    def import_bytes(self, data: bytes) -> Dict[str, int]:
        """Add the CCIs of one catalog document.

        A placeholder created before any catalog was loaded (``is_import``
        False) is overwritten with the catalog record and keeps its id, so
        checks already pointing at it pick up the definition.
        """
        ccis = parse_cci_list(data)
        self.progress.initialize(len(ccis), 0)
        added = replaced = existing = 0
        with self.repo.deferred():
            for cci in ccis:
                stored = self.repo.get_cci_by_number(cci.number)
                if stored is None:
                    self.repo.add_cci(cci)
                    added += 1
                elif not stored.is_import:
                    self.repo.update_cci(replace(cci, id=stored.id))
                    replaced += 1
                else:
                    existing += 1
                self.progress.progress(INDETERMINATE)
        return {"added": added, "replaced": replaced, "existing": existing}
