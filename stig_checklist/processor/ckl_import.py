"""CKL reader: brings an existing checklist back into the repository."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from stig_checklist.core.constants import Severity, Status
from stig_checklist.core.deps import Deps
from stig_checklist.core.logging import LOG
from stig_checklist.exceptions import FileError, ParseError
from stig_checklist.io.file_ops import FO
from stig_checklist.models import Asset, Stig
from stig_checklist.processor.worker import INDETERMINATE, Progress, Worker
from stig_checklist.repository.base import Repository
from stig_checklist.xml.schema import Sch
from stig_checklist.xml.utils import XmlUtils

# CKL ASSET element -> Asset attribute
ASSET_FIELDS = {
    "ASSET_TYPE": "asset_type",
    "MARKING": "marking",
    "HOST_NAME": "host_name",
    "HOST_IP": "host_ip",
    "HOST_MAC": "host_mac",
    "HOST_FQDN": "host_fqdn",
    "TECH_AREA": "tech_area",
    "TARGET_KEY": "target_key",
    "TARGET_COMMENT": "target_comment",
    "WEB_DB_SITE": "web_db_site",
    "WEB_DB_INSTANCE": "web_db_instance",
}


class ChecklistImporter(Worker):
    """Applies the answers of CKL files to repository assets.

    Every iSTIG must name a STIG already in the repository. The asset is
    created from the ASSET block when its host name is unknown.
    """

    name = "import_ckl"

    def __init__(self, repo: Repository, paths: Sequence[Union[str, Path]] = (), progress: Optional[Progress] = None):
        super().__init__(progress)
        self.repo = repo
        self.paths = list(paths)
        self.results: List[Dict[str, Any]] = []

    def process(self) -> None:
        self.progress.initialize(len(self.paths), 0)
        for path in self.paths:
            self.progress.update_status(f"Parsing {Path(path).name}")
            try:
                self.results.append(self.import_file(path))
            except (FileError, ParseError) as exc:
                LOG.e(f"Unable to import {path}: {exc}")
                self.results.append({"ok": False, "file": str(path), "error": str(exc)})
            self.progress.progress(INDETERMINATE)
        self.progress.update_status("Done!")

    def import_file(self, path: Union[str, Path]) -> Dict[str, Any]:
        result = self.import_bytes(FO.read_bytes(path))
        result["file"] = str(path)
        return result

    def import_bytes(self, data: bytes) -> Dict[str, Any]:
        """Apply one CKL document.

        Raises:
            ParseError: If the document is not a readable checklist
        """
        ET, XMLParseError = Deps.get_xml()
        try:
            root = ET.fromstring(data)
        except (XMLParseError, ValueError) as exc:
            raise ParseError(f"Checklist is not valid XML: {exc}") from exc
        if Sch.strip_ns(root.tag) != Sch.ROOT:
            raise ParseError(f"Not a checklist: root element is {root.tag}")

        asset = self._asset(root)
        imported: List[str] = []
        skipped: List[str] = []
        with self.repo.deferred():
            for istig in root.iter(Sch.ISTIG):
                stig = self._apply(asset, istig)
                target = imported if stig is not None else skipped
                target.append(self._label(istig) if stig is None else stig.display_name)
        return {"ok": True, "asset": asset.host_name, "imported": imported, "skipped": skipped}

    def _asset(self, root) -> Asset:
        block = root.find("ASSET")
        if block is None:
            raise ParseError("Checklist has no ASSET block")
        asset = Asset()
        for tag, attr in ASSET_FIELDS.items():
            node = block.find(tag)
            if node is not None:
                setattr(asset, attr, (node.text or "").strip())
        asset.web_or_db = (block.findtext("WEB_OR_DATABASE") or "").strip().lower().startswith("t")
        if not asset.host_name:
            raise ParseError("Checklist asset has no HOST_NAME")

        existing = self.repo.get_asset(asset.host_name)
        if existing is not None:
            return existing
        self.repo.add_asset(asset)
        LOG.i(f"Created asset {asset.host_name} from checklist")
        return self.repo.get_asset(asset.host_name) or asset

    @staticmethod
    def _label(istig) -> str:
        info = XmlUtils.si_data(istig.find(Sch.STIG_INFO))
        return f"{info.get('title', '')} Version: {info.get('version', '')} {info.get('releaseinfo', '')}"

    def _apply(self, asset: Asset, istig) -> Optional[Stig]:
        info = XmlUtils.si_data(istig.find(Sch.STIG_INFO))
        try:
            version = int(info.get("version", "0") or 0)
        except ValueError:
            version = 0
        stig = self.repo.find_stig(info.get("title", ""), version, info.get("releaseinfo", ""))
        if stig is None:
            LOG.w(f"Checklist is mapped against a STIG that has not been imported ({self._label(istig)})")
            self.progress.update_status(f"STIG not found: {self._label(istig)}")
            return None
        if any(stig.same_as(mapped) for mapped in self.repo.get_stigs_for_asset(asset)):
            LOG.w(f"{asset.host_name} already has {stig.display_name} applied")
            self.progress.update_status(f"Unable to add {stig.display_name} to {asset.host_name}!")
            return None

        self.progress.update_status(f"Adding {stig.display_name} to {asset.host_name}…")
        self.repo.add_stig_to_asset(stig, asset)
        by_rule = {c.stig_check.rule: c for c in self.repo.get_ckl_checks(asset, stig) if c.stig_check}
        for vuln in istig.findall(Sch.VULN_ELEM):
            rule = dict(XmlUtils.stig_data(vuln)).get("Rule_ID", "").strip()
            check = by_rule.get(rule)
            if check is None:
                LOG.d(f"Checklist rule {rule!r} not in {stig.display_name}")
                continue
            check.status = Status.parse(vuln.findtext("STATUS") or "")
            check.finding_details = vuln.findtext("FINDING_DETAILS") or ""
            check.comments = vuln.findtext("COMMENTS") or ""
            check.severity_override = Severity.parse(vuln.findtext("SEVERITY_OVERRIDE") or "")
            check.severity_justification = vuln.findtext("SEVERITY_JUSTIFICATION") or ""
            self.repo.update_ckl_check(check)
        return stig
