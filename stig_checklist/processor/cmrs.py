"""CMRS finding-import writer, aggregated over every asset."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional, Union

from stig_checklist.core.constants import APP_NAME, VERSION
from stig_checklist.core.logging import LOG
from stig_checklist.exceptions import FileError
from stig_checklist.io.file_ops import FO
from stig_checklist.models import Asset, CklCheck, StigCheck
from stig_checklist.processor.worker import INDETERMINATE, Progress, Worker
from stig_checklist.repository.base import Repository
from stig_checklist.xml.schema import Sch
from stig_checklist.xml.utils import XmlUtils

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def cmrs_vuln_id(vuln_num: str) -> str:
    """``V-1234`` becomes ``V0001234``; other forms pass through."""
    if not vuln_num.startswith("V-"):
        return vuln_num
    digits = vuln_num[2:]
    return "V" + digits.rjust(7, "0")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ComplianceExporter(Worker):
    """Writes one IMPORT_FILE document covering every asset.

    Args:
        repo: Source repository
        progress: Progress sink
        clock: Returns the export time; sampled once per document
        path: Output file used by :meth:`process`
    """

    name = "export_cmrs"

    def __init__(
        self,
        repo: Repository,
        progress: Optional[Progress] = None,
        clock: Callable[[], datetime] = _utc_now,
        path: Optional[Union[str, Path]] = None,
    ):
        super().__init__(progress)
        self.repo = repo
        self.clock = clock
        self.path = path
        self.written = False

    def process(self) -> None:
        if self.path is None:
            raise ValueError("ComplianceExporter needs an output path")
        self.written = self.export(self.path)

    def build(self) -> ET.Element:
        assets = self.repo.get_assets()
        timestamp = self.clock().astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)

        root = ET.Element(Sch.CMRS_ROOT, {"xmlns": Sch.CMRS_NS})
        self.progress.initialize(len(assets), 0)
        self.progress.update_status("Preparing Data…")
        for asset in assets:
            self.progress.update_status(f"Adding {asset.display_name}")
            self._asset(root, asset, timestamp)
            self.progress.progress(INDETERMINATE)
        return root

    def render(self) -> bytes:
        return XmlUtils.document(self.build())

    def _asset(self, root: ET.Element, asset: Asset, timestamp: str) -> None:
        node = ET.SubElement(root, "ASSET")
        XmlUtils.leaf(node, "ASSET_TS", timestamp)
        ids = {
            "ASSET NAME": asset.host_name,
            "MAC ADDRESS": asset.host_mac,
            "IP ADDRESS": asset.host_ip,
            "FQDN": asset.host_fqdn,
            "TechArea": asset.tech_area,
        }
        for kind in Sch.CMRS_ASSET_IDS:
            XmlUtils.leaf(node, "ASSET_ID", ids[kind], {"TYPE": kind})

        asset_type = ET.SubElement(node, "ASSET_TYPE")
        XmlUtils.leaf(asset_type, "ASSET_TYPE_KEY", "1" if asset.asset_type.startswith("Computing") else "2")

        element = ET.SubElement(node, "ELEMENT")
        XmlUtils.leaf(element, "ELEMENT_KEY", Sch.CMRS_ELEMENT_KEY)
        for stig in self.repo.get_stigs_for_asset(asset):
            target = ET.SubElement(node, "TARGET")
            XmlUtils.leaf(target, "TARGET_ID", stig.benchmark_id)
            XmlUtils.leaf(target, "TARGET_KEY", Sch.CMRS_ELEMENT_KEY)
            for check in self.repo.get_ckl_checks(asset, stig):
                self._finding(target, check)

    @staticmethod
    def _finding(target: ET.Element, check: CklCheck) -> None:
        rule = check.stig_check or StigCheck()
        finding = ET.SubElement(target, "FINDING")
        XmlUtils.leaf(finding, "FINDING_ID", cmrs_vuln_id(rule.vuln_num), {"TYPE": "VK", "ID": rule.rule})
        XmlUtils.leaf(finding, "FINDING_STATUS", check.status.cmrs)
        XmlUtils.leaf(finding, "FINDING_DETAILS", check.finding_details, {"OVERRIDE": "O"})
        XmlUtils.leaf(finding, "SCRIPT_RESULTS", "")
        XmlUtils.leaf(finding, "COMMENT", check.comments)
        XmlUtils.leaf(finding, "TOOL", APP_NAME)
        XmlUtils.leaf(finding, "TOOL_VERSION", VERSION)
        XmlUtils.leaf(finding, "AUTHENTICATED_FINDING", "true")

    def export(self, path: Union[str, Path]) -> bool:
        """Write the document; False (not an exception) when unwritable."""
        path = Path(path)
        with LOG.scope(op="export_cmrs", file=path.name):
            data = self.render()
            try:
                with FO.atomic(path) as handle:
                    handle.write(data)
            except (FileError, OSError) as exc:
                LOG.e(f"Unable to write {path}: {exc}")
                self.progress.update_status(f"Unable to write {path.name}")
                return False
            LOG.i(f"Wrote CMRS export {path}")
            self.progress.update_status("Done!")
            return True
