"""CKL checklist writer.

Produces the STIG Viewer checklist schema: one ASSET block, then one iSTIG
per mapped STIG holding its STIG_INFO and a VULN per checklist entry.
Output is byte-stable for unchanged input apart from the STIG_INFO uuid,
which comes from the injected ``uuid_factory``.
"""

from __future__ import annotations

import re
import uuid
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from stig_checklist.core.logging import LOG
from stig_checklist.exceptions import FileError
from stig_checklist.io.file_ops import FO
from stig_checklist.models import Asset, CklCheck, Stig, StigCheck
from stig_checklist.processor.worker import INDETERMINATE, Progress, Worker
from stig_checklist.repository.base import Repository
from stig_checklist.xml.schema import Sch
from stig_checklist.xml.utils import XmlUtils

_UNSAFE_NAME = re.compile(r'[\\/:*?"<>|]+')


def true_false(value: bool) -> str:
    return "true" if value else "false"


def stig_ref(stig: Stig) -> str:
    return f"{stig.title} :: Version {stig.version}, {stig.release}"


def ckl_file_name(asset: Asset, stig: Stig) -> str:
    """``{host}_{title}_V{version}R{release}.ckl`` with path characters replaced."""
    name = f"{asset.host_name}_{stig.title}_V{stig.version}R{stig.release_number}.ckl"
    return _UNSAFE_NAME.sub("_", name)


class ChecklistExporter(Worker):
    """Serializes assets and their checklist answers to CKL.

    Args:
        repo: Source repository
        progress: Progress sink
        uuid_factory: Produces the per-iSTIG uuid
        directory: Output directory used by :meth:`process`
    """

    name = "export_ckl"

    def __init__(
        self,
        repo: Repository,
        progress: Optional[Progress] = None,
        uuid_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
        directory: Optional[Union[str, Path]] = None,
    ):
        super().__init__(progress)
        self.repo = repo
        self.uuid_factory = uuid_factory
        self.directory = directory
        self.result: Dict[str, Any] = {}
        self._cci_names: Dict[int, str] = {}

    def process(self) -> None:
        if self.directory is None:
            raise ValueError("ChecklistExporter needs an output directory")
        self.result = self.export_all(self.directory)

    # ------------------------------------------------------------------ build
    def build(self, asset: Asset, stigs: Optional[Iterable[Stig]] = None) -> ET.Element:
        """CHECKLIST element for one asset.

        Args:
            asset: Asset to export
            stigs: STIGs to include, defaulting to every STIG mapped to it
        """
        stigs = list(stigs) if stigs is not None else self.repo.get_stigs_for_asset(asset)
        self._cci_names = {cci.id: cci.display_name for cci in self.repo.get_ccis()}

        root = ET.Element(Sch.ROOT)
        self._asset(root, asset)
        container = ET.SubElement(root, Sch.STIGS)
        for stig in stigs:
            istig = ET.SubElement(container, Sch.ISTIG)
            self._stig_info(istig, stig)
            for check in self.repo.get_ckl_checks(asset, stig):
                self._vuln(istig, stig, check)
        return root

    def render(self, asset: Asset, stigs: Optional[Iterable[Stig]] = None) -> bytes:
        return XmlUtils.document(self.build(asset, stigs))

    @staticmethod
    def _asset(root: ET.Element, asset: Asset) -> None:
        values = {
            "ROLE": Sch.DEFS["ROLE"],
            "ASSET_TYPE": asset.asset_type,
            "MARKING": asset.marking,
            "HOST_NAME": asset.host_name,
            "HOST_IP": asset.host_ip,
            "HOST_MAC": asset.host_mac,
            "HOST_FQDN": asset.host_fqdn,
            "TECH_AREA": asset.tech_area,
            "TARGET_KEY": asset.target_key,
            "TARGET_COMMENT": asset.target_comment,
            "WEB_OR_DATABASE": true_false(asset.web_or_db),
            "WEB_DB_SITE": asset.web_db_site,
            "WEB_DB_INSTANCE": asset.web_db_instance,
        }
        node = ET.SubElement(root, "ASSET")
        for tag in Sch.ASSET:
            XmlUtils.leaf(node, tag, values[tag])

    def _stig_info(self, istig: ET.Element, stig: Stig) -> None:
        values: Dict[str, Optional[str]] = {
            "version": str(stig.version),
            "classification": Sch.DEFS["classification"],
            "customname": None,
            "stigid": stig.benchmark_id,
            "description": stig.description,
            "filename": stig.file_name,
            "releaseinfo": stig.release,
            "title": stig.title,
            "uuid": self.uuid_factory(),
            "notice": Sch.DEFS["notice"],
            "source": Sch.DEFS["source"],
        }
        info = ET.SubElement(istig, Sch.STIG_INFO)
        for name in Sch.STIG:
            XmlUtils.pair(info, Sch.SI_DATA, Sch.SID_NAME, name, Sch.SID_DATA, values[name])

    def _vuln(self, istig: ET.Element, stig: Stig, check: CklCheck) -> None:
        rule: StigCheck = check.stig_check or StigCheck()
        values = {
            "Vuln_Num": rule.vuln_num,
            "Severity": check.effective_severity.ckl,
            "Group_Title": rule.group_title,
            "Rule_ID": rule.rule,
            "Rule_Ver": rule.rule_version,
            "Rule_Title": rule.title,
            "Vuln_Discuss": rule.vuln_discussion,
            "IA_Controls": rule.ia_controls,
            "Check_Content": rule.check,
            "Fix_Text": rule.fix,
            "False_Positives": rule.false_positives,
            "False_Negatives": rule.false_negatives,
            "Documentable": true_false(rule.documentable),
            "Mitigations": rule.mitigations,
            "Potential_Impact": rule.potential_impact,
            "Third_Party_Tools": rule.third_party_tools,
            "Mitigation_Control": rule.mitigation_control,
            "Responsibility": rule.responsibility,
            "Security_Override_Guidance": rule.severity_override_guidance,
            "Check_Content_Ref": rule.check_content_ref,
            "Weight": f"{rule.weight:g}",
            "Class": Sch.DEFS["Class"],
            "STIGRef": stig_ref(stig),
            "TargetKey": rule.target_key,
        }

        vuln = ET.SubElement(istig, Sch.VULN_ELEM)
        for name in Sch.VULN:
            XmlUtils.pair(vuln, Sch.STIG_DATA, Sch.VULN_ATTRIBUTE, name, Sch.ATTRIBUTE_DATA, values[name])
        for cci_id in rule.cci_ids:
            cci_name = self._cci_names.get(cci_id)
            if cci_name is None:
                LOG.d(f"{rule.rule} references unknown CCI id {cci_id}")
                continue
            XmlUtils.pair(vuln, Sch.STIG_DATA, Sch.VULN_ATTRIBUTE, Sch.CCI_REF, Sch.ATTRIBUTE_DATA, cci_name)
        for legacy_id in rule.legacy_ids:
            XmlUtils.pair(vuln, Sch.STIG_DATA, Sch.VULN_ATTRIBUTE, Sch.LEGACY_ID, Sch.ATTRIBUTE_DATA, legacy_id)

        answers = {
            "STATUS": check.status.value,
            "FINDING_DETAILS": check.finding_details,
            "COMMENTS": check.comments,
            "SEVERITY_OVERRIDE": check.severity_override.ckl,
            "SEVERITY_JUSTIFICATION": check.severity_justification,
        }
        for tag in Sch.STATUS:
            XmlUtils.leaf(vuln, tag, answers[tag])

    # ----------------------------------------------------------------- output
    def export(self, asset: Asset, path: Union[str, Path], stigs: Optional[Iterable[Stig]] = None) -> bool:
        """Write one checklist.

        An unwritable destination is not an error: the file is simply not
        produced and False is returned.
        """
        path = Path(path)
        data = self.render(asset, stigs)
        try:
            with FO.atomic(path) as handle:
                handle.write(data)
        except (FileError, OSError) as exc:
            LOG.e(f"Unable to write {path}: {exc}")
            self.progress.update_status(f"Unable to write {path.name}")
            return False
        self.repo.update_variable("lastdir", str(path.resolve().parent))
        LOG.i(f"Wrote checklist {path}")
        return True

    def export_all(self, directory: Union[str, Path]) -> Dict[str, Any]:
        """One checklist per (asset, mapped STIG) into ``directory``.

        Existing files are never overwritten.
        """
        directory = Path(directory)
        assets = self.repo.get_assets()
        written: List[str] = []
        skipped: List[str] = []
        failed: List[str] = []

        with LOG.scope(op="export_all", dir=directory.name):
            self.progress.initialize(len(assets), 0)
            for asset in assets:
                self.progress.update_status(f"Exporting CKLs for {asset.display_name}")
                for stig in self.repo.get_stigs_for_asset(asset):
                    path = directory / ckl_file_name(asset, stig)
                    if path.exists():
                        LOG.w(f"{path} already exists, not overwriting")
                        self.progress.update_status(f"The file {path.name} already exists. Please save to an empty directory.")
                        skipped.append(str(path))
                        continue
                    self.progress.update_status(f"Exporting CKL {stig.display_name} for {asset.display_name}")
                    (written if self.export(asset, path, [stig]) else failed).append(str(path))
                self.progress.progress(INDETERMINATE)
            self.progress.update_status("Done!")
        return {"ok": not failed, "written": written, "skipped": skipped, "failed": failed}
