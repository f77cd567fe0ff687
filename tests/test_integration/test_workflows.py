"""
Integration tests for complete STIG Checklist workflows.

These tests verify end-to-end functionality across all modules:
1. Catalog + benchmark import -> asset -> CKL export -> CKL re-import
2. Release upgrade with answers carried forward, then CMRS export
3. Repository snapshot survives a restart mid-workflow
"""

import shutil
import tempfile
import unittest
import xml.etree.ElementTree as ET
from pathlib import Path
from unittest.mock import patch

import pytest

from stig_checklist.core.config import Cfg
from stig_checklist.core.constants import Status
from stig_checklist.models import Asset
from stig_checklist.processor import (
    CciCatalogImporter,
    CciResolver,
    ChecklistExporter,
    ChecklistImporter,
    ChecklistUpgrader,
    ComplianceExporter,
    StigImporter,
)
from stig_checklist.repository import MemoryRepository
from stig_checklist.xml.utils import XmlUtils
from tests.conftest import cci_list_xml, rule_xml, write_zip, xccdf_xml

R1 = "Release: 1 Benchmark Date: 26 Jul 2023"
R2 = "Release: 2 Benchmark Date: 25 Oct 2023"


@pytest.mark.integration
class TestChecklistLifecycle(unittest.TestCase):
    """Import, answer, export, upgrade and report."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp(prefix="test_workflow_"))
        self.patcher = patch.object(Cfg, "BACKUP_DIR", self.temp_dir)
        self.patcher.start()
        self.db = self.temp_dir / "repository.json"

        self.catalog = write_zip(self.temp_dir / "U_CCI_List.zip", {
            "U_CCI_List.xml": cci_list_xml({"CCI-000366": "CM-6 b", "CCI-002235": "AC-6 (10)"}),
        })
        self.release1 = write_zip(self.temp_dir / "U_Sample_V1R1_STIG.zip", {
            "U_Sample_V1R1_STIG/U_Sample_OS_V1R1_Manual-xccdf.xml": xccdf_xml([
                rule_xml("V-1", ccis=("CCI-002235",)),
                rule_xml("V-2", ccis=()),
                rule_xml("V-3", severity="high"),
            ], release=R1),
            "U_Sample_V1R1_STIG/U_Sample_V1R1_Overview.pdf": b"%PDF",
        })
        self.release2 = write_zip(self.temp_dir / "U_Sample_V1R2_STIG.zip", {
            "U_Sample_V1R2_STIG/U_Sample_OS_V1R2_Manual-xccdf.xml": xccdf_xml([
                rule_xml("V-1", rule="SV-1r2_rule", ccis=("CCI-002235",)),
                rule_xml("V-2", rule="SV-2r2_rule", ccis=()),
                rule_xml("V-4"),
            ], release=R2),
        })

    def tearDown(self):
        self.patcher.stop()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _answer(self, repo, asset, answers):
        for check in repo.get_ckl_checks(asset):
            if check.vuln_num in answers:
                check.status = answers[check.vuln_num]
                check.finding_details = f"Evidence for {check.vuln_num}"
                repo.update_ckl_check(check)

    def test_full_lifecycle(self):
        repo = MemoryRepository.load(self.db)

        CciCatalogImporter(repo, self.catalog).run()
        importer = StigImporter(repo, [self.release1])
        importer.run()
        self.assertTrue(importer.summary()["ok"])
        old = importer.added[0]

        checks = {c.vuln_num: c for c in repo.get_stig_checks(old)}
        self.assertTrue(checks["V-2"].is_remap)
        self.assertEqual(len(repo.get_supplements(old)), 1)

        web = Asset(host_name="web01", host_ip="10.0.0.5", tech_area="UNIX OS")
        repo.add_asset(web)
        repo.add_stig_to_asset(old, web)
        self._answer(repo, web, {"V-1": Status.NOT_A_FINDING, "V-2": Status.OPEN})

        # Restart: everything so far came from snapshots written on commit
        repo = MemoryRepository.load(self.db)
        web = repo.get_asset("web01")
        self.assertEqual(len(repo.get_ckl_checks(web)), 3)

        ckl = self.temp_dir / "web01.ckl"
        self.assertTrue(ChecklistExporter(repo).export(web, ckl))
        root = ET.fromstring(ckl.read_bytes())
        statuses = {
            dict(XmlUtils.stig_data(v))["Vuln_Num"]: v.findtext("STATUS") for v in root.iter("VULN")
        }
        self.assertEqual(statuses, {"V-1": "NotAFinding", "V-2": "Open", "V-3": "Not_Reviewed"})

        upgrade_importer = StigImporter(repo, [self.release2])
        upgrade_importer.run()
        upgrader = ChecklistUpgrader(repo, web, old)
        upgrader.run()
        self.assertEqual(upgrader.result.as_dict()["carried"], 2)
        new = upgrader.result.target
        upgraded = {c.vuln_num: c for c in repo.get_ckl_checks(web, new)}
        self.assertIs(upgraded["V-1"].status, Status.NOT_A_FINDING)
        self.assertEqual(upgraded["V-1"].finding_details, "Evidence for V-1")
        self.assertIs(upgraded["V-2"].status, Status.OPEN)
        self.assertIs(upgraded["V-4"].status, Status.NOT_REVIEWED)
        self.assertNotIn("V-3", upgraded)

        cmrs = self.temp_dir / "cmrs.xml"
        exporter = ComplianceExporter(repo, path=cmrs)
        exporter.run()
        self.assertTrue(exporter.written)
        ns = "{urn:FindingImport}"
        targets = ET.fromstring(cmrs.read_bytes()).findall(f"{ns}ASSET/{ns}TARGET")
        self.assertEqual(len(targets), 2)
        self.assertEqual(len(targets[1].findall(f"{ns}FINDING")), 3)

    def test_checklist_moves_between_repositories(self):
        source = MemoryRepository()
        CciCatalogImporter(source, self.catalog).run()
        stig = StigImporter(source).add_archive(self.release1)[0]
        web = Asset(host_name="web01")
        source.add_asset(web)
        source.add_stig_to_asset(stig, web)
        self._answer(source, web, {"V-3": Status.NOT_APPLICABLE})
        ckl = self.temp_dir / "web01.ckl"
        ChecklistExporter(source).export(web, ckl)

        target = MemoryRepository(self.db)
        CciCatalogImporter(target, self.catalog).run()
        StigImporter(target).add_archive(self.release1)
        importer = ChecklistImporter(target, [ckl])
        importer.run()
        self.assertTrue(importer.results[0]["ok"])

        restored = MemoryRepository.load(self.db)
        answers = {c.vuln_num: c for c in restored.get_ckl_checks(restored.get_asset("web01"))}
        self.assertIs(answers["V-3"].status, Status.NOT_APPLICABLE)
        self.assertEqual(answers["V-3"].finding_details, "Evidence for V-3")

    def test_catalog_after_benchmark(self):
        """Checks parked on the fallback CCI pick up the imported remap set."""
        repo = MemoryRepository(self.db)
        stig = StigImporter(repo).add_archive(self.release1)[0]
        fallback = repo.get_cci_by_number(366)
        self.assertFalse(fallback.is_import)
        self.assertTrue(all(c.cci_ids == [fallback.id] for c in repo.get_stig_checks(stig)))

        result = CciCatalogImporter(repo).import_file(self.catalog)
        self.assertEqual(result, {"added": 1, "replaced": 1, "existing": 0})
        # The placeholder became the catalog record under the same id
        cci = repo.get_cci_by_number(366)
        self.assertEqual(cci.id, fallback.id)
        self.assertTrue(cci.is_import)
        self.assertEqual(cci.definition, "Definition of CCI-000366.")
        self.assertEqual(CciResolver(repo).map_unmapped(), 0)

        reopened = MemoryRepository.load(self.db)
        self.assertTrue(reopened.get_cci_by_number(366).is_import)


if __name__ == "__main__":
    unittest.main()
