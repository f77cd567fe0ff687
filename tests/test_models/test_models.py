"""Tests for the data model."""

import unittest

from stig_checklist.core.constants import Severity, Status
from stig_checklist.models import Asset, Cci, CklCheck, Stig, StigCheck, Supplement


class TestStig(unittest.TestCase):
    """Test the benchmark header."""

    def test_release_number(self):
        stig = Stig(release="Release: 12 Benchmark Date: 24 Jan 2024")
        self.assertEqual(stig.release_number, 12)
        self.assertEqual(stig.benchmark_date, "24 Jan 2024")

    def test_release_number_absent(self):
        self.assertEqual(Stig(release="Draft").release_number, 0)
        self.assertEqual(Stig().benchmark_date, "")

    def test_same_as_by_content_until_persisted(self):
        a = Stig(title="OS", version=1, release="Release: 1")
        b = Stig(title="OS", version=1, release="Release: 1")
        self.assertTrue(a.same_as(b))
        b.release = "Release: 2"
        self.assertFalse(a.same_as(b))

    def test_same_as_by_id(self):
        a = Stig(id=3, title="OS")
        b = Stig(id=3, title="renamed")
        self.assertTrue(a.same_as(b))
        self.assertFalse(a.same_as(Stig(id=4, title="OS")))

    def test_dict_round_trip(self):
        stig = Stig(id=2, title="OS", description="d", release="Release: 3", version=2,
                    benchmark_id="OS_STIG", file_name="U_OS-xccdf.xml")
        self.assertEqual(Stig.from_dict(stig.as_dict()), stig)


class TestStigCheck(unittest.TestCase):
    """Test rule records."""

    def test_identifier_sets_keep_order(self):
        check = StigCheck()
        for cci_id in (5, 2, 5, 9):
            check.add_cci(cci_id)
        check.add_legacy_id("V-100")
        check.add_legacy_id("")
        check.add_legacy_id("V-100")
        self.assertEqual(check.cci_ids, [5, 2, 9])
        self.assertEqual(check.legacy_ids, ["V-100"])

    def test_merge_fills_gaps_only(self):
        first = StigCheck(rule="SV-1r1_rule", title="Title", cci_ids=[1])
        second = StigCheck(rule="SV-1r1_rule", title="Other", fix="Fix it", severity=Severity.HIGH,
                           documentable=True, cci_ids=[2, 1], legacy_ids=["SV-9"])
        first.merge(second)
        self.assertEqual(first.title, "Title")
        self.assertEqual(first.fix, "Fix it")
        self.assertIs(first.severity, Severity.HIGH)
        self.assertTrue(first.documentable)
        self.assertEqual(first.cci_ids, [1, 2])
        self.assertEqual(first.legacy_ids, ["SV-9"])

    def test_dict_round_trip(self):
        check = StigCheck(id=7, stig_id=2, vuln_num="V-1", rule="SV-1r1_rule", severity=Severity.LOW,
                          weight=5.5, documentable=True, cci_ids=[1, 3], legacy_ids=["V-9"], is_remap=True)
        data = check.as_dict()
        self.assertEqual(data["severity"], Severity.LOW.value)
        restored = StigCheck.from_dict(data)
        self.assertEqual(restored, check)
        self.assertIsNot(restored.cci_ids, check.cci_ids)

    def test_from_dict_ignores_unknown_keys(self):
        check = StigCheck.from_dict({"vuln_num": "V-2", "unknown": "x"})
        self.assertEqual(check.vuln_num, "V-2")
        self.assertEqual(check.weight, 10.0)


class TestCci(unittest.TestCase):
    def test_display_name(self):
        self.assertEqual(Cci(number=366).display_name, "CCI-000366")

    def test_dict_round_trip(self):
        cci = Cci(id=1, number=2235, definition="def", control="AC-6 (10)", is_import=True)
        self.assertEqual(Cci.from_dict(cci.as_dict()), cci)


class TestSupplement(unittest.TestCase):
    def test_binary_contents_survive(self):
        supplement = Supplement(path="U_OS_STIG/overview.pdf", contents=b"\x00\xff%PDF", stig_id=1, id=4)
        data = supplement.as_dict()
        self.assertIsInstance(data["contents"], str)
        self.assertEqual(Supplement.from_dict(data), supplement)


class TestAsset(unittest.TestCase):
    def test_defaults(self):
        asset = Asset(host_name="web01")
        self.assertEqual(asset.asset_type, "Computing")
        self.assertFalse(asset.web_or_db)
        self.assertEqual(asset.display_name, "web01")

    def test_dict_round_trip(self):
        asset = Asset(id=1, host_name="db01", host_ip="10.0.0.5", web_or_db=True, web_db_site="site")
        self.assertEqual(Asset.from_dict(asset.as_dict()), asset)


class TestCklCheck(unittest.TestCase):
    """Test checklist answers."""

    def test_effective_severity(self):
        rule = StigCheck(id=1, vuln_num="V-1", severity=Severity.MEDIUM)
        answer = CklCheck(stig_check=rule)
        self.assertIs(answer.effective_severity, Severity.MEDIUM)
        answer.severity_override = Severity.HIGH
        self.assertIs(answer.effective_severity, Severity.HIGH)
        self.assertIs(CklCheck().effective_severity, Severity.NONE)

    def test_copy_answer(self):
        source = CklCheck(status=Status.OPEN, finding_details="found", comments="c",
                          severity_override=Severity.LOW, severity_justification="why")
        target = CklCheck(id=9, asset_id=2)
        target.copy_answer(source)
        self.assertEqual(target.id, 9)
        self.assertIs(target.status, Status.OPEN)
        self.assertEqual(target.finding_details, "found")
        self.assertEqual(target.comments, "c")
        self.assertIs(target.severity_override, Severity.LOW)
        self.assertEqual(target.severity_justification, "why")

    def test_as_dict_references_rule_by_id(self):
        rule = StigCheck(id=12, vuln_num="V-1")
        answer = CklCheck(id=1, asset_id=2, stig_check=rule, status=Status.NOT_A_FINDING)
        data = answer.as_dict()
        self.assertEqual(data["stig_check_id"], 12)
        restored = CklCheck.from_dict(data, rule)
        self.assertEqual(restored, answer)
        self.assertEqual(restored.vuln_num, "V-1")


if __name__ == "__main__":
    unittest.main()
