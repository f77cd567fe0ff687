"""
Unit tests for file operations module.

Tests cover:
- Atomic writes (text, binary, rollback, backups)
- Encoding detection on read
- Archive extraction
- Retry decorator
"""

import shutil
import tempfile
import unittest
import zipfile
from pathlib import Path
from unittest.mock import patch

from stig_checklist.core.config import Cfg
from stig_checklist.exceptions import FileError
from stig_checklist.io.file_ops import FO, retry


class TestAtomicWrite(unittest.TestCase):
    """Test suite for FO.atomic."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp(prefix="test_fo_"))
        self.backups = self.temp_dir / "backups"
        self.backups.mkdir()
        self.patcher = patch.object(Cfg, "BACKUP_DIR", self.backups)
        self.patcher.start()

    def tearDown(self):
        self.patcher.stop()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _leftovers(self):
        return list(self.temp_dir.glob(".stig_tmp_*"))

    def test_binary_write(self):
        target = self.temp_dir / "out.ckl"
        with FO.atomic(target) as fh:
            fh.write(b"<CHECKLIST/>")
        self.assertEqual(target.read_bytes(), b"<CHECKLIST/>")
        self.assertEqual(self._leftovers(), [])

    def test_text_write_creates_parents(self):
        target = self.temp_dir / "a" / "b" / "repository.json"
        with FO.atomic(target, mode="w") as fh:
            fh.write("{}")
        self.assertEqual(target.read_text(encoding="utf-8"), "{}")

    def test_caller_error_propagates_unchanged(self):
        target = self.temp_dir / "out.ckl"
        target.write_bytes(b"original")
        with self.assertRaises(ValueError) as ctx:
            with FO.atomic(target) as fh:
                fh.write(b"partial")
                raise ValueError("boom")
        self.assertNotIsInstance(ctx.exception, FileError)
        self.assertEqual(str(ctx.exception), "boom")
        self.assertEqual(target.read_bytes(), b"original")
        self.assertEqual(self._leftovers(), [])

    def test_os_error_in_block_becomes_file_error(self):
        target = self.temp_dir / "out.ckl"
        target.write_bytes(b"original")
        with self.assertRaises(FileError) as ctx:
            with FO.atomic(target) as fh:
                fh.write(b"partial")
                raise OSError(28, "No space left on device")
        self.assertIsInstance(ctx.exception.__cause__, OSError)
        self.assertEqual(target.read_bytes(), b"original")
        self.assertEqual(self._leftovers(), [])

    def test_caller_file_error_not_rewrapped(self):
        target = self.temp_dir / "out.ckl"
        error = FileError("already reported")
        with self.assertRaises(FileError) as ctx:
            with FO.atomic(target):
                raise error
        self.assertIs(ctx.exception, error)
        self.assertFalse(target.exists())
        self.assertEqual(self._leftovers(), [])

    def test_backup_kept(self):
        target = self.temp_dir / "repository.json"
        target.write_text("old", encoding="utf-8")
        with FO.atomic(target, mode="w", bak=True) as fh:
            fh.write("new")
        self.assertEqual(target.read_text(encoding="utf-8"), "new")
        backups = list(self.backups.glob("repository_*.json.bak"))
        self.assertEqual(len(backups), 1)
        self.assertEqual(backups[0].read_text(encoding="utf-8"), "old")

    def test_backups_pruned(self):
        target = self.temp_dir / "repository.json"
        with patch.object(Cfg, "KEEP_BACKUPS", 2):
            for i in range(4):
                target.write_text(str(i), encoding="utf-8")
                with FO.atomic(target, mode="w", bak=True) as fh:
                    fh.write("x")
        self.assertEqual(len(list(self.backups.glob("repository_*.bak"))), 2)

    def test_parent_is_a_file(self):
        blocker = self.temp_dir / "blocker"
        blocker.write_text("x", encoding="utf-8")
        with self.assertRaises(FileError):
            with FO.atomic(blocker / "out.ckl") as fh:
                fh.write(b"data")


class TestRead(unittest.TestCase):
    """Test suite for FO.read and FO.read_bytes."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp(prefix="test_read_"))

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_utf8(self):
        path = self.temp_dir / "a.txt"
        path.write_text("Überprüfung", encoding="utf-8")
        self.assertEqual(FO.read(path), "Überprüfung")

    def test_bom_stripped(self):
        path = self.temp_dir / "bom.txt"
        path.write_bytes(b"\xef\xbb\xbfhello")
        self.assertEqual(FO.read(path), "hello")

    def test_latin1_fallback(self):
        path = self.temp_dir / "latin.txt"
        path.write_bytes("cafés".encode("latin-1"))
        self.assertEqual(FO.read(path), "cafés")

    def test_missing_file(self):
        with self.assertRaises(FileError):
            FO.read(self.temp_dir / "missing.txt")
        with self.assertRaises(FileError):
            FO.read_bytes(self.temp_dir / "missing.xml")

    def test_read_bytes(self):
        path = self.temp_dir / "b.xml"
        path.write_bytes(b"<Benchmark/>")
        self.assertEqual(FO.read_bytes(path), b"<Benchmark/>")


class TestExtractArchive(unittest.TestCase):
    """Test suite for FO.extract_archive."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp(prefix="test_zip_"))
        self.archive = self.temp_dir / "U_Sample_V1R1_STIG.zip"
        with zipfile.ZipFile(self.archive, "w") as zf:
            zf.writestr("U_Sample_V1R1_STIG/", "")
            zf.writestr("U_Sample_V1R1_STIG/U_Sample_V1R1_Manual-xccdf.xml", "<Benchmark/>")
            zf.writestr("U_Sample_V1R1_STIG/U_Sample_Overview.pdf", b"%PDF")
            zf.writestr("U_Sample_V1R1_STIG/STIG_unclass.XML", "<x/>")

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_all_members_in_order(self):
        members = FO.extract_archive(self.archive)
        self.assertEqual(
            list(members),
            [
                "U_Sample_V1R1_STIG/U_Sample_V1R1_Manual-xccdf.xml",
                "U_Sample_V1R1_STIG/U_Sample_Overview.pdf",
                "U_Sample_V1R1_STIG/STIG_unclass.XML",
            ],
        )
        self.assertEqual(members["U_Sample_V1R1_STIG/U_Sample_Overview.pdf"], b"%PDF")

    def test_suffix_filter_is_case_insensitive(self):
        members = FO.extract_archive(self.archive, ".xml")
        self.assertEqual(len(members), 2)
        self.assertTrue(all(name.lower().endswith(".xml") for name in members))

    def test_oversized_member_skipped(self):
        with patch.object(Cfg, "MAX_ARCHIVE_MEMBER", 5):
            members = FO.extract_archive(self.archive)
        self.assertEqual(list(members), ["U_Sample_V1R1_STIG/U_Sample_Overview.pdf", "U_Sample_V1R1_STIG/STIG_unclass.XML"])

    def test_not_a_zip(self):
        bogus = self.temp_dir / "bogus.zip"
        bogus.write_text("not a zip", encoding="utf-8")
        with self.assertRaises(FileError):
            FO.extract_archive(bogus)


class TestRetry(unittest.TestCase):
    """Test suite for the retry decorator."""

    def test_succeeds_after_failures(self):
        calls = []

        @retry(attempts=3, delay=0)
        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise OSError("busy")
            return "done"

        self.assertEqual(flaky(), "done")
        self.assertEqual(len(calls), 3)

    def test_reraises_last_error(self):
        @retry(attempts=2, delay=0)
        def always():
            raise OSError("still busy")

        with self.assertRaises(OSError):
            always()

    def test_other_exceptions_not_retried(self):
        calls = []

        @retry(attempts=3, delay=0)
        def bad():
            calls.append(1)
            raise ValueError("no")

        with self.assertRaises(ValueError):
            bad()
        self.assertEqual(len(calls), 1)


if __name__ == "__main__":
    unittest.main()
