"""Tests for logging module."""

import threading
import unittest

from stig_checklist.core.logging import LOG, Log


class TestLog(unittest.TestCase):
    """Test logging system."""

    def tearDown(self):
        LOG.clear()

    def test_singleton_per_name(self):
        """Verify singleton behavior per logger name."""
        self.assertIs(Log("stig_checklist"), LOG)
        self.assertIsNot(Log("stig_checklist.other"), LOG)

    def test_context_prefixes_messages(self):
        """ctx() values are prefixed to every message until clear()."""
        LOG.ctx(op="export_all", dir="out")
        with self.assertLogs("stig_checklist", level="INFO") as captured:
            LOG.i("Wrote checklist")
        self.assertIn("[op=export_all, dir=out] Wrote checklist", captured.output[0])

        LOG.clear()
        with self.assertLogs("stig_checklist", level="INFO") as captured:
            LOG.i("No context")
        self.assertTrue(captured.output[0].endswith(":No context"))

    def test_context_is_per_thread(self):
        """A context set on one thread does not leak into another."""
        LOG.ctx(op="import_stig")
        seen = []

        def worker():
            seen.append(LOG.prefix())

        thread = threading.Thread(target=worker)
        thread.start()
        thread.join()
        self.assertEqual(seen, [""])
        self.assertEqual(LOG.prefix(), "[op=import_stig] ")

    def test_scope_restores_outer_context(self):
        """A nested scope adds pairs and puts the outer ones back on exit."""
        with LOG.scope(op="export_all"):
            with LOG.scope(file="web01.ckl"):
                self.assertEqual(LOG.context, {"op": "export_all", "file": "web01.ckl"})
            self.assertEqual(LOG.prefix(), "[op=export_all] ")
        self.assertEqual(LOG.context, {})

    def test_scope_restores_on_error(self):
        with self.assertRaises(ValueError):
            with LOG.scope(op="import_stig"):
                raise ValueError("bad archive")
        self.assertEqual(LOG.prefix(), "")

    def test_logging_methods(self):
        """Short and long method names reach the same logger."""
        with self.assertLogs("stig_checklist", level="DEBUG") as captured:
            LOG.d("debug")
            LOG.w("warning")
            LOG.warning("warning again")
            LOG.e("error")
        levels = [line.split(":", 1)[0] for line in captured.output]
        self.assertEqual(levels, ["DEBUG", "WARNING", "WARNING", "ERROR"])


if __name__ == "__main__":
    unittest.main()
