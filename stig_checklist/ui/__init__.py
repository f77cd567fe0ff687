"""User interface modules."""

from stig_checklist.ui.cli import main

__all__ = ["main"]
