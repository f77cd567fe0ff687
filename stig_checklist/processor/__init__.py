"""Ingestion, upgrade and export operations over a repository."""

from stig_checklist.processor.cci_import import CciCatalogImporter
from stig_checklist.processor.ckl import ChecklistExporter
from stig_checklist.processor.ckl_import import ChecklistImporter
from stig_checklist.processor.cmrs import ComplianceExporter
from stig_checklist.processor.ingest import StigImporter
from stig_checklist.processor.resolver import CciResolver
from stig_checklist.processor.upgrader import ChecklistUpgrader, UpgradeResult
from stig_checklist.processor.worker import Progress, Worker

__all__ = [
    "CciCatalogImporter",
    "CciResolver",
    "ChecklistExporter",
    "ChecklistImporter",
    "ChecklistUpgrader",
    "ComplianceExporter",
    "Progress",
    "StigImporter",
    "UpgradeResult",
    "Worker",
]
