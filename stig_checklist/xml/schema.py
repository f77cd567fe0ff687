"""
STIG Checklist XML Schema Definitions.

Element names, fixed field orders and literal values for the three XML
dialects the package touches:

- XCCDF benchmarks (read)
- CKL checklists (written and read back)
- CMRS finding imports (written)

Field order tuples are part of the output format; downstream consumers
compare files byte for byte, so entries must never be reordered.
"""

from __future__ import annotations
from typing import Dict, Tuple

from stig_checklist.core.constants import APP_NAME, VERSION


class Sch:
    """Names and fixed orders; read-only."""

    # Generator comment written at the top of CKL and CMRS output
    COMMENT = f"{APP_NAME} :: {VERSION}"

    # ------------------------------------------------------------------ CKL
    ROOT = "CHECKLIST"

    ASSET: Tuple[str, ...] = (
        "ROLE", "ASSET_TYPE", "MARKING",
        "HOST_NAME", "HOST_IP", "HOST_MAC", "HOST_FQDN",
        "TECH_AREA", "TARGET_KEY", "TARGET_COMMENT",
        "WEB_OR_DATABASE", "WEB_DB_SITE", "WEB_DB_INSTANCE",
    )

    # STIG_INFO order; "customname" is written with no SID_DATA
    STIG: Tuple[str, ...] = (
        "version", "classification", "customname", "stigid", "description", "filename",
        "releaseinfo", "title", "uuid", "notice", "source",
    )

    VULN: Tuple[str, ...] = (
        # identity
        "Vuln_Num", "Severity", "Group_Title", "Rule_ID", "Rule_Ver", "Rule_Title",
        # guidance
        "Vuln_Discuss", "IA_Controls", "Check_Content", "Fix_Text",
        "False_Positives", "False_Negatives", "Documentable", "Mitigations",
        "Potential_Impact", "Third_Party_Tools", "Mitigation_Control", "Responsibility",
        "Security_Override_Guidance", "Check_Content_Ref",
        # bookkeeping
        "Weight", "Class", "STIGRef", "TargetKey",
    )

    # Repeated per control identifier / legacy id after the fixed fields
    CCI_REF = "CCI_REF"
    LEGACY_ID = "LEGACY_ID"

    # Answer elements following the STIG_DATA block of each VULN
    STATUS: Tuple[str, ...] = (
        "STATUS", "FINDING_DETAILS", "COMMENTS", "SEVERITY_OVERRIDE", "SEVERITY_JUSTIFICATION",
    )

    STIGS = "STIGS"
    ISTIG = "iSTIG"
    STIG_INFO = "STIG_INFO"
    VULN_ELEM = "VULN"
    STIG_DATA = "STIG_DATA"
    VULN_ATTRIBUTE = "VULN_ATTRIBUTE"
    ATTRIBUTE_DATA = "ATTRIBUTE_DATA"
    SI_DATA = "SI_DATA"
    SID_NAME = "SID_NAME"
    SID_DATA = "SID_DATA"

    # Literal values written into every checklist
    DEFS: Dict[str, str] = {
        "ROLE": "None",
        "classification": "UNCLASSIFIED",
        "notice": "terms-of-use",
        "source": "STIG.DOD.MIL",
        "Class": "Unclass",
    }

    # ----------------------------------------------------------------- CMRS
    CMRS_ROOT = "IMPORT_FILE"
    CMRS_NS = "urn:FindingImport"
    CMRS_ELEMENT_KEY = "0"
    CMRS_ASSET_IDS: Tuple[str, ...] = ("ASSET NAME", "MAC ADDRESS", "IP ADDRESS", "FQDN", "TechArea")

    # ---------------------------------------------------------------- XCCDF
    XCCDF_BENCHMARK = "Benchmark"
    XCCDF_PROFILE = "Profile"
    XCCDF_GROUP = "Group"
    XCCDF_RULE = "Rule"
    XCCDF_VERSION = "version"
    XCCDF_TITLE = "title"
    XCCDF_DESCRIPTION = "description"
    XCCDF_PLAIN_TEXT = "plain-text"
    XCCDF_REFERENCE = "reference"
    XCCDF_IDENTIFIER = "identifier"
    XCCDF_IDENT = "ident"
    XCCDF_FIXTEXT = "fixtext"
    XCCDF_CHECK_CONTENT = "check-content"
    XCCDF_CHECK_CONTENT_REF = "check-content-ref"
    RELEASE_INFO_ID = "release-info"

    @staticmethod
    def strip_ns(tag: str) -> str:
        """Local name of a Clark-notation tag ('{ns}Rule' -> 'Rule')."""
        return tag.rpartition("}")[2]
