"""
Asset and checklist answer records.

An Asset is a target system. Mapping a Stig to an Asset creates one
CklCheck per StigCheck; the CklCheck carries the user's answer and only
references the StigCheck it answers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from stig_checklist.core.constants import Severity, Status
from stig_checklist.models.stig import StigCheck


@dataclass
class Asset:
    """Target system, keyed by host name."""

    id: int = -1
    host_name: str = ""
    host_ip: str = ""
    host_mac: str = ""
    host_fqdn: str = ""
    asset_type: str = "Computing"
    tech_area: str = ""
    target_key: str = ""
    marking: str = "CUI"
    target_comment: str = ""
    web_or_db: bool = False
    web_db_site: str = ""
    web_db_instance: str = ""

    @property
    def display_name(self) -> str:
        return self.host_name

    def as_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Asset":
        asset = cls()
        for name, default in asset.__dict__.items():
            if name in data:
                value = data[name]
                if isinstance(default, bool):
                    value = bool(value)
                elif isinstance(default, int):
                    value = int(value)
                else:
                    value = str(value)
                setattr(asset, name, value)
        return asset


@dataclass
class CklCheck:
    """
    User answer for one StigCheck on one Asset.

    Attributes:
        id: Repository id
        asset_id: Owning asset
        stig_check: The rule being answered (referenced, not owned)
        status: Finding status
        finding_details: Free-text evidence
        comments: Reviewer comments
        severity_override: Reviewer severity, NONE when not overridden
        severity_justification: Reason for the override
    """

    id: int = -1
    asset_id: int = -1
    stig_check: Optional[StigCheck] = field(default=None, compare=False, repr=False)
    status: Status = Status.NOT_REVIEWED
    finding_details: str = ""
    comments: str = ""
    severity_override: Severity = Severity.NONE
    severity_justification: str = ""

    @property
    def vuln_num(self) -> str:
        return self.stig_check.vuln_num if self.stig_check else ""

    @property
    def effective_severity(self) -> Severity:
        """Override when set, else the rule's own severity."""
        if self.severity_override is not Severity.NONE:
            return self.severity_override
        return self.stig_check.severity if self.stig_check else Severity.NONE

    def copy_answer(self, other: "CklCheck") -> None:
        """Take over the user-entered fields of another check."""
        self.status = other.status
        self.finding_details = other.finding_details
        self.comments = other.comments
        self.severity_override = other.severity_override
        self.severity_justification = other.severity_justification

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "asset_id": self.asset_id,
            "stig_check_id": self.stig_check.id if self.stig_check else -1,
            "status": self.status.value,
            "finding_details": self.finding_details,
            "comments": self.comments,
            "severity_override": self.severity_override.value,
            "severity_justification": self.severity_justification,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], stig_check: Optional[StigCheck] = None) -> "CklCheck":
        """Rebuild from a snapshot; the caller resolves ``stig_check_id``."""
        return cls(
            id=int(data.get("id", -1)),
            asset_id=int(data.get("asset_id", -1)),
            stig_check=stig_check,
            status=Status.parse(data.get("status", "")),
            finding_details=str(data.get("finding_details", "")),
            comments=str(data.get("comments", "")),
            severity_override=Severity.parse(data.get("severity_override", "")),
            severity_justification=str(data.get("severity_justification", "")),
        )
