"""
STIG benchmark records.

Stig is the benchmark header, StigCheck one rule of it, Supplement an extra
file shipped in the same archive. A Stig owns its checks; the repository
assigns every id.
"""

from __future__ import annotations

import base64
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from stig_checklist.core.constants import Severity

_RELEASE = re.compile(r"Release:\s*(\d+)", re.I)
_BENCHMARK_DATE = re.compile(r"Benchmark Date:\s*(.+?)\s*$", re.I)


@dataclass
class Stig:
    """
    Benchmark header.

    Attributes:
        id: Repository id, -1 until persisted
        title: Benchmark title; equal titles form one lineage
        description: Benchmark description
        release: Free text such as "Release: 5 Benchmark Date: 26 Jul 2023"
        version: Benchmark version number
        benchmark_id: Benchmark@id, stable across versions of the same STIG
        file_name: Base name of the XCCDF document
    """

    id: int = -1
    title: str = ""
    description: str = ""
    release: str = ""
    version: int = 0
    benchmark_id: str = ""
    file_name: str = ""

    @property
    def release_number(self) -> int:
        """Integer after "Release:", 0 when absent."""
        match = _RELEASE.search(self.release or "")
        return int(match.group(1)) if match else 0

    @property
    def benchmark_date(self) -> str:
        match = _BENCHMARK_DATE.search(self.release or "")
        return match.group(1) if match else ""

    @property
    def display_name(self) -> str:
        return f"{self.title} Version: {self.version} {self.release}"

    def same_as(self, other: "Stig") -> bool:
        """Identity check: by id once both are persisted, else by content."""
        if self.id > 0 and other.id > 0:
            return self.id == other.id
        return (self.title, self.version, self.release) == (other.title, other.version, other.release)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "release": self.release,
            "version": self.version,
            "benchmark_id": self.benchmark_id,
            "file_name": self.file_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Stig":
        return cls(
            id=int(data.get("id", -1)),
            title=str(data.get("title", "")),
            description=str(data.get("description", "")),
            release=str(data.get("release", "")),
            version=int(data.get("version", 0)),
            benchmark_id=str(data.get("benchmark_id", "")),
            file_name=str(data.get("file_name", "")),
        )


@dataclass
class StigCheck:
    """
    One rule of a benchmark.

    ``vuln_num`` is the business key within a Stig and is what upgrades
    match on. ``cci_ids`` holds repository Cci ids; ``legacy_ids`` holds
    legacy identifiers verbatim. Both keep first-seen order without
    duplicates.
    """

    id: int = -1
    stig_id: int = -1
    vuln_num: str = ""
    rule: str = ""
    rule_version: str = ""
    group_title: str = ""
    title: str = ""
    severity: Severity = Severity.NONE
    weight: float = 10.0
    vuln_discussion: str = ""
    false_positives: str = ""
    false_negatives: str = ""
    documentable: bool = False
    mitigations: str = ""
    severity_override_guidance: str = ""
    potential_impact: str = ""
    third_party_tools: str = ""
    mitigation_control: str = ""
    responsibility: str = ""
    check_content_ref: str = ""
    check: str = ""
    fix: str = ""
    target_key: str = ""
    ia_controls: str = ""
    cci_ids: List[int] = field(default_factory=list)
    legacy_ids: List[str] = field(default_factory=list)
    is_remap: bool = False

    def add_cci(self, cci_id: int) -> None:
        if cci_id not in self.cci_ids:
            self.cci_ids.append(cci_id)

    def add_legacy_id(self, legacy_id: str) -> None:
        if legacy_id and legacy_id not in self.legacy_ids:
            self.legacy_ids.append(legacy_id)

    def merge(self, other: "StigCheck") -> None:
        """Fold another fragment of the same rule into this one.

        Empty text fields are filled from ``other``; identifier sets are
        unioned.
        """
        for name, value in other.__dict__.items():
            if isinstance(value, str) and value and not getattr(self, name):
                setattr(self, name, value)
        if self.severity is Severity.NONE:
            self.severity = other.severity
        self.documentable = self.documentable or other.documentable
        for cci_id in other.cci_ids:
            self.add_cci(cci_id)
        for legacy_id in other.legacy_ids:
            self.add_legacy_id(legacy_id)

    def as_dict(self) -> Dict[str, Any]:
        data = dict(self.__dict__)
        data["severity"] = self.severity.value
        data["cci_ids"] = list(self.cci_ids)
        data["legacy_ids"] = list(self.legacy_ids)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StigCheck":
        check = cls()
        for name, default in check.__dict__.items():
            if name not in data:
                continue
            value = data[name]
            if name == "severity":
                value = Severity.parse(value)
            elif name in ("cci_ids", "legacy_ids"):
                value = list(value)
            elif isinstance(default, bool):
                value = bool(value)
            elif isinstance(default, int):
                value = int(value)
            elif isinstance(default, float):
                value = float(value)
            else:
                value = str(value)
            setattr(check, name, value)
        return check


@dataclass
class Supplement:
    """Supplementary file from a benchmark archive, keyed by its path."""

    path: str
    contents: bytes = b""
    stig_id: int = -1
    id: int = -1

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "stig_id": self.stig_id,
            "path": self.path,
            "contents": base64.b64encode(self.contents).decode("ascii"),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Supplement":
        raw: Optional[str] = data.get("contents")
        return cls(
            path=str(data.get("path", "")),
            contents=base64.b64decode(raw) if raw else b"",
            stig_id=int(data.get("stig_id", -1)),
            id=int(data.get("id", -1)),
        )
