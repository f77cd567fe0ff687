"""
Pytest configuration and shared fixtures for STIG Checklist tests.

This module provides:
- XCCDF / CCI list document builders
- A repository seeded with a small CCI catalog
- A recording progress sink
- Temporary file/directory management
"""

import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import Dict, Generator, Iterable, Optional, Sequence
from xml.sax.saxutils import escape

import pytest

from stig_checklist.models import Cci
from stig_checklist.processor.worker import Progress
from stig_checklist.repository import MemoryRepository


# ============================================================================
# Document Builders
# ============================================================================

XCCDF_NS = "http://checklists.nist.gov/xccdf/1.1"

DEFAULT_DISCUSSION = (
    "<VulnDiscussion>Discussion for {vuln}</VulnDiscussion>"
    "<FalsePositives></FalsePositives><FalseNegatives></FalseNegatives>"
    "<Documentable>false</Documentable><Mitigations></Mitigations>"
    "<SeverityOverrideGuidance></SeverityOverrideGuidance>"
    "<PotentialImpacts></PotentialImpacts><ThirdPartyTools></ThirdPartyTools>"
    "<MitigationControl></MitigationControl><Responsibility></Responsibility>"
)


def rule_xml(
    vuln: str,
    rule: Optional[str] = None,
    severity: str = "medium",
    weight: str = "10.0",
    title: Optional[str] = None,
    discussion: Optional[str] = None,
    ccis: Sequence[str] = ("CCI-000366",),
    legacy: Sequence[str] = (),
) -> str:
    """One ``Group`` holding one ``Rule``."""
    number = vuln.split("-", 1)[1]
    rule = rule or f"SV-{number}r1_rule"
    title = title or f"Rule {vuln}"
    discussion = DEFAULT_DISCUSSION.format(vuln=vuln) if discussion is None else discussion
    idents = "".join(f'<ident system="http://cyber.mil/cci">{c}</ident>' for c in ccis)
    idents += "".join(f'<ident system="http://cyber.mil/legacy">{l}</ident>' for l in legacy)
    return f"""
  <Group id="{vuln}">
    <title>SRG-OS-{number}</title>
    <description>&lt;GroupDescription&gt;&lt;/GroupDescription&gt;</description>
    <Rule id="{rule}" weight="{weight}" severity="{severity}">
      <version>OS-{number}</version>
      <title>{escape(title)}</title>
      <description>{escape(discussion)}</description>
      <reference>
        <dc:title xmlns:dc="http://purl.org/dc/elements/1.1/">DPMS Target</dc:title>
        <dc:identifier xmlns:dc="http://purl.org/dc/elements/1.1/">2921</dc:identifier>
      </reference>
      {idents}
      <fixtext fixref="F-{number}r1_fix">Fix {vuln}.</fixtext>
      <fix id="F-{number}r1_fix" />
      <check system="C-{number}r1_chk">
        <check-content-ref name="M" href="DPMS_XCCDF_Benchmark.xml" />
        <check-content>Check {vuln}.</check-content>
      </check>
    </Rule>
  </Group>"""


def xccdf_xml(
    groups: Iterable[str],
    title: str = "Sample Operating System STIG",
    version: int = 1,
    release: str = "Release: 1 Benchmark Date: 26 Jul 2023",
    benchmark_id: str = "Sample_OS_STIG",
) -> bytes:
    """Full benchmark document around the given group fragments."""
    body = "".join(groups)
    return f"""<?xml version="1.0" encoding="utf-8"?>
<Benchmark xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance" id="{benchmark_id}" xml:lang="en" xmlns="{XCCDF_NS}">
  <status date="2023-07-26">accepted</status>
  <title>{escape(title)}</title>
  <description>This Security Technical Implementation Guide is published as a tool.</description>
  <notice id="terms-of-use" xml:lang="en"></notice>
  <reference href="https://cyber.mil"><dc:publisher xmlns:dc="http://purl.org/dc/elements/1.1/">DISA</dc:publisher></reference>
  <plain-text id="release-info">{release}</plain-text>
  <plain-text id="generator">3.4.0.34222</plain-text>
  <version>{version}</version>
  <Profile id="MAC-1_Classified">
    <title>I - Mission Critical Classified</title>
    <description>&lt;ProfileDescription&gt;&lt;/ProfileDescription&gt;</description>
    <select idref="V-1" selected="true" />
  </Profile>{body}
</Benchmark>
""".encode("utf-8")


def sample_xccdf(vulns: Sequence[str] = ("V-1", "V-2", "V-3"), **kwargs) -> bytes:
    return xccdf_xml([rule_xml(v) for v in vulns], **kwargs)


def cci_list_xml(items: Dict[str, str]) -> bytes:
    """CCI list with one item per ``{"CCI-000366": "CM-6 b"}`` entry."""
    body = ""
    for cci, index in items.items():
        body += f"""
    <cci_item id="{cci}">
      <status>draft</status>
      <definition>Definition of {cci}.</definition>
      <type>policy</type>
      <references>
        <reference creator="NIST" title="NIST SP 800-53" version="3" location="x" index="{index}" />
        <reference creator="NIST" title="NIST SP 800-53 Revision 4" version="4" location="x" index="{index}" />
      </references>
    </cci_item>"""
    return f"""<?xml version="1.0" encoding="utf-8"?>
<cci_list xmlns="http://iase.disa.mil/cci">
  <metadata><version>2022-04-05</version></metadata>
  <cci_items>{body}
  </cci_items>
</cci_list>
""".encode("utf-8")


def write_zip(path: Path, members: Dict[str, bytes]) -> Path:
    with zipfile.ZipFile(path, "w") as archive:
        for name, data in members.items():
            archive.writestr(name, data)
    return path


def seeded_repo(path: Optional[Path] = None) -> MemoryRepository:
    """Repository holding a small imported CCI catalog."""
    repo = MemoryRepository(path)
    for number, control in ((366, "CM-6 b"), (1499, "CM-5 (6)"), (2235, "AC-6 (10)")):
        repo.add_cci(Cci(number=number, definition=f"Definition {number}", control=control, is_import=True))
    return repo


class Recorder:
    """Collects every progress signal in order."""

    def __init__(self):
        self.events = []

    def progress(self) -> Progress:
        return Progress(
            initialize=lambda total, start: self.events.append(("initialize", total, start)),
            progress=lambda n: self.events.append(("progress", n)),
            update_status=lambda text: self.events.append(("status", text)),
            finished=lambda: self.events.append(("finished",)),
        )

    @property
    def statuses(self):
        return [e[1] for e in self.events if e[0] == "status"]


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Cleanup:
        Automatically removes directory after test
    """
    tmp = Path(tempfile.mkdtemp(prefix="stig_test_"))
    try:
        yield tmp
    finally:
        if tmp.exists():
            shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def sample_xccdf_content() -> bytes:
    """Three-rule benchmark document."""
    return sample_xccdf()


@pytest.fixture
def repo() -> MemoryRepository:
    """Unpersisted repository with the seeded CCI catalog."""
    return seeded_repo()


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
