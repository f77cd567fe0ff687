"""DISA CCI list reader (U_CCI_List.xml)."""

from __future__ import annotations

import re
from typing import List, Optional

from stig_checklist.core.deps import Deps
from stig_checklist.core.logging import LOG
from stig_checklist.exceptions import ParseError, ValidationError
from stig_checklist.models import Cci
from stig_checklist.xml.sanitizer import San
from stig_checklist.xml.schema import Sch

# NIST SP 800-53 revisions whose references name the control, in preference order
PREFERRED_REVISIONS = ("4", "5")

_ENHANCEMENT = re.compile(r"\(\d+\)")


def control_from_index(index: str) -> str:
    """Reduce a NIST reference index to its control.

    >>> control_from_index("CM-6 b")
    'CM-6'
    >>> control_from_index("AC-2 (4)")
    'AC-2 (4)'
    >>> control_from_index("AU-9.1")
    'AU-9'
    """
    index = (index or "").strip()
    if not index:
        return ""
    words = index.split()
    control = words[0].split(".", 1)[0]
    # An enhancement only counts when it directly follows the base control
    if len(words) > 1 and _ENHANCEMENT.fullmatch(words[1]):
        control = f"{control} {words[1]}"
    return control


def parse_cci_list(data: bytes) -> List[Cci]:
    """Read every ``cci_item`` of a CCI list document.

    Raises:
        ParseError: If the document is not well-formed XML
    """
    ET, XMLParseError = Deps.get_xml()
    try:
        root = ET.fromstring(data)
    except (XMLParseError, ValueError) as exc:
        raise ParseError(f"CCI list is not valid XML: {exc}") from exc

    ccis: List[Cci] = []
    for item in root.iter():
        if Sch.strip_ns(item.tag) != "cci_item":
            continue
        try:
            number = San.cci_number(item.get("id", ""))
        except ValidationError as exc:
            LOG.d(f"Skipping CCI item: {exc}")
            continue

        definition = ""
        controls = {}
        for child in item.iter():
            name = Sch.strip_ns(child.tag)
            if name == "definition":
                definition = (child.text or "").strip()
            elif name == "reference":
                version = child.get("version", "")
                if version in PREFERRED_REVISIONS and version not in controls:
                    controls[version] = control_from_index(child.get("index", ""))

        control: Optional[str] = next(
            (controls[rev] for rev in PREFERRED_REVISIONS if controls.get(rev)), ""
        )
        ccis.append(Cci(number=number, definition=definition, control=control, is_import=True))

    LOG.d(f"Read {len(ccis)} CCI item(s)")
    return ccis
