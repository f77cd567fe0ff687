"""Vulnerability discussion sub-document reader.

DISA ships a rule's ``description`` as escaped text that itself looks like
XML::

    <VulnDiscussion>Passwords &amp; keys ... <b>must</b> ...</VulnDiscussion>
    <FalsePositives></FalsePositives><Documentable>false</Documentable>

The text mixes a fixed set of structural tags with arbitrary HTML-ish
fragments that are not well formed. The reader escapes the whole block,
then re-opens only the known tag pairs with a small tokenizer that checks
each pair is properly opened and closed. Everything else stays character
data, so ``<Foo>`` or ``<b>`` survive verbatim inside the field text.
"""

from __future__ import annotations
import re
import xml.etree.ElementTree as ET
from typing import Dict, List
from xml.sax.saxutils import escape

from stig_checklist.core.logging import LOG
from stig_checklist.xml.sanitizer import San

DISCUSSION_TAGS = (
    "VulnDiscussion",
    "FalsePositives",
    "FalseNegatives",
    "Documentable",
    "Mitigations",
    "SeverityOverrideGuidance",
    "PotentialImpacts",
    "ThirdPartyTools",
    "MitigationControl",
    "Responsibility",
)

WRAPPER = "VulnDescription"

# Escaped form of <Tag>, </Tag> or <Tag/> for the known tags only
_TOKEN = re.compile(
    r"&lt;(?P<close>/)?(?P<name>%s)\s*(?P<empty>/)?&gt;" % "|".join(DISCUSSION_TAGS)
)


def reopen_tags(escaped: str) -> str:
    """Turn escaped known-tag pairs back into markup.

    Tags are flat siblings. A closing tag is only honoured when it matches
    the most recent unclosed opening tag; unmatched tokens are left escaped.
    """
    pieces: List[str] = []
    pending_open = -1
    open_name = ""
    pos = 0

    for match in _TOKEN.finditer(escaped):
        pieces.append(escaped[pos:match.start()])
        pos = match.end()
        name = match.group("name")

        if match.group("empty") and not match.group("close"):
            pieces.append(f"<{name}/>" if pending_open < 0 else match.group(0))
        elif match.group("close"):
            if pending_open >= 0 and name == open_name:
                pieces[pending_open] = f"<{name}>"
                pieces.append(f"</{name}>")
                pending_open = -1
            else:
                pieces.append(match.group(0))
        elif pending_open >= 0 and name == open_name:
            pieces.append(match.group(0))
        else:
            # A different tag opening abandons an unclosed one
            pending_open = len(pieces)
            open_name = name
            pieces.append(match.group(0))

    pieces.append(escaped[pos:])
    return "".join(pieces)


def parse_discussion(raw: str) -> Dict[str, str]:
    """Split a rule description into its named fields.

    Returns a mapping of tag name to stripped text for every known tag present.
    Text outside any known tag is ignored. When the block cannot be read at
    all the whole text is returned as the VulnDiscussion field.
    """
    if not raw:
        return {}

    body = reopen_tags(escape(San.text(raw)))
    try:
        root = ET.fromstring(f"<{WRAPPER}>{body}</{WRAPPER}>")
    except ET.ParseError as exc:
        LOG.d(f"Discussion block unreadable, keeping raw text: {exc}")
        return {"VulnDiscussion": raw.strip()}

    fields: Dict[str, str] = {}
    for child in root:
        if child.tag in DISCUSSION_TAGS and child.tag not in fields:
            fields[child.tag] = "".join(child.itertext()).strip()
    return fields
