"""
STIG Checklist XML Utility Functions.

Small helpers shared by the CKL/CMRS writers and the CKL reader.
"""

from __future__ import annotations
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional, Tuple

from stig_checklist.xml.sanitizer import San
from stig_checklist.xml.schema import Sch


class XmlUtils:
    """
    Shared XML processing utilities.

    Thread-safe: Yes (stateless utility class)
    """

    @staticmethod
    def indent_xml(elem: ET.Element, level: int = 0) -> None:
        """
        Recursively indent an element tree with tabs, in place.

        Leaf text is never touched, so finding details and discussion text
        are written exactly as stored.
        """
        indent = "\n" + "\t" * level
        if len(elem):
            if not elem.text or not elem.text.strip():
                elem.text = indent + "\t"
            for i, child in enumerate(elem):
                XmlUtils.indent_xml(child, level + 1)
                if not child.tail or not child.tail.strip():
                    # Last child gets dedented, others get full indent
                    child.tail = indent if i == len(elem) - 1 else indent + "\t"
        else:
            if level and (not elem.tail or not elem.tail.strip()):
                elem.tail = indent

    @staticmethod
    def leaf(parent: ET.Element, tag: str, text: str = "", attrib: Optional[Dict[str, str]] = None) -> ET.Element:
        """Append a child element holding sanitized text."""
        node = ET.SubElement(parent, tag, attrib or {})
        node.text = San.text(text)
        return node

    @staticmethod
    def pair(parent: ET.Element, tag: str, name_tag: str, name: str, data_tag: str, data: Optional[str]) -> ET.Element:
        """Append a name/value pair such as STIG_DATA or SI_DATA.

        A value of None omits the data element entirely.
        """
        node = ET.SubElement(parent, tag)
        XmlUtils.leaf(node, name_tag, name)
        if data is not None:
            XmlUtils.leaf(node, data_tag, data)
        return node

    @staticmethod
    def tostring(root: ET.Element) -> str:
        """Serialize with explicit end tags (``<X></X>``) for empty elements.

        Carriage returns in character data are written as ``&#13;``; a raw CR
        would be folded into LF by any reader. Attribute values are already
        escaped by ElementTree.
        """
        text = ET.tostring(root, encoding="unicode", method="xml", short_empty_elements=False)
        return text.replace("\r", "&#13;")

    @staticmethod
    def document(root: ET.Element) -> bytes:
        """Full document bytes: declaration, generator comment, indented tree."""
        XmlUtils.indent_xml(root)
        parts = [
            '<?xml version="1.0" encoding="UTF-8"?>\n',
            f"<!--{Sch.COMMENT}-->\n",
            XmlUtils.tostring(root),
            "\n",
        ]
        return "".join(parts).encode("utf-8")

    @staticmethod
    def element_text(elem: Optional[ET.Element]) -> str:
        """All character data under an element, concatenated."""
        if elem is None:
            return ""
        return "".join(elem.itertext())

    @staticmethod
    def stig_data(vuln: ET.Element) -> List[Tuple[str, str]]:
        """Ordered (VULN_ATTRIBUTE, ATTRIBUTE_DATA) pairs of a CKL VULN."""
        pairs: List[Tuple[str, str]] = []
        for sd in vuln.findall(Sch.STIG_DATA):
            attr = (sd.findtext(Sch.VULN_ATTRIBUTE) or "").strip()
            if attr:
                pairs.append((attr, sd.findtext(Sch.ATTRIBUTE_DATA) or ""))
        return pairs

    @staticmethod
    def si_data(stig_info: Optional[ET.Element]) -> Dict[str, str]:
        """SID_NAME to SID_DATA mapping of a CKL STIG_INFO block."""
        values: Dict[str, str] = {}
        if stig_info is None:
            return values
        for si in stig_info.findall(Sch.SI_DATA):
            name = (si.findtext(Sch.SID_NAME) or "").strip()
            if name:
                values[name] = (si.findtext(Sch.SID_DATA) or "").strip()
        return values
