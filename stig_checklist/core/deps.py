"""Dependency detection and XML parser selection."""

from __future__ import annotations
from contextlib import suppress
import sys


class Deps:
    """Dependency detection.

    defusedxml is a declared requirement, but a stripped-down install may
    still lack it. Parsing then falls back to the stdlib ElementTree with a
    warning.
    """

    HAS_DEFUSEDXML = False

    @classmethod
    def check(cls) -> None:
        """Check that the hardened XML parser actually works."""
        with suppress(Exception):
            from defusedxml import ElementTree as DET
            from io import StringIO

            DET.parse(StringIO("<test/>"))
            cls.HAS_DEFUSEDXML = True

    @classmethod
    def get_xml(cls):
        """Get XML parsing module and its ParseError (preferring defusedxml)."""
        if cls.HAS_DEFUSEDXML:
            from defusedxml import ElementTree as ET
            from defusedxml.ElementTree import ParseError as XMLParseError
        else:
            import xml.etree.ElementTree as ET  # noqa: N813
            from xml.etree.ElementTree import ParseError as XMLParseError

        return ET, XMLParseError

    @classmethod
    def warn_if_unsafe(cls) -> None:
        """Warn if defusedxml is not available."""
        if not cls.HAS_DEFUSEDXML:
            print(
                "SECURITY WARNING: defusedxml not installed; XCCDF and CKL input "
                "is parsed with the stdlib parser. Install with: pip install defusedxml",
                file=sys.stderr,
            )


Deps.check()
