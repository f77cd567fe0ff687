"""
Data model.

Plain dataclasses exchanged between the parser, the repository and the
processors. Every record round-trips through as_dict()/from_dict() for
repository snapshots.
"""

from __future__ import annotations

from stig_checklist.models.stig import Stig, StigCheck, Supplement
from stig_checklist.models.cci import Cci
from stig_checklist.models.asset import Asset, CklCheck

__all__ = [
    "Stig",
    "StigCheck",
    "Supplement",
    "Cci",
    "Asset",
    "CklCheck",
]
