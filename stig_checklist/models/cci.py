"""Compliance control identifier record."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class Cci:
    """
    Compliance Control Identifier.

    Attributes:
        id: Repository id, -1 until persisted
        number: Numeric part of CCI-NNNNNN
        definition: Control text from the DISA CCI list
        control: NIST SP 800-53 rev 4 control the CCI implements (e.g. "CM-6")
        is_import: True when loaded from the authoritative CCI list
    """

    id: int = -1
    number: int = 0
    definition: str = ""
    control: str = ""
    is_import: bool = False

    @property
    def display_name(self) -> str:
        return f"CCI-{self.number:06d}"

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "number": self.number,
            "definition": self.definition,
            "control": self.control,
            "is_import": self.is_import,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Cci":
        return cls(
            id=int(data.get("id", -1)),
            number=int(data.get("number", 0)),
            definition=str(data.get("definition", "")),
            control=str(data.get("control", "")),
            is_import=bool(data.get("is_import", False)),
        )
