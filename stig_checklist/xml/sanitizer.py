"""Input sanitization and identifier normalization.

Validators raise ValidationError on input they cannot accept. Normalizers
(vuln_num, rule_id, file_name, text) never fail; they reduce whatever DISA
shipped to the canonical form the rest of the package keys on.
"""

from __future__ import annotations
import re
from pathlib import Path, PurePosixPath
from typing import Any, Union

from stig_checklist.core.constants import IS_WINDOWS, MAX_XML_SIZE
from stig_checklist.exceptions import ValidationError


class San:
    """Validators and normalizers for host data, paths and DISA identifiers."""

    ASSET = re.compile(r"^[a-zA-Z0-9._-]{1,255}$")
    # IP regex rejects leading zeros (e.g., 192.001.001.001)
    IP = re.compile(
        r"^(25[0-5]|2[0-4]\d|1\d\d|[1-9]?\d)(\.(25[0-5]|2[0-4]\d|1\d\d|[1-9]?\d)){3}$"
    )
    MAC = re.compile(r"^([0-9A-Fa-f]{2}[:-]){5}[0-9A-Fa-f]{2}$")
    CCI = re.compile(r"^CCI-?0*(\d{1,9})$", re.I)
    CTRL = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")

    MAX_PATH = 260 if IS_WINDOWS else 4096

    @staticmethod
    def path(
        value: Union[str, Path],
        exist: bool = False,
        file: bool = False,
        dir: bool = False,
        mkpar: bool = False,
    ) -> Path:
        """Resolve ``value`` and enforce the requested checks.

        ``file`` also caps the size at MAX_XML_SIZE. ``mkpar`` creates the
        parent directories of a path about to be written.
        """
        raw = "" if value is None else str(value).strip()
        if not raw:
            raise ValidationError("Empty path")
        if "\x00" in raw:
            raise ValidationError("Null byte in path")

        try:
            path = Path(raw).expanduser().resolve()
        except (OSError, RuntimeError) as exc:
            raise ValidationError(f"Path validation failed for '{value}': {exc}") from exc

        if len(str(path)) > San.MAX_PATH:
            raise ValidationError(f"Path too long: {len(str(path))}")

        if mkpar:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise ValidationError(f"Cannot create parent directory: {path.parent}: {exc}") from exc

        if (exist or file or dir) and not path.exists():
            raise ValidationError(f"Not found: {path}")
        if file and not path.is_file():
            raise ValidationError(f"Not a file: {path}")
        if file and path.stat().st_size > MAX_XML_SIZE:
            raise ValidationError(f"File too large: {path.stat().st_size}")
        if dir and not path.is_dir():
            raise ValidationError(f"Not a directory: {path}")

        return path

    @staticmethod
    def asset(value: str) -> str:
        """Validate an asset host name.

        Raises:
            ValidationError: If host name is empty or contains invalid characters
        """
        if not value or not str(value).strip():
            raise ValidationError("Empty asset")
        value = str(value).strip()[:255]
        if not San.ASSET.match(value):
            raise ValidationError(f"Invalid asset: {value}")
        return value

    @staticmethod
    def ip(value: str) -> str:
        """Validate an IPv4 address; empty input is allowed."""
        value = str(value or "").strip()
        if value and not San.IP.match(value):
            raise ValidationError(f"Invalid IP format: {value}")
        return value

    @staticmethod
    def mac(value: str) -> str:
        """Validate a MAC address and normalize to colon-separated uppercase."""
        value = str(value or "").strip().upper().replace("-", ":")
        if value and not San.MAC.match(value):
            raise ValidationError(f"Invalid MAC: {value}")
        return value

    @staticmethod
    def vuln_num(value: str) -> str:
        """Normalize a group id to its ``V-`` form.

        >>> San.vuln_num("abcV-1234")
        'V-1234'
        """
        value = str(value or "").strip()
        idx = value.find("V-")
        return value[idx:] if idx > 0 else value

    @staticmethod
    def rule_id(value: str) -> str:
        """Normalize a rule id to its ``SV-`` form.

        >>> San.rule_id("xyz-SV-1234r5_rule")
        'SV-1234r5_rule'
        """
        value = str(value or "").strip()
        idx = value.find("SV-")
        return value[idx:] if idx > 0 else value

    @staticmethod
    def cci_number(value: str) -> int:
        """Extract the number from a ``CCI-000366`` style token.

        Raises:
            ValidationError: If the token is not a CCI reference
        """
        match = San.CCI.match(str(value or "").strip())
        if not match:
            raise ValidationError(f"Invalid CCI: {value}")
        return int(match.group(1))

    @staticmethod
    def file_name(value: str) -> str:
        """Reduce an archive member path to its base name."""
        return PurePosixPath(str(value or "").replace("\\", "/")).name

    @staticmethod
    def text(value: Any) -> str:
        """Prepare a value for XML output.

        Control characters are removed because XML 1.0 cannot carry them.
        Escaping is left to the serializer.
        """
        if value is None:
            return ""
        return San.CTRL.sub("", str(value))
