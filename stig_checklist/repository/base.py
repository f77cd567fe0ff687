"""Repository interface.

The processors only talk to storage through this interface. Identity (every
``id``) is assigned here, never by callers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from stig_checklist.models import Asset, Cci, CklCheck, Stig, StigCheck, Supplement


class Repository(ABC):
    """Storage for STIGs, CCIs, assets and checklist answers."""

    # ------------------------------------------------------------------ STIGs
    @abstractmethod
    def add_stig(self, stig: Stig, checks: List[StigCheck], supplements: Optional[List[Supplement]] = None) -> Optional[Stig]:
        """Persist a benchmark; None when the same title/version/release exists."""

    @abstractmethod
    def get_stigs(self) -> List[Stig]:
        """All STIGs in catalog (insertion) order."""

    @abstractmethod
    def get_stig_checks(self, stig: Stig) -> List[StigCheck]:
        """Checks of one STIG in document order."""

    @abstractmethod
    def get_supplements(self, stig: Stig) -> List[Supplement]:
        ...

    @abstractmethod
    def find_stig(self, title: str, version: int, release: str) -> Optional[Stig]:
        ...

    @abstractmethod
    def update_stig_check(self, check: StigCheck) -> None:
        ...

    @abstractmethod
    def delete_stig(self, stig: Stig) -> bool:
        """Remove a STIG with its checks and supplements.

        Returns False, leaving everything in place, while any asset still
        has the STIG mapped.
        """

    # ------------------------------------------------------------------- CCIs
    @abstractmethod
    def add_cci(self, cci: Cci) -> Cci:
        ...

    @abstractmethod
    def update_cci(self, cci: Cci) -> None:
        """Replace the stored record with the same id."""

    @abstractmethod
    def get_ccis(self) -> List[Cci]:
        ...

    @abstractmethod
    def get_cci(self, cci_id: int) -> Optional[Cci]:
        ...

    @abstractmethod
    def get_cci_by_number(self, number: int, stig: Optional[Stig] = None) -> Optional[Cci]:
        """Catalog lookup; ``stig`` is the benchmark asking, for diagnostics."""

    @abstractmethod
    def get_remap_ccis(self) -> List[Cci]:
        """Fallback CCIs for checks without a usable mapping."""

    # ----------------------------------------------------------------- assets
    @abstractmethod
    def add_asset(self, asset: Asset) -> bool:
        """Persist an asset; False when the host name is taken."""

    @abstractmethod
    def delete_asset(self, asset: Asset) -> None:
        ...

    @abstractmethod
    def get_assets(self) -> List[Asset]:
        ...

    @abstractmethod
    def get_asset(self, host_name: str) -> Optional[Asset]:
        ...

    @abstractmethod
    def add_stig_to_asset(self, stig: Stig, asset: Asset) -> None:
        """Map a STIG, creating one Not_Reviewed CklCheck per StigCheck."""

    @abstractmethod
    def delete_stig_from_asset(self, stig: Stig, asset: Asset) -> None:
        ...

    @abstractmethod
    def get_stigs_for_asset(self, asset: Asset) -> List[Stig]:
        """STIGs mapped to an asset in mapping order."""

    @abstractmethod
    def get_ckl_checks(self, asset: Asset, stig: Optional[Stig] = None) -> List[CklCheck]:
        ...

    @abstractmethod
    def update_ckl_check(self, check: CklCheck) -> None:
        ...

    # ------------------------------------------------------------ transaction
    @abstractmethod
    def delay_commit(self, delay: bool) -> None:
        """Open (True) or close (False) a deferred-commit region."""

    @contextmanager
    def deferred(self) -> Iterator["Repository"]:
        """Scope a batch of writes to one commit."""
        self.delay_commit(True)
        try:
            yield self
        finally:
            self.delay_commit(False)

    # -------------------------------------------------------------- variables
    @abstractmethod
    def get_variable(self, name: str) -> str:
        ...

    @abstractmethod
    def update_variable(self, name: str, value: str) -> None:
        ...

    @abstractmethod
    def get_variables(self) -> Dict[str, str]:
        ...
