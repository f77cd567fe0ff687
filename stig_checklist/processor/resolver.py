"""CCI reference resolution and the unmapped-check remap."""

from __future__ import annotations

from typing import Iterable, List, Optional

from stig_checklist.core.logging import LOG
from stig_checklist.exceptions import ValidationError
from stig_checklist.models import Stig, StigCheck
from stig_checklist.repository.base import Repository
from stig_checklist.xml.sanitizer import San


class CciResolver:
    """Maps ``CCI-nnnnnn`` tokens to repository CCI ids."""

    def __init__(self, repo: Repository):
        self.repo = repo

    def resolve(self, token: str, stig: Optional[Stig] = None) -> Optional[int]:
        """Repository id of the CCI named by ``token``, None if unknown.

        Malformed tokens and numbers missing from the catalog are not errors;
        catalogs routinely lag behind benchmark releases. A missing number
        asked for on behalf of ``stig`` is logged as a warning, once.
        """
        try:
            number = San.cci_number(token)
        except ValidationError:
            LOG.d(f"Ignoring malformed CCI reference {token!r}")
            return None
        cci = self.repo.get_cci_by_number(number, stig)
        return cci.id if cci else None

    def remap_ids(self) -> List[int]:
        return [cci.id for cci in self.repo.get_remap_ccis()]

    def remap_unmapped(self, checks: Iterable[StigCheck]) -> int:
        """Give every check without CCIs the remap set. Returns the count."""
        remap: Optional[List[int]] = None
        count = 0
        for check in checks:
            if check.cci_ids:
                continue
            if remap is None:
                remap = self.remap_ids()
            check.cci_ids = list(remap)
            check.is_remap = True
            count += 1
        if count:
            LOG.d(f"Remapped {count} check(s) without CCIs")
        return count

    def map_unmapped(self) -> int:
        """Remap persisted checks whose CCIs are all synthesized.

        Run after a catalog import so checks parked on the fallback CCI pick
        up the imported remap set.
        """
        imported = {cci.id for cci in self.repo.get_ccis() if cci.is_import}
        remap = self.remap_ids()
        count = 0
        with self.repo.deferred():
            for stig in self.repo.get_stigs():
                for check in self.repo.get_stig_checks(stig):
                    if any(cci_id in imported for cci_id in check.cci_ids):
                        continue
                    if check.cci_ids == remap:
                        continue
                    check.cci_ids = list(remap)
                    check.is_remap = True
                    self.repo.update_stig_check(check)
                    count += 1
        LOG.i(f"Remapped {count} unmapped check(s)")
        return count
