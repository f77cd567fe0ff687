"""Checklist upgrade onto a newer release of the same STIG."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from stig_checklist.core.logging import LOG
from stig_checklist.models import Asset, CklCheck, Stig
from stig_checklist.processor.worker import INDETERMINATE, Progress, Worker
from stig_checklist.repository.base import Repository


@dataclass
class UpgradeResult:
    """Outcome of one upgrade; ``target`` is None when nothing was eligible."""

    target: Optional[Stig] = None
    carried: int = 0
    added: int = 0

    @property
    def upgraded(self) -> bool:
        return self.target is not None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "upgraded": self.upgraded,
            "target": self.target.display_name if self.target else None,
            "carried": self.carried,
            "added": self.added,
        }


def is_newer(candidate: Stig, current: Stig) -> bool:
    """Same lineage and strictly newer by (version, release text)."""
    if candidate.title != current.title:
        return False
    if candidate.version != current.version:
        return candidate.version > current.version
    return candidate.release > current.release


def select_target(mapped: Iterable[Stig], current: Stig, candidates: Iterable[Stig]) -> Optional[Stig]:
    """First eligible candidate in catalog order.

    First match, not the newest: callers rely on catalog order.
    """
    mapped = list(mapped)
    for candidate in candidates:
        if candidate.same_as(current) or not is_newer(candidate, current):
            continue
        if any(candidate.same_as(stig) for stig in mapped):
            continue
        return candidate
    return None


def carry_forward(old: Iterable[CklCheck], new: Iterable[CklCheck]) -> List[CklCheck]:
    """Copy answers from ``old`` onto ``new`` by vulnerability number.

    Returns the new checks that took over an answer; the rest keep their
    defaults.
    """
    answers: Dict[str, CklCheck] = {}
    for check in old:
        answers.setdefault(check.vuln_num, check)

    updated: List[CklCheck] = []
    for check in new:
        previous = answers.get(check.vuln_num)
        if previous is None:
            continue
        check.copy_answer(previous)
        updated.append(check)
    return updated


class ChecklistUpgrader(Worker):
    """Maps the next release of a STIG to an asset and carries answers over.

    The previous release stays mapped; only one upgrade happens per call.
    """

    name = "upgrade"

    def __init__(
        self,
        repo: Repository,
        asset: Optional[Asset] = None,
        stig: Optional[Stig] = None,
        progress: Optional[Progress] = None,
    ):
        super().__init__(progress)
        self.repo = repo
        self.asset = asset
        self.stig = stig
        self.result = UpgradeResult()

    def process(self) -> None:
        if self.asset is None or self.stig is None:
            raise ValueError("ChecklistUpgrader needs an asset and a STIG")
        self.result = self.upgrade(self.asset, self.stig)

    def upgrade(self, asset: Asset, stig: Stig) -> UpgradeResult:
        target = select_target(self.repo.get_stigs_for_asset(asset), stig, self.repo.get_stigs())
        if target is None:
            LOG.i(f"No newer release of {stig.title} for {asset.host_name}")
            self.progress.update_status(f"{asset.host_name}: no upgrade available")
            return UpgradeResult()

        LOG.i(f"Upgrading {asset.host_name} from {stig.display_name} to {target.display_name}")
        with self.repo.deferred():
            self.repo.add_stig_to_asset(target, asset)
            old = self.repo.get_ckl_checks(asset, stig)
            new = self.repo.get_ckl_checks(asset, target)
            self.progress.initialize(len(new) + 1, 0)
            updated = carry_forward(old, new)
            for check in updated:
                self.progress.update_status(f"Updating {check.vuln_num}…")
                self.repo.update_ckl_check(check)
                self.progress.progress(INDETERMINATE)

        self.progress.update_status("Done!")
        return UpgradeResult(target=target, carried=len(updated), added=len(new) - len(updated))
