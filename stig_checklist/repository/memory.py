"""In-memory repository with optional JSON snapshots.

Records live in dictionaries keyed by repository-assigned ids. When a
snapshot path is configured, every commit (the close of the outermost
deferred region, or any write outside one) rewrites the snapshot
atomically. Callers always receive copies, so nothing changes in the store
until it is handed back through an update call.
"""

from __future__ import annotations

import copy
import itertools
import json
import threading
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

from stig_checklist.core.constants import DEFAULT_REMAP_CCI, REMAP_CONTROL_FAMILY
from stig_checklist.core.logging import LOG
from stig_checklist.exceptions import FileError, RepositoryError
from stig_checklist.io.file_ops import FO
from stig_checklist.models import Asset, Cci, CklCheck, Stig, StigCheck, Supplement
from stig_checklist.repository.base import Repository

SNAPSHOT_FORMAT = 1


class MemoryRepository(Repository):
    """Dictionary-backed repository.

    Args:
        path: Optional JSON snapshot written on every commit

    Thread-safe: Yes (all access is serialized by one RLock)
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else None
        self._lock = threading.RLock()
        self._delay = 0
        self._stigs: Dict[int, Stig] = {}
        self._checks: Dict[int, StigCheck] = {}
        self._stig_checks: Dict[int, List[int]] = {}
        self._supplements: Dict[int, List[Supplement]] = {}
        self._ccis: Dict[int, Cci] = {}
        self._cci_numbers: Dict[int, int] = {}
        self._assets: Dict[int, Asset] = {}
        self._mappings: Dict[int, List[int]] = {}
        self._ckl: Dict[int, CklCheck] = {}
        self._variables: Dict[str, str] = {}
        self._warned_ccis: Set[int] = set()
        self._ids = {name: itertools.count(1) for name in ("stig", "check", "supplement", "cci", "asset", "ckl")}

    def _next(self, table: str) -> int:
        return next(self._ids[table])

    # ------------------------------------------------------------------ STIGs
    def add_stig(self, stig: Stig, checks: List[StigCheck], supplements: Optional[List[Supplement]] = None) -> Optional[Stig]:
        with self._lock:
            if self.find_stig(stig.title, stig.version, stig.release) is not None:
                LOG.w(f"The STIG {stig.display_name} already exists in the repository")
                return None

            stig.id = self._next("stig")
            self._stigs[stig.id] = replace(stig)
            order: List[int] = []
            for check in checks:
                check.id = self._next("check")
                check.stig_id = stig.id
                self._checks[check.id] = copy.deepcopy(check)
                order.append(check.id)
            self._stig_checks[stig.id] = order

            stored: List[Supplement] = []
            for supplement in supplements or []:
                supplement.id = self._next("supplement")
                supplement.stig_id = stig.id
                stored.append(replace(supplement))
            self._supplements[stig.id] = stored

            LOG.i(f"Added {stig.display_name} with {len(order)} check(s)")
            self._commit()
            return replace(stig)

    def get_stigs(self) -> List[Stig]:
        with self._lock:
            return [replace(s) for s in self._stigs.values()]

    def get_stig(self, stig_id: int) -> Optional[Stig]:
        with self._lock:
            stig = self._stigs.get(stig_id)
            return replace(stig) if stig else None

    def get_stig_checks(self, stig: Stig) -> List[StigCheck]:
        with self._lock:
            return [copy.deepcopy(self._checks[i]) for i in self._stig_checks.get(stig.id, [])]

    def get_all_stig_checks(self) -> List[StigCheck]:
        with self._lock:
            return [copy.deepcopy(c) for c in self._checks.values()]

    def get_supplements(self, stig: Stig) -> List[Supplement]:
        with self._lock:
            return [replace(s) for s in self._supplements.get(stig.id, [])]

    def find_stig(self, title: str, version: int, release: str) -> Optional[Stig]:
        with self._lock:
            for stig in self._stigs.values():
                if (stig.title, stig.version, stig.release) == (title, version, release):
                    return replace(stig)
            return None

    def update_stig_check(self, check: StigCheck) -> None:
        with self._lock:
            stored = self._checks.get(check.id)
            if stored is None:
                raise RepositoryError("Unknown STIG check", {"id": check.id, "rule": check.rule})
            # Update in place: stored CklChecks reference this object
            stored.__dict__.update(copy.deepcopy(check).__dict__)
            self._commit()

    def delete_stig(self, stig: Stig) -> bool:
        with self._lock:
            if stig.id not in self._stigs:
                raise RepositoryError("Unknown STIG", {"stig": stig.display_name})
            hosts = [self._assets[a].host_name for a, mapped in self._mappings.items() if stig.id in mapped]
            if hosts:
                LOG.w(f"STIG in use: {stig.display_name} is mapped to {', '.join(hosts)}")
                return False
            for check_id in self._stig_checks.pop(stig.id, []):
                self._checks.pop(check_id, None)
            self._supplements.pop(stig.id, None)
            del self._stigs[stig.id]
            LOG.i(f"Deleted {stig.display_name}")
            self._commit()
            return True

    # ------------------------------------------------------------------- CCIs
    def add_cci(self, cci: Cci) -> Cci:
        with self._lock:
            existing = self._cci_numbers.get(cci.number)
            if existing is not None:
                return replace(self._ccis[existing])
            cci.id = self._next("cci")
            self._ccis[cci.id] = replace(cci)
            self._cci_numbers[cci.number] = cci.id
            self._commit()
            return replace(cci)

    def update_cci(self, cci: Cci) -> None:
        with self._lock:
            stored = self._ccis.get(cci.id)
            if stored is None:
                raise RepositoryError("Unknown CCI", {"id": cci.id, "number": cci.number})
            if stored.number != cci.number:
                raise RepositoryError("CCI number cannot change", {"id": cci.id, "number": cci.number})
            self._ccis[cci.id] = replace(cci)
            self._commit()

    def get_ccis(self) -> List[Cci]:
        with self._lock:
            return [replace(c) for c in self._ccis.values()]

    def get_cci(self, cci_id: int) -> Optional[Cci]:
        with self._lock:
            cci = self._ccis.get(cci_id)
            return replace(cci) if cci else None

    def get_cci_by_number(self, number: int, stig: Optional[Stig] = None) -> Optional[Cci]:
        with self._lock:
            cci_id = self._cci_numbers.get(number)
            if cci_id is None:
                if stig is None:
                    LOG.d(f"CCI-{number:06d} not in catalog")
                elif number not in self._warned_ccis:
                    self._warned_ccis.add(number)
                    LOG.w(f"CCI-{number:06d} not in catalog (requested by {stig.display_name})")
                return None
            return replace(self._ccis[cci_id])

    def get_remap_ccis(self) -> List[Cci]:
        with self._lock:
            if self._variables.get("remapCM6", "y").lower() != "n":
                family = [
                    c for c in self._ccis.values()
                    if c.is_import and c.control.split(" ", 1)[0] == REMAP_CONTROL_FAMILY
                ]
                if family:
                    return [replace(c) for c in family]
            fallback = self.get_cci_by_number(DEFAULT_REMAP_CCI)
            if fallback is None:
                fallback = self.add_cci(Cci(number=DEFAULT_REMAP_CCI, control=f"{REMAP_CONTROL_FAMILY} b"))
            return [fallback]

    # ----------------------------------------------------------------- assets
    def add_asset(self, asset: Asset) -> bool:
        with self._lock:
            if self.get_asset(asset.host_name) is not None:
                LOG.w(f"Asset {asset.host_name} already exists")
                return False
            asset.id = self._next("asset")
            self._assets[asset.id] = replace(asset)
            self._mappings[asset.id] = []
            self._commit()
            return True

    def delete_asset(self, asset: Asset) -> None:
        with self._lock:
            if asset.id not in self._assets:
                raise RepositoryError("Unknown asset", {"host": asset.host_name})
            for stig_id in list(self._mappings.get(asset.id, [])):
                self._unmap(stig_id, asset.id)
            del self._mappings[asset.id]
            del self._assets[asset.id]
            self._commit()

    def get_assets(self) -> List[Asset]:
        with self._lock:
            return [replace(a) for a in self._assets.values()]

    def get_asset(self, host_name: str) -> Optional[Asset]:
        with self._lock:
            for asset in self._assets.values():
                if asset.host_name == host_name:
                    return replace(asset)
            return None

    def add_stig_to_asset(self, stig: Stig, asset: Asset) -> None:
        with self._lock:
            if stig.id not in self._stigs:
                raise RepositoryError("Unknown STIG", {"stig": stig.display_name})
            if asset.id not in self._assets:
                raise RepositoryError("Unknown asset", {"host": asset.host_name})
            mapped = self._mappings[asset.id]
            if stig.id in mapped:
                LOG.d(f"{stig.display_name} already mapped to {asset.host_name}")
                return
            mapped.append(stig.id)
            for check_id in self._stig_checks.get(stig.id, []):
                ckl = CklCheck(id=self._next("ckl"), asset_id=asset.id, stig_check=self._checks[check_id])
                self._ckl[ckl.id] = ckl
            self._commit()

    def delete_stig_from_asset(self, stig: Stig, asset: Asset) -> None:
        with self._lock:
            if stig.id in self._mappings.get(asset.id, []):
                self._unmap(stig.id, asset.id)
                self._commit()

    def _unmap(self, stig_id: int, asset_id: int) -> None:
        self._mappings[asset_id].remove(stig_id)
        for ckl_id in [k for k, c in self._ckl.items() if c.asset_id == asset_id and c.stig_check.stig_id == stig_id]:
            del self._ckl[ckl_id]

    def get_stigs_for_asset(self, asset: Asset) -> List[Stig]:
        with self._lock:
            return [replace(self._stigs[i]) for i in self._mappings.get(asset.id, [])]

    def get_ckl_checks(self, asset: Asset, stig: Optional[Stig] = None) -> List[CklCheck]:
        with self._lock:
            found = [
                c for c in self._ckl.values()
                if c.asset_id == asset.id and (stig is None or c.stig_check.stig_id == stig.id)
            ]
            return [replace(c, stig_check=copy.deepcopy(c.stig_check)) for c in found]

    def update_ckl_check(self, check: CklCheck) -> None:
        with self._lock:
            stored = self._ckl.get(check.id)
            if stored is None:
                raise RepositoryError("Unknown checklist entry", {"id": check.id, "vuln": check.vuln_num})
            stored.copy_answer(check)
            self._commit()

    # ------------------------------------------------------------ transaction
    def delay_commit(self, delay: bool) -> None:
        with self._lock:
            if delay:
                self._delay += 1
                return
            self._delay = max(0, self._delay - 1)
            self._commit()

    def _commit(self) -> None:
        if self._delay == 0 and self.path is not None:
            self.save()

    # -------------------------------------------------------------- variables
    def get_variable(self, name: str) -> str:
        with self._lock:
            return self._variables.get(name, "")

    def update_variable(self, name: str, value: str) -> None:
        with self._lock:
            self._variables[name] = str(value)
            self._commit()

    def get_variables(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._variables)

    # -------------------------------------------------------------- snapshots
    def snapshot(self) -> Dict[str, Any]:
        """Whole store as JSON-ready data."""
        with self._lock:
            return {
                "format": SNAPSHOT_FORMAT,
                "stigs": [s.as_dict() for s in self._stigs.values()],
                "checks": [c.as_dict() for c in self._checks.values()],
                "stig_checks": {str(k): v for k, v in self._stig_checks.items()},
                "supplements": [s.as_dict() for items in self._supplements.values() for s in items],
                "ccis": [c.as_dict() for c in self._ccis.values()],
                "assets": [a.as_dict() for a in self._assets.values()],
                "mappings": {str(k): v for k, v in self._mappings.items()},
                "ckl_checks": [c.as_dict() for c in self._ckl.values()],
                "variables": dict(self._variables),
            }

    def save(self, path: Optional[Union[str, Path]] = None) -> Path:
        """Write the snapshot atomically.

        Raises:
            FileError: If no path is known or the write fails
        """
        target = Path(path) if path else self.path
        if target is None:
            raise FileError("No repository snapshot path configured")
        with self._lock:
            data = self.snapshot()
            with FO.atomic(target, mode="w", bak=True) as handle:
                json.dump(data, handle, indent=1, ensure_ascii=False)
        LOG.d(f"Repository saved to {target}")
        return target

    @classmethod
    def load(cls, path: Union[str, Path]) -> "MemoryRepository":
        """Open a snapshot; a missing file yields an empty repository bound to it.

        Raises:
            RepositoryError: If the snapshot is unreadable
        """
        repo = cls(path)
        if not Path(path).exists():
            return repo
        try:
            data = json.loads(FO.read(path))
        except (FileError, ValueError) as exc:
            raise RepositoryError(f"Unreadable repository snapshot: {exc}", {"path": path}) from exc
        if not isinstance(data, dict) or data.get("format") != SNAPSHOT_FORMAT:
            raise RepositoryError("Unsupported repository snapshot", {"path": path})
        repo._restore(data)
        return repo

    def _restore(self, data: Dict[str, Any]) -> None:
        for item in data.get("stigs", []):
            stig = Stig.from_dict(item)
            self._stigs[stig.id] = stig
        for item in data.get("checks", []):
            check = StigCheck.from_dict(item)
            self._checks[check.id] = check
        self._stig_checks = {int(k): list(v) for k, v in data.get("stig_checks", {}).items()}
        for item in data.get("supplements", []):
            supplement = Supplement.from_dict(item)
            self._supplements.setdefault(supplement.stig_id, []).append(supplement)
        for item in data.get("ccis", []):
            cci = Cci.from_dict(item)
            self._ccis[cci.id] = cci
            self._cci_numbers[cci.number] = cci.id
        for item in data.get("assets", []):
            asset = Asset.from_dict(item)
            self._assets[asset.id] = asset
        self._mappings = {int(k): list(v) for k, v in data.get("mappings", {}).items()}
        for item in data.get("ckl_checks", []):
            stig_check = self._checks.get(int(item.get("stig_check_id", -1)))
            if stig_check is None:
                LOG.w(f"Dropping checklist entry {item.get('id')} without a STIG check")
                continue
            ckl = CklCheck.from_dict(item, stig_check)
            self._ckl[ckl.id] = ckl
        self._variables = {str(k): str(v) for k, v in data.get("variables", {}).items()}

        tables = {
            "stig": self._stigs,
            "check": self._checks,
            "cci": self._ccis,
            "asset": self._assets,
            "ckl": self._ckl,
        }
        for name, table in tables.items():
            self._ids[name] = itertools.count(max(table, default=0) + 1)
        supplement_ids = [s.id for items in self._supplements.values() for s in items]
        self._ids["supplement"] = itertools.count(max(supplement_ids, default=0) + 1)
