"""Command-line interface and main entry point."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from stig_checklist.core.config import Cfg
from stig_checklist.core.constants import APP_NAME, VERSION
from stig_checklist.core.deps import Deps
from stig_checklist.core.logging import LOG
from stig_checklist.exceptions import STIGError
from stig_checklist.models import Asset, Stig
from stig_checklist.processor import (
    CciCatalogImporter,
    CciResolver,
    ChecklistExporter,
    ChecklistImporter,
    ChecklistUpgrader,
    ComplianceExporter,
    Progress,
    StigImporter,
)
from stig_checklist.repository import MemoryRepository
from stig_checklist.xml.sanitizer import San


def _status_printer(verbose: bool) -> Progress:
    if not verbose:
        return Progress()
    return Progress(update_status=lambda text: print(f"[INFO] {text}", file=sys.stderr))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stig-checklist",
        description=f"{APP_NAME} v{VERSION}",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=VERSION)
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument("--db", help=f"Repository snapshot (default: {Cfg.DB_FILE})")

    catalog_group = parser.add_argument_group("Catalog")
    catalog_group.add_argument("--import-cci", metavar="FILE", help="Import a DISA CCI list (XML or zip)")
    catalog_group.add_argument("--import-stig", nargs="+", metavar="ZIP/XML", help="Import STIG archives or XCCDF files")
    catalog_group.add_argument("--no-supplements", action="store_true", help="Do not keep supplementary archive files")
    catalog_group.add_argument("--map-unmapped", action="store_true", help="Remap checks whose CCIs are all synthesized")
    catalog_group.add_argument("--list", action="store_true", help="List STIGs and assets")

    asset_group = parser.add_argument_group("Assets")
    asset_group.add_argument("--add-asset", metavar="HOST", help="Create an asset")
    asset_group.add_argument("--ip", default="", help="Asset IP")
    asset_group.add_argument("--mac", default="", help="Asset MAC")
    asset_group.add_argument("--fqdn", default="", help="Asset FQDN")
    asset_group.add_argument("--asset-type", default="Computing", choices=["Computing", "Non-Computing"], help="Asset type")
    asset_group.add_argument("--host", help="Asset the --map command applies to (default: --add-asset)")
    asset_group.add_argument("--map", metavar="TITLE", help="Map the newest imported release of a STIG to the asset")
    asset_group.add_argument("--upgrade", metavar="HOST", help="Upgrade every STIG mapped to an asset")

    ckl_group = parser.add_argument_group("Checklists")
    ckl_group.add_argument("--import-ckl", nargs="+", metavar="CKL", help="Apply existing checklists")
    ckl_group.add_argument("--export-ckl", metavar="HOST", help="Write one checklist for an asset")
    ckl_group.add_argument("--out", help="Output CKL path for --export-ckl")
    ckl_group.add_argument("--export-all", metavar="DIR", help="Write one checklist per asset and STIG")
    ckl_group.add_argument("--export-cmrs", metavar="PATH", help="Write a CMRS import file for every asset")

    delete_group = parser.add_argument_group("Cleanup")
    delete_group.add_argument("--delete-asset", metavar="HOST", help="Delete an asset and its checklist answers")
    delete_group.add_argument("--delete-stig", metavar="TITLE", help="Delete every imported release of a STIG not mapped to an asset")
    return parser


def _require_asset(repo: MemoryRepository, host: str) -> Asset:
    asset = repo.get_asset(host)
    if asset is None:
        raise STIGError(f"Unknown asset: {host}")
    return asset


def _newest(stigs: List[Stig], title: str) -> Stig:
    matches = [s for s in stigs if s.title == title]
    if not matches:
        raise STIGError(f"No imported STIG titled {title!r}")
    return max(matches, key=lambda s: (s.version, s.release_number, s.release))


def _delete_stig(repo: MemoryRepository, title: str) -> Dict[str, Any]:
    """Delete every release of ``title``; releases still mapped are kept."""
    matches = [s for s in repo.get_stigs() if s.title == title]
    if not matches:
        raise STIGError(f"No imported STIG titled {title!r}")
    deleted: List[str] = []
    in_use: List[str] = []
    with repo.deferred():
        for stig in matches:
            (deleted if repo.delete_stig(stig) else in_use).append(stig.display_name)
    return {"ok": not in_use, "deleted": deleted, "in_use": in_use}


def _listing(repo: MemoryRepository) -> Dict[str, Any]:
    return {
        "stigs": [
            {"title": s.title, "version": s.version, "release": s.release, "checks": len(repo.get_stig_checks(s))}
            for s in repo.get_stigs()
        ],
        "assets": [
            {"host": a.host_name, "stigs": [s.display_name for s in repo.get_stigs_for_asset(a)]}
            for a in repo.get_assets()
        ],
        "ccis": len(repo.get_ccis()),
    }


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Requested commands run in a fixed order (catalog, assets, checklists,
    exports, deletions) so one invocation can import, map and export.

    Args:
        argv: Command-line arguments (None = sys.argv)

    Returns:
        Exit code (0 = success)
    """
    Deps.warn_if_unsafe()
    ok, err_list = Cfg.check()
    if not ok:
        for err in err_list:
            print(f"ERROR: {err}", file=sys.stderr)
        return 1

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        LOG.set_console_level(logging.INFO)
    if args.export_ckl and not args.out:
        parser.error("--export-ckl requires --out")

    progress = _status_printer(args.verbose)
    results: Dict[str, Any] = {}
    try:
        repo = MemoryRepository.load(args.db or Cfg.DB_FILE)

        if args.import_cci:
            importer = CciCatalogImporter(repo, args.import_cci, progress)
            importer.run()
            results["import_cci"] = importer.result

        if args.import_stig:
            importer = StigImporter(
                repo,
                args.import_stig,
                progress,
                enable_supplements=False if args.no_supplements else None,
            )
            importer.run()
            results["import_stig"] = importer.summary()

        if args.map_unmapped:
            results["map_unmapped"] = {"remapped": CciResolver(repo).map_unmapped()}

        if args.add_asset:
            asset = Asset(
                host_name=San.asset(args.add_asset),
                host_ip=San.ip(args.ip) if args.ip else "",
                host_mac=San.mac(args.mac) if args.mac else "",
                host_fqdn=args.fqdn,
                asset_type=args.asset_type,
            )
            results["add_asset"] = {"ok": repo.add_asset(asset), "host": asset.host_name}

        if args.map:
            host = args.host or args.add_asset
            if not host:
                parser.error("--map requires --host or --add-asset")
            asset = _require_asset(repo, host)
            stig = _newest(repo.get_stigs(), args.map)
            repo.add_stig_to_asset(stig, asset)
            results["map"] = {"ok": True, "host": asset.host_name, "stig": stig.display_name}

        if args.upgrade:
            asset = _require_asset(repo, args.upgrade)
            upgrades = []
            for stig in repo.get_stigs_for_asset(asset):
                upgrader = ChecklistUpgrader(repo, asset, stig, progress)
                upgrader.run()
                upgrades.append(upgrader.result.as_dict())
            results["upgrade"] = upgrades

        if args.import_ckl:
            importer = ChecklistImporter(repo, args.import_ckl, progress)
            importer.run()
            results["import_ckl"] = importer.results

        if args.export_ckl:
            asset = _require_asset(repo, args.export_ckl)
            written = ChecklistExporter(repo, progress).export(asset, args.out)
            results["export_ckl"] = {"ok": written, "output": args.out}

        if args.export_all:
            exporter = ChecklistExporter(repo, progress, directory=args.export_all)
            exporter.run()
            results["export_all"] = exporter.result

        if args.export_cmrs:
            exporter = ComplianceExporter(repo, progress, path=args.export_cmrs)
            exporter.run()
            results["export_cmrs"] = {"ok": exporter.written, "output": args.export_cmrs}

        if args.delete_asset:
            asset = _require_asset(repo, args.delete_asset)
            repo.delete_asset(asset)
            results["delete_asset"] = {"ok": True, "host": asset.host_name}

        if args.delete_stig:
            results["delete_stig"] = _delete_stig(repo, args.delete_stig)

        if args.list:
            results["list"] = _listing(repo)

        if not results:
            parser.print_help()
            return 0

        repo.save()
        pruned = Cfg.cleanup_old()
        LOG.d(f"Pruned {pruned[0]} backup(s) and {pruned[1]} log file(s)")
        print(json.dumps(results, indent=2, ensure_ascii=False))
        return 0 if all(_succeeded(r) for r in results.values()) else 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user", file=sys.stderr)
        return 130
    except STIGError as exc:
        LOG.e(f"Fatal error: {exc}")
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except Exception as exc:
        LOG.e(f"Fatal error: {exc}", exc=True)
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1


def _succeeded(result: Any) -> bool:
    if isinstance(result, dict):
        return result.get("ok", True) is not False
    if isinstance(result, list):
        return all(_succeeded(r) for r in result)
    return True


if __name__ == "__main__":
    sys.exit(main())
