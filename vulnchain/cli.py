"""Command line entry point for VulnChain.

Usage::

    vulnchain commands linux
    vulnchain scan system-inventory.txt --platform linux --report report.md
"""

import argparse
import signal
import threading
from pathlib import Path
from typing import Sequence

from pydantic import ValidationError

from . import __version__
from .aggregate import group_by_package, summarize
from .chain import ResolutionChain, ScanPreconditionError
from .config import FIXED_VERSION_STRATEGIES, ScanConfig, find_config, load_config
from .inventory import inventory_commands, load_inventory
from .models import PackageRecord
from .parsers import PLATFORMS
from .report import write_json_report, write_markdown_report


def _load_config(path: Path | None) -> ScanConfig:
    path = path or find_config()
    if path is None:
        return ScanConfig()
    print(f"Using configuration {path}")
    return load_config(path)


def _print_progress(index: int, total: int, package: PackageRecord, found: int) -> None:
    print(f"[{index + 1}/{total}] Analyzing {package.name} {package.version} ({found} findings so far)")


def _cmd_commands(args: argparse.Namespace) -> int:
    for entry in inventory_commands(args.platform):
        print(f"# {entry['label']} -> {entry['filename']}")
        print(entry["command"])
    return 0


def _cmd_scan(args: argparse.Namespace) -> int:
    overrides = {}
    if args.delay is not None:
        overrides["package_delay"] = args.delay
    if args.strategy:
        overrides["fixed_version_strategy"] = args.strategy

    try:
        config = _load_config(args.config)
        if overrides:
            config = ScanConfig.model_validate({**config.model_dump(), **overrides})
    except (ValidationError, OSError, ValueError) as e:
        print(f"Error: invalid configuration: {e}")
        return 2

    if not args.inventory.exists():
        print(f"Error: inventory file not found: {args.inventory}")
        return 2
    packages = load_inventory(args.inventory, args.platform)
    print(f"Found {len(packages)} packages to analyze")

    cancel = threading.Event()
    previous = signal.signal(signal.SIGINT, lambda *_: cancel.set())
    try:
        chain = ResolutionChain.from_config(args.platform, config)
        result = chain.scan(packages, cancel=cancel, on_progress=_print_progress)
    except ScanPreconditionError as e:
        print(f"Error: {e}")
        return 2
    finally:
        signal.signal(signal.SIGINT, previous)

    groups = group_by_package(result.findings)
    summary = summarize(groups)
    status = "cancelled" if result.cancelled else "complete"
    print(
        f"Analysis {status}: {len(result.findings)} findings in {len(groups)} packages "
        f"({result.scanned}/{result.total} scanned)"
    )
    print("  " + " | ".join(f"{k}: {v}" for k, v in summary.items()))
    if result.diagnostics:
        print(f"  {len(result.degraded_packages)} package(s) had degraded lookups")

    if args.report:
        write_markdown_report(args.report, result, config.fixed_version_strategy)
        print(f"Wrote {args.report}")
    if args.json:
        write_json_report(args.json, result, config.fixed_version_strategy)
        print(f"Wrote {args.json}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vulnchain", description="Multi-source vulnerability scanner")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    p_cmd = sub.add_parser("commands", help="Show how to collect an inventory")
    p_cmd.add_argument("platform", choices=PLATFORMS)
    p_cmd.set_defaults(func=_cmd_commands)

    p_scan = sub.add_parser("scan", help="Scan an inventory file")
    p_scan.add_argument("inventory", type=Path)
    p_scan.add_argument("--platform", required=True, choices=PLATFORMS)
    p_scan.add_argument("--config", type=Path, default=None)
    p_scan.add_argument("--report", type=Path, default=None, help="Markdown report output path")
    p_scan.add_argument("--json", type=Path, default=None, help="JSON report output path")
    p_scan.add_argument("--delay", type=float, default=None, help="Seconds to wait between packages")
    p_scan.add_argument("--strategy", choices=FIXED_VERSION_STRATEGIES, default=None)
    p_scan.set_defaults(func=_cmd_scan)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
