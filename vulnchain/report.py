"""Report export using Jinja2 templates.

Renders a finished (or cancelled) scan to Markdown or JSON.  The default
template lives at ``vulnchain/templates/report.md.j2``.
"""

import datetime as dt
import json
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .aggregate import group_by_package, sort_groups, summarize
from .chain import ScanResult
from .models import SOURCE_LABELS
from .parsers import advisory_url
from .remediation import advise

_TEMPLATES_DIR = Path(__file__).parent / "templates"


def _now_utc_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).replace(microsecond=0).isoformat()


def build_report_context(result: ScanResult, strategy: str = "last") -> dict[str, Any]:
    """Assemble everything a report needs from a scan result.

    Args:
        result: Scan result.
        strategy: Fixed-version selection strategy for advice.

    Returns:
        Template context dict.
    """
    groups = group_by_package(result.findings)
    packages = []
    for g in sort_groups(groups):
        packages.append(
            {
                "name": g.package_name,
                "installed_version": g.installed_version,
                "highest_severity": g.highest_severity,
                "sources": sorted(SOURCE_LABELS.get(s, s) for s in g.sources),
                "advice": advise(g, result.platform, strategy).to_dict(),
                "findings": [
                    dict(f.to_dict(), url=advisory_url(f.cve_id), source_label=SOURCE_LABELS.get(f.source, f.source))
                    for f in g.findings
                ],
            }
        )

    return {
        "generated_at": _now_utc_iso(),
        "platform": result.platform,
        "total_packages": result.total,
        "scanned": result.scanned,
        "cancelled": result.cancelled,
        "total_findings": len(result.findings),
        "summary": summarize(groups),
        "packages": packages,
        "degraded": result.degraded_packages,
        "diagnostics": [{"source": e.source, "kind": e.kind, "message": e.message} for e in result.diagnostics],
    }


def _write_atomic(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        f.write(content)
    tmp.replace(path)


def render_markdown_report(result: ScanResult, strategy: str = "last") -> str:
    """Render a scan result with the Markdown template."""
    env = Environment(
        loader=FileSystemLoader(str(_TEMPLATES_DIR)),
        autoescape=select_autoescape(default_for_string=False, default=False),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    template = env.get_template("report.md.j2")
    return template.render(**build_report_context(result, strategy))


def write_markdown_report(path: Path, result: ScanResult, strategy: str = "last") -> None:
    """Write a GitHub-renderable Markdown report.

    Args:
        path: Output path for the markdown report.
        result: Scan result to report on.
        strategy: Fixed-version selection strategy for advice.
    """
    _write_atomic(path, render_markdown_report(result, strategy))


def write_json_report(path: Path, result: ScanResult, strategy: str = "last") -> None:
    """Write the report context as JSON."""
    _write_atomic(path, json.dumps(build_report_context(result, strategy), indent=2, sort_keys=False))
