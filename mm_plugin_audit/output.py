"""
Report rendering: table, CSV and JSON.
"""

import csv
import json
from typing import List, TextIO

from rich import box
from rich.console import Console
from rich.table import Table

from mm_plugin_audit.models import AuditResult, PluginReport, PluginSource, PluginStatus

# Section order and titles for the table format
TABLE_SECTIONS = [
    (PluginSource.MARKETPLACE, "Marketplace Plugins"),
    (PluginSource.MATTERMOST, "Mattermost Plugins"),
    (PluginSource.BUNDLED, "Bundled Mattermost Plugins"),
    (PluginSource.THIRD_PARTY, "Third-Party / Custom Plugins"),
]

CSV_HEADERS = [
    "plugin_id", "name", "installed_version", "latest_version",
    "update_available", "status", "type", "source", "marketplace_url",
]


def format_output(result: AuditResult, fmt: str, stream: TextIO) -> None:
    """
    Write the audit result to a stream.

    Args:
        result: Audit result to render
        fmt: One of "table", "csv", "json" (case-insensitive)
        stream: Destination text stream

    Raises:
        ValueError: If the format is unknown
    """
    fmt = fmt.lower()
    if fmt == "table":
        format_table(result, stream)
    elif fmt == "csv":
        format_csv(result, stream)
    elif fmt == "json":
        format_json(result, stream)
    else:
        raise ValueError(f"unknown format: {fmt}")


def update_indicator(report: PluginReport) -> str:
    """Human-readable value for the UPDATE? column."""
    if report.is_outdated:
        return "YES ⚠"
    return "No"


def capitalize_status(status: PluginStatus) -> str:
    return status.value.capitalize()


def _make_console(stream: TextIO) -> Console:
    is_tty = hasattr(stream, "isatty") and stream.isatty()
    return Console(
        file=stream,
        width=None if is_tty else 200,
        markup=False,
        emoji=False,
        highlight=False,
    )


def _section_table(source: PluginSource, reports: List[PluginReport]) -> Table:
    table = Table(box=box.SIMPLE_HEAD, show_edge=False, pad_edge=False, header_style="bold")
    table.add_column("NAME", no_wrap=True)
    table.add_column("INSTALLED", no_wrap=True)
    if source == PluginSource.MARKETPLACE:
        table.add_column("LATEST", no_wrap=True)
        table.add_column("UPDATE?", no_wrap=True)
    table.add_column("STATUS", no_wrap=True)

    for r in reports:
        if source == PluginSource.MARKETPLACE:
            table.add_row(
                r.name, r.installed_version, r.latest_version,
                update_indicator(r), capitalize_status(r.status),
            )
        else:
            table.add_row(r.name, r.installed_version, capitalize_status(r.status))

    return table


def summary_line(result: AuditResult) -> str:
    s = result.summary
    return (
        f"Summary: {s.total} plugin(s) total; "
        f"{s.marketplace} marketplace ({s.outdated} outdated, {s.up_to_date} up to date), "
        f"{s.mattermost_plugin} mattermost, {s.bundled} bundled, "
        f"{s.third_party} third-party/custom; "
        f"{s.enabled} enabled, {s.disabled} disabled"
    )


def format_table(result: AuditResult, stream: TextIO) -> None:
    """Render four source sections followed by a summary line."""
    console = _make_console(stream)

    for source, title in TABLE_SECTIONS:
        reports = result.by_source(source)
        console.print(f"=== {title} ({len(reports)}) ===")
        if reports:
            console.print(_section_table(source, reports))
        else:
            console.print("(none)")
        console.print()

    console.print(summary_line(result), soft_wrap=True)


def format_csv(result: AuditResult, stream: TextIO) -> None:
    """Render one header row plus one row per plugin."""
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(CSV_HEADERS)

    for p in result.plugins:
        writer.writerow([
            p.plugin_id,
            p.name,
            p.installed_version,
            p.latest_version,
            p.update_available.value,
            p.status.value,
            p.plugin_type.value,
            p.source.value,
            p.marketplace_url,
        ])


def format_json(result: AuditResult, stream: TextIO) -> None:
    """Render the result as an indented JSON document."""
    json.dump(result.to_dict(), stream, indent=2, ensure_ascii=False)
    stream.write("\n")
