"""
Plugin audit engine.

Classifies every installed plugin into one of four source categories and
checks Marketplace plugins for newer published versions:

- bundled: shipped with the Mattermost server itself
- marketplace: listed in the Marketplace catalogue
- mattermost-plugin: maintained under github.com/mattermost but not in the Marketplace
- third-party: everything else (custom, community, private builds)
"""

from typing import Dict, List, Optional, Sequence

from mm_plugin_audit.common import compare_versions, determine_plugin_type, logger
from mm_plugin_audit.config import BUNDLED_PLUGINS, COMMUNITY_ORG_MARKER, MATTERMOST_ORG_MARKER
from mm_plugin_audit.models import (
    AuditOptions,
    AuditResult,
    AuditSummary,
    InstalledPlugin,
    MarketplacePlugin,
    PluginReport,
    PluginSource,
    UpdateStatus,
)


def classify_plugin_source(plugin_id: str, in_marketplace: bool, homepage_url: str) -> PluginSource:
    """
    Determine the source category of a plugin, first match wins:

    1. Plugin ID in BUNDLED_PLUGINS -> bundled (even if also in the Marketplace)
    2. Plugin found in the Marketplace catalogue -> marketplace
    3. Homepage under github.com/mattermost/ but not github.com/mattermost-community/
       -> mattermost-plugin
    4. Otherwise -> third-party
    """
    if plugin_id in BUNDLED_PLUGINS:
        return PluginSource.BUNDLED
    if in_marketplace:
        return PluginSource.MARKETPLACE
    if MATTERMOST_ORG_MARKER in homepage_url and COMMUNITY_ORG_MARKER not in homepage_url:
        return PluginSource.MATTERMOST
    return PluginSource.THIRD_PARTY


def build_plugin_report(
    plugin: InstalledPlugin,
    marketplace_entry: Optional[MarketplacePlugin],
) -> PluginReport:
    """Build the finding for one installed plugin."""
    source = classify_plugin_source(
        plugin.plugin_id, marketplace_entry is not None, plugin.homepage_url
    )

    latest_version = ""
    marketplace_url = ""
    update_available = UpdateStatus.UNKNOWN

    if source == PluginSource.MARKETPLACE:
        latest_version = marketplace_entry.version
        marketplace_url = marketplace_entry.homepage_url
        cmp = compare_versions(plugin.version, marketplace_entry.version)
        update_available = UpdateStatus.from_bool(cmp < 0)

    return PluginReport(
        plugin_id=plugin.plugin_id,
        name=plugin.name,
        installed_version=plugin.version,
        latest_version=latest_version,
        update_available=update_available,
        status=plugin.status,
        source=source,
        marketplace_url=marketplace_url,
        plugin_type=determine_plugin_type(plugin.has_server, plugin.has_webapp),
    )


def filter_outdated(reports: List[PluginReport]) -> List[PluginReport]:
    """Drop Marketplace plugins that are up to date; keep everything else."""
    return [
        r for r in reports
        if r.update_available == UpdateStatus.TRUE or r.source != PluginSource.MARKETPLACE
    ]


def sort_reports(reports: List[PluginReport]) -> List[PluginReport]:
    """Order by source rank, then case-insensitive name."""
    return sorted(reports, key=lambda r: (r.source.rank, r.name.lower()))


def summarize(reports: List[PluginReport]) -> AuditSummary:
    """Compute aggregate counters over the final report list."""
    summary = AuditSummary()

    for r in reports:
        summary.total += 1
        if r.source == PluginSource.MARKETPLACE:
            summary.marketplace += 1
            if r.update_available == UpdateStatus.TRUE:
                summary.outdated += 1
            else:
                summary.up_to_date += 1
        else:
            if r.source == PluginSource.BUNDLED:
                summary.bundled += 1
            elif r.source == PluginSource.MATTERMOST:
                summary.mattermost_plugin += 1
            else:
                summary.third_party += 1
            summary.unknown += 1

        if r.is_enabled:
            summary.enabled += 1
        else:
            summary.disabled += 1

    return summary


def run_audit(
    installed: Sequence[InstalledPlugin],
    catalogue: Dict[str, MarketplacePlugin],
    options: Optional[AuditOptions] = None,
) -> AuditResult:
    """
    Classify installed plugins against a Marketplace catalogue.

    Args:
        installed: Plugins installed on the server
        catalogue: Marketplace entries keyed by plugin ID
        options: Audit options (outdated-only filtering)

    Returns:
        AuditResult with sorted findings and summary counters
    """
    options = options or AuditOptions()

    reports = [build_plugin_report(p, catalogue.get(p.plugin_id)) for p in installed]

    if options.outdated_only:
        reports = filter_outdated(reports)

    reports = sort_reports(reports)

    return AuditResult(plugins=reports, summary=summarize(reports))


def audit_server(client, options: Optional[AuditOptions] = None) -> AuditResult:
    """
    Fetch installed plugins and the Marketplace catalogue, then run the audit.

    Args:
        client: Object providing get_plugins() and get_marketplace_plugins()
        options: Audit options

    Returns:
        AuditResult

    Errors raised by either fetch propagate unchanged.
    """
    logger.info("Fetching installed plugins from Mattermost instance...")
    installed = client.get_plugins()
    logger.info(f"Found {len(installed)} installed plugin(s)")

    logger.info("Fetching Marketplace catalogue...")
    catalogue = client.get_marketplace_plugins()
    logger.info(f"Marketplace catalogue contains {len(catalogue)} plugin(s)")

    result = run_audit(installed, catalogue, options)
    logger.debug(
        f"Audit complete: {result.summary.total} plugin(s), "
        f"{result.summary.outdated} outdated"
    )
    return result
