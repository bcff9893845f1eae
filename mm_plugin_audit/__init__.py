"""
mm-plugin-audit - Plugin inventory audit for Mattermost servers.

This package provides tools for:
- Enumerating installed plugins through the Mattermost API
- Classifying plugins as Marketplace, Mattermost, bundled or third-party
- Detecting newer Marketplace versions with semantic version comparison
- Rendering table, CSV and JSON reports
"""

__version__ = "1.0.0"

from mm_plugin_audit.config import AuditConfig, BUNDLED_PLUGINS
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

__all__ = [
    "__version__",
    "AuditConfig",
    "BUNDLED_PLUGINS",
    "AuditOptions",
    "AuditResult",
    "AuditSummary",
    "InstalledPlugin",
    "MarketplacePlugin",
    "PluginReport",
    "PluginSource",
    "UpdateStatus",
]
