"""
Common utility functions for the plugin audit.
"""

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from mm_plugin_audit.models import PluginType, SemVer


# Rich console for diagnostics; stdout is reserved for the report
console = Console(stderr=True)


def setup_logging(
    name: str = "mm_plugin_audit",
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """Set up logging with Rich handler."""
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Clear existing handlers
    logger.handlers.clear()

    console_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


# Default logger
logger = setup_logging(level=logging.WARNING)


def normalize_version(version: str) -> str:
    """Prepend "v" to a non-empty version string that lacks it."""
    if not version:
        return ""
    if not version.startswith("v"):
        return "v" + version
    return version


def compare_versions(installed: str, latest: str) -> int:
    """
    Compare two plugin versions using semantic versioning.

    Args:
        installed: Version reported by the server
        latest: Version published in the Marketplace

    Returns:
        -1 if installed < latest, 0 if equal, 1 if installed > latest.
        If either side is not valid semver, 0 when the raw strings are
        identical and -1 otherwise.
    """
    try:
        ni = SemVer.parse(normalize_version(installed))
        nl = SemVer.parse(normalize_version(latest))
    except ValueError:
        return 0 if installed == latest else -1

    return ni.compare(nl)


def determine_plugin_type(has_server: bool, has_webapp: bool) -> PluginType:
    """Derive the plugin type from which components are present."""
    if has_server and has_webapp:
        return PluginType.BOTH
    if has_server:
        return PluginType.SERVER
    if has_webapp:
        return PluginType.WEBAPP
    return PluginType.UNKNOWN
