"""
Data models for the plugin audit using Pydantic for validation.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, model_validator
import re


class PluginSource(str, Enum):
    """Provenance of an installed plugin."""
    MARKETPLACE = "marketplace"
    BUNDLED = "bundled"
    MATTERMOST = "mattermost-plugin"
    THIRD_PARTY = "third-party"

    @property
    def rank(self) -> int:
        """Sort rank used for report ordering."""
        return _SOURCE_RANK[self]


_SOURCE_RANK = {
    PluginSource.MARKETPLACE: 0,
    PluginSource.MATTERMOST: 1,
    PluginSource.BUNDLED: 2,
    PluginSource.THIRD_PARTY: 3,
}


class PluginStatus(str, Enum):
    """Whether a plugin is enabled on the server."""
    ENABLED = "enabled"
    DISABLED = "disabled"


class PluginType(str, Enum):
    """Which plugin components are present."""
    SERVER = "server"
    WEBAPP = "webapp"
    BOTH = "both"
    UNKNOWN = "unknown"


class UpdateStatus(str, Enum):
    """
    Whether a newer Marketplace version exists.

    UNKNOWN is reserved for plugins that are not sourced from the Marketplace
    and must never be read as "no update".
    """
    TRUE = "true"
    FALSE = "false"
    UNKNOWN = "unknown"

    @classmethod
    def from_bool(cls, value: bool) -> "UpdateStatus":
        return cls.TRUE if value else cls.FALSE

    def as_bool(self) -> Optional[bool]:
        """Return True, False, or None for UNKNOWN."""
        if self is UpdateStatus.UNKNOWN:
            return None
        return self is UpdateStatus.TRUE


_NUMBER = r"0|[1-9][0-9]*"
_SEMVER_RE = re.compile(
    rf"v(?P<major>{_NUMBER})"
    rf"(?:\.(?P<minor>{_NUMBER})"
    rf"(?:\.(?P<patch>{_NUMBER})"
    r"(?:-(?P<pre>[0-9A-Za-z.\-]+))?"
    r"(?:\+(?P<build>[0-9A-Za-z.\-]+))?"
    r")?)?"
)
_IDENT_RE = re.compile(r"[0-9A-Za-z\-]+")


class SemVer(BaseModel):
    """
    A "v"-prefixed semantic version.

    Accepts vMAJOR, vMAJOR.MINOR and vMAJOR.MINOR.PATCH[-PRE][+BUILD]. The
    short forms stand for .0 components and cannot carry suffixes. Build
    metadata is kept but ignored for ordering.
    """
    model_config = ConfigDict(frozen=True)

    major: int
    minor: int = 0
    patch: int = 0
    prerelease: Tuple[str, ...] = ()
    build: str = ""

    @classmethod
    def parse(cls, version_str: str) -> "SemVer":
        """Parse a version string like 'v1.2.3-rc.1', raising ValueError if invalid."""
        match = _SEMVER_RE.fullmatch(version_str)
        if not match:
            raise ValueError(f"Invalid semantic version: {version_str!r}")

        prerelease: Tuple[str, ...] = ()
        if match.group("pre") is not None:
            prerelease = tuple(match.group("pre").split("."))
            for ident in prerelease:
                if not _IDENT_RE.fullmatch(ident):
                    raise ValueError(f"Invalid pre-release identifier in {version_str!r}")
                if ident.isdigit() and len(ident) > 1 and ident.startswith("0"):
                    raise ValueError(f"Leading zero in pre-release identifier in {version_str!r}")

        build = match.group("build") or ""
        if build and not all(_IDENT_RE.fullmatch(ident) for ident in build.split(".")):
            raise ValueError(f"Invalid build metadata in {version_str!r}")

        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor") or 0),
            patch=int(match.group("patch") or 0),
            prerelease=prerelease,
            build=build,
        )

    @property
    def sort_key(self) -> tuple:
        """
        Ordering key: a release sorts after all of its pre-releases, numeric
        identifiers sort numerically and before alphanumeric ones.
        """
        if not self.prerelease:
            return (self.major, self.minor, self.patch, (1,))
        idents = tuple(
            (0, int(ident), "") if ident.isdigit() else (1, 0, ident)
            for ident in self.prerelease
        )
        return (self.major, self.minor, self.patch, (0,) + idents)

    def compare(self, other: "SemVer") -> int:
        """Return -1, 0 or 1."""
        a, b = self.sort_key, other.sort_key
        return (a > b) - (a < b)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemVer):
            return False
        return self.sort_key == other.sort_key

    def __hash__(self) -> int:
        return hash(self.sort_key)


class InstalledPlugin(BaseModel):
    """A plugin installed on the Mattermost server."""
    model_config = ConfigDict(frozen=True)

    plugin_id: str
    name: str = ""
    version: str = ""
    homepage_url: str = ""
    status: PluginStatus = PluginStatus.ENABLED
    has_server: bool = False
    has_webapp: bool = False


class MarketplacePlugin(BaseModel):
    """A Marketplace catalogue entry, keyed by plugin ID in the catalogue mapping."""
    model_config = ConfigDict(frozen=True)

    version: str = ""
    homepage_url: str = ""


class PluginReport(BaseModel):
    """Audit finding for a single installed plugin."""
    model_config = ConfigDict(frozen=True)

    plugin_id: str
    name: str
    installed_version: str
    latest_version: str = ""
    update_available: UpdateStatus = UpdateStatus.UNKNOWN
    status: PluginStatus
    source: PluginSource
    marketplace_url: str = ""
    plugin_type: PluginType = PluginType.UNKNOWN

    @model_validator(mode="after")
    def check_update_state(self) -> "PluginReport":
        """Only Marketplace plugins have a known update state."""
        is_marketplace = self.source == PluginSource.MARKETPLACE
        if is_marketplace and self.update_available == UpdateStatus.UNKNOWN:
            raise ValueError("Marketplace plugin must have a known update state")
        if not is_marketplace and self.update_available != UpdateStatus.UNKNOWN:
            raise ValueError(f"{self.source.value} plugin cannot have a known update state")
        return self

    @property
    def is_outdated(self) -> bool:
        return self.update_available == UpdateStatus.TRUE

    @property
    def is_enabled(self) -> bool:
        return self.status == PluginStatus.ENABLED

    def to_dict(self) -> dict:
        """Convert to the JSON report shape."""
        return {
            "plugin_id": self.plugin_id,
            "name": self.name,
            "installed_version": self.installed_version,
            "latest_version": self.latest_version,
            "update_available": self.update_available.as_bool(),
            "status": self.status.value,
            "type": self.plugin_type.value,
            "source": self.source.value,
            "marketplace_url": self.marketplace_url,
        }


class AuditSummary(BaseModel):
    """Aggregate statistics for an audit run."""
    total: int = 0
    marketplace: int = 0
    bundled: int = 0
    mattermost_plugin: int = 0
    third_party: int = 0
    outdated: int = 0
    up_to_date: int = 0
    unknown: int = 0
    enabled: int = 0
    disabled: int = 0


class AuditResult(BaseModel):
    """Full audit output: ordered findings plus summary."""
    plugins: List[PluginReport] = Field(default_factory=list)
    summary: AuditSummary = Field(default_factory=AuditSummary)

    def by_source(self, source: PluginSource) -> List[PluginReport]:
        """Findings for one provenance category, in report order."""
        return [p for p in self.plugins if p.source == source]

    def to_dict(self) -> dict:
        return {
            "plugins": [p.to_dict() for p in self.plugins],
            "summary": self.summary.model_dump(),
        }


@dataclass
class AuditOptions:
    """Options controlling an audit run."""
    outdated_only: bool = False
    verbose: bool = False
