"""Tests for the audit engine."""

import pytest

from mm_plugin_audit.audit import (
    audit_server,
    build_plugin_report,
    classify_plugin_source,
    filter_outdated,
    run_audit,
    sort_reports,
    summarize,
)
from mm_plugin_audit.errors import APIError, MarketplaceError
from mm_plugin_audit.models import (
    AuditOptions,
    InstalledPlugin,
    MarketplacePlugin,
    PluginSource,
    PluginStatus,
    PluginType,
    UpdateStatus,
)


class FakeClient:
    """In-memory stand-in for MattermostClient."""

    def __init__(self, plugins=None, marketplace=None, plugins_error=None, marketplace_error=None):
        self.plugins = plugins or []
        self.marketplace = marketplace or {}
        self.plugins_error = plugins_error
        self.marketplace_error = marketplace_error
        self.calls = []

    def get_plugins(self):
        self.calls.append("get_plugins")
        if self.plugins_error:
            raise self.plugins_error
        return self.plugins

    def get_marketplace_plugins(self):
        self.calls.append("get_marketplace_plugins")
        if self.marketplace_error:
            raise self.marketplace_error
        return self.marketplace


def plugin(plugin_id, name=None, version="1.0.0", homepage_url="",
           status=PluginStatus.ENABLED, has_server=True, has_webapp=False):
    return InstalledPlugin(
        plugin_id=plugin_id,
        name=name or plugin_id,
        version=version,
        homepage_url=homepage_url,
        status=status,
        has_server=has_server,
        has_webapp=has_webapp,
    )


@pytest.fixture
def mixed_plugins():
    """One plugin of every source category, installed in scrambled order."""
    return [
        plugin("custom.plugin", name="zeta Custom", homepage_url="https://example.com/custom"),
        plugin("github", name="GitHub", version="2.0.0", status=PluginStatus.DISABLED),
        plugin("com.mattermost.internal", name="Internal Tool",
               homepage_url="https://github.com/mattermost/mattermost-plugin-internal"),
        plugin("com.example.todo", name="todo", version="0.5.0", has_webapp=True),
        plugin("com.example.alpha", name="Alpha", version="1.2.0"),
    ]


@pytest.fixture
def mixed_catalogue():
    return {
        "github": MarketplacePlugin(version="2.6.0", homepage_url="https://github.com/mattermost/mattermost-plugin-github"),
        "com.example.todo": MarketplacePlugin(version="0.6.0", homepage_url="https://example.com/todo"),
        "com.example.alpha": MarketplacePlugin(version="1.2.0", homepage_url="https://example.com/alpha"),
    }


class TestClassifyPluginSource:
    """Tests for source classification priority."""

    def test_bundled_in_marketplace(self):
        """Test bundled wins over marketplace membership."""
        assert classify_plugin_source("github", True, "") == PluginSource.BUNDLED

    def test_bundled_with_mattermost_homepage(self):
        url = "https://github.com/mattermost/mattermost-plugin-jira"
        assert classify_plugin_source("jira", False, url) == PluginSource.BUNDLED

    def test_marketplace(self):
        assert classify_plugin_source("com.example.todo", True, "") == PluginSource.MARKETPLACE

    def test_marketplace_over_mattermost_homepage(self):
        url = "https://github.com/mattermost/mattermost-plugin-todo"
        assert classify_plugin_source("com.mattermost.todo", True, url) == PluginSource.MARKETPLACE

    def test_mattermost_homepage(self):
        url = "https://github.com/mattermost/mattermost-plugin-legal-hold"
        assert classify_plugin_source("com.mattermost.legal-hold", False, url) == PluginSource.MATTERMOST

    def test_community_homepage(self):
        """Test the community org is not treated as Mattermost-maintained."""
        url = "https://github.com/mattermost-community/mattermost-plugin-autolink"
        assert classify_plugin_source("autolink", False, url) == PluginSource.THIRD_PARTY

    def test_both_markers(self):
        """Test a URL containing both org paths is third-party."""
        url = "https://github.com/mattermost/redirect?to=github.com/mattermost-community/x"
        assert classify_plugin_source("x", False, url) == PluginSource.THIRD_PARTY

    def test_case_sensitive(self):
        url = "https://GitHub.com/Mattermost/mattermost-plugin-x"
        assert classify_plugin_source("x", False, url) == PluginSource.THIRD_PARTY

    def test_third_party_default(self):
        assert classify_plugin_source("custom", False, "") == PluginSource.THIRD_PARTY


class TestBuildPluginReport:
    """Tests for per-plugin report construction."""

    def test_marketplace_outdated(self):
        entry = MarketplacePlugin(version="1.1.0", homepage_url="https://example.com/p")
        report = build_plugin_report(plugin("p", has_webapp=True), entry)

        assert report.source == PluginSource.MARKETPLACE
        assert report.latest_version == "1.1.0"
        assert report.marketplace_url == "https://example.com/p"
        assert report.update_available == UpdateStatus.TRUE
        assert report.plugin_type == PluginType.BOTH

    def test_marketplace_installed_newer(self):
        """Test an installed version ahead of the Marketplace is not outdated."""
        entry = MarketplacePlugin(version="1.10.0")
        report = build_plugin_report(plugin("p", version="1.11.0"), entry)
        assert report.update_available == UpdateStatus.FALSE

    def test_marketplace_garbled_installed_version(self):
        """Test unparsable installed version is reported as outdated."""
        entry = MarketplacePlugin(version="1.0.0")
        report = build_plugin_report(plugin("p", version="custom-build"), entry)
        assert report.update_available == UpdateStatus.TRUE

    def test_bundled_ignores_catalogue(self):
        """Test bundled plugins carry no Marketplace data."""
        entry = MarketplacePlugin(version="9.9.9", homepage_url="https://example.com")
        report = build_plugin_report(plugin("github", version="1.0.0"), entry)

        assert report.source == PluginSource.BUNDLED
        assert report.latest_version == ""
        assert report.marketplace_url == ""
        assert report.update_available == UpdateStatus.UNKNOWN

    def test_plugin_type_unknown(self):
        report = build_plugin_report(plugin("p", has_server=False), None)
        assert report.plugin_type == PluginType.UNKNOWN
        assert report.update_available == UpdateStatus.UNKNOWN


class TestRunAudit:
    """Tests for run_audit."""

    def test_empty(self):
        """Test no installed plugins yields a zero result."""
        result = run_audit([], {})
        assert result.plugins == []
        assert all(v == 0 for v in result.summary.model_dump().values())

    def test_all_up_to_date(self):
        installed = [plugin("a", version="1.0.0"), plugin("b", version="2.0.0")]
        catalogue = {
            "a": MarketplacePlugin(version="1.0.0"),
            "b": MarketplacePlugin(version="2.0.0"),
        }
        result = run_audit(installed, catalogue)

        assert result.summary.marketplace == 2
        assert result.summary.up_to_date == 2
        assert result.summary.outdated == 0
        assert all(p.update_available == UpdateStatus.FALSE for p in result.plugins)

    def test_four_way_categorization(self, mixed_plugins, mixed_catalogue):
        result = run_audit(mixed_plugins, mixed_catalogue)
        sources = {p.plugin_id: p.source for p in result.plugins}

        assert sources == {
            "custom.plugin": PluginSource.THIRD_PARTY,
            "github": PluginSource.BUNDLED,
            "com.mattermost.internal": PluginSource.MATTERMOST,
            "com.example.todo": PluginSource.MARKETPLACE,
            "com.example.alpha": PluginSource.MARKETPLACE,
        }

    def test_summary(self, mixed_plugins, mixed_catalogue):
        """Test summary counters and invariants."""
        summary = run_audit(mixed_plugins, mixed_catalogue).summary

        assert summary.total == 5
        assert summary.marketplace == 2
        assert summary.mattermost_plugin == 1
        assert summary.bundled == 1
        assert summary.third_party == 1
        assert summary.outdated == 1
        assert summary.up_to_date == 1
        assert summary.unknown == 3
        assert summary.enabled == 4
        assert summary.disabled == 1

        assert summary.total == (
            summary.marketplace + summary.bundled + summary.mattermost_plugin + summary.third_party
        )
        assert summary.enabled + summary.disabled == summary.total
        assert summary.outdated + summary.up_to_date == summary.marketplace

    def test_sort_order(self, mixed_plugins, mixed_catalogue):
        """Test source rank then case-insensitive name ordering."""
        result = run_audit(mixed_plugins, mixed_catalogue)
        assert [p.name for p in result.plugins] == [
            "Alpha",
            "todo",
            "Internal Tool",
            "GitHub",
            "zeta Custom",
        ]

    def test_sort_is_deterministic(self, mixed_plugins, mixed_catalogue):
        first = run_audit(mixed_plugins, mixed_catalogue)
        second = run_audit(list(reversed(mixed_plugins)), mixed_catalogue)
        assert [p.plugin_id for p in first.plugins] == [p.plugin_id for p in second.plugins]

    def test_outdated_only(self, mixed_plugins, mixed_catalogue):
        """Test filter drops only current Marketplace plugins."""
        result = run_audit(mixed_plugins, mixed_catalogue, AuditOptions(outdated_only=True))
        ids = [p.plugin_id for p in result.plugins]

        assert "com.example.alpha" not in ids
        assert ids == ["com.example.todo", "com.mattermost.internal", "github", "custom.plugin"]
        assert result.summary.total == len(result.plugins)
        assert result.summary.marketplace == 1
        assert result.summary.up_to_date == 0
        assert result.summary.outdated == 1

    def test_outdated_only_keeps_bundled_at_equal_version(self):
        installed = [plugin("github", version="2.6.0")]
        catalogue = {"github": MarketplacePlugin(version="2.6.0")}
        result = run_audit(installed, catalogue, AuditOptions(outdated_only=True))
        assert [p.plugin_id for p in result.plugins] == ["github"]

    def test_invariants_hold(self, mixed_plugins, mixed_catalogue):
        for options in (AuditOptions(), AuditOptions(outdated_only=True)):
            result = run_audit(mixed_plugins, mixed_catalogue, options)
            assert result.summary.total == len(result.plugins)
            assert result.summary.outdated + result.summary.up_to_date == result.summary.marketplace
            for p in result.plugins:
                if p.source == PluginSource.MARKETPLACE:
                    assert p.update_available != UpdateStatus.UNKNOWN
                else:
                    assert p.update_available == UpdateStatus.UNKNOWN


class TestHelpers:
    """Tests for filter, sort and summarize helpers."""

    def test_filter_outdated_empty(self):
        assert filter_outdated([]) == []

    def test_sort_ties_case_insensitive(self):
        reports = [
            build_plugin_report(plugin("b", name="beta"), None),
            build_plugin_report(plugin("a", name="Alpha"), None),
        ]
        assert [r.name for r in sort_reports(reports)] == ["Alpha", "beta"]

    def test_summarize_disabled(self):
        reports = [build_plugin_report(plugin("x", status=PluginStatus.DISABLED), None)]
        summary = summarize(reports)
        assert summary.disabled == 1
        assert summary.enabled == 0
        assert summary.unknown == 1


class TestAuditServer:
    """Tests for audit_server with a fake client."""

    def test_fetch_order(self, mixed_plugins, mixed_catalogue):
        client = FakeClient(mixed_plugins, mixed_catalogue)
        result = audit_server(client)

        assert client.calls == ["get_plugins", "get_marketplace_plugins"]
        assert result.summary.total == 5

    def test_plugins_error_short_circuits(self):
        """Test plugin list failure propagates before the catalogue fetch."""
        error = APIError("error: unexpected API error.")
        client = FakeClient(plugins_error=error)

        with pytest.raises(APIError) as exc_info:
            audit_server(client)

        assert exc_info.value is error
        assert client.calls == ["get_plugins"]

    def test_marketplace_error_propagates(self, mixed_plugins):
        error = MarketplaceError("error: unable to fetch the Marketplace catalogue.")
        client = FakeClient(mixed_plugins, marketplace_error=error)

        with pytest.raises(MarketplaceError) as exc_info:
            audit_server(client)

        assert exc_info.value is error
