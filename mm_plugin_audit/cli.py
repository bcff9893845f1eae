"""
Command-line interface for the plugin audit.
"""

import logging
import sys
from typing import Optional

import click
from rich.markup import escape

from mm_plugin_audit import __version__
from mm_plugin_audit.audit import audit_server
from mm_plugin_audit.client import MattermostClient
from mm_plugin_audit.common import console, setup_logging
from mm_plugin_audit.config import OUTPUT_FORMATS, AuditConfig
from mm_plugin_audit.errors import AuditError, ConfigError, ExitCode, OutputError
from mm_plugin_audit.models import AuditOptions
from mm_plugin_audit.output import format_output


def resolve_password(config: AuditConfig) -> str:
    """Prompt for a password on a terminal, otherwise fall back to MM_PASSWORD."""
    if sys.stdin.isatty():
        try:
            return click.prompt("Password", hide_input=True, err=True)
        except click.Abort as e:
            raise ConfigError("error: failed to read password", e) from e

    if not config.password:
        raise ConfigError(
            "error: password required. Set MM_PASSWORD environment variable for non-interactive use."
        )
    return config.password


def build_config(url: Optional[str], token: Optional[str], username: Optional[str]) -> AuditConfig:
    """Merge command-line flags over environment configuration and check the server URL."""
    config = AuditConfig.from_env()

    if url:
        config.url = url
    if token:
        config.token = token
    if username:
        config.username = username

    if not config.url:
        raise ConfigError("error: server URL is required. Use --url or set the MM_URL environment variable.")
    config.url = config.server_url
    return config


def check_auth(config: AuditConfig) -> None:
    """Require credentials, resolving the password for username auth."""
    if config.auth_method is None:
        raise ConfigError(
            "error: authentication required. Use --token (or MM_TOKEN) for token auth, "
            "or --username (or MM_USERNAME) for password auth."
        )
    if config.auth_method == "password":
        config.password = resolve_password(config)


def write_report(result, fmt: str, output: Optional[str]) -> None:
    """Write the report to a file, falling back to stdout if it cannot be opened."""
    if output:
        try:
            f = open(output, "w", newline="", encoding="utf-8")
        except OSError as e:
            console.print(
                f"[yellow]warning: unable to write to {escape(output)} ({escape(str(e))}), "
                "falling back to stdout[/yellow]",
                soft_wrap=True,
            )
        else:
            with f:
                try:
                    format_output(result, fmt, f)
                except OSError as e:
                    raise OutputError("error: failed to write output", e) from e
            return

    try:
        format_output(result, fmt, sys.stdout)
        sys.stdout.flush()
    except OSError as e:
        raise OutputError("error: failed to write output", e) from e


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="mm-plugin-audit", message="%(prog)s %(version)s")
@click.option("--url", help="Mattermost server URL (or set MM_URL)")
@click.option("--token", help="Personal Access Token (or set MM_TOKEN)")
@click.option("--username", help="Username for password auth (or set MM_USERNAME)")
@click.option("--format", "-f", "fmt", default="table", show_default=True,
              help="Output format: table, csv, json")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write output to file")
@click.option("--outdated-only", is_flag=True,
              help="Show only plugins with available updates (plus custom/private)")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging to stderr")
def main(
    url: Optional[str],
    token: Optional[str],
    username: Optional[str],
    fmt: str,
    output: Optional[str],
    outdated_only: bool,
    verbose: bool,
):
    """
    Audit the plugins installed on a Mattermost server.

    Classifies each plugin as Marketplace, Mattermost, bundled or third-party
    and reports which Marketplace plugins have newer versions available.

    Examples:

        # Token auth, table output
        mm-plugin-audit --url https://mm.example.com --token xxxx

        # Outdated plugins as JSON
        MM_URL=https://mm.example.com MM_TOKEN=xxxx mm-plugin-audit -f json --outdated-only
    """
    logger = setup_logging(level=logging.DEBUG if verbose else logging.WARNING)

    try:
        config = build_config(url, token, username)

        fmt_lower = fmt.lower()
        if fmt_lower not in OUTPUT_FORMATS:
            raise ConfigError(f"error: invalid format {fmt!r}. Use table, csv, or json.")

        check_auth(config)

        logger.info(f"Connecting to {config.server_url}...")
        client = MattermostClient.connect(config)

        result = audit_server(client, AuditOptions(outdated_only=outdated_only, verbose=verbose))

        write_report(result, fmt_lower, output)

    except AuditError as e:
        console.print(f"[red]{escape(str(e) if verbose else e.message)}[/red]", soft_wrap=True)
        sys.exit(int(e.exit_code))
    except Exception as e:
        console.print(f"[red]error: {escape(str(e))}[/red]", soft_wrap=True)
        if verbose:
            console.print_exception()
        sys.exit(int(ExitCode.API_ERROR))


def run() -> None:
    """Console script entry point; usage errors exit with the configuration error code."""
    try:
        code = main.main(standalone_mode=False)
    except click.UsageError as e:
        e.show()
        sys.exit(int(ExitCode.CONFIG_ERROR))
    except click.Abort:
        console.print("Aborted!")
        sys.exit(int(ExitCode.CONFIG_ERROR))
    sys.exit(code or 0)


if __name__ == "__main__":
    run()
