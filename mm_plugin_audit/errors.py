"""
Error types for the plugin audit, each mapped to a process exit code.
"""

from enum import IntEnum
from typing import Optional


class ExitCode(IntEnum):
    """Process exit codes."""
    SUCCESS = 0
    CONFIG_ERROR = 1       # Missing URL, invalid auth, bad flags
    API_ERROR = 2          # Mattermost instance unreachable or unexpected response
    MARKETPLACE_ERROR = 3  # Marketplace unreachable (air-gapped)
    OUTPUT_ERROR = 4       # Unable to write output


class AuditError(Exception):
    """Base class for errors that terminate an audit run."""

    exit_code: ExitCode = ExitCode.API_ERROR

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


class ConfigError(AuditError):
    """Bad or missing configuration, flags or credentials."""
    exit_code = ExitCode.CONFIG_ERROR


class APIError(AuditError):
    """The Mattermost server was unreachable or returned an error."""
    exit_code = ExitCode.API_ERROR


class MarketplaceError(AuditError):
    """The Marketplace catalogue could not be fetched."""
    exit_code = ExitCode.MARKETPLACE_ERROR


class OutputError(AuditError):
    """The report could not be written."""
    exit_code = ExitCode.OUTPUT_ERROR
