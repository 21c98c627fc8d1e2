"""
Trac to GitHub Migration Tool

Migrates Trac tickets to GitHub issues by replaying each ticket's full
change history as GitHub API mutations, translating wiki markup and mapping
ticket fields to labels.
"""

from __future__ import annotations

from .cli import main
from .exceptions import (
    AmbiguousLabelRuleError,
    ConfigurationError,
    MigrationCancelledError,
    MigrationError,
    TicketStoreError,
)
from .labels import LabelMapper
from .markup import trac_to_markdown
from .migrator import TracToGithubMigrator
from .replay import TicketReplayer
from .utils import setup_logging

# Package version
__version__ = "0.1.0"

__all__ = [
    "AmbiguousLabelRuleError",
    "ConfigurationError",
    "LabelMapper",
    "MigrationCancelledError",
    "MigrationError",
    "TicketReplayer",
    "TicketStoreError",
    "TracToGithubMigrator",
    "main",
    "setup_logging",
    "trac_to_markdown",
]
