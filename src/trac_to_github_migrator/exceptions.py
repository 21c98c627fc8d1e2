"""
Custom exception classes for the Trac to GitHub migration tool.
"""

from __future__ import annotations


class MigrationError(Exception):
    """Base exception for migration errors."""


class ConfigurationError(MigrationError):
    """Raised when the configuration file or credentials are invalid."""


class AmbiguousLabelRuleError(ConfigurationError):
    """Raised when more than one label rule of a category matches a value."""

    def __init__(self, category: str, value: str, labels: list[str]) -> None:
        self.category: str = category
        self.value: str = value
        self.labels: list[str] = labels
        super().__init__(f"Ambiguous {category} rules for value {value!r}: matches {', '.join(labels)}")


class TicketStoreError(MigrationError):
    """Raised when the Trac database cannot be opened or queried."""


class MigrationCancelledError(MigrationError):
    """Raised when the run is interrupted."""

    def __init__(self, ticket_id: int | None) -> None:
        self.ticket_id: int | None = ticket_id
        where = f" while migrating ticket #{ticket_id}" if ticket_id is not None else ""
        super().__init__(f"Migration cancelled{where}")
