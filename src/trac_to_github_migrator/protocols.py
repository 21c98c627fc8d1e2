"""Protocols defining the contracts for the ticket store and the issue tracker.

The migration separates concerns into three parts:

1. TicketStore: Read-only access to the Trac database
2. IssueTracker: Mutations on the GitHub repository, per identity
3. Replay and driver: Translate ticket histories into issue mutations

This separation allows testing the replay with mock implementations and keeps
SQL and REST details out of the translation logic.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal, Protocol

if TYPE_CHECKING:
    import datetime as dt
    from collections.abc import Iterator

    from .models import ChangeEvent, Milestone, Ticket


class TicketStore(Protocol):
    """Protocol for reading tickets from the legacy tracker.

    All methods raise TicketStoreError when the database is unreachable.
    """

    def get_milestones(self) -> Iterator[Milestone]:
        """Yield all milestones."""
        ...

    def get_tickets(self, start_at: int = 0) -> Iterator[Ticket]:
        """Yield tickets with ``id >= start_at`` in ascending id order."""
        ...

    def get_changes(self, ticket_id: int) -> list[ChangeEvent]:
        """Return the change log of a ticket in ascending time order."""
        ...

    def close(self) -> None: ...


class IssueTracker(Protocol):
    """Protocol for mutating issues in the target repository.

    Mutations accept an ``identity``: the configured login whose credential
    performs the call. ``None`` selects the default (first) identity.

    Example implementations:
        - GithubIssueTracker: Uses PyGithub, one client per identity, waits
          when the rate limit runs low and truncates oversized bodies
    """

    @property
    def identities(self) -> list[str]:
        """Configured logins, default first."""
        ...

    def list_collaborators(self) -> list[str]:
        """Return the logins of all repository collaborators."""
        ...

    def list_milestones(self, state: Literal["open", "closed", "all"]) -> dict[str, int]:
        """Return existing milestones as title -> number."""
        ...

    def create_milestone(
        self,
        name: str,
        state: Literal["open", "closed"],
        description: str,
        due_on: dt.date | None,
    ) -> int:
        """Create a milestone and return its number."""
        ...

    def list_issue_titles(self) -> set[str]:
        """Return the titles of all existing issues, open and closed."""
        ...

    def create_issue(self, title: str, body: str, identity: str | None = None) -> int:
        """Create an issue and return its number."""
        ...

    def update_issue(
        self,
        number: int,
        identity: str | None = None,
        *,
        title: str | None = None,
        body: str | None = None,
        milestone: int | None = None,
        clear_milestone: bool = False,
        assignee: str | None = None,
        clear_assignee: bool = False,
        labels: list[str] | None = None,
    ) -> None:
        """Update the given attributes of an issue; omitted ones are left untouched."""
        ...

    def set_state(self, number: int, state: Literal["open", "closed"], identity: str | None = None) -> None:
        """Close or reopen an issue."""
        ...

    def add_comment(self, number: int, body: str, identity: str | None = None) -> None:
        """Add a comment to an issue."""
        ...

    def rate_limit(self, identity: str | None = None) -> tuple[int, int]:
        """Return the (remaining, limit) request quota of an identity."""
        ...
