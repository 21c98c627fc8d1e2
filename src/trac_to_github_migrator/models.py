"""Data models exchanged between the ticket store, the replay and GitHub.

Store records are immutable snapshots of Trac rows. IssueState is the
mutable in-memory projection of the GitHub issue while its ticket is being
replayed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

# Fields synthesized as initial change events, in replay order
TRACKED_FIELDS: tuple[str, ...] = (
    "description",
    "owner",
    "milestone",
    "type",
    "component",
    "priority",
    "version",
    "resolution",
)


@dataclass(frozen=True)
class Ticket:
    """A Trac ticket with the current values of its fields."""

    id: int
    summary: str
    reporter: str
    time: int  # Microseconds since the epoch
    description: str = ""
    owner: str = ""
    milestone: str = ""
    type: str = ""
    component: str = ""
    priority: str = ""
    version: str = ""
    resolution: str = ""
    severity: str = ""
    keywords: str = ""
    cc: str = ""
    status: str = ""

    def initial_events(self) -> list[ChangeEvent]:
        """Replay the current field values as events at creation time."""
        return [
            ChangeEvent(
                ticket_id=self.id,
                field=name,
                new_value=getattr(self, name),
                author=self.reporter,
                time=self.time,
            )
            for name in TRACKED_FIELDS
        ]


@dataclass(frozen=True)
class ChangeEvent:
    """One field change from the ticket history."""

    ticket_id: int
    field: str
    new_value: str
    author: str
    time: int  # Microseconds since the epoch


@dataclass(frozen=True)
class Milestone:
    """A Trac milestone.

    ``due`` is either a microsecond timestamp or free text, depending on how
    old the Trac database is.
    """

    name: str
    due: int | str | None = None
    completed: int = 0
    description: str = ""

    @property
    def state(self) -> Literal["open", "closed"]:
        return "closed" if self.completed else "open"


@dataclass
class IssueState:
    """The GitHub issue as known after the last applied mutation."""

    number: int
    title: str
    body: str = ""
    labels: set[str] = field(default_factory=set)
    milestone: int | None = None
    assignee: str | None = None
    state: Literal["open", "closed"] = "open"
