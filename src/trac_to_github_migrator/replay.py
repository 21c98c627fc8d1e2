"""Replay of a Trac ticket history as GitHub issue mutations.

A ticket is migrated by creating an empty issue and then applying one event
at a time:

1. The ticket's current field values, replayed as events at creation time
   (description, owner, milestone, type, component, priority, version,
   resolution)
2. The ticket_change history in ascending time order

Each event produces at most one API call, and the in-memory IssueState is
updated before the next event, because label and milestone changes depend
on the exact state left by the previous mutation. Nothing is batched or
reordered.

Dispatch
--------
    milestone       set the milestone (unknown names are skipped)
    owner           set the assignee (unmapped users and non-collaborators are skipped)
    status          close on "closed", reopen on "reopened"
    summary         replace the title
    description     replace the body (translated, with attribution header)
    label fields    recompute the labels through the LabelMapper
    comment         add a comment (translated, with attribution header)
    keywords, cc, reporter and anything else are ignored
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from .exceptions import MigrationCancelledError
from .issue_builder import build_body
from .models import IssueState

if TYPE_CHECKING:
    import threading
    from collections.abc import Callable, Sequence

    from .labels import LabelMapper
    from .models import ChangeEvent, Ticket
    from .protocols import IssueTracker
    from .resolver import Resolver

logger: logging.Logger = logging.getLogger(__name__)

LABEL_FIELDS: Final[frozenset[str]] = frozenset(
    {"priority", "type", "component", "version", "resolution", "severity"}
)
UNSUPPORTED_FIELDS: Final[frozenset[str]] = frozenset({"keywords", "cc", "reporter"})

# Comments Trac adds by itself when a milestone is deleted or completed
HOUSEKEEPING_COMMENT: Final[re.Pattern[str]] = re.compile(
    r"^\s*(?:Milestone .+ deleted|Ticket retargeted after milestone (?:closed|deleted))\.?\s*$"
)


def merge_events(ticket: Ticket, changes: Sequence[ChangeEvent]) -> list[ChangeEvent]:
    """Return the synthesized initial events followed by the history in time order."""
    return ticket.initial_events() + sorted(changes, key=lambda event: event.time)


@dataclass
class ReplayStats:
    """Counters accumulated over all replayed tickets."""

    issues: int = 0
    mutations: int = 0
    comments: int = 0
    skipped_events: int = 0


class TicketReplayer:
    """Translates one ticket at a time into GitHub issue mutations."""

    def __init__(
        self,
        tracker: IssueTracker,
        resolver: Resolver,
        label_mapper: LabelMapper,
        *,
        log: logging.Logger | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        self.tracker: IssueTracker = tracker
        self.resolver: Resolver = resolver
        self.label_mapper: LabelMapper = label_mapper
        self.stats: ReplayStats = ReplayStats()
        self._logger: logging.Logger = log or logger
        self._cancel: threading.Event | None = cancel
        self._handlers: dict[str, Callable[[IssueState, ChangeEvent, str], bool]] = {
            "milestone": self._set_milestone,
            "owner": self._set_owner,
            "status": self._set_status,
            "summary": self._set_title,
            "description": self._set_body,
            "comment": self._add_comment,
        }

    def replay(self, ticket: Ticket, changes: Sequence[ChangeEvent]) -> IssueState:
        """Create the issue for ``ticket`` and apply its whole history.

        Raises:
            MigrationCancelledError: If cancellation was requested between two events
            AmbiguousLabelRuleError: If a label rule set is ambiguous for a value
        """
        actor = self.resolver.actor_for(ticket.reporter)
        number = self.tracker.create_issue(ticket.summary, "", identity=actor)
        self.stats.issues += 1
        issue = IssueState(number=number, title=ticket.summary)
        self._logger.info(f"Created issue #{number} for ticket #{ticket.id} as {actor}: {ticket.summary}")

        for event in merge_events(ticket, changes):
            if self._cancel is not None and self._cancel.is_set():
                raise MigrationCancelledError(ticket.id)
            self.apply(issue, event)

        return issue

    def apply(self, issue: IssueState, event: ChangeEvent) -> bool:
        """Apply one event; return True if a mutation was sent."""
        actor = self.resolver.actor_for(event.author)

        if event.field in LABEL_FIELDS:
            handler = self._set_labels
        elif event.field in self._handlers:
            handler = self._handlers[event.field]
        else:
            if event.field not in UNSUPPORTED_FIELDS and not event.field.startswith("_"):
                self._logger.debug(f"Ticket #{event.ticket_id}: unknown field {event.field!r} ignored")
            self.stats.skipped_events += 1
            return False

        mutated = handler(issue, event, actor)
        if mutated:
            self.stats.mutations += 1
        else:
            self.stats.skipped_events += 1
        return mutated

    def _set_milestone(self, issue: IssueState, event: ChangeEvent, actor: str) -> bool:
        name = event.new_value
        if not name:
            if issue.milestone is None:
                return False
            self.tracker.update_issue(issue.number, actor, clear_milestone=True)
            issue.milestone = None
            self._logger.debug(f"Issue #{issue.number}: milestone cleared")
            return True

        number = self.resolver.milestone_number(name)
        if number is None:
            self._logger.warning(f"Issue #{issue.number}: milestone {name!r} not found on GitHub, skipped")
            return False
        if number == issue.milestone:
            return False

        self.tracker.update_issue(issue.number, actor, milestone=number)
        issue.milestone = number
        self._logger.debug(f"Issue #{issue.number}: milestone set to {name} (#{number})")
        return True

    def _set_owner(self, issue: IssueState, event: ChangeEvent, actor: str) -> bool:
        owner = event.new_value
        if not owner:
            if issue.assignee is None:
                return False
            self.tracker.update_issue(issue.number, actor, clear_assignee=True)
            issue.assignee = None
            self._logger.debug(f"Issue #{issue.number}: assignee cleared")
            return True

        login = self.resolver.assignee_for(owner)
        if login is None:
            self._logger.warning(f"Issue #{issue.number}: owner {owner!r} is not a mapped collaborator, skipped")
            return False
        if login == issue.assignee:
            return False

        self.tracker.update_issue(issue.number, actor, assignee=login)
        issue.assignee = login
        self._logger.debug(f"Issue #{issue.number}: assigned to {login}")
        return True

    def _set_status(self, issue: IssueState, event: ChangeEvent, actor: str) -> bool:
        if event.new_value == "closed":
            state = "closed"
        elif event.new_value == "reopened":
            state = "open"
        else:
            self._logger.debug(f"Issue #{issue.number}: status {event.new_value!r} has no GitHub equivalent")
            return False

        self.tracker.set_state(issue.number, state, actor)
        issue.state = state
        self._logger.debug(f"Issue #{issue.number}: state set to {state}")
        return True

    def _set_title(self, issue: IssueState, event: ChangeEvent, actor: str) -> bool:
        self.tracker.update_issue(issue.number, actor, title=event.new_value)
        issue.title = event.new_value
        self._logger.debug(f"Issue #{issue.number}: title set to {event.new_value!r}")
        return True

    def _attributed(self, event: ChangeEvent) -> str:
        return build_body(
            event.new_value,
            author=event.author,
            github_login=self.resolver.login_for(event.author),
            acts_as_author=self.resolver.acts_as_author(event.author),
            timestamp=event.time,
        )

    def _set_body(self, issue: IssueState, event: ChangeEvent, actor: str) -> bool:
        body = self._attributed(event)
        self.tracker.update_issue(issue.number, actor, body=body)
        issue.body = body
        self._logger.debug(f"Issue #{issue.number}: description updated by {event.author}")
        return True

    def _set_labels(self, issue: IssueState, event: ChangeEvent, actor: str) -> bool:
        labels = self.label_mapper.apply(event.field, event.new_value, issue.labels)
        if labels is None or labels == issue.labels:
            return False

        self.tracker.update_issue(issue.number, actor, labels=sorted(labels))
        issue.labels = labels
        self._logger.debug(f"Issue #{issue.number}: labels set to {sorted(labels)}")
        return True

    def _add_comment(self, issue: IssueState, event: ChangeEvent, actor: str) -> bool:
        if not event.new_value.strip():
            return False
        if HOUSEKEEPING_COMMENT.match(event.new_value):
            self._logger.debug(f"Issue #{issue.number}: milestone housekeeping comment skipped")
            return False

        self.tracker.add_comment(issue.number, self._attributed(event), actor)
        self.stats.comments += 1
        self._logger.debug(f"Issue #{issue.number}: comment by {event.author} added")
        return True
