"""
Main migration class for Trac to GitHub migration.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

import requests
from github import GithubException

from .exceptions import MigrationCancelledError, MigrationError
from .replay import TicketReplayer
from .resolver import Resolver

if TYPE_CHECKING:
    import threading
    from collections.abc import Mapping

    from .labels import LabelMapper
    from .models import Milestone
    from .protocols import IssueTracker, TicketStore

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)

_DUE_DATE_FORMATS: Final[tuple[str, ...]] = ("%Y/%m/%d", "%m/%d/%Y", "%d.%m.%Y")


def parse_due_date(due: int | str | None) -> dt.date | None:
    """Convert a Trac milestone due date to a date.

    Trac stores microseconds since the epoch, with 0 meaning "no due date";
    very old databases hold free text instead.

    Raises:
        ValueError: If the value is text in no known date format
    """
    if due is None:
        return None

    text = str(due).strip()
    if text.isdigit():
        microseconds = int(text)
        if microseconds == 0:
            return None
        return dt.datetime.fromtimestamp(microseconds / 1_000_000, tz=dt.UTC).date()
    if not text:
        return None

    try:
        return dt.datetime.fromisoformat(text).date()
    except ValueError:
        pass
    for date_format in _DUE_DATE_FORMATS:
        try:
            return dt.datetime.strptime(text, date_format).date()  # noqa: DTZ007
        except ValueError:
            continue

    msg = f"Unparseable due date: {due!r}"
    raise ValueError(msg)


@dataclass
class MigrationStats:
    """Statistics collected during migration."""

    milestones_created: int = 0
    milestones_existing: int = 0
    issues_created: int = 0
    tickets_skipped: int = 0
    comments_created: int = 0
    mutations: int = 0
    events_skipped: int = 0


class TracToGithubMigrator:
    """Migrates milestones and tickets from a Trac database to a GitHub repository.

    Tickets are migrated one at a time in ascending id order. A failed or
    cancelled run leaves already created issues in place and can be resumed
    with ``start_at`` set to the ticket that was in progress.
    """

    def __init__(
        self,
        store: TicketStore,
        tracker: IssueTracker,
        label_mapper: LabelMapper,
        users: Mapping[str, str],
        *,
        deduplicate: bool = False,
        start_at: int = 0,
        cancel: threading.Event | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self.store: TicketStore = store
        self.tracker: IssueTracker = tracker
        self.label_mapper: LabelMapper = label_mapper
        self.users: dict[str, str] = dict(users)
        self.deduplicate: bool = deduplicate
        self.start_at: int = start_at
        self.cancel: threading.Event | None = cancel
        self.logger: logging.Logger = log or logger
        self.stats: MigrationStats = MigrationStats()
        self.current_ticket: int | None = None

    def _cancelled(self) -> bool:
        return self.cancel is not None and self.cancel.is_set()

    def migrate_milestones(self, resolver: Resolver) -> None:
        """Create the Trac milestones that GitHub does not have yet."""
        for milestone in self.store.get_milestones():
            if resolver.milestone_number(milestone.name) is not None:
                self.stats.milestones_existing += 1
                self.logger.info(f"Milestone {milestone.name!r} already exists, skipped")
                continue

            number = self.tracker.create_milestone(
                milestone.name,
                milestone.state,
                milestone.description,
                self._due_date(milestone),
            )
            resolver.add_milestone(milestone.name, number)
            self.stats.milestones_created += 1
            self.logger.info(f"Created milestone #{number}: {milestone.name}")

    def _due_date(self, milestone: Milestone) -> dt.date | None:
        try:
            return parse_due_date(milestone.due)
        except ValueError:
            self.logger.warning(f"Milestone {milestone.name!r}: cannot parse due date {milestone.due!r}, none set")
            return None

    def migrate_tickets(self, resolver: Resolver) -> None:
        """Replay every ticket from ``start_at`` on.

        Raises:
            MigrationCancelledError: If cancellation was requested
        """
        existing_titles: set[str] = self.tracker.list_issue_titles() if self.deduplicate else set()
        replayer = TicketReplayer(self.tracker, resolver, self.label_mapper, log=self.logger, cancel=self.cancel)

        try:
            for ticket in self.store.get_tickets(self.start_at):
                if self._cancelled():
                    raise MigrationCancelledError(ticket.id)
                self.current_ticket = ticket.id

                if self.deduplicate and ticket.summary in existing_titles:
                    self.stats.tickets_skipped += 1
                    self.logger.info(f"Ticket #{ticket.id} skipped: an issue titled {ticket.summary!r} exists")
                    continue

                issue = replayer.replay(ticket, self.store.get_changes(ticket.id))
                existing_titles.add(issue.title)
        finally:
            # Includes the issue of a ticket interrupted halfway
            self.stats.issues_created += replayer.stats.issues
            self.stats.mutations += replayer.stats.mutations
            self.stats.comments_created += replayer.stats.comments
            self.stats.events_skipped += replayer.stats.skipped_events

        self.current_ticket = None

    def migrate(self) -> MigrationStats:
        """Execute the complete migration process.

        Raises:
            MigrationError: If GitHub or the Trac database fails, or on cancellation
            AmbiguousLabelRuleError: If the label configuration is ambiguous
        """
        self.logger.info(f"Starting Trac to GitHub migration at ticket #{self.start_at}")
        try:
            resolver = Resolver.build(self.tracker, self.users, log=self.logger)
            self.migrate_milestones(resolver)
            self.migrate_tickets(resolver)
        except (GithubException, requests.RequestException) as e:
            where = f" at ticket #{self.current_ticket}" if self.current_ticket is not None else ""
            msg = f"Migration failed{where}: {e}"
            raise MigrationError(msg) from e

        self.logger.info(
            f"Migration completed: {self.stats.issues_created} issues, "
            f"{self.stats.milestones_created} milestones, {self.stats.comments_created} comments"
        )
        return self.stats
