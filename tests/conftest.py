"""
Pytest configuration and fixtures.

This module configures pytest behavior for different test types:
- Integration tests: Fail on any warnings from the code under test
- Unit tests: Allow warnings

It also provides an in-memory issue tracker and a Trac database builder.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import TYPE_CHECKING, Any

from typing_extensions import override

import pytest

if TYPE_CHECKING:
    import datetime as dt
    from collections.abc import Callable, Generator, Iterable
    from pathlib import Path

# Store warning records during test execution
_integration_test_warnings: dict[str, list[logging.LogRecord]] = {}


class IntegrationTestWarningHandler(logging.Handler):
    """Custom logging handler to capture warnings during integration tests."""

    test_nodeid: str

    def __init__(self, test_nodeid: str) -> None:
        super().__init__()
        self.test_nodeid = test_nodeid
        self.setLevel(logging.WARNING)

    @override
    def emit(self, record: logging.LogRecord) -> None:
        """Capture WARNING and above level logs."""
        _integration_test_warnings.setdefault(self.test_nodeid, []).append(record)


@pytest.fixture(autouse=True)
def fail_on_log_warnings_for_integration_tests(
    request: pytest.FixtureRequest,
) -> Generator[None]:
    """
    Automatically fail integration tests if any WARNING level logs are emitted from the code under test.

    A clean fixture database should migrate without a single skipped value, so
    a warning in an integration test means a mapping was lost.
    """
    if request.node.get_closest_marker("integration") is None:
        yield
        return

    test_nodeid = request.node.nodeid
    _integration_test_warnings[test_nodeid] = []

    handler = IntegrationTestWarningHandler(test_nodeid)
    root_logger = logging.getLogger()
    root_logger.addHandler(handler)

    try:
        yield
    finally:
        root_logger.removeHandler(handler)


@pytest.hookimpl(tryfirst=True, hookwrapper=True)
def pytest_runtest_makereport(
    item: pytest.Item, call: pytest.CallInfo[None]
) -> Generator[None]:  # type: ignore[misc]
    """Mark a passed integration test as failed if warnings were logged during it."""
    outcome = yield
    report = outcome.get_result()

    if call.when == "call" and report.outcome == "passed":
        test_nodeid = item.nodeid
        warning_records = _integration_test_warnings.get(test_nodeid, [])

        if warning_records:
            warning_messages = [
                f"{record.levelname}: {record.getMessage()} (in {record.name}:{record.lineno})"
                for record in warning_records
            ]
            report.outcome = "failed"
            report.longrepr = f"Integration test failed: {len(warning_records)} warning(s) detected:\n" + "\n".join(
                f"  - {msg}" for msg in warning_messages
            )

        _integration_test_warnings.pop(test_nodeid, None)


class FakeIssueTracker:
    """In-memory IssueTracker recording every call."""

    def __init__(
        self,
        identities: Iterable[str] = ("migration-bot",),
        milestones: dict[str, int] | None = None,
        closed_milestones: dict[str, int] | None = None,
        collaborators: Iterable[str] = (),
        titles: Iterable[str] = (),
    ) -> None:
        self._identities: list[str] = list(identities)
        self.milestones: dict[str, int] = dict(milestones or {})
        self.closed_milestones: dict[str, int] = dict(closed_milestones or {})
        self.collaborators: list[str] = list(collaborators)
        self.existing_titles: set[str] = set(titles)
        self.created_milestones: list[dict[str, Any]] = []
        self.issues: dict[int, dict[str, Any]] = {}
        self.calls: list[tuple[Any, ...]] = []

    @property
    def identities(self) -> list[str]:
        return list(self._identities)

    def list_collaborators(self) -> list[str]:
        self.calls.append(("list_collaborators",))
        return list(self.collaborators)

    def list_milestones(self, state: str) -> dict[str, int]:
        self.calls.append(("list_milestones", state))
        if state == "open":
            return dict(self.milestones)
        if state == "closed":
            return dict(self.closed_milestones)
        return self.milestones | self.closed_milestones

    def create_milestone(self, name: str, state: str, description: str, due_on: dt.date | None) -> int:
        number = len(self.milestones) + len(self.closed_milestones) + len(self.created_milestones) + 1
        self.created_milestones.append(
            {"number": number, "name": name, "state": state, "description": description, "due_on": due_on}
        )
        self.calls.append(("create_milestone", name))
        return number

    def list_issue_titles(self) -> set[str]:
        return self.existing_titles | {issue["title"] for issue in self.issues.values()}

    def create_issue(self, title: str, body: str, identity: str | None = None) -> int:
        number = len(self.issues) + 1
        self.issues[number] = {
            "title": title,
            "body": body,
            "labels": [],
            "milestone": None,
            "assignee": None,
            "state": "open",
            "comments": [],
            "creator": identity,
        }
        self.calls.append(("create_issue", identity, title))
        return number

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
        issue = self.issues[number]
        changes: dict[str, Any] = {}
        if title is not None:
            changes["title"] = title
        if body is not None:
            changes["body"] = body
        if clear_milestone or milestone is not None:
            changes["milestone"] = milestone
        if clear_assignee or assignee is not None:
            changes["assignee"] = assignee
        if labels is not None:
            changes["labels"] = list(labels)
        issue.update(changes)
        self.calls.append(("update_issue", identity, number, changes))

    def set_state(self, number: int, state: str, identity: str | None = None) -> None:
        self.issues[number]["state"] = state
        self.calls.append(("set_state", identity, number, state))

    def add_comment(self, number: int, body: str, identity: str | None = None) -> None:
        self.issues[number]["comments"].append({"body": body, "identity": identity})
        self.calls.append(("add_comment", identity, number))

    def rate_limit(self, identity: str | None = None) -> tuple[int, int]:
        return 5000, 5000

    def mutations(self) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] in {"create_issue", "update_issue", "set_state", "add_comment"}]


@pytest.fixture
def make_tracker() -> Callable[..., FakeIssueTracker]:
    """Factory for in-memory issue trackers."""
    return FakeIssueTracker


_TRAC_SCHEMA = """
CREATE TABLE milestone (name text PRIMARY KEY, due integer, completed integer, description text);
CREATE TABLE ticket (
    id integer PRIMARY KEY, type text, time integer, changetime integer, component text,
    severity text, priority text, owner text, reporter text, cc text, version text,
    milestone text, status text, resolution text, summary text, description text, keywords text
);
CREATE TABLE ticket_change (
    ticket integer, time integer, author text, field text, oldvalue text, newvalue text,
    UNIQUE (ticket, time, field)
);
"""


@pytest.fixture
def make_trac_db(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a Trac SQLite database with the given rows.

    Tickets are dicts of ticket columns; changes are
    ``(ticket, time, author, field, newvalue)`` tuples.
    """

    def build(
        milestones: Iterable[tuple[str, Any, int, str]] = (),
        tickets: Iterable[dict[str, Any]] = (),
        changes: Iterable[tuple[int, int, str, str, str | None]] = (),
    ) -> Path:
        path = tmp_path / "trac.db"
        connection = sqlite3.connect(path)
        try:
            connection.executescript(_TRAC_SCHEMA)
            connection.executemany("INSERT INTO milestone VALUES (?, ?, ?, ?)", list(milestones))
            for ticket in tickets:
                columns = ", ".join(ticket)
                placeholders = ", ".join("?" for _ in ticket)
                connection.execute(f"INSERT INTO ticket ({columns}) VALUES ({placeholders})", list(ticket.values()))  # noqa: S608
            connection.executemany(
                "INSERT INTO ticket_change (ticket, time, author, field, newvalue) VALUES (?, ?, ?, ?, ?)",
                list(changes),
            )
            connection.commit()
        finally:
            connection.close()
        return path

    return build
