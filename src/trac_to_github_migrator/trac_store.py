"""Read-only access to a Trac SQLite database."""

from __future__ import annotations

import logging
import sqlite3
from typing import TYPE_CHECKING, Final

from .exceptions import TicketStoreError
from .models import ChangeEvent, Milestone, Ticket

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

logger: logging.Logger = logging.getLogger(__name__)

_TICKET_COLUMNS: Final[tuple[str, ...]] = (
    "id",
    "summary",
    "reporter",
    "time",
    "description",
    "owner",
    "milestone",
    "type",
    "component",
    "priority",
    "version",
    "resolution",
    "severity",
    "keywords",
    "cc",
    "status",
)


class TracTicketStore:
    """Ticket store over the ``milestone``, ``ticket`` and ``ticket_change`` tables."""

    def __init__(self, database: Path) -> None:
        self.database: Path = database
        if not database.is_file():
            msg = f"Trac database not found: {database}"
            raise TicketStoreError(msg)
        try:
            self._connection: sqlite3.Connection = sqlite3.connect(f"{database.resolve().as_uri()}?mode=ro", uri=True)
        except sqlite3.Error as e:
            msg = f"Cannot open Trac database {database}: {e}"
            raise TicketStoreError(msg) from e
        self._connection.row_factory = sqlite3.Row
        logger.debug(f"Opened Trac database {database}")

    def _query(self, sql: str, params: tuple[object, ...] = ()) -> list[sqlite3.Row]:
        try:
            return self._connection.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            msg = f"Trac database query failed: {e}"
            raise TicketStoreError(msg) from e

    def get_milestones(self) -> Iterator[Milestone]:
        for row in self._query("SELECT name, due, completed, description FROM milestone ORDER BY name"):
            yield Milestone(
                name=row["name"],
                due=row["due"],
                completed=row["completed"] or 0,
                description=row["description"] or "",
            )

    def get_tickets(self, start_at: int = 0) -> Iterator[Ticket]:
        sql = f"SELECT {', '.join(_TICKET_COLUMNS)} FROM ticket WHERE id >= ? ORDER BY id"  # noqa: S608
        for row in self._query(sql, (start_at,)):
            values = {name: row[name] if row[name] is not None else "" for name in _TICKET_COLUMNS}
            values["time"] = row["time"] or 0
            yield Ticket(**values)

    def get_changes(self, ticket_id: int) -> list[ChangeEvent]:
        rows = self._query(
            "SELECT ticket, time, author, field, newvalue FROM ticket_change WHERE ticket = ? ORDER BY time",
            (ticket_id,),
        )
        return [
            ChangeEvent(
                ticket_id=row["ticket"],
                field=row["field"],
                new_value=row["newvalue"] or "",
                author=row["author"] or "",
                time=row["time"] or 0,
            )
            for row in rows
        ]

    def close(self) -> None:
        self._connection.close()
