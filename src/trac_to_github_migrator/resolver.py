"""
Resolution of Trac users and milestones to their GitHub counterparts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from .protocols import IssueTracker

logger: logging.Logger = logging.getLogger(__name__)


def resolve_actor(author: str, users: Mapping[str, str], identities: Sequence[str]) -> str:
    """Pick the identity that performs a mutation on behalf of a Trac user.

    Args:
        author: Trac user name
        users: Trac user name -> GitHub login
        identities: Logins with configured credentials, default first

    Returns:
        The author's own login when it has a credential, the default identity otherwise
    """
    login = users.get(author)
    if login is not None and login in identities:
        return login
    return identities[0]


@dataclass
class Resolver:
    """In-memory lookup tables built once from the GitHub repository."""

    users: dict[str, str]
    identities: list[str]
    milestones: dict[str, int] = field(default_factory=dict)
    collaborators: set[str] = field(default_factory=set)

    @classmethod
    def build(cls, tracker: IssueTracker, users: Mapping[str, str], *, log: logging.Logger | None = None) -> Resolver:
        """Fetch milestones and collaborators once."""
        log = log or logger
        milestones = tracker.list_milestones("open") | tracker.list_milestones("closed")
        collaborators = {login.lower() for login in tracker.list_collaborators()}
        log.info(f"Found {len(milestones)} existing milestones and {len(collaborators)} collaborators")
        return cls(
            users=dict(users),
            identities=list(tracker.identities),
            milestones=milestones,
            collaborators=collaborators,
        )

    @property
    def default_identity(self) -> str:
        return self.identities[0]

    def actor_for(self, author: str) -> str:
        return resolve_actor(author, self.users, self.identities)

    def acts_as_author(self, author: str) -> bool:
        """True when mutations for ``author`` use the author's own credential."""
        return self.users.get(author) in self.identities

    def login_for(self, author: str) -> str | None:
        return self.users.get(author)

    def milestone_number(self, name: str) -> int | None:
        return self.milestones.get(name)

    def add_milestone(self, name: str, number: int) -> None:
        self.milestones[name] = number

    def assignee_for(self, owner: str) -> str | None:
        """Return the GitHub login to assign, or None if it cannot be assigned."""
        login = self.users.get(owner)
        if login is None or login.lower() not in self.collaborators:
            return None
        return login
