from __future__ import annotations

import logging
import os
import time
from typing import TYPE_CHECKING, Any, Final, Literal

from github import Auth, Github, GithubException, UnknownObjectException

from . import utils
from .exceptions import ConfigurationError, MigrationError

if TYPE_CHECKING:
    import datetime as dt

    from github.Issue import Issue
    from github.Milestone import Milestone
    from github.Repository import Repository

    from .config import Identity

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)

_TOKEN_ENV_VAR: Final[str] = "GITHUB_TOKEN"  # noqa: S105

# GitHub rejects issue and comment bodies above this size
MAX_BODY_BYTES: Final[int] = 65536
TRUNCATED_BODY_BYTES: Final[int] = 65300
TRUNCATION_NOTICE: Final[str] = "\n\n---\n*Text truncated: the original exceeded the GitHub size limit.*"

# Sleep until the quota resets once fewer requests than this remain
RATE_LIMIT_BUFFER: Final[int] = 20


def get_token(identity: Identity, *, is_default: bool = False) -> str:
    """Get the token of an identity from the config, its pass path, or env var GITHUB_TOKEN.

    The environment variable is only consulted for the default identity.
    """
    if identity.token:
        return identity.token

    if identity.pass_path:
        try:
            return utils.get_pass_value(identity.pass_path)
        except (utils.PassError, ValueError) as e:
            msg = f"Cannot read GitHub token of {identity.login}: {e}"
            raise ConfigurationError(msg) from e

    if is_default:
        token: str | None = os.environ.get(_TOKEN_ENV_VAR)
        if token:
            return token

    msg = f"No GitHub token configured for {identity.login}"
    raise ConfigurationError(msg)


def get_client(token: str, base_url: str | None = None) -> Github:
    """Get a GitHub client using the token."""
    if base_url:
        return Github(auth=Auth.Token(token), base_url=base_url)
    return Github(auth=Auth.Token(token))


def get_repo(client: Github, repo_path: str) -> Repository:
    try:
        return client.get_repo(repo_path)
    except UnknownObjectException as e:
        msg = f"GitHub repository {repo_path} not found or not accessible"
        raise MigrationError(msg) from e
    except GithubException as e:
        msg = f"Error accessing repository {repo_path}: {e}"
        raise MigrationError(msg) from e


def truncate_body(body: str) -> str:
    """Shorten a body that GitHub would reject, appending a notice."""
    encoded = body.encode("utf-8")
    if len(encoded) <= MAX_BODY_BYTES:
        return body
    logger.warning(f"Truncating body of {len(encoded)} bytes to {TRUNCATED_BODY_BYTES} bytes")
    return encoded[:TRUNCATED_BODY_BYTES].decode("utf-8", errors="ignore") + TRUNCATION_NOTICE


class GithubIssueTracker:
    """Issue tracker backed by one PyGithub client per configured identity.

    Every mutation first checks the quota of the identity performing it and
    blocks until the quota resets when it runs low.
    """

    def __init__(
        self,
        clients: dict[str, Github],
        repositories: dict[str, Repository],
        *,
        rate_limit_buffer: int = RATE_LIMIT_BUFFER,
    ) -> None:
        if not clients:
            msg = "At least one GitHub identity is required"
            raise ConfigurationError(msg)
        self._clients: dict[str, Github] = clients
        self._repositories: dict[str, Repository] = repositories
        self._milestones: dict[tuple[str, int], Milestone] = {}
        # Issue objects of the issue being replayed, per identity
        self._issues: dict[str, Issue] = {}
        self._issue_number: int | None = None
        self.rate_limit_buffer: int = rate_limit_buffer

    @classmethod
    def connect(cls, repo_path: str, identities: list[Identity], base_url: str | None = None) -> GithubIssueTracker:
        """Authenticate every identity and open the repository with each."""
        clients: dict[str, Github] = {}
        repositories: dict[str, Repository] = {}
        for index, identity in enumerate(identities):
            client = get_client(get_token(identity, is_default=index == 0), base_url)
            clients[identity.login] = client
            repositories[identity.login] = get_repo(client, repo_path)
            logger.debug(f"Authenticated GitHub identity {identity.login}")
        logger.info(f"Connected to {repo_path} with {len(clients)} identities")
        return cls(clients, repositories)

    @property
    def identities(self) -> list[str]:
        return list(self._clients)

    def _login(self, identity: str | None) -> str:
        if identity is None:
            return self.identities[0]
        if identity not in self._clients:
            msg = f"Unknown GitHub identity: {identity}"
            raise MigrationError(msg)
        return identity

    def _repo(self, identity: str | None) -> Repository:
        login = self._login(identity)
        self._wait_for_quota(login)
        return self._repositories[login]

    def _issue(self, number: int, identity: str | None) -> Issue:
        login = self._login(identity)
        if number != self._issue_number:
            self._issues.clear()
            self._issue_number = number
        if login in self._issues:
            self._wait_for_quota(login)
        else:
            self._issues[login] = self._repo(login).get_issue(number)
        return self._issues[login]

    def _milestone(self, number: int, identity: str | None) -> Milestone:
        key = (self._login(identity), number)
        if key not in self._milestones:
            self._milestones[key] = self._repo(identity).get_milestone(number)
        return self._milestones[key]

    def rate_limit(self, identity: str | None = None) -> tuple[int, int]:
        remaining, limit = self._clients[self._login(identity)].rate_limiting
        return remaining, limit

    def _wait_for_quota(self, login: str) -> None:
        remaining, limit = self.rate_limit(login)
        if remaining >= self.rate_limit_buffer:
            return
        wait_time = self._clients[login].rate_limiting_resettime - time.time() + 1
        logger.warning(
            f"GitHub rate limit low for {login} ({remaining}/{limit} remaining), waiting {max(wait_time, 0):.0f}s"
        )
        time.sleep(max(wait_time, 0))

    def list_collaborators(self) -> list[str]:
        return [user.login for user in self._repo(None).get_collaborators()]

    def list_milestones(self, state: Literal["open", "closed", "all"]) -> dict[str, int]:
        return {milestone.title: milestone.number for milestone in self._repo(None).get_milestones(state=state)}

    def create_milestone(
        self,
        name: str,
        state: Literal["open", "closed"],
        description: str,
        due_on: dt.date | None,
    ) -> int:
        # Only include due_on if it exists
        milestone_params: dict[str, Any] = {"title": name, "state": state, "description": description}
        if due_on is not None:
            milestone_params["due_on"] = due_on
        return self._repo(None).create_milestone(**milestone_params).number

    def list_issue_titles(self) -> set[str]:
        # The issues listing includes pull requests
        return {issue.title for issue in self._repo(None).get_issues(state="all") if issue.pull_request is None}

    def create_issue(self, title: str, body: str, identity: str | None = None) -> int:
        login = self._login(identity)
        issue = self._repo(login).create_issue(title=title, body=truncate_body(body))
        self._issues = {login: issue}
        self._issue_number = issue.number
        return issue.number

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
        changes: dict[str, Any] = {}
        if title is not None:
            changes["title"] = title
        if body is not None:
            changes["body"] = truncate_body(body)
        if clear_milestone:
            changes["milestone"] = None
        elif milestone is not None:
            changes["milestone"] = self._milestone(milestone, identity)
        if clear_assignee:
            changes["assignees"] = []
        elif assignee is not None:
            changes["assignees"] = [assignee]
        if labels is not None:
            changes["labels"] = labels
        if changes:
            self._issue(number, identity).edit(**changes)

    def set_state(self, number: int, state: Literal["open", "closed"], identity: str | None = None) -> None:
        self._issue(number, identity).edit(state=state)

    def add_comment(self, number: int, body: str, identity: str | None = None) -> None:
        _ = self._issue(number, identity).create_comment(truncate_body(body))
