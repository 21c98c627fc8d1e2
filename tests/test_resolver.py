from unittest.mock import Mock

import pytest

from trac_to_github_migrator.resolver import Resolver, resolve_actor

USERS = {"alice@example.com": "alice", "bob": "bob-gh", "carol": "carol"}


@pytest.mark.unit
class TestResolveActor:
    def test_unmapped_author_uses_default(self) -> None:
        assert resolve_actor("stranger", USERS, ["bot", "alice"]) == "bot"

    def test_mapped_author_with_credential(self) -> None:
        assert resolve_actor("alice@example.com", USERS, ["bot", "alice"]) == "alice"

    def test_mapped_author_without_credential(self) -> None:
        assert resolve_actor("bob", USERS, ["bot", "alice"]) == "bot"


@pytest.mark.unit
class TestResolver:
    def _tracker(self) -> Mock:
        tracker = Mock()
        tracker.identities = ["bot", "alice"]
        tracker.list_milestones.side_effect = lambda state: {"open": {"1.0": 1}, "closed": {"0.9": 2}}[state]
        tracker.list_collaborators.return_value = ["Alice", "carol"]
        return tracker

    def test_build_queries_once(self) -> None:
        tracker = self._tracker()

        resolver = Resolver.build(tracker, USERS)
        _ = resolver.milestone_number("1.0")
        _ = resolver.assignee_for("carol")
        _ = resolver.assignee_for("alice@example.com")

        tracker.list_collaborators.assert_called_once_with()
        assert [c.args for c in tracker.list_milestones.call_args_list] == [("open",), ("closed",)]

    def test_milestones_open_and_closed(self) -> None:
        resolver = Resolver.build(self._tracker(), USERS)
        assert resolver.milestone_number("1.0") == 1
        assert resolver.milestone_number("0.9") == 2
        assert resolver.milestone_number("2.0") is None

    def test_add_milestone(self) -> None:
        resolver = Resolver.build(self._tracker(), USERS)
        resolver.add_milestone("2.0", 7)
        assert resolver.milestone_number("2.0") == 7

    def test_assignee_for(self) -> None:
        resolver = Resolver.build(self._tracker(), USERS)
        # Collaborator logins compare case-insensitively
        assert resolver.assignee_for("alice@example.com") == "alice"
        assert resolver.assignee_for("carol") == "carol"
        # Mapped but not a collaborator
        assert resolver.assignee_for("bob") is None
        # Unmapped
        assert resolver.assignee_for("stranger") is None

    def test_identity_helpers(self) -> None:
        resolver = Resolver.build(self._tracker(), USERS)
        assert resolver.default_identity == "bot"
        assert resolver.actor_for("alice@example.com") == "alice"
        assert resolver.acts_as_author("alice@example.com")
        assert not resolver.acts_as_author("bob")
        assert resolver.login_for("bob") == "bob-gh"
        assert resolver.login_for("stranger") is None
