"""
Tests for the pass credential helper.
"""

import subprocess
from unittest.mock import Mock, patch

import pytest

from trac_to_github_migrator.utils import InvalidPassPathError, PassError, get_pass_value


@pytest.mark.unit
class TestGetPassValue:
    def test_returns_first_line(self) -> None:
        with patch("trac_to_github_migrator.utils.subprocess.run") as mock_run:
            mock_run.return_value = Mock(stdout="ghp_secret\nlogin: bot\n")
            assert get_pass_value("github/bot") == "ghp_secret"

        mock_run.assert_called_once_with(["pass", "show", "github/bot"], capture_output=True, text=True, check=True)

    def test_empty_entry(self) -> None:
        with patch("trac_to_github_migrator.utils.subprocess.run", return_value=Mock(stdout="")):
            assert get_pass_value("github/bot") == ""

    @pytest.mark.parametrize("path", ["", "../etc/passwd", "github/bot; rm -rf /", "/absolute", "trailing/"])
    def test_invalid_path(self, path: str) -> None:
        with (
            patch("trac_to_github_migrator.utils.subprocess.run") as mock_run,
            pytest.raises(ValueError, match="Invalid pass path"),
        ):
            get_pass_value(path)
        mock_run.assert_not_called()

    def test_pass_not_installed(self) -> None:
        with (
            patch("trac_to_github_migrator.utils.subprocess.run", side_effect=FileNotFoundError),
            pytest.raises(PassError, match="not installed"),
        ):
            get_pass_value("github/bot")

    def test_entry_missing(self) -> None:
        error = subprocess.CalledProcessError(1, ["pass"], stderr="Error: github/bot is not in the password store.")
        with (
            patch("trac_to_github_migrator.utils.subprocess.run", side_effect=error),
            pytest.raises(InvalidPassPathError),
        ):
            get_pass_value("github/bot")

    def test_other_failure(self) -> None:
        error = subprocess.CalledProcessError(2, ["pass"], stderr="gpg: decryption failed\n")
        with (
            patch("trac_to_github_migrator.utils.subprocess.run", side_effect=error),
            pytest.raises(PassError, match="gpg: decryption failed"),
        ):
            get_pass_value("github/bot")
