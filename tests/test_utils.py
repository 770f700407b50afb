"""Tests for utility functions."""

import webbrowser
from importlib.metadata import PackageNotFoundError
from unittest.mock import patch

import pytest

from basic_cli.utils import (
    COMMANDS,
    FALLBACK_VERSION,
    find_similar_commands,
    format_date,
    generate_random_team_name,
    generate_slug,
    get_version,
    levenshtein_distance,
    open_browser,
    parse_iso_timestamp,
    similarity,
)


class TestGenerateSlug:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("My Cool App!", "my-cool-app"),
            ("  --Team  42-- ", "team-42"),
            ("already-a-slug", "already-a-slug"),
            ("Émoji 🚀 Project", "moji-project"),
            ("", ""),
        ],
    )
    def test_slugs(self, name, expected):
        assert generate_slug(name) == expected


class TestRandomTeamName:
    def test_format(self):
        name = generate_random_team_name()
        assert name.startswith("team-")
        assert 1000 <= int(name.split("-")[1]) <= 9999


class TestSimilarity:
    def test_levenshtein(self):
        assert levenshtein_distance("kitten", "sitting") == 3
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("same", "same") == 0

    def test_similarity_bounds(self):
        assert similarity("push", "push") == 1.0
        assert similarity("", "") == 1.0
        assert similarity("abc", "xyz") == 0.0

    def test_typo_suggestions(self):
        assert find_similar_commands("pul")[0] == "pull"
        assert find_similar_commands("stauts")[0] == "status"
        assert "login" in find_similar_commands("logn")

    def test_at_most_three(self):
        assert len(find_similar_commands("p")) <= 3

    def test_no_suggestions_for_garbage(self):
        assert find_similar_commands("zzzzzzzzzz") == []

    def test_exact_command_not_suggested(self):
        assert "push" not in find_similar_commands("push")

    def test_help_is_a_command(self):
        assert "help" in COMMANDS


class TestTimestamps:
    def test_parse_utc(self):
        assert parse_iso_timestamp("2025-01-15T10:30:00.000Z") is not None

    def test_parse_invalid(self):
        assert parse_iso_timestamp("not a date") is None
        assert parse_iso_timestamp(None) is None

    def test_format_date(self):
        assert format_date("2025-01-15T00:00:00") == "2025-01-15"
        assert format_date("") == ""


class TestPlatformHelpers:
    @patch("basic_cli.utils.webbrowser.open", return_value=True)
    def test_open_browser(self, mock_open):
        assert open_browser("https://example.com")
        mock_open.assert_called_once_with("https://example.com")

    @patch("basic_cli.utils.webbrowser.open", side_effect=webbrowser.Error)
    def test_open_browser_failure(self, mock_open):
        assert not open_browser("https://example.com")

    @patch("basic_cli.utils.package_version", side_effect=PackageNotFoundError)
    def test_version_fallback(self, mock_version):
        assert get_version() == FALLBACK_VERSION
