"""Utility functions for the Basic CLI."""

import logging
import re
import secrets
import webbrowser
from datetime import datetime
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as package_version
from typing import Optional

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

COMMANDS: tuple[str, ...] = (
    "account",
    "login",
    "logout",
    "status",
    "projects",
    "teams",
    "init",
    "version",
    "help",
    "push",
    "pull",
    "debug",
)

# Minimum similarity for a command to be suggested
SIMILARITY_THRESHOLD: float = 0.4

FALLBACK_VERSION = "0.0.0"


# =============================================================================
# Timestamp parsing utilities
# =============================================================================


def parse_iso_timestamp(timestamp_str: Optional[str]) -> Optional[datetime]:
    """Parse ISO format timestamp from the Basic API.

    Args:
        timestamp_str: ISO format timestamp string (e.g., "2025-01-15T10:30:00.000Z")

    Returns:
        datetime object in local timezone or None if parsing fails
    """
    if not timestamp_str:
        return None

    try:
        # The 'Z' suffix indicates UTC time
        if timestamp_str.endswith("Z"):
            timestamp_str = timestamp_str[:-1] + "+00:00"
        dt = datetime.fromisoformat(timestamp_str)
        if dt.tzinfo is not None:
            return datetime.fromtimestamp(dt.timestamp())
        return dt
    except (ValueError, AttributeError):
        return None


def format_date(timestamp_str: Optional[str]) -> str:
    """Format an API timestamp as YYYY-MM-DD, or an empty string."""
    dt = parse_iso_timestamp(timestamp_str)
    return dt.strftime("%Y-%m-%d") if dt else ""


# =============================================================================
# Slug utilities
# =============================================================================


def generate_slug(name: str) -> str:
    """Generate a URL slug from a display name.

    Examples:
        >>> generate_slug("My Cool App!")
        'my-cool-app'
        >>> generate_slug("  --Team  42-- ")
        'team-42'
    """
    slug = name.lower().strip()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def generate_random_team_name() -> str:
    """Generate a placeholder team name like ``team-4821``."""
    return f"team-{secrets.randbelow(9000) + 1000}"


# =============================================================================
# Command suggestions
# =============================================================================


def levenshtein_distance(s1: str, s2: str) -> int:
    """Compute the edit distance between two strings."""
    if not s1:
        return len(s2)
    if not s2:
        return len(s1)

    previous = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1, start=1):
        current = [i]
        for j, c2 in enumerate(s2, start=1):
            cost = 0 if c1 == c2 else 1
            current.append(
                min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost)
            )
        previous = current
    return previous[-1]


def similarity(s1: str, s2: str) -> float:
    """Similarity in [0, 1] derived from the edit distance."""
    max_len = max(len(s1), len(s2))
    if max_len == 0:
        return 1.0
    return 1.0 - levenshtein_distance(s1, s2) / max_len


def find_similar_commands(value: str, commands: tuple[str, ...] = COMMANDS) -> list[str]:
    """Suggest up to three known commands similar to ``value``.

    Examples:
        >>> find_similar_commands("pul")
        ['pull', 'push']
    """
    scored = [
        (cmd, similarity(value, cmd))
        for cmd in commands
        if cmd != value
    ]
    scored = [item for item in scored if item[1] >= SIMILARITY_THRESHOLD]
    scored.sort(key=lambda item: item[1], reverse=True)
    return [cmd for cmd, _ in scored[:3]]


# =============================================================================
# Platform helpers
# =============================================================================


def open_browser(url: str) -> bool:
    """Open a URL in the default browser.

    Returns:
        True if a browser was launched, False otherwise
    """
    try:
        return webbrowser.open(url)
    except webbrowser.Error as e:
        logger.debug(f"Failed to open browser: {e}")
        return False


def get_version() -> str:
    """Return the installed package version."""
    try:
        return package_version("basic-cli")
    except PackageNotFoundError:
        return FALLBACK_VERSION
