"""Version comparison between a local and a remote schema."""

from dataclasses import dataclass
from enum import Enum

from ..models import Schema


class VersionStatus(str, Enum):
    """Ordering of the local version relative to the remote version."""

    AHEAD = "ahead"
    """Local version is greater than the remote version"""

    BEHIND = "behind"
    """Local version is smaller than the remote version"""

    EQUAL = "equal"
    """Both versions are the same (content may still differ)"""


@dataclass(frozen=True)
class VersionComparison:
    """Result of comparing two schema versions."""

    status: VersionStatus
    """Ordering verdict"""

    local_version: int
    """Local version, 0 when missing"""

    remote_version: int
    """Remote version, 0 when missing"""

    @property
    def both_unpublished(self) -> bool:
        """True when both sides are still at version 0."""
        return self.local_version == 0 and self.remote_version == 0


def compare_versions(local: Schema, remote: Schema) -> VersionComparison:
    """Compare the versions of two schemas.

    Only the version numbers are looked at. An ``EQUAL`` verdict says nothing
    about whether the tables match.

    Examples:
        >>> compare_versions(Schema("p", 3), Schema("p", 5)).status
        <VersionStatus.BEHIND: 'behind'>
    """
    local_version = local.version or 0
    remote_version = remote.version or 0

    if local_version == remote_version:
        status = VersionStatus.EQUAL
    elif local_version > remote_version:
        status = VersionStatus.AHEAD
    else:
        status = VersionStatus.BEHIND

    return VersionComparison(
        status=status, local_version=local_version, remote_version=remote_version
    )
