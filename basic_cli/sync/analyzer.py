"""Classification of the local/remote schema relationship.

The analyzer is the single source of truth for the ``status``, ``push`` and
``pull`` commands: all three run the same analysis and only differ in what
they do with the result.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol

from ..exceptions import BasicCliError
from ..local_schema import LocalSchemaFile
from ..models import Schema, ValidationError, ValidationResult
from .comparator import VersionComparison, VersionStatus, compare_versions

logger = logging.getLogger(__name__)


class SchemaStatus(str, Enum):
    """Canonical synchronization verdict."""

    CURRENT = "current"
    """Same version and same content on both sides"""

    BEHIND = "behind"
    """Remote has a newer version"""

    AHEAD = "ahead"
    """Local has a newer, valid version (or needs a version bump first)"""

    CONFLICT = "conflict"
    """Same nonzero version but different content"""

    INVALID = "invalid"
    """Local schema failed remote validation, or the check itself failed"""

    NO_SCHEMA = "no-schema"
    """No local config file"""


class SchemaGateway(Protocol):
    """Remote operations the analyzer and orchestrators rely on."""

    def get_project_schema(self, project_id: str) -> Optional[Schema]: ...

    def push_project_schema(self, project_id: str, schema: Schema) -> object: ...

    def validate_schema(self, schema: Schema) -> ValidationResult: ...

    def compare_schema(self, schema: Schema) -> bool: ...


class SchemaSource(Protocol):
    """Local read/write access to the project's config file."""

    def read(self) -> Optional[LocalSchemaFile]: ...

    def write(self, schema: Schema) -> object: ...


@dataclass
class StatusResult:
    """Outcome of a status analysis."""

    status: SchemaStatus
    project_id: str = ""
    local_version: int = 0
    remote_version: int = 0
    message: list[str] = field(default_factory=list)
    validation_errors: list[ValidationError] = field(default_factory=list)
    needs_version_bump: bool = False
    """Valid schema at version 0 on both sides: must be bumped to 1 first"""
    error: Optional[str] = None
    """Failure of the remote validation or comparison call"""
    local: Optional[LocalSchemaFile] = None
    remote: Optional[Schema] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "project_id": self.project_id,
            "local_version": self.local_version,
            "remote_version": self.remote_version,
            "message": list(self.message),
            "validation_errors": [e.to_dict() for e in self.validation_errors],
            "needs_version_bump": self.needs_version_bump,
            "error": self.error,
        }


class StatusAnalyzer:
    """Compares the local config against the remote project schema."""

    def __init__(self, gateway: SchemaGateway, source: SchemaSource):
        """Initialize the analyzer.

        Args:
            gateway: Remote schema API (usually a BasicClient)
            source: Local config access (usually a LocalSchemaAccessor)
        """
        self.gateway = gateway
        self.source = source

    def check(self) -> StatusResult:
        """Read both sides and classify them.

        Returns:
            The analysis result. ``NO_SCHEMA`` is returned without any
            remote call when there is no local config.

        Raises:
            BasicSchemaError: If the local config exists but is malformed
            BasicCliError: If fetching the remote schema fails
        """
        local = self.source.read()
        if local is None:
            return StatusResult(
                status=SchemaStatus.NO_SCHEMA,
                message=["No schema found in config files"],
            )

        remote = self.gateway.get_project_schema(local.project_id)
        if remote is None:
            logger.debug(f"No remote schema for {local.project_id}, using empty schema")
            remote = Schema.empty(local.project_id)

        return self.analyze(local, remote)

    def analyze(
        self,
        local: LocalSchemaFile,
        remote: Schema,
        comparison: Optional[VersionComparison] = None,
    ) -> StatusResult:
        """Classify an already loaded local/remote pair."""
        if comparison is None:
            comparison = compare_versions(local.schema, remote)
        logger.debug(
            f"Version comparison: {comparison.status.value} "
            f"(local {comparison.local_version}, remote {comparison.remote_version})"
        )

        result = StatusResult(
            status=SchemaStatus.INVALID,
            project_id=local.project_id,
            local_version=comparison.local_version,
            remote_version=comparison.remote_version,
            local=local,
            remote=remote,
        )

        if comparison.status == VersionStatus.BEHIND:
            result.status = SchemaStatus.BEHIND
            result.message = [
                "Schema is out of date! "
                f"Current: {comparison.local_version}, Latest: {comparison.remote_version}"
            ]
        elif comparison.status == VersionStatus.AHEAD:
            self._check_ahead(local.schema, comparison, result)
        elif comparison.both_unpublished:
            self._check_unpublished(local.schema, result)
        else:
            self._check_same_version(local.schema, result)

        logger.debug(f"Schema status for {local.project_id}: {result.status.value}")
        return result

    def _validate(self, schema: Schema, result: StatusResult) -> bool:
        """Run remote validation, recording errors on ``result``.

        Returns:
            True if the schema is valid
        """
        try:
            validation = self.gateway.validate_schema(schema)
        except BasicCliError as e:
            logger.debug(f"Schema validation call failed: {e}")
            result.status = SchemaStatus.INVALID
            result.error = f"Error validating schema: {e}"
            result.message.append(result.error)
            return False

        if not validation.valid:
            result.status = SchemaStatus.INVALID
            result.validation_errors = list(validation.errors)
            result.message.append("Errors found in schema! Please fix:")
            return False
        return True

    def _check_ahead(
        self, schema: Schema, comparison: VersionComparison, result: StatusResult
    ) -> None:
        result.message = [
            f"Changes found: Local schema version {comparison.local_version} "
            f"is ahead of remote version {comparison.remote_version}"
        ]
        if self._validate(schema, result):
            result.status = SchemaStatus.AHEAD
            result.message.append("Schema changes are valid!")

    def _check_unpublished(self, schema: Schema, result: StatusResult) -> None:
        # Version 0 is never published; a valid schema must be bumped first.
        if self._validate(schema, result):
            result.status = SchemaStatus.AHEAD
            result.needs_version_bump = True
            result.message = [
                "Schema changes are valid!",
                "Please increment your version number to 1",
                "and run 'basic push' if you are ready to publish your changes.",
            ]

    def _check_same_version(self, schema: Schema, result: StatusResult) -> None:
        try:
            matches = self.gateway.compare_schema(schema)
        except BasicCliError as e:
            logger.debug(f"Schema comparison call failed: {e}")
            result.status = SchemaStatus.INVALID
            result.error = f"Error checking schema conflict: {e}"
            result.message = [result.error]
            return

        if matches:
            result.status = SchemaStatus.CURRENT
            result.message = ["Schema is up to date!"]
        else:
            result.status = SchemaStatus.CONFLICT
            result.message = [
                "Schema conflicts found! "
                "Your local schema is different from the remote schema."
            ]
