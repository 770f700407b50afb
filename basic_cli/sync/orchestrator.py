"""Push, pull and status flows built on the status analyzer.

Push and pull are small state machines::

    checking -> awaiting-confirmation -> pushing|pulling -> success
             \\-> no-action                              \\-> error

The caller drives the confirmation step by calling ``confirm()`` or
``cancel()``, so the same machine works with a terminal prompt or a test.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from ..exceptions import BasicAPIError, BasicCliError, BasicSchemaError, handle_error
from .analyzer import SchemaGateway, SchemaSource, SchemaStatus, StatusAnalyzer, StatusResult

logger = logging.getLogger(__name__)


class SyncPhase(str, Enum):
    """Phases of a push or pull."""

    CHECKING = "checking"
    AWAITING_CONFIRMATION = "awaiting-confirmation"
    PUSHING = "pushing"
    PULLING = "pulling"
    SUCCESS = "success"
    NO_ACTION = "no-action"
    ERROR = "error"


@dataclass
class SyncResult:
    """What a successful push or pull changed."""

    project_id: str
    old_version: int
    new_version: int
    file_path: Path


class SyncOrchestrator:
    """Shared state handling for push and pull.

    Subclasses define which statuses need confirmation, the user-facing
    lines for each status, and the mutating action itself.
    """

    running_phase = SyncPhase.CHECKING
    confirm_statuses: tuple[SchemaStatus, ...] = ()

    def __init__(self, analyzer: StatusAnalyzer):
        self.analyzer = analyzer
        self.phase = SyncPhase.CHECKING
        self.status_result: Optional[StatusResult] = None
        self.message: list[str] = []
        self.confirmation_title = ""
        self.confirmation_message = ""
        self.result: Optional[SyncResult] = None
        self.error: Optional[str] = None

    @property
    def gateway(self) -> SchemaGateway:
        return self.analyzer.gateway

    @property
    def source(self) -> SchemaSource:
        return self.analyzer.source

    @property
    def status(self) -> Optional[SchemaStatus]:
        return self.status_result.status if self.status_result else None

    @property
    def exit_code(self) -> int:
        """0 for success and harmless no-action, 1 for errors and invalid schemas."""
        if self.phase == SyncPhase.ERROR:
            return 1
        if self.phase == SyncPhase.NO_ACTION and self.status == SchemaStatus.INVALID:
            return 1
        return 0

    def _set_phase(self, phase: SyncPhase) -> SyncPhase:
        logger.debug(f"{type(self).__name__}: {self.phase.value} -> {phase.value}")
        self.phase = phase
        return phase

    def _fail(self, error: BaseException) -> SyncPhase:
        logger.debug(f"{type(self).__name__} failed", exc_info=error)
        self.error = str(error) or type(error).__name__
        return self._set_phase(SyncPhase.ERROR)

    def check(self) -> SyncPhase:
        """Run the analysis and decide whether confirmation is needed."""
        if self.phase != SyncPhase.CHECKING:
            raise RuntimeError(f"check() called in phase {self.phase.value}")
        try:
            result = self.analyzer.check()
        except Exception as e:
            return self._fail(e)

        self.status_result = result
        if result.error is not None:
            self.error = result.error
            return self._set_phase(SyncPhase.ERROR)

        if self.needs_confirmation(result):
            self.message, self.confirmation_title, self.confirmation_message = (
                self.confirmation_text(result)
            )
            return self._set_phase(SyncPhase.AWAITING_CONFIRMATION)

        self.message = self.no_action_text(result)
        return self._set_phase(SyncPhase.NO_ACTION)

    def needs_confirmation(self, result: StatusResult) -> bool:
        return result.status in self.confirm_statuses

    def confirm(self, accepted: bool) -> SyncPhase:
        """Answer the confirmation prompt."""
        if self.phase != SyncPhase.AWAITING_CONFIRMATION:
            raise RuntimeError(f"confirm() called in phase {self.phase.value}")
        if not accepted:
            return self._set_phase(SyncPhase.NO_ACTION)

        self._set_phase(self.running_phase)
        try:
            self.result = self.execute()
        except Exception as e:
            return self._fail(e)
        return self._set_phase(SyncPhase.SUCCESS)

    def cancel(self) -> SyncPhase:
        """Abort at the confirmation prompt."""
        if self.phase != SyncPhase.AWAITING_CONFIRMATION:
            raise RuntimeError(f"cancel() called in phase {self.phase.value}")
        return self._set_phase(SyncPhase.NO_ACTION)

    def run(self, ask: Callable[["SyncOrchestrator"], Optional[bool]]) -> SyncPhase:
        """Drive the machine to a terminal phase.

        Args:
            ask: Called once when confirmation is needed. Returns True/False
                for yes/no, or None to cancel.
        """
        phase = self.check()
        if phase != SyncPhase.AWAITING_CONFIRMATION:
            return phase
        answer = ask(self)
        if answer is None:
            return self.cancel()
        return self.confirm(answer)

    def confirmation_text(self, result: StatusResult) -> tuple[list[str], str, str]:
        raise NotImplementedError

    def no_action_text(self, result: StatusResult) -> list[str]:
        raise NotImplementedError

    def execute(self) -> SyncResult:
        raise NotImplementedError


NO_SCHEMA_LINES = [
    "No schema found in config files",
    "Run 'basic init' to create a new project or import an existing project",
]


class PushOrchestrator(SyncOrchestrator):
    """Publishes a local schema that is strictly ahead of the remote one."""

    running_phase = SyncPhase.PUSHING
    confirm_statuses = (SchemaStatus.AHEAD,)

    def needs_confirmation(self, result: StatusResult) -> bool:
        return result.status == SchemaStatus.AHEAD and not result.needs_version_bump

    def confirmation_text(self, result: StatusResult) -> tuple[list[str], str, str]:
        return (
            [
                "Your local schema is ahead of the remote version.",
                "Push your changes to publish them?",
            ],
            "Push Schema Changes",
            "This will publish your local schema changes to the remote project.",
        )

    def no_action_text(self, result: StatusResult) -> list[str]:
        status = result.status
        if status == SchemaStatus.AHEAD:
            # only reached when a version bump is needed
            return list(result.message)
        if status == SchemaStatus.BEHIND:
            return [
                "Your local schema is behind the remote version.",
                "Did you mean to pull instead?",
                "Use 'basic pull' to get the latest changes.",
            ]
        if status == SchemaStatus.CONFLICT:
            return [
                "Your local schema differs from the remote schema.",
                "Please increment your version number before pushing changes.",
            ]
        if status == SchemaStatus.CURRENT:
            return ["Schema is up to date!", "No push needed."]
        if status == SchemaStatus.INVALID:
            return [
                "Errors found in schema! Please fix:",
                "Your local schema has validation errors "
                "that must be resolved before pushing.",
            ]
        return list(NO_SCHEMA_LINES)

    def execute(self) -> SyncResult:
        # Re-read so edits made while the prompt was open are what gets pushed.
        local = self.source.read()
        if local is None:
            raise BasicSchemaError("Local schema not found")
        old_version = self.status_result.remote_version if self.status_result else 0

        logger.debug(f"Pushing schema v{local.schema.version} for {local.project_id}")
        self.gateway.push_project_schema(local.project_id, local.schema)
        return SyncResult(
            project_id=local.project_id,
            old_version=old_version,
            new_version=local.schema.version or 0,
            file_path=local.file_path,
        )


class PullOrchestrator(SyncOrchestrator):
    """Overwrites the local schema with the remote one."""

    running_phase = SyncPhase.PULLING
    confirm_statuses = (SchemaStatus.BEHIND, SchemaStatus.CONFLICT)

    def confirmation_text(self, result: StatusResult) -> tuple[list[str], str, str]:
        if result.status == SchemaStatus.CONFLICT:
            return (
                [
                    "Schema conflicts detected!",
                    "Your local schema differs from the remote schema at the same version.",
                    "Pull the remote version to override local changes?",
                ],
                "Override Local Changes",
                "This will override your local schema file with the remote version.",
            )
        return (
            [
                "Your local schema is behind the remote version.",
                "Pull the latest changes?",
            ],
            "Pull Remote Schema",
            "This will override your local schema file with the latest remote version.",
        )

    def no_action_text(self, result: StatusResult) -> list[str]:
        status = result.status
        if status == SchemaStatus.AHEAD and result.needs_version_bump:
            return [
                "The remote project has no published schema yet.",
                "No pull needed.",
            ]
        if status == SchemaStatus.AHEAD:
            return [
                "Your local schema is ahead of the remote version.",
                "Did you mean to push instead?",
                "Use 'basic push' to publish your changes.",
            ]
        if status == SchemaStatus.CURRENT:
            return ["Schema is up to date!", "No pull needed."]
        if status == SchemaStatus.INVALID:
            return [
                "Your local schema has validation errors.",
                "Run 'basic status' for details.",
            ]
        return list(NO_SCHEMA_LINES)

    def execute(self) -> SyncResult:
        # Re-fetch both sides; the remote may have moved during the prompt.
        local = self.source.read()
        if local is None:
            raise BasicSchemaError("Local schema not found")
        remote = self.gateway.get_project_schema(local.project_id)
        if remote is None:
            raise BasicAPIError("Remote schema not found")

        logger.debug(f"Pulling schema v{remote.version} for {local.project_id}")
        file_path = self.source.write(remote)
        return SyncResult(
            project_id=local.project_id,
            old_version=local.schema.version or 0,
            new_version=remote.version or 0,
            file_path=Path(str(file_path)),
        )


# =============================================================================
# Status reporting
# =============================================================================

SUGGESTIONS: dict[SchemaStatus, list[str]] = {
    SchemaStatus.BEHIND: [
        "Run 'basic pull' to update your local schema",
        "Review the changes before pulling if you have local modifications",
        "Consider backing up your current schema if you have unsaved work",
    ],
    SchemaStatus.AHEAD: [
        "Run 'basic push' to publish your changes",
        "Review your changes before publishing",
        "Test your schema locally if possible",
    ],
    SchemaStatus.INVALID: [
        "Fix the validation errors shown below",
        "Run 'basic status' again after fixing errors",
        "Review your schema syntax and field definitions",
    ],
    SchemaStatus.CURRENT: [
        "Continue working on your project",
        "Make schema modifications if needed",
        "Run 'basic status' again after making changes",
    ],
    SchemaStatus.CONFLICT: [
        "Run 'basic pull' to override local changes with remote schema",
        "Or increment the version number in your local schema",
        "Compare your local changes with the remote version before deciding",
        "Consider creating a backup of your local changes",
    ],
    SchemaStatus.NO_SCHEMA: [
        "Run 'basic init' to create a new project or import an existing project",
        "Make sure you're in a directory with a basic.config.ts/js file",
        "Check if your config file has the correct name and format",
    ],
}

VERSION_BUMP_SUGGESTIONS = [
    "Update the version field in your schema from 0 to 1",
    "Run 'basic push' after incrementing the version",
    "Ensure your schema changes are tested and ready for production",
]

CHECK_FAILED_SUGGESTIONS = [
    "Check your network connection",
    "Ensure the project ID is correct",
    "Run 'basic status' again in a moment",
]

FETCH_FAILED_SUGGESTIONS = [
    "Check if the project ID is correct",
    "Ensure you have access to this project",
    "Verify your internet connection",
    "Try running 'basic login' if authentication has expired",
]


@dataclass
class StatusReport:
    """Read-only view of the synchronization state."""

    result: Optional[StatusResult]
    suggestions: list[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def exit_code(self) -> int:
        return 1 if self.error is not None else 0

    def to_dict(self) -> dict:
        data = self.result.to_dict() if self.result else {}
        data["suggestions"] = list(self.suggestions)
        data["error"] = self.error
        return data


class StatusReporter:
    """Runs the analyzer once and never changes local or remote state."""

    def __init__(self, analyzer: StatusAnalyzer):
        self.analyzer = analyzer

    def run(self) -> StatusReport:
        try:
            result = self.analyzer.check()
        except BasicSchemaError as e:
            return StatusReport(result=None, error=e.message, suggestions=list(e.suggestions))
        except BasicCliError as e:
            return StatusReport(
                result=None,
                error=f"Error fetching remote schema: {e.message}",
                suggestions=list(FETCH_FAILED_SUGGESTIONS),
            )
        except Exception as e:
            logger.debug("Status check failed", exc_info=e)
            error = handle_error(e)
            return StatusReport(
                result=None, error=error.message, suggestions=list(error.suggestions)
            )

        if result.error is not None:
            return StatusReport(
                result=result,
                error=result.error,
                suggestions=list(CHECK_FAILED_SUGGESTIONS),
            )
        if result.needs_version_bump:
            return StatusReport(result=result, suggestions=list(VERSION_BUMP_SUGGESTIONS))
        return StatusReport(result=result, suggestions=list(SUGGESTIONS[result.status]))
