"""Data models for the Basic CLI.

The schema models mirror the JSON structure stored in ``basic.config.*``
files and exchanged with the backend. Keys the models do not know about are
kept in ``extra`` so that a pull never drops data sent by the backend.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Literal, Optional

from .exceptions import BasicSchemaError

TableType = Literal["collection", "document"]


class _Unset:
    """Marker for an optional value that was not present in the source."""

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass
class FieldSchema:
    """Definition of a single field in a table."""

    type: str
    required: Any = UNSET
    default: Any = UNSET
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FieldSchema:
        if not isinstance(data, dict):
            raise BasicSchemaError(f"Field definition must be an object: {data!r}")
        extra = {
            k: v for k, v in data.items() if k not in ("type", "required", "default")
        }
        return cls(
            type=str(data.get("type", "")),
            required=data.get("required", UNSET),
            default=data.get("default", UNSET),
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"type": self.type}
        if self.required is not UNSET:
            result["required"] = self.required
        if self.default is not UNSET:
            result["default"] = self.default
        result.update(self.extra)
        return result


@dataclass
class TableSchema:
    """Definition of a table: its kind and its fields."""

    type: TableType = "collection"
    fields: dict[str, FieldSchema] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TableSchema:
        if not isinstance(data, dict):
            raise BasicSchemaError(f"Table definition must be an object: {data!r}")
        raw_fields = data.get("fields") or {}
        if not isinstance(raw_fields, dict):
            raise BasicSchemaError("Table fields must be an object")
        extra = {k: v for k, v in data.items() if k not in ("type", "fields")}
        return cls(
            type=data.get("type", "collection"),
            fields={
                name: FieldSchema.from_dict(value)
                for name, value in raw_fields.items()
            },
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "type": self.type,
            "fields": {name: f.to_dict() for name, f in self.fields.items()},
        }
        result.update(self.extra)
        return result


@dataclass
class Schema:
    """A versioned schema belonging to a project.

    ``version`` is the only ordering signal between a local and a remote
    copy. Two schemas with the same version may still differ in content.
    """

    project_id: str
    version: int = 0
    tables: dict[str, TableSchema] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def empty(cls, project_id: str) -> Schema:
        """Create the placeholder used when a project has no remote schema."""
        return cls(project_id=project_id, version=0, tables={})

    @classmethod
    def from_dict(cls, data: Any) -> Schema:
        """Build a Schema from parsed JSON, enforcing the structural rules.

        Raises:
            BasicSchemaError: If project_id, version or tables are missing or
                have the wrong type
        """
        if not isinstance(data, dict):
            raise BasicSchemaError("Schema export must be an object")

        project_id = data.get("project_id")
        if not project_id or not isinstance(project_id, str):
            raise BasicSchemaError("Schema must have a project_id string field")

        version = data.get("version")
        if isinstance(version, bool) or not isinstance(version, (int, float)):
            raise BasicSchemaError("Schema must have a version number field")
        if isinstance(version, float):
            if not version.is_integer():
                raise BasicSchemaError("Schema version must be a whole number")
            version = int(version)
        if version < 0:
            raise BasicSchemaError("Schema version must not be negative")

        tables = data.get("tables")
        if not isinstance(tables, dict):
            raise BasicSchemaError("Schema must have a tables object field")

        extra = {
            k: v for k, v in data.items() if k not in ("project_id", "version", "tables")
        }
        return cls(
            project_id=project_id,
            version=version,
            tables={
                name: TableSchema.from_dict(value) for name, value in tables.items()
            },
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "project_id": self.project_id,
            "version": self.version,
            "tables": {name: t.to_dict() for name, t in self.tables.items()},
        }
        result.update(self.extra)
        return result


@dataclass
class ValidationError:
    """A single content-level problem reported by the backend validator."""

    message: str
    instance_path: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ValidationError:
        return cls(
            message=str(data.get("message", "")),
            instance_path=str(data.get("instancePath", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "path": self.instance_path}


@dataclass
class ValidationResult:
    """Answer of the remote validation and comparison endpoints."""

    valid: bool
    errors: list[ValidationError] = field(default_factory=list)

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> ValidationResult:
        raw_errors = data.get("errors") or []
        return cls(
            valid=bool(data.get("valid", False)),
            errors=[ValidationError.from_dict(e) for e in raw_errors],
        )


@dataclass
class Token:
    """OAuth token as persisted in ``~/.basic-cli/token.json``.

    ``expires_at`` is a Unix timestamp in milliseconds.
    """

    access_token: str
    refresh_token: str
    expires_at: int
    token_type: str = "Bearer"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Token:
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token", ""),
            expires_at=int(data.get("expires_at") or 0),
            token_type=data.get("token_type") or "Bearer",
        )

    @classmethod
    def from_token_response(
        cls, data: dict[str, Any], previous: Optional[Token] = None
    ) -> Token:
        """Build a token from an ``/auth/token`` response body.

        Args:
            data: Response JSON with access_token and expires_in (seconds)
            previous: Token being refreshed; its refresh token is kept when
                the response does not carry a new one
        """
        refresh_token = data.get("refresh_token") or (
            previous.refresh_token if previous else ""
        )
        expires_in = int(data.get("expires_in") or 0)
        return cls(
            access_token=data["access_token"],
            refresh_token=refresh_token,
            expires_at=int(time.time() * 1000) + expires_in * 1000,
            token_type=data.get("token_type") or "Bearer",
        )

    def is_expired(self, now_ms: Optional[int] = None) -> bool:
        if not self.expires_at:
            return False
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        return now_ms > self.expires_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": self.expires_at,
            "token_type": self.token_type,
        }


@dataclass
class Project:
    """A project as listed by ``GET /project``."""

    id: str
    name: str
    slug: str = ""
    team_id: str = ""
    team_name: str = ""
    team_slug: str = ""
    created_at: str = ""
    profile: dict[str, Any] = field(default_factory=dict)
    website: Optional[str] = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> Project:
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name", ""),
            slug=data.get("slug", ""),
            team_id=str(data.get("team_id", "")),
            team_name=data.get("team_name", ""),
            team_slug=data.get("team_slug", ""),
            created_at=data.get("created_at", ""),
            profile=dict(data.get("profile") or {}),
            website=data.get("website"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "team_id": self.team_id,
            "team_name": self.team_name,
            "team_slug": self.team_slug,
            "created_at": self.created_at,
        }


@dataclass
class Team:
    """A team the user belongs to."""

    id: str
    name: str
    slug: str = ""
    roles: Optional[str] = None
    role_name: Optional[str] = None
    created_at: str = ""

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> Team:
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name", ""),
            slug=data.get("slug", ""),
            roles=data.get("roles"),
            role_name=data.get("role_name"),
            created_at=data.get("created_at", ""),
        )

    @property
    def display_role(self) -> str:
        return self.role_name or "Member"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "role_name": self.display_role,
            "created_at": self.created_at,
        }


@dataclass
class UserInfo:
    """The authenticated user."""

    email: str
    id: str = ""
    name: Optional[str] = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> UserInfo:
        return cls(
            email=data.get("email", ""),
            id=str(data.get("id", "")),
            name=data.get("name"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"email": self.email, "id": self.id, "name": self.name}
