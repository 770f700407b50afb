"""Shared fixtures for the Basic CLI tests."""

import json
from pathlib import Path
from typing import Optional

import pytest

from basic_cli.models import Schema, ValidationResult


def schema_dict(project_id: str = "proj-1", version: int = 1, **tables) -> dict:
    """Build a schema dictionary with a default ``todos`` collection."""
    if not tables:
        tables = {
            "todos": {
                "type": "collection",
                "fields": {"title": {"type": "string", "required": True}},
            }
        }
    return {"project_id": project_id, "version": version, "tables": tables}


class FakeGateway:
    """In-memory stand-in for the remote schema API.

    Records every call so tests can assert which endpoints were hit.
    """

    def __init__(
        self,
        remote: Optional[Schema] = None,
        valid: bool = True,
        errors: Optional[list] = None,
        matches: bool = True,
    ):
        self.remote = remote
        self.validation = ValidationResult(valid=valid, errors=list(errors or []))
        self.matches = matches
        self.calls: list[str] = []
        self.pushed: list[tuple[str, Schema]] = []
        self.fetch_error: Optional[Exception] = None
        self.validate_error: Optional[Exception] = None
        self.compare_error: Optional[Exception] = None
        self.push_error: Optional[Exception] = None

    def get_project_schema(self, project_id: str) -> Optional[Schema]:
        self.calls.append("get")
        if self.fetch_error is not None:
            raise self.fetch_error
        return self.remote

    def push_project_schema(self, project_id: str, schema: Schema) -> dict:
        self.calls.append("push")
        if self.push_error is not None:
            raise self.push_error
        self.pushed.append((project_id, schema))
        return {}

    def validate_schema(self, schema: Schema) -> ValidationResult:
        self.calls.append("validate")
        if self.validate_error is not None:
            raise self.validate_error
        return self.validation

    def compare_schema(self, schema: Schema) -> bool:
        self.calls.append("compare")
        if self.compare_error is not None:
            raise self.compare_error
        return self.matches


@pytest.fixture
def write_json_config(tmp_path):
    """Write a basic.config.json into tmp_path and return its path."""

    def _write(data: dict) -> Path:
        path = tmp_path / "basic.config.json"
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def write_ts_config(tmp_path):
    """Write a basic.config.ts exporting the given schema and return its path."""

    def _write(data: dict) -> Path:
        path = tmp_path / "basic.config.ts"
        path.write_text(
            "// project config\n"
            "import { something } from 'somewhere';\n\n"
            f"export const schema = {json.dumps(data, indent=2)};\n\n"
            "export default schema;\n",
            encoding="utf-8",
        )
        return path

    return _write
