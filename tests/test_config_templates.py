"""Tests for config file templates."""

import json

import pytest

from basic_cli.config_templates import (
    create_config_file,
    generate_config_content,
    read_existing_project_id,
    starter_schema,
)
from basic_cli.exceptions import BasicConfigError
from basic_cli.local_schema import read_schema_from_config


class TestGenerateConfigContent:
    def test_typescript(self):
        content = generate_config_content("typescript", starter_schema("p1"))

        assert content.startswith("// Basic Project Configuration")
        assert "const schema = {" in content
        assert content.endswith("export default schema;\n")

    def test_javascript(self):
        content = generate_config_content("javascript", starter_schema("p1"))

        assert content.endswith("module.exports = schema;\n")

    def test_none(self):
        assert generate_config_content("none", starter_schema("p1")) == ""

    def test_unknown(self):
        with pytest.raises(BasicConfigError, match="Unknown template"):
            generate_config_content("yaml", {})


class TestCreateConfigFile:
    @pytest.mark.parametrize(
        "template,filename", [("typescript", "basic.config.ts"), ("javascript", "basic.config.js")]
    )
    def test_created_file_is_readable(self, tmp_path, template, filename):
        path = create_config_file(template, "p1", tmp_path)

        assert path == tmp_path / filename
        local = read_schema_from_config(tmp_path)
        assert local.project_id == "p1"
        assert local.schema.version == 0
        assert local.schema.tables["example"].fields["value"].type == "string"

    def test_none_template(self, tmp_path):
        assert create_config_file("none", "p1", tmp_path) is None
        assert list(tmp_path.iterdir()) == []

    def test_explicit_schema(self, tmp_path):
        schema = {"project_id": "p1", "version": 3, "tables": {}}

        create_config_file("typescript", "p1", tmp_path, schema=schema)

        assert read_schema_from_config(tmp_path).schema.version == 3


class TestReadExistingProjectId:
    def test_from_script(self, tmp_path):
        path = create_config_file("typescript", "abc-123", tmp_path)
        assert read_existing_project_id(path) == "abc-123"

    def test_unquoted_key(self, tmp_path):
        path = tmp_path / "basic.config.js"
        path.write_text("export default { project_id: 'xyz' }", encoding="utf-8")
        assert read_existing_project_id(path) == "xyz"

    def test_from_json(self, tmp_path):
        path = tmp_path / "basic.config.json"
        path.write_text(json.dumps({"project_id": "j1"}), encoding="utf-8")
        assert read_existing_project_id(path) == "j1"

    def test_missing(self, tmp_path):
        path = tmp_path / "basic.config.ts"
        path.write_text("export default {}", encoding="utf-8")
        assert read_existing_project_id(path) is None

    def test_undecodable_file(self, tmp_path):
        path = tmp_path / "basic.config.ts"
        path.write_bytes(b"\xff\xfe project_id")

        with pytest.raises(BasicConfigError, match="Failed to read existing config"):
            read_existing_project_id(path)
