"""Templates for new ``basic.config`` files."""

import json
import logging
import re
from pathlib import Path
from typing import Any, Optional

from .exceptions import BasicConfigError

logger = logging.getLogger(__name__)

HEADER = (
    "// Basic Project Configuration\n"
    "// see the docs for more info: https://docs.basic.tech\n"
)

_PROJECT_ID_RE = re.compile(r"""["']?project_id["']?\s*:\s*["']([^"']+)["']""")


CONFIG_FILENAMES: dict[str, str] = {
    "typescript": "basic.config.ts",
    "javascript": "basic.config.js",
}


def starter_schema(project_id: str) -> dict[str, Any]:
    """The schema written for a freshly initialized project."""
    return {
        "project_id": project_id,
        "version": 0,
        "tables": {
            "example": {
                "type": "collection",
                "fields": {"value": {"type": "string"}},
            }
        },
    }


def generate_config_content(template: str, schema: dict[str, Any]) -> str:
    """Render a config file embedding ``schema``.

    Args:
        template: One of "typescript", "javascript" or "none"
        schema: Schema dictionary to embed

    Returns:
        File content ("" for the "none" template)
    """
    body = json.dumps(schema, indent=2, ensure_ascii=False)
    if template == "typescript":
        return f"{HEADER}\nconst schema = {body};\n\nexport default schema;\n"
    if template == "javascript":
        return f"{HEADER}\nconst schema = {body};\n\nmodule.exports = schema;\n"
    if template == "none":
        return ""
    raise BasicConfigError(f"Unknown template: {template}")


def create_config_file(
    template: str,
    project_id: str,
    target_dir: Optional[Path] = None,
    schema: Optional[dict[str, Any]] = None,
) -> Optional[Path]:
    """Write a config file for a project.

    The starter schema is used unless ``schema`` is given, e.g. the remote
    schema of an imported project.

    Returns:
        The created file, or None for the "none" template
    """
    if template == "none":
        return None
    if template not in CONFIG_FILENAMES:
        raise BasicConfigError(f"Unknown template: {template}")

    base = Path(target_dir) if target_dir is not None else Path.cwd()
    config_path = base / CONFIG_FILENAMES[template]
    content = generate_config_content(template, schema or starter_schema(project_id))
    try:
        config_path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise BasicConfigError(f"Failed to create config file: {e}") from e
    logger.debug(f"Created {config_path}")
    return config_path


def read_existing_project_id(config_path: Path) -> Optional[str]:
    """Best-effort lookup of the project id in an existing config file.

    Used by ``init`` to refuse overwriting a configured project, so it does
    not require the file to be a valid schema.
    """
    try:
        content = config_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise BasicConfigError(f"Failed to read existing config: {e}") from e

    if config_path.suffix == ".json":
        try:
            data = json.loads(content)
        except json.JSONDecodeError:
            return None
        project_id = data.get("project_id") if isinstance(data, dict) else None
        return project_id or None

    match = _PROJECT_ID_RE.search(content)
    return match.group(1) if match else None
