"""Read and write the schema embedded in a local ``basic.config.*`` file.

Each supported file format has an extractor that can pull the schema value
out of the file text and splice a new schema back in. JSON files hold the
schema as the whole document. JS/TS files hold it as an object literal bound
to an exported name or default export. Only the literal's text is replaced
on write; comments, imports and surrounding code are left byte-identical.
"""

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, NamedTuple, Optional, Protocol, Union

from .config_templates import generate_config_content
from .exceptions import BasicConfigError, BasicSchemaError
from .models import Schema

logger = logging.getLogger(__name__)

CONFIG_FILENAMES: tuple[str, ...] = (
    "basic.config.ts",
    "basic.config.js",
    "basic.config.json",
)

DEFAULT_CONFIG_FILENAME = "basic.config.ts"

SCHEMA_BINDING = "schema"


@dataclass
class LocalSchemaFile:
    """A schema read from disk, together with where it came from."""

    schema: Schema
    project_id: str
    file_path: Path


class SchemaExtractor(Protocol):
    """Format-specific access to the schema inside a config file."""

    def extract(self, content: str) -> Any:
        """Return the schema value found in ``content``."""
        ...

    def replace(self, content: str, schema: dict[str, Any]) -> str:
        """Return ``content`` with its schema value replaced by ``schema``."""
        ...


def format_schema(schema: dict[str, Any]) -> str:
    """Pretty-print a schema the way it is written into config files."""
    return json.dumps(schema, indent=2, ensure_ascii=False)


class JsonSchemaExtractor:
    """Extractor for ``basic.config.json``: the document is the schema."""

    def extract(self, content: str) -> Any:
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise BasicSchemaError(f"Invalid JSON: {e}") from e

    def replace(self, content: str, schema: dict[str, Any]) -> str:
        return format_schema(schema) + "\n"


# =============================================================================
# JS/TS literal evaluation
# =============================================================================


class _Token(NamedTuple):
    kind: str
    value: str
    start: int
    end: int


_TOKEN_RE = re.compile(
    r"""
      (?P<ws>\s+)
    | (?P<line_comment>//[^\n]*)
    | (?P<block_comment>/\*.*?\*/)
    | (?P<string>"(?:[^"\\\n]|\\.)*"|'(?:[^'\\\n]|\\.)*')
    | (?P<template>`(?:[^`\\]|\\.)*`)
    | (?P<number>(?:0[xX][0-9a-fA-F_]+|0[oO][0-7_]+|0[bB][01_]+
        |(?:\d[\d_]*(?:\.[\d_]*)?|\.\d[\d_]*)(?:[eE][+-]?\d+)?)n?)
    | (?P<name>[A-Za-z_$][\w$]*)
    | (?P<punct>=>|\.\.\.|[{}\[\](),:;=.])
    | (?P<other>.)
    """,
    re.VERBOSE | re.DOTALL,
)

_SKIPPED = ("ws", "line_comment", "block_comment")
_OPENERS = {"{": "}", "[": "]", "(": ")"}
_CLOSERS = set(_OPENERS.values())
_DECLARATIONS = ("const", "let", "var")

_ESCAPE_RE = re.compile(
    r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\r\n|[\s\S])"
)
_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
    "\n": "",
    "\r\n": "",
}


def _tokenize(content: str) -> list[_Token]:
    tokens = []
    for match in _TOKEN_RE.finditer(content):
        kind = match.lastgroup or "other"
        if kind in _SKIPPED:
            continue
        tokens.append(_Token(kind, match.group(), match.start(), match.end()))
    return tokens


def _decode_string(raw: str) -> str:
    def unescape(match: re.Match) -> str:
        seq = match.group(1)
        if seq.startswith("u{"):
            return chr(int(seq[2:-1], 16))
        if seq.startswith("u") and len(seq) == 5:
            return chr(int(seq[1:], 16))
        if seq.startswith("x") and len(seq) == 3:
            return chr(int(seq[1:], 16))
        return _SIMPLE_ESCAPES.get(seq, seq)

    return _ESCAPE_RE.sub(unescape, raw[1:-1])


def _decode_number(raw: str) -> Union[int, float]:
    text = raw.replace("_", "").rstrip("n")
    lowered = text.lower()
    if lowered.startswith("0x"):
        return int(text[2:], 16)
    if lowered.startswith("0o"):
        return int(text[2:], 8)
    if lowered.startswith("0b"):
        return int(text[2:], 2)
    if any(c in lowered for c in ".e"):
        return float(text)
    return int(text)


class _LiteralParser:
    """Evaluates an object/array/literal expression starting at a token."""

    def __init__(self, tokens: list[_Token], pos: int):
        self.tokens = tokens
        self.pos = pos

    def _peek(self, offset: int = 0) -> Optional[_Token]:
        index = self.pos + offset
        return self.tokens[index] if index < len(self.tokens) else None

    def _next(self) -> _Token:
        token = self._peek()
        if token is None:
            raise BasicSchemaError("Unexpected end of file while parsing schema")
        self.pos += 1
        return token

    def _expect(self, value: str) -> _Token:
        token = self._next()
        if token.value != value:
            raise BasicSchemaError(
                f"Expected '{value}' but found '{token.value}' at offset {token.start}"
            )
        return token

    def parse_value(self) -> Any:
        token = self._next()
        if token.value == "{":
            value = self._parse_object()
        elif token.value == "[":
            value = self._parse_array()
        elif token.kind == "string":
            value = _decode_string(token.value)
        elif token.kind == "template":
            if "${" in token.value:
                raise BasicSchemaError("Template literals with expressions are not supported")
            value = _decode_string(token.value)
        elif token.kind == "number":
            value = _decode_number(token.value)
        elif token.value in ("-", "+"):
            operand = self._next()
            if operand.kind != "number":
                raise BasicSchemaError(f"Unsupported unary expression at offset {token.start}")
            number = _decode_number(operand.value)
            value = -number if token.value == "-" else number
        elif token.kind == "name":
            value = self._parse_identifier(token)
        else:
            raise BasicSchemaError(
                f"Unsupported syntax '{token.value}' at offset {token.start}"
            )
        self._skip_type_assertion()
        return value

    def _parse_identifier(self, token: _Token) -> Any:
        if token.value == "true":
            return True
        if token.value == "false":
            return False
        if token.value in ("null", "undefined"):
            return None
        raise BasicSchemaError(f"Unexpected identifier: {token.value}")

    def _skip_type_assertion(self) -> None:
        # `as const` and `as Some.Type` / `satisfies Type`
        token = self._peek()
        if token is None or token.value not in ("as", "satisfies"):
            return
        self.pos += 1
        self._next()
        while True:
            dot, name = self._peek(), self._peek(1)
            if dot is not None and dot.value == "." and name is not None:
                self.pos += 2
                continue
            break

    def _parse_object(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        while True:
            token = self._next()
            if token.value == "}":
                return result
            if token.kind in ("name", "number"):
                key = token.value
            elif token.kind == "string":
                key = _decode_string(token.value)
            else:
                raise BasicSchemaError(
                    f"Unsupported property key '{token.value}' at offset {token.start}"
                )
            separator = self._peek()
            if separator is None or separator.value != ":":
                raise BasicSchemaError(
                    f"Unsupported property '{key}': only 'key: value' pairs are allowed"
                )
            self.pos += 1
            result[key] = self.parse_value()

            token = self._next()
            if token.value == "}":
                return result
            if token.value != ",":
                raise BasicSchemaError(
                    f"Expected ',' or '}}' but found '{token.value}' at offset {token.start}"
                )

    def _parse_array(self) -> list[Any]:
        result: list[Any] = []
        while True:
            token = self._peek()
            if token is None:
                raise BasicSchemaError("Unexpected end of file while parsing schema")
            if token.value == "]":
                self.pos += 1
                return result
            if token.value == ",":
                # hole: [1, , 2]
                self.pos += 1
                result.append(None)
                continue
            result.append(self.parse_value())
            token = self._next()
            if token.value == "]":
                return result
            if token.value != ",":
                raise BasicSchemaError(
                    f"Expected ',' or ']' but found '{token.value}' at offset {token.start}"
                )


class _ModuleScan:
    """Top-level bindings and exports of a JS/TS module."""

    def __init__(self, tokens: list[_Token]):
        self.tokens = tokens
        self.declarations: dict[str, int] = {}
        self.exported: dict[str, int] = {}
        self.default_ref: Optional[str] = None
        self.default_value: Optional[int] = None
        self._scan()

    def _value(self, index: int) -> str:
        return self.tokens[index].value if 0 <= index < len(self.tokens) else ""

    def _declaration_value(self, name_index: int) -> Optional[int]:
        """Index of the initializer of ``<name> [: Type] = <init>``."""
        i = name_index + 1
        depth = 0
        while i < len(self.tokens):
            value = self.tokens[i].value
            # angle brackets nest only inside the type annotation
            if value in _OPENERS or value == "<":
                depth += 1
            elif value in _CLOSERS or value == ">":
                depth -= 1
            elif depth == 0 and value == "=":
                return i + 1
            elif depth == 0 and value in (";", ","):
                return None
            i += 1
        return None

    def _record_default(self, index: int) -> None:
        token = self.tokens[index] if index < len(self.tokens) else None
        if token is None:
            return
        if token.value == "{":
            self.default_value = index
        elif token.kind == "name" and self._value(index + 1) != "(":
            self.default_ref = token.value

    def _scan(self) -> None:
        depth = 0
        for i, token in enumerate(self.tokens):
            if token.value in _OPENERS:
                depth += 1
                continue
            if token.value in _CLOSERS:
                depth -= 1
                continue
            if depth != 0 or token.kind != "name":
                continue

            if token.value in _DECLARATIONS and self.tokens[i + 1 : i + 2]:
                name_token = self.tokens[i + 1]
                if name_token.kind == "name":
                    init = self._declaration_value(i + 1)
                    if init is not None:
                        self.declarations.setdefault(name_token.value, init)
                        if i > 0 and self._value(i - 1) == "export":
                            self.exported.setdefault(name_token.value, init)
            elif token.value == "export" and self._value(i + 1) == "default":
                self._record_default(i + 2)
            elif (
                token.value == "module"
                and self._value(i + 1) == "."
                and self._value(i + 2) == "exports"
                and self._value(i + 3) == "="
            ):
                self._record_default(i + 4)

    def schema_index(self) -> Optional[int]:
        """Token index where the exported schema literal starts."""
        if SCHEMA_BINDING in self.exported:
            return self.exported[SCHEMA_BINDING]
        if self.default_ref is not None:
            return self.declarations.get(self.default_ref)
        return self.default_value


class ScriptSchemaExtractor:
    """Extractor for ``basic.config.ts`` / ``basic.config.js``.

    Recognized forms::

        export const schema = { ... };
        const schema = { ... }; export default schema;
        const schema = { ... }; module.exports = schema;
        export default { ... };
    """

    def _locate(self, content: str) -> tuple[Any, int, int]:
        tokens = _tokenize(content)
        index = _ModuleScan(tokens).schema_index()
        if index is None or index >= len(tokens) or tokens[index].value != "{":
            raise BasicSchemaError("Schema export must be an object")
        parser = _LiteralParser(tokens, index + 1)
        value = parser._parse_object()
        start = tokens[index].start
        end = tokens[parser.pos - 1].end
        return value, start, end

    def extract(self, content: str) -> Any:
        try:
            value, _, _ = self._locate(content)
        except BasicSchemaError as e:
            raise BasicSchemaError(f"Error parsing schema: {e.message}") from e
        return value

    def replace(self, content: str, schema: dict[str, Any]) -> str:
        try:
            _, start, end = self._locate(content)
        except BasicSchemaError as e:
            raise BasicConfigError(
                f"Could not update schema in config file: {e.message}"
            ) from e
        return content[:start] + format_schema(schema) + content[end:]


EXTRACTORS: dict[str, SchemaExtractor] = {
    ".json": JsonSchemaExtractor(),
    ".js": ScriptSchemaExtractor(),
    ".ts": ScriptSchemaExtractor(),
}


def get_extractor(file_path: Path) -> SchemaExtractor:
    """Get the extractor responsible for a config file."""
    try:
        return EXTRACTORS[file_path.suffix]
    except KeyError:
        raise BasicConfigError(f"Unsupported config file type: {file_path.name}") from None


# =============================================================================
# Public API
# =============================================================================


def find_config_file(target_dir: Optional[Path] = None) -> Optional[Path]:
    """Find the first existing config file in priority order."""
    base = Path(target_dir) if target_dir is not None else Path.cwd()
    for filename in CONFIG_FILENAMES:
        path = base / filename
        if path.is_file():
            return path
    return None


def read_schema_from_config(target_dir: Optional[Path] = None) -> Optional[LocalSchemaFile]:
    """Read the schema from the config file in ``target_dir``.

    Args:
        target_dir: Directory to search (defaults to the working directory)

    Returns:
        The parsed schema and its file, or None when no config file exists

    Raises:
        BasicSchemaError: If a config file exists but cannot be parsed or
            lacks project_id, a numeric version or tables
    """
    file_path = find_config_file(target_dir)
    if file_path is None:
        logger.debug(f"No config file found in {target_dir or Path.cwd()}")
        return None

    logger.debug(f"Reading schema from {file_path}")
    try:
        content = file_path.read_text(encoding="utf-8")
        data = get_extractor(file_path).extract(content)
        schema = Schema.from_dict(data)
    except BasicSchemaError as e:
        raise BasicSchemaError(f"Error reading {file_path.name}: {e.message}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise BasicSchemaError(f"Error reading {file_path.name}: {e}") from e

    return LocalSchemaFile(schema=schema, project_id=schema.project_id, file_path=file_path)


def save_schema_to_config(schema: Schema, target_dir: Optional[Path] = None) -> Path:
    """Write a schema into the config file, creating one if needed.

    Existing files only get their schema region replaced. When no config
    file exists, a new ``basic.config.ts`` is created.

    Returns:
        Path of the written file
    """
    base = Path(target_dir) if target_dir is not None else Path.cwd()
    file_path = find_config_file(base)

    if file_path is None:
        file_path = base / DEFAULT_CONFIG_FILENAME
        content = generate_config_content("typescript", schema.to_dict())
        logger.debug(f"Creating {file_path}")
    else:
        current = file_path.read_text(encoding="utf-8")
        content = get_extractor(file_path).replace(current, schema.to_dict())
        logger.debug(f"Updating schema in {file_path}")

    file_path.write_text(content, encoding="utf-8")
    return file_path


class LocalSchemaAccessor:
    """Reads and writes the local schema of one project directory."""

    def __init__(self, target_dir: Optional[Path] = None):
        self.target_dir = Path(target_dir) if target_dir is not None else Path.cwd()

    def read(self) -> Optional[LocalSchemaFile]:
        return read_schema_from_config(self.target_dir)

    def write(self, schema: Schema) -> Path:
        return save_schema_to_config(schema, self.target_dir)
