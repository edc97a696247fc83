"""
Loading input documents (events and templates) from JSON or YAML text.
"""

import json
from pathlib import Path
from typing import Any, Literal, Optional, Union

import yaml

DocumentFormat = Literal["json", "yaml"]


class DocumentError(Exception):
    """An input document could not be read or is not a mapping."""

    stage = "input"


def _is_plain_object(value: Any) -> bool:
    return isinstance(value, dict)


def parse_json_document(content: str, what: str = "document") -> dict[str, Any]:
    """
    Parses JSON text that must hold an object.

    Raises:
        DocumentError: On invalid JSON or a non-object top level
    """
    try:
        parsed = json.loads(content)
    except ValueError as e:
        raise DocumentError(f"{what} is not valid JSON: {e}") from e
    if not _is_plain_object(parsed):
        raise DocumentError(f"{what} must be a JSON object")
    return parsed


def parse_yaml_document(content: str, what: str = "document") -> dict[Any, Any]:
    """
    Parses YAML text that must hold a mapping. Empty text is an empty mapping.

    Raises:
        DocumentError: On invalid YAML or a non-mapping top level
    """
    try:
        parsed = yaml.safe_load(content or "")
    except yaml.YAMLError as e:
        raise DocumentError(f"{what} is not valid YAML: {e}") from e
    if parsed is None:
        return {}
    if not _is_plain_object(parsed):
        raise DocumentError(f"{what} must be a YAML mapping")
    return parsed


def detect_format(content: str, filename: Optional[str] = None) -> DocumentFormat:
    """By file extension if known, otherwise JSON if the text opens an object."""
    if filename:
        suffix = Path(filename).suffix.lower()
        if suffix == ".json":
            return "json"
        if suffix in (".yaml", ".yml"):
            return "yaml"
    trimmed = content.lstrip()
    if trimmed.startswith("{") or trimmed.startswith("["):
        return "json"
    return "yaml"


def parse_document(
    content: str,
    format: Optional[DocumentFormat] = None,
    what: str = "document",
) -> dict[Any, Any]:
    if (format or detect_format(content)) == "json":
        return parse_json_document(content, what)
    return parse_yaml_document(content, what)


def load_document(
    path: Union[str, Path], what: str = "document"
) -> dict[Any, Any]:
    """
    Reads and parses a JSON or YAML file.

    Raises:
        DocumentError: If the file cannot be read or parsed
    """
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise DocumentError(f"cannot read {what} '{path}': {e}") from e
    return parse_document(content, detect_format(content, str(path)), what)
