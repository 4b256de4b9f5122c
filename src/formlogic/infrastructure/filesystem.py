"""Reading and writing field, rule, and data documents.

Documents are JSON (``.json``) or YAML (``.yaml``/``.yml``); the suffix
decides. Shapes:

- fields document: a list of field definitions, or ``{"fields": [...]}``
- rules document: a list of rules, or ``{"rules": [...]}``
- data document: an object of field ID -> value

Rules are returned raw (wire dicts) so the service layer can validate
each one and report every failure, instead of stopping at the first.
"""

from __future__ import annotations

import json
from io import StringIO
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from formlogic.domain.models import FieldDefinition, RuleSet

YAML_SUFFIXES = frozenset({".yaml", ".yml"})


class DocumentError(Exception):
    """A document is missing, unreadable, or has the wrong shape."""


def _new_yaml() -> YAML:
    """Create a fresh YAML instance (ruamel's YAML object is stateful)."""
    y = YAML(typ="safe", pure=True)
    y.default_flow_style = False
    return y


def is_yaml(path: Path) -> bool:
    return path.suffix.lower() in YAML_SUFFIXES


# ---------------------------------------------------------------------------
# Raw I/O
# ---------------------------------------------------------------------------


def parse_document(text: str, *, yaml: bool = False) -> Any:
    """Parse JSON (or YAML) text.

    Raises:
        DocumentError: If the text is malformed.
    """
    try:
        if yaml:
            return _new_yaml().load(text)
        return json.loads(text)
    except (ValueError, YAMLError) as exc:
        kind = "YAML" if yaml else "JSON"
        raise DocumentError(f"Invalid {kind}: {exc}") from exc


def render_document(data: Any, *, yaml: bool = False) -> str:
    if yaml:
        buf = StringIO()
        _new_yaml().dump(data, buf)
        return buf.getvalue()
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def read_document(path: Path) -> Any:
    """Read and parse a JSON/YAML document.

    Raises:
        DocumentError: If the file is missing or malformed.
    """
    if not path.is_file():
        raise DocumentError(f"File not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DocumentError(f"Cannot read {path}: {exc}") from exc
    try:
        return parse_document(text, yaml=is_yaml(path))
    except DocumentError as exc:
        raise DocumentError(f"{path}: {exc}") from exc


def write_document(path: Path, data: Any) -> None:
    """Write *data* to *path* as JSON or YAML.

    Creates parent directories if they don't exist.

    Raises:
        DocumentError: If the directory or file cannot be written.
    """
    text = render_document(data, yaml=is_yaml(path))
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise DocumentError(f"Cannot write {path}: {exc}") from exc


# ---------------------------------------------------------------------------
# Typed documents
# ---------------------------------------------------------------------------


def _unwrap(document: Any, key: str, path: Path) -> list[Any]:
    if isinstance(document, dict) and key in document:
        document = document[key]
    if document is None:
        return []
    if not isinstance(document, list):
        raise DocumentError(f"{path}: expected a list of {key}")
    return document


def load_fields(path: Path) -> list[FieldDefinition]:
    """Load field definitions.

    Raises:
        DocumentError: If the file is missing, malformed, or a field is invalid.
    """
    items = _unwrap(read_document(path), "fields", path)
    fields: list[FieldDefinition] = []
    for index, item in enumerate(items):
        try:
            fields.append(FieldDefinition.model_validate(item))
        except ValidationError as exc:
            raise DocumentError(f"{path}: field {index} is invalid: {exc}") from exc
    return fields


def load_rules_data(path: Path) -> list[Any]:
    """Load raw rule dicts. A missing rules file is an empty rule set."""
    if not path.exists():
        return []
    return _unwrap(read_document(path), "rules", path)


def save_rules(path: Path, rules: RuleSet) -> None:
    write_document(path, rules.to_wire())


def load_data(path: Path) -> dict[str, Any]:
    """Load a form data snapshot.

    Raises:
        DocumentError: If the file is missing, malformed, or not an object.
    """
    document = read_document(path)
    if document is None:
        return {}
    if not isinstance(document, dict):
        raise DocumentError(f"{path}: expected an object of field values")
    return {str(k): v for k, v in document.items()}
