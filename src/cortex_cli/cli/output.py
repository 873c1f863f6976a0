"""Output and input helpers shared by cortex commands."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Iterable, TextIO

import jmespath
import yaml
from jmespath.exceptions import JMESPathError

from cortex_cli.errors import ValidationError

_SENSITIVE_FIELDS = (
    "token",
    "authorization",
    "bearer",
    "jwk",
    "secret",
    "password",
    "api_key",
)


def sanitize_error_text(value: str) -> str:
    redacted = value
    for field_name in _SENSITIVE_FIELDS:
        redacted = re.sub(
            rf"(?i)({field_name}\s*[=:]\s*)([^,\s]+)",
            r"\1[REDACTED]",
            redacted,
        )
    redacted = re.sub(r"(?i)([?&](?:secret|token|api_key)=)([^&\s]+)", r"\1[REDACTED]", redacted)
    redacted = re.sub(r"(?i)(bearer\s+)([\w.-]+)", r"\1[REDACTED]", redacted)
    return redacted


def print_error(stderr: TextIO, prefix: str, message: str, *, code: int) -> int:
    print(f"{prefix}: {sanitize_error_text(message)}", file=stderr)
    return code


def filter_object(obj: Any, query: str | None) -> Any:
    if not query:
        return obj
    try:
        return jmespath.search(query, obj)
    except JMESPathError as exc:
        raise ValidationError(f"invalid --json query {query!r}: {exc}") from exc


def print_json(obj: Any, stdout: TextIO, *, query: str | None = None) -> None:
    print(json.dumps(filter_object(obj, query), indent=2, sort_keys=True), file=stdout)


def print_rows(
    rows: Iterable[dict[str, Any]],
    fields: tuple[str, ...],
    stdout: TextIO,
) -> None:
    for row in rows:
        values = [str(row.get(name) if row.get(name) not in (None, "") else "-") for name in fields]
        print("\t".join(values), file=stdout)


def parse_object(raw: str, *, as_yaml: bool = False) -> Any:
    if as_yaml:
        try:
            return yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise ValidationError(f"invalid YAML: {exc}") from exc
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise ValidationError(f"invalid JSON: {exc}") from exc


def load_definition(path: str | Path, *, as_yaml: bool = False) -> dict[str, Any]:
    definition_path = Path(path)
    if not as_yaml and definition_path.suffix.lower() in {".yaml", ".yml"}:
        as_yaml = True
    try:
        raw = definition_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ValidationError(f"unable to read definition file {definition_path}: {exc}") from exc
    definition = parse_object(raw, as_yaml=as_yaml)
    if not isinstance(definition, dict):
        raise ValidationError(f"definition file {definition_path} must contain an object")
    return definition
