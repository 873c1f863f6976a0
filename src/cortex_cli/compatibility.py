"""Check the installed CLI version against the range Cortex accepts."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass

from cortex_cli.client import CortexClient
from cortex_cli.errors import CortexRequestError
from cortex_cli.useragent import cli_version

SKIP_COMPAT_ENV_VAR = "CORTEX_NO_COMPAT"
COMPATIBILITY_PATH = "fabric/v4/compatibility/applications/cortex-cli"

_COMPARATOR_RE = re.compile(r"^(>=|<=|>|<|=)?\s*v?(\d[\w.+-]*)$")


@dataclass(frozen=True)
class Compatibility:
    current: str
    required: str
    satisfied: bool


def compat_check_disabled() -> bool:
    raw = os.getenv(SKIP_COMPAT_ENV_VAR)
    return bool(raw and raw.strip())


def parse_version_tuple(raw: str) -> tuple[int, ...]:
    parts: list[int] = []
    for piece in re.split(r"[.+-]", raw):
        if not piece:
            continue
        if piece.isdigit():
            parts.append(int(piece))
            continue
        digits = "".join(ch for ch in piece if ch.isdigit())
        if digits:
            parts.append(int(digits))
            break
        break
    return tuple(parts)


def _padded(version: tuple[int, ...]) -> tuple[int, ...]:
    return version + (0,) * max(0, 3 - len(version))


def satisfies(version: str, requirement: str) -> bool:
    """Return whether ``version`` matches every comparator in ``requirement``.

    ``requirement`` is a space separated list such as ``">=6.0.0 <7.0.0"``;
    a bare version means equality.
    """
    comparators = requirement.split()
    if not comparators:
        raise ValueError("empty version requirement")
    current = _padded(parse_version_tuple(version))
    for comparator in comparators:
        match = _COMPARATOR_RE.match(comparator)
        if match is None:
            raise ValueError(f"unsupported version comparator: {comparator}")
        operator = match.group(1) or "="
        target = _padded(parse_version_tuple(match.group(2)))
        if operator == ">=" and not current >= target:
            return False
        if operator == ">" and not current > target:
            return False
        if operator == "<=" and not current <= target:
            return False
        if operator == "<" and not current < target:
            return False
        if operator == "=" and current != target:
            return False
    return True


def get_compatibility(client: CortexClient, *, current: str | None = None) -> Compatibility:
    payload = client.get(COMPATIBILITY_PATH)
    required = payload.get("semver") if isinstance(payload, dict) else None
    if not isinstance(required, str) or not required.strip():
        raise CortexRequestError("compatibility response is missing the semver range")
    current_version = current or cli_version()
    try:
        ok = satisfies(current_version, required)
    except ValueError as exc:
        raise CortexRequestError(f"unable to evaluate compatibility range {required!r}: {exc}") from exc
    return Compatibility(current=current_version, required=required.strip(), satisfied=ok)
