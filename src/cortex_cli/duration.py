"""Token TTL duration strings.

Grammar: ``<integer><unit>`` where unit is one of ``ms s m h d w M y``.
``M`` is 30 days and ``y`` is 365 days.
"""

from __future__ import annotations

import re

from cortex_cli.errors import CredentialError

DEFAULT_TTL = "1d"

_TTL_RE = re.compile(r"([0-9]+)(ms|s|m|h|d|w|M|y)")

_UNIT_MILLISECONDS = {
    "ms": 1,
    "s": 1_000,
    "m": 60_000,
    "h": 3_600_000,
    "d": 86_400_000,
    "w": 7 * 86_400_000,
    "M": 30 * 86_400_000,
    "y": 365 * 86_400_000,
}


def is_valid_ttl(value: str) -> bool:
    try:
        parse_ttl(value)
    except CredentialError:
        return False
    return True


def parse_ttl(value: str) -> int:
    """Return the whole number of seconds described by ``value``."""
    if not isinstance(value, str):
        raise CredentialError("ttl must be a string such as 1d, 12h or 30m")
    match = _TTL_RE.fullmatch(value)
    if match is None:
        raise CredentialError(
            f"invalid ttl {value!r}: expected <integer><unit> with unit one of ms, s, m, h, d, w, M, y"
        )
    amount = int(match.group(1))
    milliseconds = amount * _UNIT_MILLISECONDS[match.group(2)]
    if milliseconds <= 0:
        raise CredentialError(f"invalid ttl {value!r}: duration must be greater than zero")
    if milliseconds % 1_000:
        raise CredentialError(f"invalid ttl {value!r}: duration must be a whole number of seconds")
    return milliseconds // 1_000
