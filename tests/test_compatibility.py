from __future__ import annotations

import pytest

from cortex_cli.compatibility import (
    COMPATIBILITY_PATH,
    compat_check_disabled,
    get_compatibility,
    parse_version_tuple,
    satisfies,
)
from cortex_cli.errors import CortexRequestError


class FakeClient:
    def __init__(self, payload: object) -> None:
        self.payload = payload
        self.paths: list[str] = []

    def get(self, path: str, *, params=None):  # noqa: ANN001
        self.paths.append(path)
        return self.payload


def test_parse_version_tuple_ignores_build_suffix() -> None:
    assert parse_version_tuple("6.2.1") == (6, 2, 1)
    assert parse_version_tuple("0.0.0+local") == (0, 0, 0)


@pytest.mark.parametrize(
    ("version", "requirement", "expected"),
    [
        ("6.1.0", ">=6.0.0", True),
        ("5.9.9", ">=6.0.0", False),
        ("6.1.0", ">=6.0.0 <7.0.0", True),
        ("7.0.0", ">=6.0.0 <7.0.0", False),
        ("6.0", "6.0.0", True),
        ("6.0.1", "=6.0.0", False),
        ("6.0.1", ">6.0.0 <=6.0.1", True),
    ],
)
def test_satisfies(version: str, requirement: str, expected: bool) -> None:
    assert satisfies(version, requirement) is expected


def test_satisfies_rejects_unknown_syntax() -> None:
    with pytest.raises(ValueError):
        satisfies("1.0.0", "~1.0.0")


def test_get_compatibility_reads_semver_range() -> None:
    client = FakeClient({"semver": ">=1.0.0"})
    result = get_compatibility(client, current="1.2.0")
    assert client.paths == [COMPATIBILITY_PATH]
    assert result.satisfied is True
    assert result.required == ">=1.0.0"


def test_get_compatibility_reports_unsatisfied_range() -> None:
    result = get_compatibility(FakeClient({"semver": ">=2.0.0"}), current="1.2.0")
    assert result.satisfied is False
    assert result.current == "1.2.0"


def test_missing_range_is_a_request_error() -> None:
    with pytest.raises(CortexRequestError):
        get_compatibility(FakeClient({}), current="1.0.0")


def test_compat_check_disabled_by_env(monkeypatch) -> None:
    assert compat_check_disabled() is True
    monkeypatch.delenv("CORTEX_NO_COMPAT")
    assert compat_check_disabled() is False
