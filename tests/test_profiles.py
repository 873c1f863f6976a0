from __future__ import annotations

import io

import pytest

from conftest import make_pat
from cortex_cli.cli.config import default_config
from cortex_cli.cli.profiles import ENV_TOKEN_NOTICE, load_profile
from cortex_cli.crypto.tokens import decode_jwt_payload
from cortex_cli.errors import ConfigNotFoundError, CredentialError, ProfileNotFoundError


def _write_profiles() -> None:
    config = default_config()
    config.set_profile("default", make_pat(username="default-user"), project="alpha")
    config.set_profile("other", make_pat(url="https://other.example.com", username="other-user"))
    config.set_current_profile("default")
    config.save()


def test_missing_config_is_reported_separately() -> None:
    with pytest.raises(ConfigNotFoundError, match="cortex configure"):
        load_profile()


def test_current_profile_is_used_by_default() -> None:
    _write_profiles()
    profile = load_profile(now=1_000_000)

    assert profile.name == "default"
    assert profile.project == "alpha"
    assert profile.token_source == "profile"
    assert decode_jwt_payload(profile.token)["sub"] == "default-user"


def test_named_profile_is_used() -> None:
    _write_profiles()
    profile = load_profile("other")

    assert profile.name == "other"
    assert profile.url == "https://other.example.com"
    assert profile.project is None
    assert decode_jwt_payload(profile.token)["sub"] == "other-user"


def test_missing_profile_names_the_profile() -> None:
    _write_profiles()
    with pytest.raises(ProfileNotFoundError) as excinfo:
        load_profile("nope")

    assert excinfo.value.profile_name == "nope"
    assert 'Profile with name "nope" could not be located' in str(excinfo.value)


def test_no_token_when_not_required() -> None:
    _write_profiles()
    profile = load_profile(require_token=False)
    assert profile.token is None
    assert profile.token_source is None


def test_ttl_is_applied() -> None:
    _write_profiles()
    claims = decode_jwt_payload(load_profile(ttl="5m", now=1_000_000).token)
    assert claims["exp"] - claims["iat"] == 300


def test_invalid_ttl_is_a_credential_error() -> None:
    _write_profiles()
    with pytest.raises(CredentialError):
        load_profile(ttl="soon")


def test_tokens_differ_only_by_issue_time() -> None:
    _write_profiles()
    first = decode_jwt_payload(load_profile(now=1_000_000).token)
    second = decode_jwt_payload(load_profile(now=1_000_060).token)

    assert second["iat"] - first["iat"] == 60
    assert {k: v for k, v in first.items() if k not in {"iat", "exp"}} == {
        k: v for k, v in second.items() if k not in {"iat", "exp"}
    }


def test_env_token_overrides_generation(monkeypatch) -> None:
    _write_profiles()
    monkeypatch.setenv("CORTEX_TOKEN", "env-token")
    err = io.StringIO()

    profile = load_profile(stderr=err)

    assert profile.token == "env-token"
    assert profile.token_source == "env"
    assert err.getvalue().strip() == ENV_TOKEN_NOTICE


def test_env_uri_overrides_profile_url(monkeypatch) -> None:
    _write_profiles()
    monkeypatch.setenv("CORTEX_URI", "https://override.example.com")
    assert load_profile(require_token=False).url == "https://override.example.com"


def test_loading_does_not_modify_config(isolated_env) -> None:
    _write_profiles()
    before = (isolated_env / "config").read_text(encoding="utf-8")
    load_profile("other")
    assert (isolated_env / "config").read_text(encoding="utf-8") == before
