from __future__ import annotations

import json
from pathlib import Path

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)
from jwt.utils import base64url_encode

from cortex_cli.client import BULK_TIMEOUT_ENV_VARS, RETRY_LIMIT_ENV_VAR, TIMEOUT_ENV_VARS

TEST_URL = "https://api.cortex.example.com"


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch) -> Path:
    config_dir = tmp_path / "cortex-home"
    monkeypatch.setenv("CORTEX_CONFIG_DIR", str(config_dir))
    monkeypatch.setenv("CORTEX_NO_COMPAT", "1")
    for name in ("CORTEX_TOKEN", "CORTEX_URI"):
        monkeypatch.delenv(name, raising=False)
    for name in (*TIMEOUT_ENV_VARS.values(), *BULK_TIMEOUT_ENV_VARS.values(), RETRY_LIMIT_ENV_VAR):
        monkeypatch.delenv(name, raising=False)
    return config_dir


def _b64(raw: bytes) -> str:
    return base64url_encode(raw).decode("ascii")


def make_jwk(kid: str | None = None) -> dict[str, str]:
    private_key = Ed25519PrivateKey.generate()
    jwk = {
        "kty": "OKP",
        "crv": "Ed25519",
        "d": _b64(
            private_key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
        ),
        "x": _b64(private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)),
    }
    if kid:
        jwk["kid"] = kid
    return jwk


def make_pat(
    *,
    url: str = TEST_URL,
    username: str = "alice@example.com",
    issuer: str = "cognitivescale.com",
) -> dict[str, object]:
    return {
        "url": url,
        "username": username,
        "issuer": issuer,
        "audience": "cortex",
        "jwk": make_jwk(),
    }


@pytest.fixture
def pat() -> dict[str, object]:
    return make_pat()


@pytest.fixture
def pat_file(tmp_path, pat) -> Path:
    path = tmp_path / "pat.json"
    path.write_text(json.dumps(pat), encoding="utf-8")
    return path
