"""Helpers for loading Ed25519 signing keys from JSON Web Keys.

Personal Access Configs carry an OKP key (RFC 8037):
- kty: "OKP", crv: "Ed25519"
- d: base64url private key (32 bytes)
- x: base64url public key (32 bytes)
"""

from __future__ import annotations

import binascii
import json
from dataclasses import dataclass
from typing import Any

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from jwt.algorithms import OKPAlgorithm
from jwt.exceptions import PyJWTError
from jwt.utils import base64url_decode

from cortex_cli.errors import CredentialError

ED25519_KEY_LEN = 32


@dataclass(frozen=True)
class SigningKey:
    private_key: Ed25519PrivateKey
    public_key_bytes: bytes
    kid: str | None = None


def _decode_member(jwk: dict[str, Any], member: str) -> bytes:
    raw = jwk.get(member)
    if not isinstance(raw, str) or not raw:
        raise CredentialError(f"jwk is missing the '{member}' member")
    try:
        decoded = base64url_decode(raw)
    except (binascii.Error, ValueError) as exc:
        raise CredentialError(f"jwk '{member}' must be base64url encoded") from exc
    if len(decoded) != ED25519_KEY_LEN:
        raise CredentialError(f"jwk '{member}' must decode to {ED25519_KEY_LEN} bytes")
    return decoded


def validate_jwk(jwk: object) -> dict[str, Any]:
    if not isinstance(jwk, dict):
        raise CredentialError("jwk must be a JSON object")
    if jwk.get("kty") != "OKP" or jwk.get("crv") != "Ed25519":
        raise CredentialError("jwk must be an OKP key on the Ed25519 curve")
    _decode_member(jwk, "d")
    _decode_member(jwk, "x")
    return jwk


def load_signing_key(jwk: object) -> SigningKey:
    validated = validate_jwk(jwk)
    public_key_bytes = _decode_member(validated, "x")

    try:
        private_key = OKPAlgorithm.from_jwk(json.dumps(validated))
    except (PyJWTError, ValueError) as exc:
        raise CredentialError(f"jwk private key is invalid: {exc}") from exc
    if not isinstance(private_key, Ed25519PrivateKey):
        raise CredentialError("jwk must carry an Ed25519 private key")

    # Validate keypair consistency.
    expected_public = private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
    if expected_public != public_key_bytes:
        raise CredentialError("jwk private and public keys do not match")

    kid = validated.get("kid")
    return SigningKey(
        private_key=private_key,
        public_key_bytes=public_key_bytes,
        kid=kid if isinstance(kid, str) and kid else None,
    )


def public_jwk(jwk: dict[str, Any]) -> dict[str, Any]:
    """Return ``jwk`` without its private member."""
    return {key: value for key, value in jwk.items() if key != "d"}
