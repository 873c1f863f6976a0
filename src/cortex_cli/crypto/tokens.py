"""Signed bearer tokens for Cortex profiles."""

from __future__ import annotations

import time
from typing import Any, Protocol

import jwt
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from cortex_cli.crypto.jwk import load_signing_key
from cortex_cli.duration import DEFAULT_TTL, parse_ttl
from cortex_cli.errors import CredentialError

JWT_ALGORITHM = "EdDSA"
TOKEN_AUDIENCE = "cortex"


class SigningProfile(Protocol):
    username: str
    issuer: str
    jwk: dict[str, Any]


def build_claims(*, issuer: str, subject: str, issued_at: int, ttl_seconds: int) -> dict[str, Any]:
    return {
        "iss": issuer,
        "sub": subject,
        "aud": TOKEN_AUDIENCE,
        "iat": issued_at,
        "exp": issued_at + ttl_seconds,
    }


def generate_jwt(profile: SigningProfile, ttl: str = DEFAULT_TTL, *, now: float | None = None) -> str:
    """Sign a token for ``profile`` valid for ``ttl``.

    The TTL is validated before the key material is touched. ``now`` replaces
    the wall clock (seconds since the epoch) and is truncated to whole seconds.
    """
    ttl_seconds = parse_ttl(ttl)
    if not profile.username:
        raise CredentialError("profile has no username to use as token subject")
    signing_key = load_signing_key(profile.jwk)

    issued_at = int(time.time() if now is None else now)
    claims = build_claims(
        issuer=profile.issuer,
        subject=profile.username,
        issued_at=issued_at,
        ttl_seconds=ttl_seconds,
    )
    headers = {"kid": signing_key.kid} if signing_key.kid else None
    try:
        return jwt.encode(
            claims,
            signing_key.private_key,
            algorithm=JWT_ALGORITHM,
            headers=headers,
        )
    except jwt.PyJWTError as exc:
        raise CredentialError(f"unable to sign token: {exc}") from exc


def decode_jwt_header(token: str) -> dict[str, Any]:
    try:
        return jwt.get_unverified_header(token)
    except jwt.PyJWTError as exc:
        raise CredentialError(f"token header is invalid: {exc}") from exc


def decode_jwt_payload(token: str) -> dict[str, Any]:
    """Decode the claims of ``token`` without checking its signature."""
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError as exc:
        raise CredentialError(f"token payload is invalid: {exc}") from exc


def verify_jwt(token: str, public_key_bytes: bytes) -> dict[str, Any]:
    """Verify signature, audience and expiry of ``token`` and return its claims."""
    try:
        public_key = Ed25519PublicKey.from_public_bytes(public_key_bytes)
    except ValueError as exc:
        raise CredentialError(f"public key is invalid: {exc}") from exc
    try:
        return jwt.decode(
            token,
            public_key,
            algorithms=[JWT_ALGORITHM],
            audience=TOKEN_AUDIENCE,
        )
    except jwt.PyJWTError as exc:
        raise CredentialError(f"token verification failed: {exc}") from exc
