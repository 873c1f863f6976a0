"""Resolve the effective profile and bearer token for a command."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import TextIO

from cortex_cli.cli.config import read_config
from cortex_cli.crypto.tokens import generate_jwt
from cortex_cli.duration import DEFAULT_TTL
from cortex_cli.errors import ConfigNotFoundError, ProfileNotFoundError

TOKEN_ENV_VAR = "CORTEX_TOKEN"
URL_ENV_VAR = "CORTEX_URI"
ENV_TOKEN_NOTICE = f"Using token from environment variable ${TOKEN_ENV_VAR}"


@dataclass(frozen=True)
class ResolvedProfile:
    name: str
    url: str
    username: str
    project: str | None = None
    token: str | None = field(default=None, repr=False)
    token_source: str | None = None


def _env_value(name: str) -> str | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    return raw.strip() or None


def load_profile(
    requested_name: str | None = None,
    require_token: bool = True,
    ttl: str | None = None,
    *,
    config_dir: str | Path | None = None,
    stderr: TextIO | None = None,
    now: float | None = None,
) -> ResolvedProfile:
    """Return the profile a command should run as.

    ``requested_name`` comes from ``--profile``; without it the config's
    current profile is used. With ``require_token`` a fresh token is signed
    using ``ttl`` (default one day) unless ``$CORTEX_TOKEN`` is set, in which
    case that token is used and a notice is written to ``stderr``.
    """
    config = read_config(config_dir)
    if config is None:
        raise ConfigNotFoundError('Please configure the Cortex CLI by running "cortex configure".')

    name = requested_name or config.current_profile
    if not name:
        raise ProfileNotFoundError(
            'No current profile is set. Run "cortex configure" or '
            '"cortex configure set-profile <name>".',
            profile_name=None,
        )

    profile = config.get_profile(name)
    if profile is None:
        raise ProfileNotFoundError(
            f'Profile with name "{name}" could not be located in your configuration. '
            'Please run "cortex configure".',
            profile_name=name,
        )

    url = _env_value(URL_ENV_VAR) or profile.url
    token: str | None = None
    token_source: str | None = None
    if require_token:
        env_token = _env_value(TOKEN_ENV_VAR)
        if env_token:
            print(ENV_TOKEN_NOTICE, file=stderr or sys.stderr)
            token = env_token
            token_source = "env"
        else:
            token = generate_jwt(profile, ttl or DEFAULT_TTL, now=now)
            token_source = "profile"

    return ResolvedProfile(
        name=profile.name,
        url=url,
        username=profile.username,
        project=profile.project,
        token=token,
        token_source=token_source,
    )
