"""Cortex CLI public surface."""

from cortex_cli.cli.config import CortexConfig, Profile, read_config
from cortex_cli.cli.profiles import ResolvedProfile, load_profile
from cortex_cli.client import CortexClient, HTTPSettings, load_http_settings
from cortex_cli.compatibility import get_compatibility, satisfies
from cortex_cli.crypto.tokens import decode_jwt_payload, generate_jwt, verify_jwt
from cortex_cli.duration import is_valid_ttl, parse_ttl
from cortex_cli.errors import (
    AuthenticationError,
    ConfigNotFoundError,
    ConfigurationError,
    CortexCLIError,
    CortexRequestError,
    CortexTimeoutError,
    CortexUnavailableError,
    CredentialError,
    IncompatibleVersionError,
    ProfileNotFoundError,
    ValidationError,
)
from cortex_cli.resources import Connections, Content, ListOptions, Projects, Secrets
from cortex_cli.uploads import human_readable_file_size, run_bounded

__all__ = [
    "CortexCLIError",
    "ConfigurationError",
    "ConfigNotFoundError",
    "ProfileNotFoundError",
    "CredentialError",
    "ValidationError",
    "IncompatibleVersionError",
    "CortexUnavailableError",
    "CortexTimeoutError",
    "CortexRequestError",
    "AuthenticationError",
    "CortexConfig",
    "Profile",
    "read_config",
    "ResolvedProfile",
    "load_profile",
    "CortexClient",
    "HTTPSettings",
    "load_http_settings",
    "get_compatibility",
    "satisfies",
    "generate_jwt",
    "decode_jwt_payload",
    "verify_jwt",
    "parse_ttl",
    "is_valid_ttl",
    "Projects",
    "Connections",
    "Secrets",
    "Content",
    "ListOptions",
    "human_readable_file_size",
    "run_bounded",
]
