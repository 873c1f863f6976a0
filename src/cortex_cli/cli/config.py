"""Profile configuration store for the cortex CLI."""

from __future__ import annotations

import json
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml

from cortex_cli.crypto.jwk import validate_jwk
from cortex_cli.errors import (
    ConfigurationError,
    CredentialError,
    ProfileNotFoundError,
    ValidationError,
)

CONFIG_DIR_ENV_VAR = "CORTEX_CONFIG_DIR"
CONFIG_FILE_NAME = "config"
LEGACY_BACKUP_FILE_NAME = "config_v2"
CONFIG_VERSION = "4"
READABLE_CONFIG_VERSIONS = frozenset({"3", CONFIG_VERSION})
DEFAULT_PROFILE_NAME = "default"

_RECONFIGURE_HINT = (
    'Please get your Personal Access Config from the Cortex Console and run "cortex configure".'
)


class LegacyConfigError(ConfigurationError):
    """Config file predates the current layout and was set aside."""

    def __init__(self, message: str, *, backup_path: Path) -> None:
        super().__init__(message)
        self.backup_path = backup_path


def get_config_dir() -> Path:
    env_dir = os.getenv(CONFIG_DIR_ENV_VAR)
    if env_dir and env_dir.strip():
        return Path(env_dir.strip()).expanduser()
    return Path.home() / ".cortex"


def get_config_path(config_dir: str | Path | None = None) -> Path:
    root = Path(config_dir) if config_dir else get_config_dir()
    return root / CONFIG_FILE_NAME


def _chmod_owner_only(path: Path) -> None:
    if os.name != "posix":
        return
    path.chmod(0o600)


def _require_str(source: dict[str, Any], field_name: str) -> str:
    value = source.get(field_name)
    if not isinstance(value, str) or not value.strip():
        raise CredentialError(f"{field_name} must be a non-empty string")
    return value.strip()


def _normalize_url(value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise CredentialError(f"url must be an absolute http(s) URL: {value}")
    return value.rstrip("/")


@dataclass
class Profile:
    name: str
    url: str
    username: str
    issuer: str
    jwk: dict[str, Any]
    project: str | None = None
    token: str | None = field(default=None, repr=False, compare=False)

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> "Profile":
        return cls(
            name=name,
            url=str(data.get("url") or ""),
            username=str(data.get("username") or ""),
            issuer=str(data.get("issuer") or ""),
            jwk=data.get("jwk") if isinstance(data.get("jwk"), dict) else {},
            project=str(data["project"]) if data.get("project") else None,
        )

    def validate(self) -> "Profile":
        try:
            _normalize_url(self.url)
            _require_str({"username": self.username}, "username")
            _require_str({"issuer": self.issuer}, "issuer")
            validate_jwk(self.jwk)
        except CredentialError as exc:
            raise ConfigurationError(
                f"Invalid configuration profile <{self.name}>: {exc}. {_RECONFIGURE_HINT}"
            ) from exc
        return self

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "url": self.url,
            "username": self.username,
            "issuer": self.issuer,
            "jwk": dict(self.jwk),
        }
        if self.project:
            payload["project"] = self.project
        return payload


def validate_credential(payload: dict[str, Any]) -> dict[str, Any]:
    """Return the persisted subset of a credential payload, validated."""
    return {
        "url": _normalize_url(_require_str(payload, "url")),
        "username": _require_str(payload, "username"),
        "issuer": _require_str(payload, "issuer"),
        "jwk": validate_jwk(payload.get("jwk")),
    }


def parse_personal_access_config(raw: str | bytes) -> dict[str, Any]:
    """Parse and validate a Personal Access Config document."""
    try:
        payload = json.loads(raw)
    except ValueError as exc:
        raise CredentialError(f"Personal Access Config is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise CredentialError("Personal Access Config must be a JSON object")
    return validate_credential(payload)


def load_personal_access_config(path: str | Path) -> dict[str, Any]:
    pat_path = Path(path)
    try:
        raw = pat_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CredentialError(f"unable to read Personal Access Config {pat_path}: {exc}") from exc
    return parse_personal_access_config(raw)


class CortexConfig:
    """Named profiles plus the current-profile pointer, persisted as YAML."""

    def __init__(
        self,
        path: Path,
        *,
        profiles: dict[str, Profile] | None = None,
        current_profile: str | None = None,
        version: str = CONFIG_VERSION,
    ) -> None:
        self.path = path
        self.profiles: dict[str, Profile] = dict(profiles or {})
        self.current_profile = current_profile
        self.version = version

    def get_profile(self, name: str | None = None) -> Profile | None:
        profile_name = name or self.current_profile
        if not profile_name:
            return None
        profile = self.profiles.get(profile_name)
        if profile is None:
            return None
        return profile.validate()

    def set_profile(
        self,
        name: str,
        credential: dict[str, Any],
        project: str | None = None,
    ) -> Profile:
        if not name or not name.strip():
            raise ValidationError("profile name must not be empty")
        payload = validate_credential(credential)
        if project:
            payload["project"] = project
        profile = Profile.from_dict(name.strip(), payload)
        self.profiles[profile.name] = profile
        return profile

    def set_current_profile(self, name: str) -> None:
        if name not in self.profiles:
            raise ProfileNotFoundError(
                f'No profile named "{name}". Run "cortex configure --profile {name}" to create it.',
                profile_name=name,
            )
        self.current_profile = name

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"version": self.version}
        if self.current_profile:
            payload["currentProfile"] = self.current_profile
        payload["profiles"] = {name: profile.to_dict() for name, profile in self.profiles.items()}
        return payload

    def save(self) -> Path:
        self.version = CONFIG_VERSION
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            yaml.safe_dump(self.to_dict(), sort_keys=False, default_flow_style=False),
            encoding="utf-8",
        )
        _chmod_owner_only(self.path)
        return self.path


def default_config(config_dir: str | Path | None = None) -> CortexConfig:
    return CortexConfig(get_config_path(config_dir))


def _backup_legacy_config(config_path: Path) -> Path:
    backup_path = config_path.with_name(LEGACY_BACKUP_FILE_NAME)
    shutil.copyfile(config_path, backup_path)
    return backup_path


def read_config(config_dir: str | Path | None = None) -> CortexConfig | None:
    """Load the config file, or return ``None`` when it has not been written yet."""
    config_path = get_config_path(config_dir)
    if not config_path.exists():
        return None

    try:
        parsed = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"invalid YAML in {config_path}: {exc}") from exc
    if parsed is None:
        parsed = {}
    if not isinstance(parsed, dict):
        raise ConfigurationError(f"config file {config_path} must contain a mapping")

    version = parsed.get("version")
    version_str = str(version) if version is not None else None
    if version_str not in READABLE_CONFIG_VERSIONS:
        backup_path = _backup_legacy_config(config_path)
        raise LegacyConfigError(
            f"Old profile found and moved to {backup_path}. "
            'Please run "cortex configure".',
            backup_path=backup_path,
        )

    raw_profiles = parsed.get("profiles") or {}
    if not isinstance(raw_profiles, dict):
        raise ConfigurationError("profiles must be a mapping of profile name to settings")

    profiles: dict[str, Profile] = {}
    for name, data in raw_profiles.items():
        if not isinstance(data, dict):
            raise ConfigurationError(f"profile {name} must be a mapping")
        profiles[str(name)] = Profile.from_dict(str(name), data)

    current_profile = parsed.get("currentProfile")
    return CortexConfig(
        config_path,
        profiles=profiles,
        current_profile=str(current_profile) if current_profile else None,
        version=version_str,
    )
