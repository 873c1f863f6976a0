"""CLI error types."""

from __future__ import annotations


class CortexCLIError(RuntimeError):
    """Base CLI error."""


class ConfigurationError(CortexCLIError):
    """CLI configuration is missing or invalid."""


class ConfigNotFoundError(ConfigurationError):
    """No configuration file has been written yet."""


class ProfileNotFoundError(ConfigurationError):
    """Requested profile is not present in the configuration."""

    def __init__(self, message: str, *, profile_name: str | None = None) -> None:
        super().__init__(message)
        self.profile_name = profile_name


class CredentialError(CortexCLIError):
    """Signing key material or token parameters are invalid."""


class ValidationError(CortexCLIError):
    """Command input is malformed."""


class IncompatibleVersionError(CortexCLIError):
    """Installed CLI version is outside the range Cortex accepts."""


class CortexUnavailableError(CortexCLIError):
    """Cortex could not be reached."""


class CortexTimeoutError(CortexUnavailableError):
    """Request to Cortex timed out."""


class CortexRequestError(CortexCLIError):
    """Cortex returned an error response."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        detail: object | None = None,
        body: object | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail
        self.body = body


class AuthenticationError(CortexRequestError):
    """Cortex rejected the bearer token."""
