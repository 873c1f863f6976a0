"""Shared HTTP client for Cortex REST endpoints."""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from cortex_cli.errors import (
    AuthenticationError,
    ConfigurationError,
    CortexRequestError,
    CortexTimeoutError,
    CortexUnavailableError,
)
from cortex_cli.useragent import get_user_agent

logger = logging.getLogger(__name__)

AUTH_ERROR_HEADER = "x-auth-error"
TIMEOUT_PHASES = ("lookup", "connect", "secure_connect", "socket", "send", "response")
BULK_TIMEOUT_PHASES = ("socket", "send", "response")

TIMEOUT_ENV_VARS = {phase: f"CORTEX_TIMEOUT_{phase.upper()}" for phase in TIMEOUT_PHASES}
BULK_TIMEOUT_ENV_VARS = {phase: f"CORTEX_BULK_TIMEOUT_{phase.upper()}" for phase in BULK_TIMEOUT_PHASES}
RETRY_LIMIT_ENV_VAR = "CORTEX_RETRY_LIMIT"

# Seconds.
DEFAULT_TIMEOUTS = {
    "lookup": 5.0,
    "connect": 5.0,
    "secure_connect": 5.0,
    "socket": 60.0,
    "send": 60.0,
    "response": 60.0,
}
DEFAULT_BULK_TIMEOUTS = {"socket": 600.0, "send": 600.0, "response": 600.0}
DEFAULT_RETRY_LIMIT = 0


@dataclass(frozen=True)
class PhaseTimeouts:
    lookup: float
    connect: float
    secure_connect: float
    socket: float
    send: float
    response: float

    def as_requests_timeout(self) -> tuple[float, float]:
        """Collapse the phases into the ``(connect, read)`` pair ``requests`` accepts."""
        return (
            self.lookup + self.connect + self.secure_connect,
            max(self.socket, self.send, self.response),
        )


@dataclass(frozen=True)
class HTTPSetting:
    name: str
    env_var: str
    value: float | int
    source: str


@dataclass(frozen=True)
class HTTPSettings:
    timeouts: PhaseTimeouts
    bulk_timeouts: PhaseTimeouts
    retry_limit: int = DEFAULT_RETRY_LIMIT
    overridden: frozenset[str] = field(default_factory=frozenset)

    def is_overridden(self, env_var: str) -> bool:
        return env_var in self.overridden

    def describe(self) -> list[HTTPSetting]:
        rows: list[HTTPSetting] = []
        for phase in TIMEOUT_PHASES:
            env_var = TIMEOUT_ENV_VARS[phase]
            rows.append(
                HTTPSetting(
                    name=f"timeout.{phase}",
                    env_var=env_var,
                    value=getattr(self.timeouts, phase),
                    source="env" if self.is_overridden(env_var) else "default",
                )
            )
        for phase in BULK_TIMEOUT_PHASES:
            env_var = BULK_TIMEOUT_ENV_VARS[phase]
            rows.append(
                HTTPSetting(
                    name=f"bulk_timeout.{phase}",
                    env_var=env_var,
                    value=getattr(self.bulk_timeouts, phase),
                    source="env" if self.is_overridden(env_var) else "default",
                )
            )
        rows.append(
            HTTPSetting(
                name="retry_limit",
                env_var=RETRY_LIMIT_ENV_VAR,
                value=self.retry_limit,
                source="env" if self.is_overridden(RETRY_LIMIT_ENV_VAR) else "default",
            )
        )
        return rows


def _parse_seconds(env_var: str, raw: str) -> float:
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{env_var} must be a number of seconds, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{env_var} must be greater than zero")
    return value


def _parse_retry_limit(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{RETRY_LIMIT_ENV_VAR} must be an integer, got {raw!r}") from exc
    if value < 0:
        raise ConfigurationError(f"{RETRY_LIMIT_ENV_VAR} must be >= 0")
    return value


def load_http_settings(environ: Mapping[str, str] | None = None) -> HTTPSettings:
    env = os.environ if environ is None else environ
    overridden: set[str] = set()

    def _lookup(env_var: str) -> str | None:
        raw = env.get(env_var)
        if raw is None or not raw.strip():
            return None
        overridden.add(env_var)
        return raw.strip()

    values: dict[str, float] = {}
    for phase in TIMEOUT_PHASES:
        env_var = TIMEOUT_ENV_VARS[phase]
        raw = _lookup(env_var)
        values[phase] = _parse_seconds(env_var, raw) if raw else DEFAULT_TIMEOUTS[phase]

    bulk_values = dict(values)
    for phase in BULK_TIMEOUT_PHASES:
        env_var = BULK_TIMEOUT_ENV_VARS[phase]
        raw = _lookup(env_var)
        bulk_values[phase] = _parse_seconds(env_var, raw) if raw else DEFAULT_BULK_TIMEOUTS[phase]

    raw_retry = _lookup(RETRY_LIMIT_ENV_VAR)
    retry_limit = _parse_retry_limit(raw_retry) if raw_retry else DEFAULT_RETRY_LIMIT

    return HTTPSettings(
        timeouts=PhaseTimeouts(**values),
        bulk_timeouts=PhaseTimeouts(**bulk_values),
        retry_limit=retry_limit,
        overridden=frozenset(overridden),
    )


def _error_detail(body: object) -> object | None:
    if not isinstance(body, dict):
        return None
    for key in ("message", "error", "detail"):
        if body.get(key):
            return body[key]
    return None


@dataclass
class CortexClient:
    base_url: str
    token: str | None = field(default=None, repr=False)
    settings: HTTPSettings | None = None

    def __post_init__(self) -> None:
        if self.settings is None:
            self.settings = load_http_settings()

        self._session = requests.Session()
        limit = self.settings.retry_limit
        retry = Retry(
            total=limit,
            connect=limit,
            read=limit,
            status=limit,
            redirect=0,
            status_forcelist=(429, 502, 503, 504),
            backoff_factor=0.2,
            allowed_methods=("GET", "DELETE"),
            raise_on_status=False,
            raise_on_redirect=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        self._session.mount("http://", adapter)
        self._session.mount("https://", adapter)

    def _url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _headers(self, extra: Mapping[str, str] | None = None) -> dict[str, str]:
        headers = {"user-agent": get_user_agent(), "accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if extra:
            headers.update(extra)
        return headers

    def _check_response(self, response: Any) -> None:
        auth_error = response.headers.get(AUTH_ERROR_HEADER)
        if auth_error:
            raise AuthenticationError(
                f"Auth Error: {auth_error}",
                status_code=401,
                detail=auth_error,
            )
        if response.status_code < 300:
            return

        body: object | None
        try:
            body = response.json()
        except ValueError:
            body = None
        detail = _error_detail(body)
        text = detail if detail is not None else (response.text or "").strip()
        if response.status_code == 401:
            raise AuthenticationError(
                f"authentication failed: 401 {text}".rstrip(),
                status_code=401,
                detail=detail,
                body=body,
            )
        if 300 <= response.status_code < 400:
            location = response.headers.get("location", "")
            text = f"unexpected redirect to {location}" if location else "unexpected redirect"
        raise CortexRequestError(
            f"request failed: {response.status_code} {text}".rstrip(),
            status_code=response.status_code,
            detail=detail,
            body=body,
        )

    def _send(
        self,
        method: str,
        path: str,
        *,
        json_payload: object | None = None,
        params: Mapping[str, object] | None = None,
        data: object | None = None,
        headers: Mapping[str, str] | None = None,
        bulk: bool = False,
        stream: bool = False,
    ) -> Any:
        timeouts = self.settings.bulk_timeouts if bulk else self.settings.timeouts
        url = self._url(path)
        logger.debug("request %s %s", method, url)
        started = time.monotonic()
        try:
            response = self._session.request(
                method,
                url,
                json=json_payload,
                params=params,
                data=data,
                headers=self._headers(headers),
                timeout=timeouts.as_requests_timeout(),
                allow_redirects=False,
                stream=stream,
            )
        except requests.exceptions.Timeout as exc:
            raise CortexTimeoutError(f"request timed out: {method} {url}") from exc
        except requests.exceptions.RequestException as exc:
            raise CortexUnavailableError(f"unable to reach {url}: {exc}") from exc

        logger.debug(
            "response %s %s -> %s (%.0f ms)",
            method,
            url,
            response.status_code,
            (time.monotonic() - started) * 1000,
        )
        self._check_response(response)
        return response

    def request(
        self,
        method: str,
        path: str,
        *,
        json_payload: object | None = None,
        params: Mapping[str, object] | None = None,
    ) -> Any:
        response = self._send(method, path, json_payload=json_payload, params=params)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise CortexRequestError(
                f"expected JSON response from {path}",
                status_code=response.status_code,
            ) from exc

    def get(self, path: str, *, params: Mapping[str, object] | None = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, payload: object | None = None) -> Any:
        return self.request("POST", path, json_payload=payload)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)

    def upload_file(
        self,
        path: str,
        file_path: str | Path,
        *,
        content_type: str = "application/octet-stream",
    ) -> Any:
        with Path(file_path).open("rb") as handle:
            response = self._send(
                "POST",
                path,
                data=handle,
                headers={"content-type": content_type},
                bulk=True,
            )
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {"message": response.text}

    def download_file(self, path: str, destination: str | Path, *, chunk_size: int = 65536) -> Path:
        """Stream ``path`` into ``destination``; the target only appears once complete."""
        target = Path(destination)
        partial = target.with_name(f"{target.name}.part")
        url = self._url(path)
        response = self._send("GET", path, bulk=True, stream=True)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            try:
                with partial.open("wb") as handle:
                    for chunk in response.iter_content(chunk_size=chunk_size):
                        if chunk:
                            handle.write(chunk)
                partial.replace(target)
            except requests.exceptions.Timeout as exc:
                raise CortexTimeoutError(f"download timed out: GET {url}") from exc
            except requests.exceptions.RequestException as exc:
                raise CortexUnavailableError(f"download interrupted: {url}: {exc}") from exc
            finally:
                partial.unlink(missing_ok=True)
        finally:
            response.close()
        return target


__all__ = [
    "CortexClient",
    "HTTPSettings",
    "PhaseTimeouts",
    "load_http_settings",
]
