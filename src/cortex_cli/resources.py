"""Resource clients for the Cortex fabric v4 API."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import quote

from cortex_cli.client import CortexClient
from cortex_cli.errors import ValidationError

API_PREFIX = "fabric/v4"
DEFAULT_LIST_LIMIT = 20
DEFAULT_LIST_SKIP = 0
DEFAULT_LIST_SORT = json.dumps({"updatedAt": -1})


def check_project(project: str | None) -> str:
    if not project or not str(project).strip():
        raise ValidationError(
            "Project must be specified with --project or set on the profile "
            '("cortex configure set-project <project>").'
        )
    return str(project).strip()


def _segment(value: str) -> str:
    return quote(value, safe="")


def sanitize_content_key(key: str) -> str:
    return key.lstrip("/")


@dataclass(frozen=True)
class ListOptions:
    filter: str | None = None
    sort: str | None = None
    limit: int = DEFAULT_LIST_LIMIT
    skip: int = DEFAULT_LIST_SKIP

    def to_params(self) -> dict[str, object]:
        for label, raw in (("filter", self.filter), ("sort", self.sort)):
            if raw is None:
                continue
            try:
                json.loads(raw)
            except ValueError as exc:
                raise ValidationError(f"--{label} must be a JSON object: {exc}") from exc
        if self.limit < 1:
            raise ValidationError("--limit must be >= 1")
        if self.skip < 0:
            raise ValidationError("--skip must be >= 0")
        params: dict[str, object] = {
            "limit": self.limit,
            "skip": self.skip,
            "sort": self.sort or DEFAULT_LIST_SORT,
        }
        if self.filter:
            params["filter"] = self.filter
        return params


def _items(response: Any, key: str) -> list[Any]:
    if isinstance(response, list):
        return response
    if isinstance(response, dict):
        items = response.get(key)
        if isinstance(items, list):
            return items
    return []


class Projects:
    def __init__(self, client: CortexClient) -> None:
        self._client = client

    def list_projects(self, options: ListOptions | None = None) -> list[Any]:
        params = (options or ListOptions()).to_params()
        return _items(self._client.get(f"{API_PREFIX}/projects", params=params), "projects")

    def describe_project(self, name: str) -> dict:
        return self._client.get(f"{API_PREFIX}/projects/{_segment(name)}")

    def save_project(self, definition: dict) -> dict:
        return self._client.post(f"{API_PREFIX}/projects", definition)

    def delete_project(self, name: str) -> dict:
        return self._client.delete(f"{API_PREFIX}/projects/{_segment(name)}")


class Connections:
    def __init__(self, client: CortexClient) -> None:
        self._client = client

    def _path(self, project: str, name: str | None = None) -> str:
        base = f"{API_PREFIX}/projects/{_segment(check_project(project))}/connections"
        return f"{base}/{_segment(name)}" if name else base

    def list_connections(self, project: str, options: ListOptions | None = None) -> list[Any]:
        params = (options or ListOptions()).to_params()
        return _items(self._client.get(self._path(project), params=params), "connections")

    def describe_connection(self, project: str, name: str) -> dict:
        return self._client.get(self._path(project, name))

    def save_connection(self, project: str, definition: dict) -> dict:
        return self._client.post(self._path(project), definition)

    def delete_connection(self, project: str, name: str) -> dict:
        return self._client.delete(self._path(project, name))


class Secrets:
    def __init__(self, client: CortexClient) -> None:
        self._client = client

    def _path(self, project: str, name: str | None = None) -> str:
        base = f"{API_PREFIX}/projects/{_segment(check_project(project))}/secrets"
        return f"{base}/{_segment(name)}" if name else base

    def list_secrets(self, project: str) -> list[Any]:
        return _items(self._client.get(self._path(project), params={"list": "true"}), "secrets")

    def describe_secret(self, project: str, name: str) -> dict:
        return self._client.get(self._path(project, name))

    def save_secret(self, project: str, name: str, value: object) -> dict:
        return self._client.post(self._path(project, name), {"value": value})

    def delete_secret(self, project: str, name: str) -> dict:
        return self._client.delete(self._path(project, name))


class Content:
    def __init__(self, client: CortexClient) -> None:
        self._client = client

    def _path(self, project: str, key: str | None = None) -> str:
        base = f"{API_PREFIX}/projects/{_segment(check_project(project))}/content"
        if key is None:
            return base
        return f"{base}/{quote(sanitize_content_key(key), safe='/')}"

    def list_content(self, project: str) -> list[Any]:
        return _items(self._client.get(self._path(project)), "content")

    def upload_content(
        self,
        project: str,
        key: str,
        file_path: str | Path,
        *,
        content_type: str = "application/octet-stream",
    ) -> dict:
        return self._client.upload_file(
            self._path(project, key),
            file_path,
            content_type=content_type,
        )

    def download_content(self, project: str, key: str, destination: str | Path) -> Path:
        return self._client.download_file(self._path(project, key), destination)

    def delete_content(self, project: str, key: str) -> dict:
        return self._client.delete(self._path(project, key))
