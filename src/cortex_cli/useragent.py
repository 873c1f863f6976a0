"""User-agent header for Cortex requests."""

from __future__ import annotations

import platform
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version

DIST_NAME = "cortex-cli"


def cli_version() -> str:
    try:
        return pkg_version(DIST_NAME)
    except PackageNotFoundError:
        return "0.0.0+local"


def get_user_agent() -> str:
    return (
        f"{DIST_NAME}/{cli_version()} "
        f"({platform.system().lower()}; {platform.machine()}; {platform.release()}; "
        f"{platform.platform(terse=True)})"
    )
