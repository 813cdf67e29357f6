"""Build and version information."""

from __future__ import annotations

import platform
import sys
from dataclasses import dataclass

_GIT_MAJOR = ""
_GIT_MINOR = ""
_GIT_VERSION = "latest"
_GIT_COMMIT = ""
_GIT_TREE_STATE = ""
_BUILD_DATE = "1970-01-01T00:00:00Z"


@dataclass(frozen=True)
class Info:
    """Version information about the running build."""

    git_version: str
    build_date: str
    runtime_version: str
    compiler: str
    platform: str
    major: str = ""
    minor: str = ""
    git_commit: str = ""

    def __str__(self) -> str:
        return self.git_version

    def to_dict(self) -> dict:
        """Return the serialisable form, leaving out empty optional fields."""
        data: dict[str, str] = {}
        if self.major:
            data["major"] = self.major
        if self.minor:
            data["minor"] = self.minor
        data["gitVersion"] = self.git_version
        if self.git_commit:
            data["gitCommit"] = self.git_commit
        data["buildDate"] = self.build_date
        data["runtimeVersion"] = self.runtime_version
        data["compiler"] = self.compiler
        data["platform"] = self.platform
        return data


@dataclass(frozen=True)
class OpenIMServerVersion:
    """Version of the messaging server and its client core."""

    server_version: str = ""
    client_version: str = ""


def _server_version_dict(version: OpenIMServerVersion) -> dict:
    data: dict[str, str] = {}
    if version.server_version:
        data["serverVersion"] = version.server_version
    if version.client_version:
        data["clientVersion"] = version.client_version
    return data


@dataclass(frozen=True)
class Output:
    """Version details of the chat service and, optionally, the messaging server."""

    chat_version: Info
    server_version: OpenIMServerVersion | None = None

    def to_dict(self) -> dict:
        """Return the serialisable form of the report."""
        data: dict = {"OpenIMChatVersion": self.chat_version.to_dict()}
        if self.server_version is not None:
            data["OpenIMServerVersion"] = _server_version_dict(self.server_version)
        return data


def get() -> Info:
    """Return the version information of this build."""
    return Info(
        major=_GIT_MAJOR,
        minor=_GIT_MINOR,
        git_version=_GIT_VERSION,
        git_commit=_GIT_COMMIT,
        build_date=_BUILD_DATE,
        runtime_version=platform.python_version(),
        compiler=platform.python_implementation(),
        platform=f"{sys.platform}/{platform.machine()}",
    )


def get_single_version() -> str:
    """Return the version string alone."""
    return _GIT_VERSION