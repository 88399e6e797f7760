"""Shared fixtures: an in-memory registry standing in for the NuGet API."""

import threading
from typing import Dict, List, Optional, Tuple

import pytest

from dlnupkg.registry import (
    DependencyDeclaration,
    MetadataNotFound,
    PackageInfo,
    PlatformGroup,
    RegistryUnavailable,
)


def make_info(name: str, version: str, groups: Optional[Dict[str, List[Tuple[str, str]]]] = None,
              artifact_url: Optional[str] = "default") -> PackageInfo:
    """Helper to build package info from ``{platform: [(dep_name, min_version), ...]}``."""
    platform_groups = [
        PlatformGroup(platform, [DependencyDeclaration(n, v) for n, v in deps])
        for platform, deps in (groups or {}).items()
    ]
    if artifact_url == "default":
        artifact_url = f"https://example.test/{name.lower()}/{version}/{name.lower()}.{version}.nupkg"
    return PackageInfo(name.lower(), version, platform_groups, artifact_url)


class StubClient:
    """Registry client serving canned package info and recording every call."""

    def __init__(self, packages: Optional[List[PackageInfo]] = None):
        self.packages = {(p.name, p.version): p for p in packages or []}
        self.errors = {}
        self.artifact_errors = {}
        self.info_calls = []
        self.artifact_calls = []
        self._lock = threading.Lock()

    def add(self, info: PackageInfo) -> None:
        self.packages[(info.name, info.version)] = info

    def fail(self, name: str, version: str, error: Exception) -> None:
        self.errors[(name.lower(), version)] = error

    def fetch_package_info(self, name: str, version: str) -> PackageInfo:
        key = (name.lower(), version)
        with self._lock:
            self.info_calls.append(key)
        if key in self.errors:
            raise self.errors[key]
        if key not in self.packages:
            raise MetadataNotFound(f"{name} {version}")
        return self.packages[key]

    def fetch_artifact(self, url: str) -> bytes:
        with self._lock:
            self.artifact_calls.append(url)
        if url in self.artifact_errors:
            raise self.artifact_errors[url]
        return f"content of {url}".encode("utf-8")

    def calls_for(self, name: str) -> List[str]:
        return [version for n, version in self.info_calls if n == name]


@pytest.fixture
def chain_client():
    """Foo 1.0 -> Bar 1.0 -> Baz 1.0 for net8.0."""
    return StubClient([
        make_info("Foo", "1.0", {"net8.0": [("Bar", "1.0")]}),
        make_info("Bar", "1.0", {"net8.0": [("Baz", "1.0")]}),
        make_info("Baz", "1.0", {"net8.0": []}),
    ])


@pytest.fixture
def unavailable():
    return RegistryUnavailable("connection refused")
