#!/usr/bin/env python3
"""
Registry module for dlnupkg.

This module talks to the NuGet V3 API and turns its registration and catalog
documents into the structured package information used by the dependency
resolver and the downloader.
"""

import gzip
import http.client
import json
import logging
import threading
import urllib.error
import urllib.parse
import urllib.request
import zlib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

NUGET_SERVICE_INDEX = "https://api.nuget.org/v3/index.json"
DEFAULT_TIMEOUT = 30.0
USER_AGENT = "dlnupkg"

# Label given to dependency groups that do not name a target framework
ANY_PLATFORM = "any"

REGISTRATION_RESOURCE_TYPES = (
    "RegistrationsBaseUrl/3.6.0",
    "RegistrationsBaseUrl/3.4.0",
    "RegistrationsBaseUrl",
)


class RegistryError(Exception):
    """Base exception for failures talking to the package registry."""


class MetadataNotFound(RegistryError):
    """Raised when the registry has no such package name/version pair."""


class MalformedMetadata(RegistryError):
    """Raised when a registry document cannot be parsed into package information."""


class RegistryUnavailable(RegistryError):
    """Raised for network failures, timeouts and unexpected HTTP statuses."""


@dataclass(frozen=True)
class DependencyDeclaration:
    """A declared dependency: the named package is required at ``min_version`` or later."""
    name: str
    min_version: str


@dataclass(frozen=True)
class PlatformGroup:
    platform: str
    dependencies: List[DependencyDeclaration] = field(default_factory=list)


@dataclass
class PackageInfo:
    """Structured metadata of one package version."""
    name: str
    version: str
    platform_groups: List[PlatformGroup] = field(default_factory=list)
    artifact_url: Optional[str] = None

    @property
    def platforms(self) -> List[str]:
        return [group.platform for group in self.platform_groups]

    def group_for(self, platform: str) -> Optional[PlatformGroup]:
        """Return the dependency group declared for ``platform``, if any."""
        for group in self.platform_groups:
            if group.platform == platform:
                return group
        return None


def normalize_package_name(name: str) -> str:
    """
    Normalize a package id. NuGet ids are case-insensitive, so the lower-cased
    form is used for lookups, resolved set keys and artifact filenames.

    Args:
        name (str): The package id to normalize.

    Returns:
        str: The normalized package id.
    """
    return name.strip().lower()


def normalize_version_for_url(version: str) -> str:
    """
    Normalize a version string the way NuGet does for its URLs and file names.

    Leading zeros are removed from the numeric parts, missing minor/patch
    parts are filled with zeros, a zero fourth part is dropped and build
    metadata is removed. ``1.0`` becomes ``1.0.0`` and ``2.1.0.0-Beta+abc``
    becomes ``2.1.0-beta``.

    Args:
        version (str): The version string.

    Returns:
        str: The normalized, lower-cased version string.
    """
    text = version.strip().split("+", 1)[0]
    core, sep, prerelease = text.partition("-")
    try:
        parts = [str(int(part)) for part in core.split(".")]
    except ValueError:
        return text.lower()

    while len(parts) < 3:
        parts.append("0")
    if len(parts) == 4 and parts[3] == "0":
        parts = parts[:3]

    normalized = ".".join(parts)
    if sep:
        normalized = f"{normalized}-{prerelease}"
    return normalized.lower()


def min_version_from_range(version_range: Optional[str]) -> str:
    """
    Extract the minimum version of a NuGet version range.

    ``[1.0.0, )`` and ``1.0.0`` both mean "1.0.0 or later", ``[2.0]`` is an
    exact match. Ranges without a lower bound, like ``(, 2.0]``, yield an
    empty string.

    Args:
        version_range (Optional[str]): The range as written in the metadata.
            Anything other than a string counts as a missing range.

    Returns:
        str: The lower bound of the range, or an empty string.
    """
    if not isinstance(version_range, str):
        return ""
    text = version_range.strip()
    if not text:
        return ""
    if text[:1] in ("[", "("):
        inner = text[1:-1] if text[-1:] in ("]", ")") else text[1:]
        return inner.split(",", 1)[0].strip()
    return text


def parse_catalog_entry(name: str, version: str, entry: Dict[str, Any]) -> List[PlatformGroup]:
    """
    Build the platform groups of a package from its catalog entry.

    Args:
        name: Package id, used for error messages
        version: Package version, used for error messages
        entry: The catalog entry document

    Returns:
        List of platform groups in declaration order

    Raises:
        MalformedMetadata: If the dependency groups have an unexpected shape
    """
    raw_groups = entry.get("dependencyGroups") or []
    if not isinstance(raw_groups, list):
        raise MalformedMetadata(f"Unexpected dependencyGroups for {name} {version}")

    groups = []
    for raw_group in raw_groups:
        if not isinstance(raw_group, dict):
            raise MalformedMetadata(f"Unexpected dependency group for {name} {version}")

        target_framework = raw_group.get("targetFramework") or ""
        if not isinstance(target_framework, str):
            raise MalformedMetadata(f"Unexpected targetFramework for {name} {version}: {target_framework!r}")
        raw_deps = raw_group.get("dependencies") or []
        if not isinstance(raw_deps, list):
            raise MalformedMetadata(f"Unexpected dependencies for {name} {version}")

        platform = target_framework.strip() or ANY_PLATFORM
        dependencies = []
        for raw_dep in raw_deps:
            if not isinstance(raw_dep, dict):
                # Skipped individually; the resolver reports entries with no name.
                dependencies.append(DependencyDeclaration("", ""))
                continue
            dep_id = raw_dep.get("id")
            dependencies.append(DependencyDeclaration(
                name=dep_id.strip() if isinstance(dep_id, str) else "",
                min_version=min_version_from_range(raw_dep.get("range")),
            ))
        groups.append(PlatformGroup(platform, dependencies))
    return groups


class RegistryClient:
    """
    Client for a NuGet V3 feed.

    The service index is fetched once per client and shared between threads,
    so a single instance can serve the resolver and all download workers.
    """

    def __init__(self, service_index_url: str = NUGET_SERVICE_INDEX,
                 timeout: float = DEFAULT_TIMEOUT):
        self.service_index_url = service_index_url
        self.timeout = timeout
        self._registration_base: Optional[str] = None
        self._lock = threading.Lock()

    def _get(self, url: str) -> bytes:
        """
        Perform a GET request and return the (decompressed) body.

        Raises:
            MetadataNotFound: On HTTP 404
            RegistryUnavailable: On any other HTTP, network or timeout error
            MalformedMetadata: If a gzip-encoded body cannot be decompressed
        """
        logger.debug("GET %s", url)
        request = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                data = response.read()
                encoding = response.headers.get("Content-Encoding", "")
        except urllib.error.HTTPError as e:
            if e.code == 404:
                raise MetadataNotFound(f"Not found: {url}") from e
            raise RegistryUnavailable(f"HTTP {e.code} fetching {url}") from e
        except (OSError, http.client.HTTPException) as e:
            # URLError and socket timeouts are OSErrors
            raise RegistryUnavailable(f"Error fetching {url}: {e}") from e

        if encoding.lower() == "gzip":
            try:
                data = gzip.decompress(data)
            except (OSError, EOFError, zlib.error) as e:
                raise MalformedMetadata(f"Corrupt gzip body from {url}: {e}") from e
        return data

    def _get_json(self, url: str) -> Any:
        data = self._get(url)
        try:
            return json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise MalformedMetadata(f"Invalid JSON from {url}: {e}") from e

    def registration_base(self) -> str:
        """
        Return the registration base URL advertised by the service index.

        Raises:
            MalformedMetadata: If the index has no registration resource
        """
        with self._lock:
            if self._registration_base is None:
                index = self._get_json(self.service_index_url)
                resources = index.get("resources") if isinstance(index, dict) else None
                if not isinstance(resources, list):
                    raise MalformedMetadata(f"No resources in service index {self.service_index_url}")

                by_type = {}
                for resource in resources:
                    if not isinstance(resource, dict):
                        continue
                    resource_id, resource_type = resource.get("@id"), resource.get("@type")
                    if isinstance(resource_id, str) and resource_id and isinstance(resource_type, str):
                        by_type.setdefault(resource_type, resource_id)

                base = next((by_type[t] for t in REGISTRATION_RESOURCE_TYPES if t in by_type), None)
                if not base:
                    raise MalformedMetadata(
                        f"No registration resource in service index {self.service_index_url}")
                self._registration_base = base if base.endswith("/") else base + "/"
            return self._registration_base

    def registration_leaf_url(self, name: str, version: str) -> str:
        package_id = urllib.parse.quote(normalize_package_name(name), safe="")
        package_version = urllib.parse.quote(normalize_version_for_url(version), safe="")
        return f"{self.registration_base()}{package_id}/{package_version}.json"

    def fetch_package_info(self, name: str, version: str) -> PackageInfo:
        """
        Fetch the platform groups and artifact location of a package version.

        Args:
            name: The package id
            version: The package version

        Returns:
            PackageInfo for the requested package version

        Raises:
            MetadataNotFound: If the registry has no such package version
            MalformedMetadata: If the registry documents cannot be parsed
            RegistryUnavailable: On network failures
        """
        leaf = self._get_json(self.registration_leaf_url(name, version))
        if not isinstance(leaf, dict):
            raise MalformedMetadata(f"Unexpected registration leaf for {name} {version}")

        entry = leaf.get("catalogEntry")
        if isinstance(entry, str):
            entry = self._get_json(entry)
        if not isinstance(entry, dict):
            raise MalformedMetadata(f"Missing catalog entry for {name} {version}")

        artifact_url = leaf.get("packageContent")
        return PackageInfo(
            name=normalize_package_name(name),
            version=version,
            platform_groups=parse_catalog_entry(name, version, entry),
            artifact_url=artifact_url if isinstance(artifact_url, str) and artifact_url else None,
        )

    def fetch_artifact(self, url: str) -> bytes:
        """Download the binary artifact at ``url``."""
        return self._get(url)
