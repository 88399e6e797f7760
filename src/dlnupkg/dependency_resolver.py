#!/usr/bin/env python3
"""
Dependency resolver module for dlnupkg.

This module walks the dependency declarations of a NuGet package for one
target platform and merges them into a flat set of package versions, keeping
the highest version requested for every package.
"""

import logging
from typing import Dict, Optional

from packaging.version import InvalidVersion, Version

from .registry import RegistryClient, RegistryError, normalize_package_name

logger = logging.getLogger(__name__)


class VersionParseError(ValueError):
    """Exception raised when a version string cannot be parsed."""

    def __init__(self, version: Optional[str]):
        self.version = version
        super().__init__(f"Invalid version: {version!r}")


def parse_version(version: Optional[str]) -> Version:
    """
    Parse a dotted version string into a comparable version.

    Build metadata (anything after ``+``) does not take part in ordering and
    is dropped before parsing.

    Args:
        version (Optional[str]): The version string.

    Returns:
        Version: The parsed version.

    Raises:
        VersionParseError: If the string is empty or not a valid version.
    """
    text = (version or "").strip().split("+", 1)[0]
    if not text:
        raise VersionParseError(version)
    try:
        return Version(text)
    except InvalidVersion as e:
        raise VersionParseError(version) from e


def resolve(
    package_name: str,
    version: str,
    target_platform: str,
    client: Optional[RegistryClient] = None
) -> Dict[str, str]:
    """
    Resolve the transitive dependencies of a package for a target platform.

    Args:
        package_name (str): The name of the root package.
        version (str): Version of the root package.
        target_platform (str): The platform whose dependency groups are followed.
        client (Optional[RegistryClient]): Source of package metadata.

    Returns:
        Dict[str, str]: Dictionary mapping normalized package names to the
        highest version requested for them, in discovery order.

    Raises:
        ValueError: If the package name or the platform is empty.
        VersionParseError: If the root version cannot be parsed.
    """
    if not package_name or not package_name.strip():
        raise ValueError("Package name cannot be empty")
    if not target_platform or not target_platform.strip():
        raise ValueError("Target platform cannot be empty")
    parse_version(version)

    if client is None:
        client = RegistryClient()

    resolved: Dict[str, str] = {}
    logger.info("Collecting dependencies for %s %s (%s)", package_name, version, target_platform)
    _collect_dependencies(client, resolved, package_name, version, target_platform)
    return resolved


def _collect_dependencies(
    client: RegistryClient,
    resolved: Dict[str, str],
    package_name: str,
    version: str,
    target_platform: str
) -> None:
    """Record a package in ``resolved`` and descend into its dependencies."""
    normalized_name = normalize_package_name(package_name)

    try:
        required_version = parse_version(version)
    except VersionParseError as e:
        logger.warning("Skipping %s: %s", package_name, e)
        return

    existing_version = resolved.get(normalized_name)
    if existing_version is not None:
        if parse_version(existing_version) >= required_version:
            logger.debug("Package %s %s already included. Skipping.", normalized_name, version)
            return
        logger.info("Raising %s from %s to %s", normalized_name, existing_version, version)

    resolved[normalized_name] = version.strip()

    try:
        pkg_info = client.fetch_package_info(package_name, version)
    except RegistryError as e:
        logger.warning("Dependencies for %s %s not available: %s", package_name, version, e)
        return

    group = pkg_info.group_for(target_platform)
    if group is None:
        logger.info("No dependencies found for %s %s for platform %s",
                    package_name, version, target_platform)
        return

    for dep in group.dependencies:
        if not dep.name or not dep.min_version:
            logger.warning("Skipping malformed dependency of %s %s: %r", package_name, version, dep)
            continue

        logger.debug("Dependency: %s, Minimum version: %s", dep.name, dep.min_version)
        _collect_dependencies(client, resolved, dep.name, dep.min_version, target_platform)
