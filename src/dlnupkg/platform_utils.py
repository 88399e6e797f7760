#!/usr/bin/env python3
"""
Platform utilities module for dlnupkg.

This module lists the target platforms a NuGet package declares dependency
groups for and helps the user pick the one to resolve against.
"""

import logging
from typing import Callable, List, Optional

from .registry import RegistryClient

logger = logging.getLogger(__name__)


def list_platforms(package_name: str, version: str,
                   client: Optional[RegistryClient] = None) -> List[str]:
    """
    List the target platforms declared by a specific package version.

    Args:
        package_name: The name of the package to list platforms for
        version: The version of the package

    Returns:
        Platform labels in declaration order, without duplicates

    Raises:
        RegistryError: If the package information cannot be fetched
    """
    if client is None:
        client = RegistryClient()

    pkg_info = client.fetch_package_info(package_name, version)
    platforms = []
    for platform in pkg_info.platforms:
        if platform not in platforms:
            platforms.append(platform)
    return platforms


def select_platform(
    platforms: List[str],
    requested: Optional[str] = None,
    input_func: Callable[[str], str] = input
) -> Optional[str]:
    """
    Choose the target platform for a run.

    A platform given by the caller wins, even if the package does not declare
    it. Otherwise the only available platform is selected automatically, or
    the user is asked to pick one from a numbered list.

    Args:
        platforms: Available platform labels
        requested: Platform requested by the caller, if any
        input_func: Function used to read the user's choice

    Returns:
        The selected platform, or None if nothing was selected
    """
    if requested:
        if platforms and requested not in platforms:
            logger.info("Platform %s is not declared by the package; it will have no dependencies", requested)
        return requested

    if not platforms:
        print("No available frameworks found for this package.")
        return None

    if len(platforms) == 1:
        print(f"Automatically selected the only available framework: {platforms[0]}")
        return platforms[0]

    print("Available frameworks:")
    for i, platform in enumerate(platforms, start=1):
        print(f"{i}: {platform}")

    choice = input_func("Enter the number of the framework: ").strip()
    if choice.isdigit() and 1 <= int(choice) <= len(platforms):
        return platforms[int(choice) - 1]

    print("Invalid choice.")
    return None
