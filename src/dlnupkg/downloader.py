#!/usr/bin/env python3
"""
Downloader module for dlnupkg.

This module downloads the .nupkg artifacts of a resolved set of packages
concurrently. A failing package is recorded in its result and never stops
the other downloads.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .registry import RegistryClient, RegistryError, normalize_package_name, normalize_version_for_url

logger = logging.getLogger(__name__)

ARTIFACT_EXTENSION = "nupkg"
DEFAULT_WORKERS = 8


class DownloadError(Exception):
    """Base exception for a failed package download."""


class ArtifactUnavailable(DownloadError):
    """Raised when no download location is known for a package."""


class TransferFailure(DownloadError):
    """Raised when fetching or writing an artifact fails."""


@dataclass
class DownloadResult:
    """Outcome of downloading one package."""
    name: str
    version: str
    path: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def __str__(self) -> str:
        return f"{self.name} {self.version}"


def artifact_filename(package_name: str, version: str) -> str:
    """Return the canonical ``{name}.{version}.nupkg`` file name of a package."""
    return (f"{normalize_package_name(package_name)}."
            f"{normalize_version_for_url(version)}.{ARTIFACT_EXTENSION}")


def download_package(
    package_name: str,
    version: str,
    output_dir: str,
    client: RegistryClient
) -> str:
    """
    Download a single package artifact.

    Args:
        package_name: The name of the package to download
        version: The version of the package to download
        output_dir: Directory to save the downloaded package
        client: Registry client used for the lookup and the transfer

    Returns:
        Path of the written artifact

    Raises:
        ArtifactUnavailable: If the registry gives no download location
        TransferFailure: If the artifact cannot be fetched or written
    """
    try:
        pkg_info = client.fetch_package_info(package_name, version)
    except RegistryError as e:
        raise ArtifactUnavailable(f"Could not look up {package_name} {version}: {e}") from e

    if not pkg_info.artifact_url:
        raise ArtifactUnavailable(f"Could not find download link for package {package_name} version {version}.")

    logger.info("Downloading package %s version %s from %s", package_name, version, pkg_info.artifact_url)
    try:
        data = client.fetch_artifact(pkg_info.artifact_url)
    except RegistryError as e:
        raise TransferFailure(str(e)) from e

    output_path = os.path.join(output_dir, artifact_filename(package_name, version))
    try:
        with open(output_path, "wb") as f:
            f.write(data)
    except OSError as e:
        raise TransferFailure(f"Could not write {output_path}: {e}") from e

    logger.info("Package %s version %s downloaded to %s", package_name, version, output_path)
    return output_path


def _download_task(package_name: str, version: str, output_dir: str,
                   client: RegistryClient) -> DownloadResult:
    result = DownloadResult(package_name, version)
    try:
        result.path = download_package(package_name, version, output_dir, client)
    except Exception as e:  # recorded per package
        logger.error("Error downloading package %s version %s: %s", package_name, version, e)
        result.error = str(e) or type(e).__name__
    return result


def download_all(
    packages: Dict[str, str],
    output_dir: str,
    client: Optional[RegistryClient] = None,
    max_workers: int = DEFAULT_WORKERS
) -> List[DownloadResult]:
    """
    Download every package of a resolved set concurrently.

    Args:
        packages: Dictionary mapping package names to versions
        output_dir: Directory to save the downloaded packages
        client: Registry client shared by all downloads
        max_workers: Maximum number of concurrent downloads

    Returns:
        One result per package, sorted by package name
    """
    if client is None:
        client = RegistryClient()

    os.makedirs(output_dir, exist_ok=True)
    if not packages:
        return []

    results = []
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(packages)))) as executor:
        futures = [
            executor.submit(_download_task, pkg_name, version, output_dir, client)
            for pkg_name, version in packages.items()
        ]
        for future in as_completed(futures):
            results.append(future.result())

    return sorted(results, key=lambda r: r.name)


def split_results(results: List[DownloadResult]) -> Tuple[List[DownloadResult], List[DownloadResult]]:
    """Split download results into (successful_downloads, failed_downloads)."""
    success = [r for r in results if r.ok]
    failed = [r for r in results if not r.ok]
    return success, failed
