#!/usr/bin/env python3
"""Command-line interface for dlnupkg."""

import argparse
import logging
import os
import sys
from typing import List, Optional

from .dependency_resolver import resolve
from .downloader import DEFAULT_WORKERS, download_all, split_results
from .platform_utils import list_platforms, select_platform
from .registry import DEFAULT_TIMEOUT, NUGET_SERVICE_INDEX, RegistryClient, RegistryError

DEFAULT_OUTPUT_DIR = "NuGetPackages"
LOG_FORMAT = "[%(levelname)s] %(message)s"


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        description="Download NuGet packages and their dependencies",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Download a package and its dependencies (the framework is prompted for):
    dlnupkg Newtonsoft.Json 13.0.3

  Download for a specific target framework:
    dlnupkg --platform net8.0 Serilog 3.1.1

  List the frameworks a package declares dependencies for:
    dlnupkg --list-platforms Serilog 3.1.1
        """
    )
    parser.add_argument("package", nargs="?", help="Package name to download")
    parser.add_argument("version", nargs="?", help="Package version to download")
    parser.add_argument("-d", "--directory", default=os.path.join(os.getcwd(), DEFAULT_OUTPUT_DIR),
                        help=f"Directory to save downloaded packages (default: ./{DEFAULT_OUTPUT_DIR})")
    parser.add_argument("--platform",
                        help="Target framework whose dependencies are followed (e.g., net8.0)")
    parser.add_argument("--list-platforms", action="store_true",
                        help="Lists available frameworks for the package and then exits")
    parser.add_argument("--workers", type=int, default=DEFAULT_WORKERS,
                        help=f"Number of concurrent downloads (default: {DEFAULT_WORKERS})")
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT,
                        help=f"Timeout in seconds for each registry request (default: {DEFAULT_TIMEOUT:g})")
    parser.add_argument("--service-index", default=NUGET_SERVICE_INDEX,
                        help="NuGet V3 service index URL")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Enable verbose output")

    return parser


def prompt(message: str) -> str:
    """Display a message and return the trimmed user input."""
    try:
        return input(message).strip()
    except EOFError:
        return ""


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=LOG_FORMAT)

    package_name = (args.package or "").strip() or prompt("Enter the package name: ")
    if not package_name:
        print("Package name cannot be empty.")
        sys.exit(1)

    version = (args.version or "").strip() or prompt("Enter the package version: ")
    if not version:
        print("Version cannot be empty.")
        sys.exit(1)

    client = RegistryClient(args.service_index, timeout=args.timeout)

    platforms: List[str] = []
    if args.list_platforms or not args.platform:
        try:
            platforms = list_platforms(package_name, version, client)
        except RegistryError as e:
            print(f"Error: {e}")
            sys.exit(1)

    if args.list_platforms:
        print(f"\nAvailable frameworks for {package_name} {version}:")
        if platforms:
            print("\n".join(f"  - {plat}" for plat in platforms))
        else:
            print("  No framework-specific dependency groups available")
        sys.exit(0)

    target_platform = select_platform(platforms, args.platform, input_func=prompt)
    if not target_platform:
        print("No framework selected. Exiting program.")
        sys.exit(1)

    try:
        all_dependencies = resolve(package_name, version, target_platform, client)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"\nFound {len(all_dependencies)} packages to download:")
    for pkg_name, pkg_version in all_dependencies.items():
        print(f"  - {pkg_name} {pkg_version}")

    results = download_all(all_dependencies, args.directory, client, max_workers=args.workers)
    success, failed = split_results(results)

    print("\nDownload summary:")
    print(f"  Successfully downloaded: {len(success)} packages")

    if failed:
        print(f"  Failed to download: {len(failed)} packages")
        for result in failed:
            print(f"    - {result}: {result.error}")

    print(f"All packages have been downloaded to: {os.path.abspath(args.directory)}")

    if not success:
        sys.exit(1)


if __name__ == "__main__":
    main()
