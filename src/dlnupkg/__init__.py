"""Tool for downloading NuGet packages and their dependencies."""

__version__ = "0.1.0"

from .downloader import download_all
from .dependency_resolver import resolve
from .platform_utils import list_platforms
