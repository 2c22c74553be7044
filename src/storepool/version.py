"""Version information and package metadata."""

from __future__ import annotations

__all__: list[str] = [
    "MAJOR",
    "MINOR",
    "PATCH",
    "__author__",
    "__description__",
    "__email__",
    "__license__",
    "__url__",
    "__version__",
    "__version_info__",
    "get_version",
    "get_version_info__",
    "is_development",
    "is_stable",
]

__version__: str = "0.3.0"
__version_info__: tuple[int, int, int] = (0, 3, 0)

__author__: str = "storepool contributors"
__email__: str = "maintainers@storepool.dev"
__license__: str = "Apache-2.0"
__description__: str = "A client-side session pool for multi-endpoint storage RPC services"
__url__: str = "https://github.com/storepool/storepool"

MAJOR, MINOR, PATCH = __version_info__


def get_version() -> str:
    """Get the current version string."""
    return __version__


def get_version_info__() -> tuple[int, int, int]:
    """Get the current version as a tuple."""
    return __version_info__


def is_development() -> bool:
    """Check if the current version is a development version."""
    return MAJOR == 0 and MINOR == 0 and PATCH == 0


def is_stable() -> bool:
    """Check if the current version is stable."""
    return MAJOR >= 1
