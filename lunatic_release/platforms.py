from __future__ import annotations

import platform as _platform
from typing import Dict, Iterable, List, Optional

from .schemas.release import PlatformProfile

PROJECT_NAME = "lunatic"

PLATFORMS: Dict[str, PlatformProfile] = {
    "linux": PlatformProfile(
        os_identifier="linux",
        binary_name=PROJECT_NAME,
        asset_name=f"{PROJECT_NAME}-linux-amd64.tar.gz",
        archive_content_type="application/gzip",
    ),
    "macos": PlatformProfile(
        os_identifier="macos",
        binary_name=PROJECT_NAME,
        asset_name=f"{PROJECT_NAME}-macos-amd64.tar.gz",
        archive_content_type="application/gzip",
    ),
    "windows": PlatformProfile(
        os_identifier="windows",
        binary_name=f"{PROJECT_NAME}.exe",
        asset_name=f"{PROJECT_NAME}-windows-amd64.zip",
        archive_content_type="application/zip",
    ),
}

_SYSTEM_ALIASES = {
    "linux": "linux",
    "darwin": "macos",
    "macos": "macos",
    "windows": "windows",
    "win32": "windows",
}


def get_platform(os_identifier: str) -> PlatformProfile:
    try:
        return PLATFORMS[os_identifier.lower()]
    except KeyError as exc:
        available = ", ".join(sorted(PLATFORMS))
        raise KeyError(f"Unknown platform '{os_identifier}'. Available platforms: {available}.") from exc


def list_platforms() -> List[PlatformProfile]:
    return list(PLATFORMS.values())


def detect_host_platform(system: Optional[str] = None) -> PlatformProfile:
    """Map ``platform.system()`` (or ``system``) onto a profile."""

    raw = (system or _platform.system()).lower()
    key = _SYSTEM_ALIASES.get(raw)
    if key is None:
        raise KeyError(f"Host system '{raw}' has no release platform profile.")
    return get_platform(key)


def validate_matrix(profiles: Iterable[PlatformProfile]) -> List[PlatformProfile]:
    """Ensure asset names are unique across the matrix."""

    seen: Dict[str, str] = {}
    result: List[PlatformProfile] = []
    for profile in profiles:
        owner = seen.get(profile.asset_name)
        if owner is not None:
            raise ValueError(
                f"Duplicate asset name '{profile.asset_name}' for platforms '{owner}' and '{profile.os_identifier}'."
            )
        seen[profile.asset_name] = profile.os_identifier
        result.append(profile)
    return result
