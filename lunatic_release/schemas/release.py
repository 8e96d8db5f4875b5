"""Pydantic models describing platforms, triggers and release records."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, Mapping, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, computed_field

from ..trigger import is_tagged_release

WINDOWS = "windows"

_RUNNER_LABELS = {
    "linux": "ubuntu-latest",
    "macos": "macos-latest",
    "windows": "windows-latest",
}


class PlatformProfile(BaseModel):
    os_identifier: str = Field(..., min_length=1, description="Operating system id reported by the runner.")
    binary_name: str = Field(..., min_length=1, description="Executable name emitted by cargo.")
    asset_name: str = Field(..., min_length=1, description="File name of the packaged release asset.")
    archive_content_type: str = Field(..., description="MIME type used when attaching the asset.")

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def is_windows(self) -> bool:
        return self.os_identifier.lower() == WINDOWS

    @property
    def archive_format(self) -> str:
        """Archive format implied by the OS: zip on Windows, gzip tarball elsewhere."""

        return "zip" if self.is_windows else "gztar"

    @property
    def runner_label(self) -> str:
        return _RUNNER_LABELS.get(self.os_identifier.lower(), f"{self.os_identifier}-latest")


class EventKind(str, Enum):
    PUSH = "push"
    PULL_REQUEST = "pull_request"


class TriggerContext(BaseModel):
    event_kind: EventKind = EventKind.PUSH
    ref: str = ""

    model_config = ConfigDict(extra="forbid", frozen=True)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_tagged_release(self) -> bool:
        return is_tagged_release(self.ref)

    @classmethod
    def from_ref(cls, ref: str, event_kind: EventKind | str = EventKind.PUSH) -> "TriggerContext":
        return cls(event_kind=EventKind(event_kind), ref=ref)

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> "TriggerContext":
        """Build the trigger from GitHub Actions environment variables."""

        raw_event = environ.get("GITHUB_EVENT_NAME") or EventKind.PUSH.value
        try:
            event_kind = EventKind(raw_event)
        except ValueError as exc:
            raise ValueError(f"Unsupported event kind '{raw_event}'") from exc
        return cls(event_kind=event_kind, ref=environ.get("GITHUB_REF", ""))


class ReleaseAsset(BaseModel):
    name: str
    path: str
    content_type: str
    size: int = Field(default=0, ge=0)
    sha256: Optional[str] = None
    url: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class ReleaseDescriptor(BaseModel):
    tag_name: str = Field(..., min_length=1)
    release_name: str = Field(..., min_length=1)
    draft: bool = True
    assets: Dict[str, ReleaseAsset] = Field(default_factory=dict)
    url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(extra="forbid")

    @property
    def attached_assets(self) -> Set[str]:
        return set(self.assets)


class ReleaseIndex(BaseModel):
    releases: Dict[str, ReleaseDescriptor] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")
