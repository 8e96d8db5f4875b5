"""Data models used during release publishing."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..schemas.release import ReleaseDescriptor
from ..trigger import release_name_for_tag, release_tag_from_ref


@dataclass(slots=True)
class UploadResult:
    adapter: str
    status: str
    url: Optional[str] = None
    details: Dict[str, object] = field(default_factory=dict)
    logs: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "adapter": self.adapter,
            "status": self.status,
            "url": self.url,
            "details": self.details,
            "logs": self.logs,
        }


@dataclass(slots=True)
class PublishContext:
    tag_name: str
    release_name: str
    archive_path: Path
    content_type: str
    store_name: str = "github"
    store_options: Dict[str, str] = field(default_factory=dict)
    github_repo: Optional[str] = None
    token_env: str = "GITHUB_TOKEN"
    github_api: str = "https://api.github.com"
    dry_run: bool = False

    @classmethod
    def for_ref(cls, ref: str, archive_path: Path, content_type: str, **kwargs: Any) -> "PublishContext":
        """Derive the release identity from a pushed tag ref."""

        tag_name = release_tag_from_ref(ref)
        return cls(
            tag_name=tag_name,
            release_name=release_name_for_tag(tag_name),
            archive_path=archive_path,
            content_type=content_type,
            **kwargs,
        )

    @property
    def asset_name(self) -> str:
        return self.archive_path.name


@dataclass(slots=True)
class PublishResult:
    tag_name: str
    release_name: str
    draft: bool
    upload: UploadResult
    release: Optional[ReleaseDescriptor] = None
    logs: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "tag_name": self.tag_name,
            "release_name": self.release_name,
            "draft": self.draft,
            "upload": self.upload.to_dict(),
            "release": self.release.model_dump(mode="json") if self.release else None,
            "logs": self.logs,
        }
