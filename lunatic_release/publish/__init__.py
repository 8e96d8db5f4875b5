"""Publish workflow helpers."""

from .adapters import GitHubReleasesStore, LocalReleaseStore, NoOpStore, ReleaseStore, build_store
from .models import PublishContext, PublishResult, UploadResult
from .publish import publish_asset

__all__ = [
    "GitHubReleasesStore",
    "LocalReleaseStore",
    "NoOpStore",
    "PublishContext",
    "PublishResult",
    "ReleaseStore",
    "UploadResult",
    "build_store",
    "publish_asset",
]
