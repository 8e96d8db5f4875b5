"""Schema definitions for release metadata."""

from .release import (
    EventKind,
    PlatformProfile,
    ReleaseAsset,
    ReleaseDescriptor,
    ReleaseIndex,
    TriggerContext,
)

__all__ = [
    "EventKind",
    "PlatformProfile",
    "ReleaseAsset",
    "ReleaseDescriptor",
    "ReleaseIndex",
    "TriggerContext",
]
