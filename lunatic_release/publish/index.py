"""Release index helpers backing the local release store."""

from __future__ import annotations

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from ..schemas.release import ReleaseAsset, ReleaseDescriptor, ReleaseIndex


def load_release_index(path: Path) -> ReleaseIndex:
    if path.exists():
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
            return ReleaseIndex.model_validate(payload)
        except (json.JSONDecodeError, ValueError) as exc:
            raise ValueError(f"Invalid release index at {path}: {exc}") from exc
    return ReleaseIndex()


def save_release_index(index: ReleaseIndex, path: Path) -> None:
    """Write ``index`` atomically so concurrent readers never see a partial file."""

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(index.model_dump_json(indent=2) + "\n")
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def upsert_release(index: ReleaseIndex, tag_name: str, release_name: str, *, draft: bool = True) -> ReleaseDescriptor:
    """Return the release for ``tag_name``, creating it when absent."""

    existing = index.releases.get(tag_name)
    if existing is not None:
        return existing
    now = datetime.now(timezone.utc)
    release = ReleaseDescriptor(
        tag_name=tag_name,
        release_name=release_name,
        draft=draft,
        created_at=now,
        updated_at=now,
    )
    index.releases[tag_name] = release
    return release


def attach_asset(index: ReleaseIndex, tag_name: str, asset: ReleaseAsset) -> ReleaseDescriptor:
    release = index.releases.get(tag_name)
    if release is None:
        raise KeyError(f"No release recorded for tag '{tag_name}'.")
    release.assets[asset.name] = asset
    release.updated_at = datetime.now(timezone.utc)
    return release
