"""High-level publish workflow."""

from __future__ import annotations

import logging
from typing import List, Optional

from ..bundle.builder import compute_sha256
from ..errors import PublishError
from ..schemas.release import ReleaseAsset
from .adapters import ReleaseStore, build_store
from .models import PublishContext, PublishResult, UploadResult

logger = logging.getLogger(__name__)


def publish_asset(context: PublishContext, *, store: Optional[ReleaseStore] = None) -> PublishResult:
    """Attach ``context.archive_path`` to the draft release for ``context.tag_name``."""

    tag_name = context.tag_name
    release_name = context.release_name
    if not tag_name:
        raise PublishError("Cannot publish a release with an empty tag name.")

    if not context.archive_path.is_file():
        raise PublishError(f"Release archive not found: {context.archive_path}")

    asset = ReleaseAsset(
        name=context.asset_name,
        path=str(context.archive_path),
        content_type=context.content_type,
        size=context.archive_path.stat().st_size,
        sha256=compute_sha256(context.archive_path),
    )
    logs: List[str] = []

    if context.dry_run:
        upload = UploadResult(
            adapter=store.name if store else context.store_name,
            status="skipped",
            logs=[f"Dry run enabled; {asset.name} not uploaded to {release_name}."],
        )
        logs.extend(upload.logs)
        return PublishResult(tag_name=tag_name, release_name=release_name, draft=True, upload=upload, logs=logs)

    if store is None:
        try:
            store = build_store(
                context.store_name,
                options=context.store_options,
                github_repo=context.github_repo,
                token_env=context.token_env,
                github_api=context.github_api,
            )
        except ValueError as exc:
            raise PublishError(str(exc)) from exc

    release = store.upsert_release(tag_name, release_name, draft=True)
    logs.append(f"Using draft release '{release.release_name}' ({store.name}).")
    upload = store.upload_asset(release, asset)
    logs.extend(upload.logs)
    if upload.status == "failed":
        raise PublishError(f"Upload of {asset.name} to {release_name} failed.", output="\n".join(upload.logs))

    logger.info("Attached %s to %s (%s)", asset.name, release_name, upload.status)
    release.assets[asset.name] = asset.model_copy(update={"url": upload.url})
    return PublishResult(
        tag_name=tag_name,
        release_name=release_name,
        draft=True,
        upload=upload,
        release=release,
        logs=logs,
    )
