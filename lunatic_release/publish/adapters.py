"""Release stores: create-or-reuse a draft release per tag and attach assets."""

from __future__ import annotations

import logging
import shutil
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import requests
from requests import Response, Session
from requests.exceptions import RequestException

from ..errors import PublishError
from ..schemas.release import ReleaseAsset, ReleaseDescriptor
from ..secrets import resolve_secret_info
from .index import attach_asset, load_release_index, save_release_index, upsert_release
from .models import UploadResult

logger = logging.getLogger(__name__)


class ReleaseStore(ABC):
    """Keyed store of release records; ``upsert_release`` must be idempotent per tag."""

    name: str

    @abstractmethod
    def upsert_release(self, tag_name: str, release_name: str, *, draft: bool = True) -> ReleaseDescriptor:
        ...

    @abstractmethod
    def upload_asset(self, release: ReleaseDescriptor, asset: ReleaseAsset) -> UploadResult:
        ...


class NoOpStore(ReleaseStore):
    name = "noop"

    def upsert_release(self, tag_name: str, release_name: str, *, draft: bool = True) -> ReleaseDescriptor:
        return ReleaseDescriptor(tag_name=tag_name, release_name=release_name, draft=draft)

    def upload_asset(self, release: ReleaseDescriptor, asset: ReleaseAsset) -> UploadResult:
        logs = [
            "NoOp store selected; skipping upload.",
            f"Asset ready at {asset.path}",
        ]
        return UploadResult(adapter=self.name, status="skipped", logs=logs)


class LocalReleaseStore(ReleaseStore):
    """Filesystem-backed store: ``releases.json`` plus one asset directory per tag."""

    name = "local"

    _locks: Dict[Path, threading.Lock] = {}
    _locks_guard = threading.Lock()

    def __init__(self, root: Path) -> None:
        self.root = Path(root).resolve()
        self.index_path = self.root / "releases.json"

    def _lock(self) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(self.index_path, threading.Lock())

    def upsert_release(self, tag_name: str, release_name: str, *, draft: bool = True) -> ReleaseDescriptor:
        with self._lock():
            try:
                index = load_release_index(self.index_path)
                release = upsert_release(index, tag_name, release_name, draft=draft)
                save_release_index(index, self.index_path)
            except (OSError, ValueError) as exc:
                raise PublishError(f"Could not record release '{tag_name}' in {self.index_path}: {exc}") from exc
        return release

    def upload_asset(self, release: ReleaseDescriptor, asset: ReleaseAsset) -> UploadResult:
        destination = self.root / release.tag_name / asset.name
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(asset.path, destination)
        except OSError as exc:
            raise PublishError(f"Could not store {asset.name} under {destination.parent}: {exc}") from exc
        stored = asset.model_copy(update={"url": destination.as_uri()})
        with self._lock():
            try:
                index = load_release_index(self.index_path)
                attach_asset(index, release.tag_name, stored)
                save_release_index(index, self.index_path)
            except KeyError as exc:
                raise PublishError(str(exc)) from exc
            except (OSError, ValueError) as exc:
                raise PublishError(f"Could not attach {asset.name} in {self.index_path}: {exc}") from exc
        return UploadResult(
            adapter=self.name,
            status="succeeded",
            url=stored.url,
            logs=[f"Stored {asset.name} under {destination.parent}"],
            details={"index": str(self.index_path)},
        )

    def get_release(self, tag_name: str) -> Optional[ReleaseDescriptor]:
        return load_release_index(self.index_path).releases.get(tag_name)


class GitHubReleasesStore(ReleaseStore):
    """GitHub Releases REST API.

    Draft releases are not returned by ``GET /releases/tags/{tag}``, so lookups
    page through ``GET /releases`` instead. A 422 on create means a sibling
    platform run won the race; the existing record is reused.
    """

    name = "github"

    def __init__(
        self,
        repo: str,
        token: str,
        *,
        github_api: str = "https://api.github.com",
        session: Optional[Session] = None,
        timeout: int = 60,
    ) -> None:
        self.repo = repo
        self.api = github_api.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        self._raw: Dict[str, Dict[str, Any]] = {}

    def upsert_release(self, tag_name: str, release_name: str, *, draft: bool = True) -> ReleaseDescriptor:
        raw = self._find_release(tag_name)
        if raw is None:
            response = self._request(
                "post",
                f"{self.api}/repos/{self.repo}/releases",
                json={"tag_name": tag_name, "name": release_name, "draft": draft},
            )
            if response.status_code == 201:
                raw = self._json(response, "release creation")
                logger.info("Created draft release %s for %s", release_name, tag_name)
            elif response.status_code == 422:
                raw = self._find_release(tag_name)
                if raw is None:
                    raise PublishError(f"GitHub rejected release creation for '{tag_name}': {response.text}")
                logger.info("Release for %s created concurrently; reusing it", tag_name)
            else:
                raise PublishError(f"GitHub release creation returned {response.status_code}: {response.text or response.reason}")
        self._raw[tag_name] = raw
        return _descriptor_from_payload(raw)

    def upload_asset(self, release: ReleaseDescriptor, asset: ReleaseAsset) -> UploadResult:
        raw = self._raw.get(release.tag_name) or self._find_release(release.tag_name)
        if raw is None:
            raise PublishError(f"No GitHub release found for tag '{release.tag_name}'.")

        logs = [f"Uploading {asset.name} to GitHub release {self.repo}@{release.tag_name}."]
        for existing in raw.get("assets", []):
            if existing.get("name") == asset.name:
                self._delete_asset(existing["id"])
                logs.append(f"Replaced existing asset {asset.name}.")

        upload_url = str(raw["upload_url"]).split("{", 1)[0]
        try:
            with open(asset.path, "rb") as handle:
                response = self._request(
                    "post",
                    upload_url,
                    params={"name": asset.name},
                    headers={"Content-Type": asset.content_type},
                    data=handle,
                )
        except OSError as exc:
            raise PublishError(f"Could not read {asset.path} for upload: {exc}") from exc
        if response.status_code != 201:
            raise PublishError(f"Asset upload returned {response.status_code}: {response.text or response.reason}")

        payload = self._json(response, "asset upload")
        return UploadResult(
            adapter=self.name,
            status="succeeded",
            url=payload.get("browser_download_url"),
            logs=logs,
            details={"release": raw.get("html_url"), "asset_id": payload.get("id")},
        )

    def _find_release(self, tag_name: str) -> Optional[Dict[str, Any]]:
        page = 1
        while True:
            response = self._request(
                "get",
                f"{self.api}/repos/{self.repo}/releases",
                params={"per_page": 100, "page": page},
            )
            if response.status_code != 200:
                raise PublishError(f"Listing releases returned {response.status_code}: {response.text or response.reason}")
            releases = self._json(response, "release listing")
            if not releases:
                return None
            for candidate in releases:
                if candidate.get("tag_name") == tag_name:
                    return candidate
            page += 1

    def _delete_asset(self, asset_id: int) -> None:
        response = self._request("delete", f"{self.api}/repos/{self.repo}/releases/assets/{asset_id}")
        if response.status_code not in (204, 404):
            raise PublishError(f"Deleting asset {asset_id} returned {response.status_code}: {response.text or response.reason}")

    def _json(self, response: Response, action: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise PublishError(f"GitHub {action} returned invalid JSON: {exc}") from exc

    def _request(self, method: str, url: str, *, headers: Optional[Mapping[str, str]] = None, **kwargs: Any) -> Response:
        try:
            return self.session.request(
                method.upper(),
                url,
                headers={**self.headers, **(headers or {})},
                timeout=self.timeout,
                **kwargs,
            )
        except RequestException as exc:
            raise PublishError(f"GitHub request failed: {exc}") from exc


def _descriptor_from_payload(raw: Mapping[str, Any]) -> ReleaseDescriptor:
    assets = {
        item["name"]: ReleaseAsset(
            name=item["name"],
            path=item.get("browser_download_url") or item["name"],
            content_type=item.get("content_type") or "application/octet-stream",
            size=item.get("size") or 0,
            url=item.get("browser_download_url"),
        )
        for item in raw.get("assets", [])
    }
    return ReleaseDescriptor(
        tag_name=raw["tag_name"],
        release_name=raw.get("name") or raw["tag_name"],
        draft=bool(raw.get("draft", True)),
        assets=assets,
        url=raw.get("html_url"),
    )


def build_store(
    name: str,
    *,
    options: Optional[Mapping[str, str]] = None,
    github_repo: Optional[str] = None,
    token_env: str = "GITHUB_TOKEN",
    github_api: str = "https://api.github.com",
    session: Optional[Session] = None,
) -> ReleaseStore:
    opts = dict(options or {})
    lowered = (name or "noop").lower()
    if lowered in ("noop", "none"):
        return NoOpStore()
    if lowered == "local":
        root = opts.get("root")
        if not root:
            raise ValueError("Local store requires store option root=<directory>")
        return LocalReleaseStore(Path(root))
    if lowered in ("github", "gh"):
        repo = opts.get("repo") or github_repo
        if not repo:
            raise ValueError("GitHub store requires a repository (github_repo or store option repo=owner/name)")
        effective_token_env = opts.get("token-env", token_env)
        info = resolve_secret_info(effective_token_env)
        if not info.value:
            raise PublishError(
                f"GitHub token '{effective_token_env}' not resolved. Checked resolvers: {info.summary()}."
            )
        return GitHubReleasesStore(
            repo=repo,
            token=info.value,
            github_api=opts.get("api", github_api),
            session=session,
        )
    raise ValueError(f"Unknown release store '{name}'")
