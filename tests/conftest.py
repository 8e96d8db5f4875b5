from __future__ import annotations

import copy
import threading
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import pytest

from lunatic_release import secrets
from lunatic_release.config import PipelineConfig
from lunatic_release.process import CommandResult


class FakeRunner:
    """Records commands; any command starting with a configured prefix exits non-zero."""

    def __init__(self, failures: Optional[Mapping[Tuple[str, ...], int]] = None) -> None:
        self.failures = dict(failures or {})
        self.commands: List[List[str]] = []
        self._lock = threading.Lock()

    def run(self, command: Sequence[str], *, cwd: Path, env: Optional[Mapping[str, str]] = None) -> CommandResult:
        argv = [str(part) for part in command]
        with self._lock:
            self.commands.append(argv)
        for prefix, returncode in self.failures.items():
            if tuple(argv[: len(prefix)]) == prefix:
                return CommandResult(command=argv, returncode=returncode, stdout="running", stderr=f"{argv[0]} failed")
        return CommandResult(command=argv, returncode=0, stdout="ok")

    def ran(self, *prefix: str) -> bool:
        return any(tuple(command[: len(prefix)]) == prefix for command in self.commands)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(secrets, "_secret_specs", {})
    monkeypatch.setattr(secrets, "_resolvers", [])
    secrets.register_resolver(secrets.EnvResolver(), priority=0, name="env", source="env")
    secrets.register_secret(secrets.SecretSpec(name="GITHUB_TOKEN", description="release token"))
    for name in ("GITHUB_OUTPUT", "GITHUB_REF", "GITHUB_EVENT_NAME", "GITHUB_REPOSITORY", "GITHUB_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    for name in list(PipelineConfig.model_fields):
        monkeypatch.delenv(f"LUNATIC_RELEASE_{name.upper()}", raising=False)


@pytest.fixture()
def make_runner():
    return FakeRunner


@pytest.fixture()
def workspace(tmp_path: Path) -> Path:
    """A checked-out lunatic tree with release binaries already built."""

    root = tmp_path / "lunatic"
    release_dir = root / "target" / "release"
    release_dir.mkdir(parents=True)
    (root / "Cargo.toml").write_text('[package]\nname = "lunatic"\n', encoding="utf-8")
    (root / "README.md").write_text("# lunatic\n", encoding="utf-8")
    (root / "LICENSE-MIT").write_text("MIT\n", encoding="utf-8")
    (root / "LICENSE-APACHE").write_text("Apache-2.0\n", encoding="utf-8")
    (release_dir / "lunatic").write_bytes(b"\x7fELF lunatic")
    (release_dir / "lunatic.exe").write_bytes(b"MZ lunatic")
    return root


@pytest.fixture()
def local_config(tmp_path: Path, workspace: Path) -> PipelineConfig:
    return PipelineConfig(
        workspace_root=workspace,
        output_dir=tmp_path / "dist",
        store="local",
        store_options={"root": str(tmp_path / "store")},
    )


class FakeResponse:
    def __init__(self, status_code: int, payload: object = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text
        self.reason = "Fake"

    def json(self) -> object:
        return copy.deepcopy(self._payload)


class FakeGitHub:
    """In-memory stand-in for the GitHub Releases API, used as a requests session."""

    def __init__(self, releases: Optional[List[Dict[str, object]]] = None, *, page_size: int = 100) -> None:
        self.releases: List[Dict[str, object]] = list(releases or [])
        self.page_size = page_size
        self.calls: List[Dict[str, object]] = []
        self.uploads: Dict[str, bytes] = {}
        self.reject_create: Optional[Dict[str, object]] = None
        self.fail_listing = False
        self._next_id = 1000
        self._lock = threading.Lock()

    @staticmethod
    def release_payload(release_id: int, tag_name: str, name: str, *, assets: Optional[list] = None) -> Dict[str, object]:
        return {
            "id": release_id,
            "tag_name": tag_name,
            "name": name,
            "draft": True,
            "html_url": f"https://github.com/lunatic-solutions/lunatic/releases/{release_id}",
            "upload_url": f"https://uploads.github.com/repos/lunatic-solutions/lunatic/releases/{release_id}/assets{{?name,label}}",
            "assets": list(assets or []),
        }

    def request(self, method: str, url: str, *, headers: Dict[str, str], timeout: int, **kwargs: object) -> FakeResponse:
        with self._lock:
            self.calls.append({"method": method, "url": url, "headers": headers, "timeout": timeout, **kwargs})
            return self._dispatch(method, url, headers, kwargs)

    def _dispatch(self, method: str, url: str, headers: Dict[str, str], kwargs: Dict[str, object]) -> FakeResponse:
        if url.startswith("https://uploads.github.com/") and method == "POST":
            return self._upload(url, headers, kwargs)
        if url.endswith("/releases") and method == "GET":
            if self.fail_listing:
                return FakeResponse(500, text="boom")
            page = int(kwargs["params"]["page"])  # type: ignore[index]
            start = (page - 1) * self.page_size
            return FakeResponse(200, self.releases[start : start + self.page_size])
        if url.endswith("/releases") and method == "POST":
            body = kwargs["json"]
            if self.reject_create is not None:
                self.releases.append(self.reject_create)
                self.reject_create = None
                return FakeResponse(422, text="already_exists")
            if any(release["tag_name"] == body["tag_name"] for release in self.releases):  # type: ignore[index]
                return FakeResponse(422, text="already_exists")
            release = self.release_payload(self._new_id(), body["tag_name"], body["name"])  # type: ignore[index]
            release["draft"] = body["draft"]  # type: ignore[index]
            self.releases.append(release)
            return FakeResponse(201, release)
        if "/releases/assets/" in url and method == "DELETE":
            asset_id = int(url.rsplit("/", 1)[1])
            for release in self.releases:
                release["assets"] = [asset for asset in release["assets"] if asset["id"] != asset_id]  # type: ignore[index]
            return FakeResponse(204)
        return FakeResponse(404, text="not found")

    def _upload(self, url: str, headers: Dict[str, str], kwargs: Dict[str, object]) -> FakeResponse:
        release_id = int(url.split("/releases/")[1].split("/")[0])
        name = kwargs["params"]["name"]  # type: ignore[index]
        self.uploads[name] = kwargs["data"].read()  # type: ignore[union-attr]
        asset = {
            "id": self._new_id(),
            "name": name,
            "content_type": headers["Content-Type"],
            "size": len(self.uploads[name]),
            "browser_download_url": f"https://github.com/lunatic-solutions/lunatic/releases/download/untagged/{name}",
        }
        for release in self.releases:
            if release["id"] == release_id:
                release["assets"].append(asset)  # type: ignore[union-attr]
        return FakeResponse(201, asset)

    def _new_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def find(self, tag_name: str) -> List[Dict[str, object]]:
        return [release for release in self.releases if release["tag_name"] == tag_name]


@pytest.fixture()
def fake_github() -> FakeGitHub:
    return FakeGitHub()
