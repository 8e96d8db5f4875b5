"""Release build and archive assembly."""

from __future__ import annotations

import hashlib
import logging
import shutil
import stat
import tarfile
import tempfile
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..errors import BuildError, PackagingError
from ..process import CommandResult, CommandRunner
from ..schemas.release import PlatformProfile, ReleaseAsset

logger = logging.getLogger(__name__)

BUILD_COMMAND = ("cargo", "build", "--release")
RELEASE_DIR = Path("target") / "release"


@dataclass(slots=True)
class PackageConfig:
    """Configuration describing one package run."""

    profile: PlatformProfile
    workspace: Path
    output_dir: Path
    aux_files: Sequence[str] = ("README.md", "LICENSE-MIT", "LICENSE-APACHE")
    build_command: Sequence[str] = BUILD_COMMAND
    skip_build: bool = False


@dataclass(slots=True)
class PackageResult:
    platform: str
    archive_path: Path
    archive_format: str
    content_type: str
    sha256: str
    size: int
    members: List[str] = field(default_factory=list)
    build: Optional[CommandResult] = None

    def to_asset(self) -> ReleaseAsset:
        return ReleaseAsset(
            name=self.archive_path.name,
            path=str(self.archive_path),
            content_type=self.content_type,
            size=self.size,
            sha256=self.sha256,
        )

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "platform": self.platform,
            "archive_path": str(self.archive_path),
            "archive_format": self.archive_format,
            "content_type": self.content_type,
            "sha256": self.sha256,
            "size": self.size,
            "members": list(self.members),
        }
        if self.build is not None:
            payload["build"] = self.build.to_dict()
        return payload


def compute_sha256(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


class PackageBuilder:
    """Compiles the optimized binary and writes the platform archive."""

    def __init__(self, *, runner: CommandRunner) -> None:
        self.runner = runner

    def build(self, config: PackageConfig) -> PackageResult:
        build_result = None if config.skip_build else self._compile(config)
        binary = config.workspace / RELEASE_DIR / config.profile.binary_name
        if not binary.is_file():
            raise BuildError(f"Release binary not found after build: {binary}")

        aux_paths = [config.workspace / name for name in config.aux_files]
        missing = [str(path) for path in aux_paths if not path.is_file()]
        if missing:
            raise PackagingError(f"Auxiliary files missing: {', '.join(missing)}")

        archive_path = config.output_dir / config.profile.asset_name
        try:
            config.output_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.TemporaryDirectory(prefix="lunatic-release-") as tmp_dir:
                staging_root = Path(tmp_dir)
                members = self._stage(staging_root, binary, config.profile.binary_name, aux_paths)
                if config.profile.archive_format == "zip":
                    self._write_zip(archive_path, staging_root, members)
                else:
                    self._write_tarball(archive_path, staging_root, members)
        except (OSError, tarfile.TarError, zipfile.BadZipFile) as exc:
            archive_path.unlink(missing_ok=True)
            raise PackagingError(f"Failed to write {archive_path}: {exc}") from exc

        logger.info("Wrote %s archive %s", config.profile.archive_format, archive_path)
        return PackageResult(
            platform=config.profile.os_identifier,
            archive_path=archive_path,
            archive_format=config.profile.archive_format,
            content_type=config.profile.archive_content_type,
            sha256=compute_sha256(archive_path),
            size=archive_path.stat().st_size,
            members=members,
            build=build_result,
        )

    def _compile(self, config: PackageConfig) -> CommandResult:
        result = self.runner.run(list(config.build_command), cwd=config.workspace)
        if not result.ok:
            raise BuildError(f"Release build failed (exit {result.returncode}).", output=result.tail())
        return result

    def _stage(self, staging_root: Path, binary: Path, binary_name: str, aux_paths: Sequence[Path]) -> List[str]:
        members: List[str] = []
        for path in aux_paths:
            shutil.copy2(path, staging_root / path.name)
            members.append(path.name)
        staged_binary = staging_root / binary_name
        shutil.copy2(binary, staged_binary)
        staged_binary.chmod(staged_binary.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        members.append(binary_name)
        return members

    def _write_tarball(self, archive_path: Path, staging_root: Path, members: Sequence[str]) -> None:
        with tarfile.open(archive_path, "w:gz") as bundle:
            for name in members:
                bundle.add(staging_root / name, arcname=name)

    def _write_zip(self, archive_path: Path, staging_root: Path, members: Sequence[str]) -> None:
        with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED) as bundle:
            for name in members:
                bundle.write(staging_root / name, arcname=name)
