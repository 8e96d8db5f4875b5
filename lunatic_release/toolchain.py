"""Environment preparation: source checkout and Rust toolchain installation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .errors import PrepareError
from .process import CommandResult, CommandRunner

logger = logging.getLogger(__name__)

MANIFEST_FILE = "Cargo.toml"


@dataclass(slots=True)
class PrepareResult:
    workspace: Path
    cloned: bool
    toolchain: Optional[str]
    commands: List[CommandResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "workspace": str(self.workspace),
            "cloned": self.cloned,
            "toolchain": self.toolchain,
            "commands": [result.to_dict() for result in self.commands],
        }


def ensure_checkout(
    workspace: Path,
    *,
    runner: CommandRunner,
    repository_url: Optional[str] = None,
    ref: Optional[str] = None,
) -> tuple[bool, Optional[CommandResult]]:
    """Return ``(cloned, result)``; clone only when no checkout is present."""

    if (workspace / MANIFEST_FILE).exists():
        logger.debug("Using existing checkout at %s", workspace)
        return False, None
    if not repository_url:
        raise PrepareError(f"No source checkout at {workspace} (missing {MANIFEST_FILE}) and no repository URL configured.")

    workspace.parent.mkdir(parents=True, exist_ok=True)
    command = ["git", "clone", "--depth", "1"]
    if ref:
        command.extend(["--branch", ref])
    command.extend([repository_url, str(workspace)])
    result = runner.run(command, cwd=workspace.parent)
    if not result.ok:
        raise PrepareError(f"git clone of {repository_url} failed.", output=result.tail())
    return True, result


def toolchain_install_command(toolchain: str, targets: Sequence[str], components: Sequence[str]) -> List[str]:
    command = ["rustup", "toolchain", "install", toolchain, "--profile", "minimal"]
    for target in targets:
        command.extend(["--target", target])
    for component in components:
        command.extend(["--component", component])
    return command


def prepare_environment(
    workspace: Path,
    *,
    runner: CommandRunner,
    repository_url: Optional[str] = None,
    checkout_ref: Optional[str] = None,
    install_toolchain: bool = True,
    toolchain: str = "stable",
    targets: Sequence[str] = ("wasm32-unknown-unknown",),
    components: Sequence[str] = ("rustfmt", "clippy"),
) -> PrepareResult:
    cloned, clone_result = ensure_checkout(workspace, runner=runner, repository_url=repository_url, ref=checkout_ref)
    commands: List[CommandResult] = [clone_result] if clone_result else []

    if not install_toolchain:
        return PrepareResult(workspace=workspace, cloned=cloned, toolchain=None, commands=commands)

    install = runner.run(toolchain_install_command(toolchain, targets, components), cwd=workspace)
    commands.append(install)
    if not install.ok:
        raise PrepareError(f"Toolchain '{toolchain}' installation failed.", output=install.tail())

    # Pin the toolchain for every later cargo invocation in this workspace.
    override = runner.run(["rustup", "override", "set", toolchain], cwd=workspace)
    commands.append(override)
    if not override.ok:
        raise PrepareError(f"Could not select toolchain '{toolchain}'.", output=override.tail())

    return PrepareResult(workspace=workspace, cloned=cloned, toolchain=toolchain, commands=commands)
