"""Subprocess seam shared by every stage that shells out."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)

_TAIL = 2000


@dataclass(slots=True)
class CommandResult:
    command: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def tail(self, limit: int = _TAIL) -> str:
        """Return the stdout/stderr tails formatted for diagnostics."""

        snippet_stdout = self.stdout[-limit:] if self.stdout else ""
        snippet_stderr = self.stderr[-limit:] if self.stderr else ""
        return (
            "--- stdout (tail) ---\n"
            f"{snippet_stdout}\n"
            "--- stderr (tail) ---\n"
            f"{snippet_stderr}\n"
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            "command": list(self.command),
            "returncode": self.returncode,
            "stdout": self.stdout,
            "stderr": self.stderr,
        }


@dataclass
class CommandRunner:
    """Runs external tools and captures their output.

    The runner never raises on a non-zero exit status; callers decide which
    stage error to raise from the returned :class:`CommandResult`.
    """

    env: Dict[str, str] = field(default_factory=dict)

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path,
        env: Optional[Mapping[str, str]] = None,
    ) -> CommandResult:
        argv = [str(part) for part in command]
        logger.info("Running %s (cwd=%s)", " ".join(argv), cwd)
        merged_env = {**os.environ, **self.env, **(env or {})}
        try:
            proc = subprocess.run(
                argv,
                cwd=str(cwd),
                capture_output=True,
                text=True,
                env=merged_env,
                check=False,
            )
        except FileNotFoundError as exc:
            logger.error("Executable not found: %s", argv[0])
            return CommandResult(command=argv, returncode=127, stderr=str(exc))
        logger.debug("%s exited with %s", argv[0], proc.returncode)
        return CommandResult(
            command=argv,
            returncode=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
        )
