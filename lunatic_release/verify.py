"""Fail-fast verification: tests, then lint, then formatting."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

from .errors import VerificationError
from .process import CommandResult, CommandRunner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Check:
    name: str
    command: Tuple[str, ...]


DEFAULT_CHECKS: Tuple[Check, ...] = (
    Check("test", ("cargo", "test")),
    Check("lint", ("cargo", "clippy", "--", "-D", "warnings")),
    Check("format", ("cargo", "fmt", "--", "--check")),
)


@dataclass(slots=True)
class CheckResult:
    name: str
    result: CommandResult

    def to_dict(self) -> Dict[str, object]:
        return {"name": self.name, "status": "passed", **self.result.to_dict()}


@dataclass(slots=True)
class VerificationResult:
    checks: List[CheckResult] = field(default_factory=list)

    @property
    def passed(self) -> List[str]:
        return [check.name for check in self.checks]

    def to_dict(self) -> Dict[str, object]:
        return {"passed": self.passed, "checks": [check.to_dict() for check in self.checks]}


def run_verification(
    workspace: Path,
    *,
    runner: CommandRunner,
    checks: Sequence[Check] = DEFAULT_CHECKS,
) -> VerificationResult:
    """Run ``checks`` in order; the first failure raises and stops the sequence."""

    outcome = VerificationResult()
    for check in checks:
        logger.info("Verification check '%s'", check.name)
        result = runner.run(list(check.command), cwd=workspace)
        if not result.ok:
            logger.error("Verification check '%s' failed with exit %s", check.name, result.returncode)
            raise VerificationError(check.name, result.tail(), returncode=result.returncode)
        outcome.checks.append(CheckResult(name=check.name, result=result))
    return outcome
