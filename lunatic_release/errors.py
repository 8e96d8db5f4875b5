"""Error taxonomy for pipeline stages."""

from __future__ import annotations

from typing import Optional


class PipelineError(RuntimeError):
    """Raised when a pipeline stage fails; terminal for the platform run."""

    stage = "pipeline"

    def __init__(self, message: str, *, output: Optional[str] = None) -> None:
        super().__init__(message)
        self.output = output or ""

    @property
    def kind(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "stage": self.stage,
            "kind": self.kind,
            "message": str(self),
        }
        if self.output:
            payload["output"] = self.output
        return payload


class PrepareError(PipelineError):
    """Source checkout or toolchain installation failed."""

    stage = "prepare"


class VerificationError(PipelineError):
    """A test, lint or format check reported failure."""

    stage = "verify"

    def __init__(self, check: str, output: str = "", *, returncode: Optional[int] = None) -> None:
        message = f"Verification check '{check}' failed"
        if returncode is not None:
            message += f" (exit {returncode})"
        super().__init__(message, output=output)
        self.check = check
        self.returncode = returncode

    def to_dict(self) -> dict[str, object]:
        payload = super().to_dict()
        payload["check"] = self.check
        return payload


class BuildError(PipelineError):
    """Release compilation failed."""

    stage = "build"


class PackagingError(PipelineError):
    """Archive assembly failed (missing file, write error)."""

    stage = "package"


class PublishError(PipelineError):
    """Creating the release or uploading the asset failed."""

    stage = "publish"


__all__ = [
    "BuildError",
    "PackagingError",
    "PipelineError",
    "PrepareError",
    "PublishError",
    "VerificationError",
]
