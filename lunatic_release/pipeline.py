"""Per-platform pipeline orchestration and matrix fan-out."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from .bundle.builder import PackageBuilder, PackageConfig
from .config import PipelineConfig
from .errors import PipelineError, PrepareError
from .plan import PipelinePlan, ReleasePlan, build_plan
from .platforms import validate_matrix
from .process import CommandRunner
from .publish import PublishContext, PublishResult, ReleaseStore, publish_asset
from .schemas.release import PlatformProfile, TriggerContext
from .toolchain import PrepareResult, prepare_environment
from .verify import run_verification

logger = logging.getLogger(__name__)


@dataclass
class PlatformRunResult:
    platform: str
    plan: PipelinePlan
    status: str = "ok"
    stages: Dict[str, Dict[str, object]] = field(default_factory=dict)
    error: Optional[Dict[str, object]] = None
    archive_path: Optional[Path] = None
    publish: Optional[PublishResult] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed_stage(self) -> Optional[str]:
        return str(self.error["stage"]) if self.error else None

    def to_dict(self) -> Dict[str, object]:
        return {
            "platform": self.platform,
            "status": self.status,
            "plan": self.plan.to_dict(),
            "stages": self.stages,
            "error": self.error,
            "archive_path": str(self.archive_path) if self.archive_path else None,
        }


@dataclass
class MatrixRunResult:
    plan: PipelinePlan
    results: List[PlatformRunResult] = field(default_factory=list)

    @property
    def status(self) -> str:
        return "ok" if all(result.ok for result in self.results) else "failed"

    @property
    def failed_platforms(self) -> List[str]:
        return [result.platform for result in self.results if not result.ok]

    def to_dict(self) -> Dict[str, object]:
        return {
            "status": self.status,
            "plan": self.plan.to_dict(),
            "failed": self.failed_platforms,
            "platforms": {result.platform: result.to_dict() for result in self.results},
        }


def _skipped(plan: PipelinePlan) -> Dict[str, object]:
    return {"status": "skipped", "reason": f"ref '{plan.ref}' is not a tag"}


def _prepare(config: PipelineConfig, runner: CommandRunner) -> PrepareResult:
    return prepare_environment(
        config.workspace,
        runner=runner,
        repository_url=config.repository_url,
        checkout_ref=config.checkout_ref,
        install_toolchain=config.install_toolchain,
        toolchain=config.toolchain,
        targets=config.targets,
        components=config.components,
    )


def run_platform(
    profile: PlatformProfile,
    trigger: TriggerContext,
    config: PipelineConfig,
    *,
    runner: Optional[CommandRunner] = None,
    store: Optional[ReleaseStore] = None,
    plan: Optional[PipelinePlan] = None,
    prepared: Optional[PrepareResult] = None,
) -> PlatformRunResult:
    """Run prepare, verify and (for tagged pushes) package and publish for one platform.

    Stage failures are recorded on the result rather than raised; sibling
    platform runs are unaffected. A ``prepared`` result from a shared checkout
    replaces the prepare stage.
    """

    runner = runner or CommandRunner()
    plan = plan or build_plan(trigger)
    workspace = config.workspace
    result = PlatformRunResult(platform=profile.os_identifier, plan=plan)
    logger.info("Pipeline for %s on %s (%s)", profile.os_identifier, trigger.ref or "<no ref>", type(plan).__name__)

    try:
        if prepared is None:
            result.stages["prepare"] = {"status": "ok", **_prepare(config, runner).to_dict()}
        else:
            result.stages["prepare"] = {"status": "ok", "shared": True, **prepared.to_dict()}

        verification = run_verification(workspace, runner=runner)
        result.stages["verify"] = {"status": "ok", **verification.to_dict()}

        if not isinstance(plan, ReleasePlan):
            result.stages["package"] = _skipped(plan)
            result.stages["publish"] = _skipped(plan)
            return result

        package = PackageBuilder(runner=runner).build(
            PackageConfig(
                profile=profile,
                workspace=workspace,
                output_dir=config.output_path,
                aux_files=config.aux_files,
            )
        )
        result.archive_path = package.archive_path
        result.stages["package"] = {"status": "ok", **package.to_dict()}

        published = publish_asset(
            PublishContext(
                tag_name=plan.tag_name,
                release_name=plan.release_name,
                archive_path=package.archive_path,
                content_type=profile.archive_content_type,
                store_name=config.store,
                store_options=dict(config.store_options),
                github_repo=config.github_repo,
                token_env=config.token_env,
                github_api=config.github_api,
                dry_run=config.dry_run,
            ),
            store=store,
        )
        result.publish = published
        result.stages["publish"] = {"status": published.upload.status, **published.to_dict()}
    except PipelineError as exc:
        logger.error("%s stage failed for %s: %s", exc.stage, profile.os_identifier, exc)
        result.status = "failed"
        result.error = exc.to_dict()
        result.stages[exc.stage] = {"status": "failed", **exc.to_dict()}
    return result


def run_matrix(
    profiles: Iterable[PlatformProfile],
    trigger: TriggerContext,
    config: PipelineConfig,
    *,
    runner_factory: Callable[[PlatformProfile], CommandRunner] = lambda _profile: CommandRunner(),
    store: Optional[ReleaseStore] = None,
    max_workers: Optional[int] = None,
) -> MatrixRunResult:
    """Run every profile concurrently against one shared checkout.

    The checkout and toolchain are prepared once, before the fan-out; after
    that the store is the only shared resource.
    """

    matrix = validate_matrix(profiles)
    plan = build_plan(trigger)
    outcome = MatrixRunResult(plan=plan)
    if not matrix:
        return outcome

    runners = [runner_factory(profile) for profile in matrix]
    try:
        prepared = _prepare(config, runners[0])
    except PrepareError as exc:
        logger.error("Shared prepare stage failed: %s", exc)
        for profile in matrix:
            failed = PlatformRunResult(platform=profile.os_identifier, plan=plan, status="failed", error=exc.to_dict())
            failed.stages["prepare"] = {"status": "failed", **exc.to_dict()}
            outcome.results.append(failed)
        return outcome

    with ThreadPoolExecutor(max_workers=max_workers or len(matrix)) as pool:
        futures = [
            pool.submit(
                run_platform,
                profile,
                trigger,
                config,
                runner=runner,
                store=store,
                plan=plan,
                prepared=prepared,
            )
            for profile, runner in zip(matrix, runners)
        ]
        outcome.results = [future.result() for future in futures]
    return outcome
