"""Verify, package and publish tooling for lunatic releases."""

__version__ = "0.1.0"
from .bundle.builder import PackageBuilder, PackageConfig, PackageResult
from .errors import BuildError, PackagingError, PipelineError, PrepareError, PublishError, VerificationError
from .pipeline import MatrixRunResult, PlatformRunResult, run_matrix, run_platform
from .plan import PipelinePlan, ReleasePlan, VerifyPlan, build_plan
from .platforms import PLATFORMS, get_platform, list_platforms
from .publish import PublishContext, PublishResult, UploadResult, publish_asset
from .schemas.release import PlatformProfile, ReleaseDescriptor, TriggerContext
from .secrets import describe_secret, resolve_secret, use_dotenv
from .trigger import is_tagged_release, release_name_for_tag, release_tag_from_ref

__all__ = [
    "__version__",
    "PackageBuilder",
    "PackageConfig",
    "PackageResult",
    "BuildError",
    "PackagingError",
    "PipelineError",
    "PrepareError",
    "PublishError",
    "VerificationError",
    "MatrixRunResult",
    "PlatformRunResult",
    "run_matrix",
    "run_platform",
    "PipelinePlan",
    "ReleasePlan",
    "VerifyPlan",
    "build_plan",
    "PLATFORMS",
    "get_platform",
    "list_platforms",
    "PublishContext",
    "PublishResult",
    "UploadResult",
    "publish_asset",
    "PlatformProfile",
    "ReleaseDescriptor",
    "TriggerContext",
    "describe_secret",
    "resolve_secret",
    "use_dotenv",
    "is_tagged_release",
    "release_name_for_tag",
    "release_tag_from_ref",
]
