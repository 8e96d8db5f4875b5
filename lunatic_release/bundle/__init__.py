"""Release build and archive assembly."""

from .builder import PackageBuilder, PackageConfig, PackageResult, compute_sha256

__all__ = [
    "PackageBuilder",
    "PackageConfig",
    "PackageResult",
    "compute_sha256",
]
