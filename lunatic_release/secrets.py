"""Secret resolution for the publish stage (GitHub token)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from dotenv import dotenv_values


@dataclass(frozen=True)
class SecretSpec:
    name: str
    description: str = ""


class SecretResolver(Protocol):
    def resolve(self, spec: SecretSpec) -> Optional[str]:  # pragma: no cover - interface
        ...

    def describe(self) -> dict[str, object]:  # pragma: no cover - optional hook
        return {}


@dataclass(frozen=True)
class SecretAttempt:
    resolver: str
    source: str
    success: bool
    details: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class SecretResolutionInfo:
    name: str
    value: Optional[str]
    resolver: Optional[str]
    source: Optional[str]
    attempts: List[SecretAttempt]

    def summary(self) -> str:
        if not self.attempts:
            return "none"
        parts = []
        for attempt in self.attempts:
            label = attempt.resolver
            status = "resolved" if attempt.success else "missing"
            parts.append(f"{label} ({status})")
        return ", ".join(parts)


@dataclass
class _RegisteredResolver:
    priority: int
    resolver: SecretResolver
    name: str
    source: str


_secret_specs: Dict[str, SecretSpec] = {}
_resolvers: List[_RegisteredResolver] = []


def register_secret(spec: SecretSpec) -> None:
    _secret_specs.setdefault(spec.name, spec)


def register_resolver(resolver: SecretResolver, priority: int = 0, *, name: Optional[str] = None, source: Optional[str] = None) -> None:
    label = name or resolver.__class__.__name__
    _resolvers.append(_RegisteredResolver(priority=priority, resolver=resolver, name=label, source=source or label))
    _resolvers.sort(key=lambda item: item.priority, reverse=True)


class EnvResolver:
    """Resolve secrets from process environment variables."""

    def resolve(self, spec: SecretSpec) -> Optional[str]:
        value = os.getenv(spec.name)
        return value if value else None

    def describe(self) -> dict[str, object]:
        return {"type": "env"}


class DotEnvResolver:
    """Resolve secrets from a ``.env`` file without mutating ``os.environ``."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._values: Optional[Dict[str, Optional[str]]] = None

    def resolve(self, spec: SecretSpec) -> Optional[str]:
        if self._values is None:
            self._values = dict(dotenv_values(self.path)) if self.path.exists() else {}
        value = self._values.get(spec.name)
        return value if value else None

    def describe(self) -> dict[str, object]:
        return {"type": "dotenv", "path": str(self.path), "exists": self.path.exists()}


register_resolver(EnvResolver(), priority=0, name="env", source="env")
register_secret(SecretSpec(name="GITHUB_TOKEN", description="Token used to create draft releases and upload assets."))


def use_dotenv(path: str | Path, *, priority: int = -10) -> None:
    resolver = DotEnvResolver(Path(path))
    name = f"dotenv:{resolver.path}"
    if any(entry.name == name for entry in _resolvers):
        return
    register_resolver(resolver, priority=priority, name=name, source="dotenv")


def resolve_secret_info(name: str) -> SecretResolutionInfo:
    spec = _secret_specs.get(name, SecretSpec(name=name))
    attempts: List[SecretAttempt] = []
    for entry in _resolvers:
        value = entry.resolver.resolve(spec)
        describe = getattr(entry.resolver, "describe", None)
        details = describe() if callable(describe) else {}
        attempts.append(SecretAttempt(resolver=entry.name, source=entry.source, success=bool(value), details=details))
        if value:
            return SecretResolutionInfo(
                name=spec.name,
                value=value,
                resolver=entry.name,
                source=entry.source,
                attempts=attempts,
            )
    return SecretResolutionInfo(name=spec.name, value=None, resolver=None, source=None, attempts=attempts)


def resolve_secret(name: str) -> Optional[str]:
    return resolve_secret_info(name).value


def describe_secret(name: str) -> dict[str, object]:
    spec = _secret_specs.get(name, SecretSpec(name=name))
    info = resolve_secret_info(name)
    return {
        "name": spec.name,
        "description": spec.description,
        "present": info.value is not None,
        "resolver": info.resolver,
        "source": info.source,
        "attempts": [
            {
                "resolver": attempt.resolver,
                "source": attempt.source,
                "success": attempt.success,
                "details": attempt.details,
            }
            for attempt in info.attempts
        ],
    }


def list_secrets() -> List[SecretSpec]:
    return list(_secret_specs.values())
