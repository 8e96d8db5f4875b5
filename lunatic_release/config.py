"""Pipeline configuration: YAML file defaults overlaid with environment variables."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "LUNATIC_RELEASE_"
DEFAULT_CONFIG_FILE = "lunatic-release.yml"

AUXILIARY_FILES = ["README.md", "LICENSE-MIT", "LICENSE-APACHE"]


class ConfigError(ValueError):
    """Raised when configuration cannot be loaded or validated."""


class PipelineConfig(BaseModel):
    workspace_root: Path = Path(".")
    repository_url: Optional[str] = Field(default=None, description="Clone source when the workspace has no checkout.")
    checkout_ref: Optional[str] = None

    install_toolchain: bool = True
    toolchain: str = "stable"
    targets: List[str] = Field(default_factory=lambda: ["wasm32-unknown-unknown"])
    components: List[str] = Field(default_factory=lambda: ["rustfmt", "clippy"])

    aux_files: List[str] = Field(default_factory=lambda: list(AUXILIARY_FILES))
    output_dir: Path = Path("dist")

    github_repo: Optional[str] = Field(default=None, description="owner/name of the repository receiving releases.")
    token_env: str = "GITHUB_TOKEN"
    github_api: str = "https://api.github.com"
    store: str = "github"
    store_options: Dict[str, str] = Field(default_factory=dict)
    dry_run: bool = False

    model_config = ConfigDict(extra="forbid")

    @property
    def workspace(self) -> Path:
        return self.workspace_root.resolve()

    def resolve(self, value: str | Path) -> Path:
        path = Path(value)
        if not path.is_absolute():
            path = self.workspace / path
        return path.resolve()

    @property
    def output_path(self) -> Path:
        return self.resolve(self.output_dir)


_LIST_FIELDS = {"targets", "components", "aux_files"}


def _env_overrides(environ: Mapping[str, str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for name in PipelineConfig.model_fields:
        raw = environ.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is None:
            continue
        if name in _LIST_FIELDS:
            overrides[name] = [item.strip() for item in raw.split(",") if item.strip()]
        elif name == "store_options":
            overrides[name] = _parse_key_values(raw.split(","))
        else:
            overrides[name] = raw
    return overrides


def _parse_key_values(values: List[str]) -> Dict[str, str]:
    options: Dict[str, str] = {}
    for entry in values:
        entry = entry.strip()
        if not entry:
            continue
        if "=" not in entry:
            raise ConfigError(f"Expected key=value format (got '{entry}')")
        key, raw_value = entry.split("=", 1)
        options[key.strip()] = raw_value.strip()
    return options


def load_config(
    path: Optional[str | Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> PipelineConfig:
    """Load configuration from ``path`` (YAML), env vars, then explicit overrides."""

    payload: Dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
        try:
            loaded = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc
        if not isinstance(loaded, dict):
            raise ConfigError(f"Config file {config_path} must contain a mapping.")
        payload.update(loaded)
        logger.debug("Loaded config file %s", config_path)

    payload.update(_env_overrides(os.environ if environ is None else environ))
    payload.update({key: value for key, value in (overrides or {}).items() if value is not None})

    try:
        return PipelineConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(f"Invalid pipeline configuration: {exc}") from exc
