from __future__ import annotations

from pathlib import Path

import pytest

from lunatic_release.config import ConfigError, load_config


def test_defaults() -> None:
    config = load_config(environ={})

    assert config.targets == ["wasm32-unknown-unknown"]
    assert config.aux_files == ["README.md", "LICENSE-MIT", "LICENSE-APACHE"]
    assert config.store == "github"
    assert config.dry_run is False


def test_yaml_file_and_env_overlay(tmp_path: Path) -> None:
    config_file = tmp_path / "lunatic-release.yml"
    config_file.write_text(
        "workspace_root: /srv/lunatic\ntoolchain: nightly\nstore: local\nstore_options:\n  root: /srv/releases\n",
        encoding="utf-8",
    )

    config = load_config(
        config_file,
        environ={
            "LUNATIC_RELEASE_TOOLCHAIN": "1.75.0",
            "LUNATIC_RELEASE_TARGETS": "wasm32-unknown-unknown, wasm32-wasi",
            "LUNATIC_RELEASE_DRY_RUN": "true",
        },
    )

    assert config.workspace_root == Path("/srv/lunatic")
    assert config.toolchain == "1.75.0"
    assert config.targets == ["wasm32-unknown-unknown", "wasm32-wasi"]
    assert config.store_options == {"root": "/srv/releases"}
    assert config.dry_run is True


def test_env_store_options() -> None:
    config = load_config(environ={"LUNATIC_RELEASE_STORE_OPTIONS": "root=/tmp/store, repo=o/r"})

    assert config.store_options == {"root": "/tmp/store", "repo": "o/r"}


def test_overrides_win_and_none_is_ignored() -> None:
    config = load_config(
        environ={"LUNATIC_RELEASE_STORE": "local"},
        overrides={"store": "noop", "github_repo": None},
    )

    assert config.store == "noop"
    assert config.github_repo is None


def test_relative_paths_resolve_against_workspace(tmp_path: Path) -> None:
    config = load_config(environ={}, overrides={"workspace_root": tmp_path, "output_dir": "out"})

    assert config.output_path == (tmp_path / "out").resolve()


def test_unknown_key_is_rejected(tmp_path: Path) -> None:
    config_file = tmp_path / "config.yml"
    config_file.write_text("channel: beta\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="channel"):
        load_config(config_file, environ={})


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "absent.yml", environ={})


def test_non_mapping_file(tmp_path: Path) -> None:
    config_file = tmp_path / "config.yml"
    config_file.write_text("- one\n- two\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="mapping"):
        load_config(config_file, environ={})


def test_malformed_store_options() -> None:
    with pytest.raises(ConfigError, match="key=value"):
        load_config(environ={"LUNATIC_RELEASE_STORE_OPTIONS": "root"})
