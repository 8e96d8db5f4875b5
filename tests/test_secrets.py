from __future__ import annotations

from pathlib import Path

import pytest

import lunatic_release.secrets as secrets


def test_resolve_secret_info_reports_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GITHUB_TOKEN", "value")

    info = secrets.resolve_secret_info("GITHUB_TOKEN")

    assert info.value == "value"
    assert info.source == "env"
    assert info.summary() == "env (resolved)"


def test_resolve_secret_info_dotenv(tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text('GITHUB_TOKEN="abc123"  # inline comment\n', encoding="utf-8")
    secrets.use_dotenv(env_file)

    info = secrets.resolve_secret_info("GITHUB_TOKEN")

    assert info.value == "abc123"
    assert info.source == "dotenv"
    assert info.resolver == f"dotenv:{env_file}"
    assert info.attempts[0].resolver == "env"
    assert not info.attempts[0].success


def test_env_takes_priority_over_dotenv(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text("GITHUB_TOKEN=from-file\n", encoding="utf-8")
    secrets.use_dotenv(env_file)
    monkeypatch.setenv("GITHUB_TOKEN", "from-env")

    assert secrets.resolve_secret("GITHUB_TOKEN") == "from-env"


def test_describe_secret_missing_reports_attempts(tmp_path: Path) -> None:
    secrets.use_dotenv(tmp_path / "absent.env")

    payload = secrets.describe_secret("GITHUB_TOKEN")

    assert payload["present"] is False
    assert payload["description"] == "release token"
    attempts = payload["attempts"]
    assert [attempt["source"] for attempt in attempts] == ["env", "dotenv"]
    assert attempts[1]["details"] == {"type": "dotenv", "path": str(tmp_path / "absent.env"), "exists": False}


def test_list_secrets() -> None:
    assert [spec.name for spec in secrets.list_secrets()] == ["GITHUB_TOKEN"]


def test_use_dotenv_registers_each_path_once(tmp_path: Path) -> None:
    env_file = tmp_path / ".env"

    secrets.use_dotenv(env_file)
    secrets.use_dotenv(env_file)
    secrets.use_dotenv(str(env_file))

    assert [entry.name for entry in secrets._resolvers] == ["env", f"dotenv:{env_file}"]
