"""Render the GitHub Actions workflow driving this pipeline from the platform table."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yaml

from .platforms import validate_matrix
from .schemas.release import PlatformProfile

WORKFLOW_NAME = "Create Release"
JOB_ID = "test_or_release"


def matrix_entries(profiles: Iterable[PlatformProfile]) -> List[Dict[str, str]]:
    return [
        {
            "os": profile.runner_label,
            "platform": profile.os_identifier,
            "target_name": profile.binary_name,
            "asset_name": profile.asset_name,
            "content_type": profile.archive_content_type,
        }
        for profile in validate_matrix(profiles)
    ]


def render_workflow(
    profiles: Iterable[PlatformProfile],
    *,
    python_version: str = "3.11",
    install_spec: str = "lunatic-release",
    token_secret: str = "GITHUB_TOKEN",
) -> Dict[str, Any]:
    """Build the workflow mapping: push/pull_request triggers, one job per platform."""

    return {
        "name": WORKFLOW_NAME,
        "on": {"push": {}, "pull_request": {}},
        "jobs": {
            JOB_ID: {
                "name": "Build Lunatic",
                "runs-on": "${{ matrix.os }}",
                "permissions": {"contents": "write"},
                "strategy": {
                    "fail-fast": False,
                    "matrix": {"include": matrix_entries(profiles)},
                },
                "steps": [
                    {"name": "Checkout code", "uses": "actions/checkout@v4"},
                    {
                        "name": "Set up Python",
                        "uses": "actions/setup-python@v5",
                        "with": {"python-version": python_version},
                    },
                    {"name": "Install release tooling", "run": f"python -m pip install {install_spec}"},
                    {
                        "name": "Verify, package and publish",
                        "id": "pipeline",
                        "run": "lunatic-release run --platform ${{ matrix.platform }}",
                        "env": {"GITHUB_TOKEN": f"${{{{ secrets.{token_secret} }}}}"},
                    },
                ],
            }
        },
    }


def dump_workflow(workflow: Dict[str, Any], path: Optional[Path] = None) -> str:
    text = yaml.safe_dump(workflow, sort_keys=False, default_flow_style=False)
    if path is not None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    return text
