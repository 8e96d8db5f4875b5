"""GitHub Actions step outputs."""

from __future__ import annotations

import os
import uuid
from pathlib import Path
from typing import Mapping, Optional


def write_github_output(values: Mapping[str, object], *, path: Optional[str | Path] = None) -> Optional[Path]:
    """Append ``values`` to ``$GITHUB_OUTPUT``; returns the file written, if any."""

    target = path or os.environ.get("GITHUB_OUTPUT")
    if not target:
        return None
    output_path = Path(target)
    lines = []
    for key, value in values.items():
        if value is None:
            continue
        text = str(value)
        if "\n" in text:
            delimiter = f"ghadelimiter_{uuid.uuid4().hex}"
            lines.append(f"{key}<<{delimiter}\n{text}\n{delimiter}")
        else:
            lines.append(f"{key}={text}")
    with output_path.open("a", encoding="utf-8") as handle:
        for line in lines:
            handle.write(line + "\n")
    return output_path
