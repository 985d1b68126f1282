from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from result import Err, Ok, Result

from pkgscout.config.defaults import default_config
from pkgscout.config.schema import AnalyzerConfig

CONFIG_PATH = Path("~/.config/pkgscout/config.json")


def _read_payload(path: Path) -> Result[dict[str, Any], str]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        return Err(f"Failed reading config at {path}: {exc}.")
    try:
        payload = json.loads(text)
    except ValueError as exc:
        return Err(f"Failed reading config at {path}: invalid JSON ({exc}).")
    if not isinstance(payload, dict):
        return Err(f"Config at {path} must be a JSON object.")
    return Ok(payload)


def load_config(path: Path | None = None) -> Result[AnalyzerConfig, str]:
    """Load settings from *path* (default ``~/.config/pkgscout/config.json``).

    A missing file is not an error: the defaults apply.  Keys absent from the
    file, and values of the wrong shape, keep their default.
    """
    resolved = (path or CONFIG_PATH).expanduser()
    if not resolved.is_file():
        return Ok(default_config())
    return _read_payload(resolved).map(lambda payload: AnalyzerConfig.from_dict(payload, default_config()))


def sample_config_json() -> str:
    return json.dumps(default_config().to_dict(), indent=2)
