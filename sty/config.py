"""Runtime configuration for Sty.

The root directory and UTC offset come from the environment (``READ_DIR`` and
``UTC_OFFSET``), optionally seeded from a ``.env`` file. Build tuning values can
be set in an optional ``sty.yaml`` at the root.

Key functions:
- load_config: Resolve a Config once for the process.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

CONFIG_FILENAME = "sty.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "output_dir": "public",
    "chunk_size": 50,
    "max_workers": 8,
    "debounce_seconds": 1.0,
    "cache_seconds": 2.0,
    "request_timeout": 10.0,
}

MAX_UTC_OFFSET = 12


class ConfigError(Exception):
    """Error raised for invalid runtime configuration."""


@dataclass(frozen=True)
class Config:
    """Process-wide settings, read-only once resolved.

    Attributes:
        root_dir: Absolute directory holding content, templates and assets.
        utc_offset: Hours east of UTC used by the date helpers.
        output_dir_name: Name of the output directory under root_dir.
        chunk_size: Files per worker in a rebuild wave.
        max_workers: Upper bound on concurrent workers in one wave.
        debounce_seconds: Quiet period before a watched change triggers a rebuild.
        cache_seconds: Memoization window for composed site data.
        request_timeout: Timeout for remote content sources, in seconds.
    """

    root_dir: Path
    utc_offset: int = 0
    output_dir_name: str = "public"
    chunk_size: int = 50
    max_workers: int = 8
    debounce_seconds: float = 1.0
    cache_seconds: float = 2.0
    request_timeout: float = 10.0

    @property
    def output_dir(self) -> Path:
        return self.root_dir / self.output_dir_name


def _parse_utc_offset(raw: str) -> int:
    try:
        offset = int(raw.strip())
    except ValueError as exc:
        raise ConfigError(f"UTC_OFFSET must be an integer, got {raw!r}") from exc
    if not -MAX_UTC_OFFSET <= offset <= MAX_UTC_OFFSET:
        raise ConfigError(
            f"UTC offset out of bound, min -{MAX_UTC_OFFSET}, max {MAX_UTC_OFFSET}: {offset}"
        )
    return offset


def load_settings(root_dir: Path) -> dict[str, Any]:
    """Load build tuning values from sty.yaml.

    Args:
        root_dir: Root directory of the project.

    Returns:
        Dictionary containing configuration values, with defaults applied.
    """
    config_path = root_dir / CONFIG_FILENAME
    settings = DEFAULT_CONFIG.copy()
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
            if isinstance(loaded, dict):
                settings.update(loaded)
    return settings


def load_config(cwd: Path | None = None) -> Config:
    """Resolve the process configuration.

    Args:
        cwd: Directory to read ``.env`` from and to fall back to when
            ``READ_DIR`` is unset. Defaults to the current directory.

    Returns:
        A resolved Config.

    Raises:
        ConfigError: If an environment or sty.yaml value is invalid.
    """
    cwd = cwd or Path.cwd()
    load_dotenv(cwd / ".env", override=False)
    root_dir = Path(os.environ.get("READ_DIR") or cwd).resolve()
    utc_offset = _parse_utc_offset(os.environ.get("UTC_OFFSET") or "0")
    settings = load_settings(root_dir)
    try:
        config = Config(
            root_dir=root_dir,
            utc_offset=utc_offset,
            output_dir_name=str(settings["output_dir"]),
            chunk_size=int(settings["chunk_size"]),
            max_workers=int(settings["max_workers"]),
            debounce_seconds=float(settings["debounce_seconds"]),
            cache_seconds=float(settings["cache_seconds"]),
            request_timeout=float(settings["request_timeout"]),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid value in {CONFIG_FILENAME}: {exc}") from exc
    if config.chunk_size < 1 or config.max_workers < 1:
        raise ConfigError("chunk_size and max_workers must be at least 1")
    return config
