"\"\"\"Configuration management utilities.\"\"\""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from ..schemas.config import load_config


class ConfigManager:
    """YAML-backed configuration loader for named setting profiles."""

    def __init__(self, base_path: str | Path):
        self._base_path = Path(base_path)

    def load(self, name: str) -> dict[str, Any]:
        """Load and validate a YAML configuration by name without file extension."""
        return load_settings(self._base_path / f"{name}.yaml")


def load_settings(path: str | Path) -> dict[str, Any]:
    """Read a settings file and return the validated, None-free mapping."""
    with Path(path).open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle)
    return load_config(raw).to_settings()


__all__ = ["ConfigManager", "load_settings"]
