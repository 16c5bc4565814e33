"""Configuration loading (``cellcalc.yaml``) and evaluation options."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict

CONFIG_FILENAME = "cellcalc.yaml"

DEFAULT_CONFIG = {
    "semicolon_minus": True,  # ";-" -> ";0-" inside function arguments
    "keep_text": False,  # emit text tokens instead of dropping fragments
    "strict_arity": False,
    "logging_dir": None,  # None disables the event sink
    "logging_fsync": False,
    "logging_tail_bytes": 2_097_152,  # 2 MB
}


class CalcOptions(BaseModel):
    """Options that change lexer and evaluator behaviour."""

    model_config = ConfigDict(frozen=True)

    semicolon_minus: bool = True
    keep_text: bool = False
    strict_arity: bool = False


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration from a YAML file, with defaults.

    Args:
        path: A config file, or a directory containing ``cellcalc.yaml``.
            ``None`` returns the defaults.

    Returns:
        Merged configuration dict.

    Raises:
        ValueError: If the file does not hold a YAML mapping.
    """
    config = dict(DEFAULT_CONFIG)
    if path is None:
        return config
    config_path = path / CONFIG_FILENAME if path.is_dir() else path
    if config_path.exists():
        user_config = yaml.safe_load(config_path.read_text()) or {}
        if not isinstance(user_config, dict):
            raise ValueError(f"{config_path}: expected a mapping at top level")
        config.update(user_config)
    return config


def options_from_config(config: dict[str, Any]) -> CalcOptions:
    """Build ``CalcOptions`` from a loaded config dict (unknown keys ignored)."""
    return CalcOptions(
        semicolon_minus=bool(config.get("semicolon_minus", True)),
        keep_text=bool(config.get("keep_text", False)),
        strict_arity=bool(config.get("strict_arity", False)),
    )
