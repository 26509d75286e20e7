"""Editor configuration.

Values come from, in increasing priority: defaults, environment variables,
then an optional YAML file passed to :func:`load_config`.

ENV keys
--------
POLFILE_UPDATE_GPT_INI  bump gpt.ini after every change (default: true)
POLFILE_CREATE_GPT_INI  create a missing gpt.ini before bumping it (default: true)
POLFILE_GPT_INI_NAME    companion file name (default: gpt.ini)
POLFILE_POLICY_ROOT     directory the REST API may touch (default: unset)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Optional

import yaml

from polfile.errors import ValidationError
from polfile.gpt.gpt_ini import GPT_INI_NAME

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class EditorConfig:
    """Behaviour switches shared by the facade, the CLI and the REST API."""

    update_gpt_ini: bool = True
    create_gpt_ini: bool = True
    gpt_ini_name: str = GPT_INI_NAME
    policy_root: Optional[Path] = None

    def __post_init__(self) -> None:
        if not isinstance(self.gpt_ini_name, str) or not self.gpt_ini_name.strip():
            raise ValidationError("EditorConfig.gpt_ini_name must be a non-empty string")
        if Path(self.gpt_ini_name).name != self.gpt_ini_name:
            raise ValidationError("EditorConfig.gpt_ini_name must be a bare file name")
        if self.policy_root is not None and not isinstance(self.policy_root, Path):
            object.__setattr__(self, "policy_root", Path(self.policy_root))

    @staticmethod
    def from_env() -> "EditorConfig":
        return EditorConfig(
            update_gpt_ini=_bool_env("POLFILE_UPDATE_GPT_INI", True),
            create_gpt_ini=_bool_env("POLFILE_CREATE_GPT_INI", True),
            gpt_ini_name=os.getenv("POLFILE_GPT_INI_NAME") or GPT_INI_NAME,
            policy_root=_opt_env("POLFILE_POLICY_ROOT"),
        )


def load_config(path: str | Path | None = None) -> EditorConfig:
    """Load the environment config, overlaid with a YAML mapping if ``path`` is given."""
    config = EditorConfig.from_env()
    if path is None:
        return config

    with open(path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValidationError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValidationError(f"Config file {path} must contain a mapping")

    known = {f.name for f in fields(EditorConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValidationError(f"Unknown config keys in {path}: {', '.join(unknown)}")

    overrides = dict(data)
    for key in ("update_gpt_ini", "create_gpt_ini"):
        if key in overrides and not isinstance(overrides[key], bool):
            raise ValidationError(f"Config key '{key}' must be true or false")
    if overrides.get("policy_root") is not None:
        overrides["policy_root"] = Path(overrides["policy_root"])
    return replace(config, **overrides)


def _bool_env(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None or not v.strip():
        return default
    v = v.strip().lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ValidationError(f"{name} must be a boolean (got {v!r})")


def _opt_env(name: str) -> Path | None:
    v = os.getenv(name)
    return Path(v) if v else None
