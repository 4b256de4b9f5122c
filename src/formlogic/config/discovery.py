"""Locate and read the project config file.

The project is the nearest directory, walking up from the cwd, that holds
``formlogic.toml`` (or the hidden ``.formlogic.toml``). ``FORMLOGIC_CONFIG``
names a config file directly and skips the walk.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from formlogic.config.models import FormLogicConfig

CONFIG_FILENAMES = ("formlogic.toml", ".formlogic.toml")
CONFIG_ENV_VAR = "FORMLOGIC_CONFIG"


class ConfigError(Exception):
    """A config file that exists but cannot be used."""


def find_config(start: Path | None = None) -> Path | None:
    """The config file for *start* (default: cwd), or None.

    ``formlogic.toml`` wins over ``.formlogic.toml`` in the same directory.
    A ``FORMLOGIC_CONFIG`` pointing at a missing file means no config.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        path = Path(env_path)
        return path if path.is_file() else None

    here = (start or Path.cwd()).resolve()
    for directory in (here, *here.parents):
        for name in CONFIG_FILENAMES:
            candidate = directory / name
            if candidate.is_file():
                return candidate
    return None


def load_config(path: Path) -> dict[str, Any]:
    """Read *path* and validate its sections.

    Returns only the keys the file sets, so callers layering other
    sources on top (env vars, flags) still see code defaults as unset.

    Raises:
        ConfigError: Malformed TOML or an out-of-range setting.
    """
    try:
        raw = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc
    try:
        config = FormLogicConfig.model_validate(raw)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise ConfigError(f"Invalid config in {path}: {problems}") from exc
    return config.model_dump(exclude_unset=True)
