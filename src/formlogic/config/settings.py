"""FormLogicSettings: one frozen object for flags, env vars and formlogic.toml.

Highest priority first:

1. keyword arguments (the CLI flags Click parsed)
2. ``FORMLOGIC_*`` environment variables, ``__`` for nesting
   (``FORMLOGIC_ENGINE__MAX_PASSES=3``)
3. the discovered ``formlogic.toml``
4. defaults on the section models
"""

from __future__ import annotations

from contextvars import ContextVar
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from formlogic.config.discovery import ConfigError, find_config, load_config
from formlogic.config.models import EngineConfig, FilesConfig

# Config file for the settings object being built by from_cli().
_config_file: ContextVar[Path | None] = ContextVar("formlogic_config_file", default=None)


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Settings from the project's TOML file, validated section by section."""

    def __init__(self, settings_cls: type[BaseSettings], path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if path is not None and path.is_file():
            try:
                self._data = load_config(path)
            except ConfigError as exc:
                raise click.ClickException(str(exc)) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


class FormLogicSettings(BaseSettings):
    """Settings shared by the CLI and the services it builds.

    Attributes:
        project_root: Directory relative paths resolve against (parent of
            the config file, or CWD if none was found).
        config_path: The TOML file in effect, or None.
        fields_path: ``--fields`` override of ``[files] fields``.
        rules_path: ``--rules`` override of ``[files] rules``.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "FORMLOGIC_",
        "env_nested_delimiter": "__",
    }

    project_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # --- output and logging flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- document overrides ---
    fields_path: Path | None = None
    rules_path: Path | None = None

    # --- TOML sections ---
    engine: EngineConfig = Field(default_factory=EngineConfig)
    files: FilesConfig = Field(default_factory=FilesConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, _config_file.get()),
        )

    @property
    def fields_file(self) -> Path:
        return self._resolve(self.fields_path or Path(self.files.fields))

    @property
    def rules_file(self) -> Path:
        return self._resolve(self.rules_path or Path(self.files.rules))

    def _resolve(self, path: Path) -> Path:
        return path if path.is_absolute() else self.project_root / path

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        project_root: Path | None = None,
        **cli_flags: Any,
    ) -> FormLogicSettings:
        """Build settings for one CLI invocation.

        An explicit *config_path* that does not exist is ignored, like a
        missing ``FORMLOGIC_CONFIG``. Flags passed as ``None`` are dropped
        so they never mask env or TOML values.
        """
        if config_path:
            explicit = Path(config_path)
            toml_path = explicit if explicit.is_file() else None
        else:
            toml_path = find_config(project_root)

        if project_root is None:
            project_root = toml_path.parent if toml_path else Path.cwd()

        flags = {k: v for k, v in cli_flags.items() if v is not None}
        token = _config_file.set(toml_path)
        try:
            return cls(project_root=project_root, config_path=toml_path, **flags)
        finally:
            _config_file.reset(token)
