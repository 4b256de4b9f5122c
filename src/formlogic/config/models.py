"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, formlogic.toml only contains
overrides. A project with no config file runs on these defaults.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class EngineConfig(BaseModel):
    """[engine] section."""

    model_config = {"frozen": True}

    max_passes: int = Field(default=5, ge=1, le=50)
    case_sensitive: bool = False


class FilesConfig(BaseModel):
    """[files] section. Paths are relative to the project root."""

    model_config = {"frozen": True}

    fields: str = "fields.json"
    rules: str = "rules.json"


class FormLogicConfig(BaseModel):
    """Root configuration composing all sections."""

    model_config = {"frozen": True}

    engine: EngineConfig = Field(default_factory=EngineConfig)
    files: FilesConfig = Field(default_factory=FilesConfig)
