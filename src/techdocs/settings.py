from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from techdocs.config import ExclusionConfig, SizeBudget
from techdocs.exceptions import ConfigFileError, InvalidSettingsError

ENV_FILE = find_dotenv(usecwd=True)
if ENV_FILE:
    load_dotenv(ENV_FILE)

DEFAULT_PROMPT_RESOURCE = "prompts/readme.txt"
ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"


class Settings(BaseModel):
    """Configuration settings for the techdocs package."""

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    location: str = Field(default=".", description="Directory path or GitHub URL.")
    exclude: list[str] = Field(default_factory=list, description="Extra patterns (.gitignore format).")

    max_file_size_kb: int = Field(default=100, ge=0, description="Per-file size limit in KB.")
    max_total_size_mb: int = Field(default=10, ge=0, description="Bundle size limit in MB.")
    timeout_seconds: float | None = Field(default=None, gt=0, description="Traversal deadline.")

    exclusion: ExclusionConfig = Field(default_factory=ExclusionConfig, description="Exclusion policy tuning.")
    remote_hosts: frozenset[str] = Field(default=frozenset({"github.com"}), description="Clonable hosts.")
    remote_schemes: frozenset[str] = Field(default=frozenset({"https"}), description="Clonable URL schemes.")
    git_bin: str = Field(default="git", description="git executable.")

    prompt_file: Path | None = Field(default=None, description="System prompt for README generation.")
    model: str = Field(default="claude-3-5-sonnet-20241022", description="Text generation model.")
    max_tokens: int = Field(default=4096, gt=0, description="Generated text token limit.")
    api_url: str = Field(default=ANTHROPIC_API_URL, description="Messages endpoint.")
    api_key: str = Field(
        default_factory=lambda: os.environ.get("ANTHROPIC_API_KEY", ""),
        description="API key for the text generation service.",
        repr=False,
    )
    request_timeout: float = Field(default=300.0, gt=0, description="HTTP timeout in seconds.")

    host: str = Field(default="127.0.0.1", description="HTTP service bind address.")
    port: int = Field(default=3000, ge=0, le=65535, description="HTTP service port.")

    log_file: str = Field(default="", description="Log file path.")
    verbose: bool = Field(default=False, description="Debug logging.")

    def new_budget(self) -> SizeBudget:
        """Create a fresh budget; each traversal owns its own counter."""
        return SizeBudget.from_units(self.max_file_size_kb, self.max_total_size_mb)


def read_config_file(path: Path) -> dict[str, Any]:
    """Read a YAML configuration file whose keys are ``Settings`` fields.

    Args:
        path (Path): the YAML file to read

    Raises:
        ConfigFileError: if the file cannot be read, is not valid YAML or is not a mapping.

    Returns:
        dict[str, Any]: the raw settings values
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except OSError as e:
        raise ConfigFileError(file=path, message=f"cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigFileError(file=path, message=f"invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigFileError(file=path, message=f"{path} must contain a mapping")
    return data


def load_settings(config_file: Path | None = None, **overrides: Any) -> Settings:  # noqa: ANN401
    """Build settings from an optional YAML file, then explicit overrides.

    Overrides whose value is None are ignored so that unset CLI options keep
    the file (or default) value.

    Args:
        config_file (Path | None): optional YAML configuration file
        **overrides: explicit values, typically parsed CLI arguments

    Raises:
        ConfigFileError: if the file is unreadable or holds invalid values.
        InvalidSettingsError: if an override is invalid and no file was given.

    Returns:
        Settings: the merged settings
    """
    values: dict[str, Any] = read_config_file(config_file) if config_file is not None else {}
    values.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return Settings.model_validate(values)
    except ValidationError as e:
        if config_file is None:
            raise InvalidSettingsError(message=str(e)) from e
        raise ConfigFileError(file=config_file, message=str(e)) from e
