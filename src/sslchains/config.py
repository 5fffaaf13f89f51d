"""
Configuration — typed, validated settings loaded from environment/.env.

Uses pydantic-settings to:
  - Load from SSLCHAINS_* environment variables
  - Fall back to a .env file in the working directory
  - Validate types and bounds before any file is touched

Command-line flags are applied on top (see sslchains.main), so the effective
precedence is: CLI flag > environment > .env > default.

Architecture: Only AppSettings is a BaseSettings instance. Sub-settings are plain
BaseModel classes populated by AppSettings via env_nested_delimiter="__", so the env
var SSLCHAINS_ENGINE__MAX_WORKERS maps to engine.max_workers,
SSLCHAINS_TRAVERSAL__RECURSIVE maps to traversal.recursive, etc.
"""

from __future__ import annotations

import logging
from enum import Enum

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sslchains.adapters.pem_reader import MAX_FILE_SIZE
from sslchains.domain.assembly import DEFAULT_PLACEHOLDER
from sslchains.domain.models import StandaloneCertificates


class OutputFormat(str, Enum):
    """How the finished scan is printed."""

    TREE = "tree"
    ONELINE = "oneline"
    JSON = "json"


class EngineSettings(BaseModel):
    """Matching and chain-assembly behaviour."""

    verify_signatures: bool = Field(
        default=False,
        description="Require issuer signatures to validate, not just matching names",
    )
    standalone_certificates: StandaloneCertificates = Field(
        default=StandaloneCertificates.ALL,
        description="Which key-less certificates become entities: all, explicit or none",
    )
    placeholder_name: str = Field(
        default=DEFAULT_PLACEHOLDER,
        min_length=1,
        description="Display name for entities without any certificate",
    )
    prefer_subject_alt_name: bool = Field(
        default=False,
        description="Name entities after a SAN DNS name instead of the subject CN",
    )
    max_workers: int = Field(default=4, ge=1, description="Threads for per-file extraction")
    max_file_size: int = Field(default=MAX_FILE_SIZE, ge=1, description="Largest file read, in bytes")
    key_passphrase: SecretStr | None = Field(
        default=None,
        description="Passphrase tried on encrypted private keys",
    )

    def passphrase_bytes(self) -> bytes | None:
        if self.key_passphrase is None:
            return None
        return self.key_passphrase.get_secret_value().encode("utf-8")


class TraversalSettings(BaseModel):
    """
    Which files are handed to the engine.

    Mirrors the command-line switches -r, -H, -S, -X and -U.
    """

    recursive: bool = Field(default=False, description="Descend into subdirectories")
    include_hidden: bool = Field(default=False, description="Include entries starting with '.'")
    follow_symlinks: bool = Field(default=False, description="Follow symbolic links inside directories")
    cross_filesystems: bool = Field(default=False, description="Enter directories on other devices")
    max_files: int = Field(default=1000, ge=1, description="Refuse to scan more files than this")
    unlimited: bool = Field(default=False, description="Ignore max_files")


class OutputSettings(BaseModel):
    """Rendering options."""

    format: OutputFormat = Field(default=OutputFormat.TREE)
    header: bool = Field(default=True, description="Print the header row in one-line output")


class AppSettings(BaseSettings):
    """
    Root application settings — aggregates all sub-settings.

    Load order (highest priority first):
      1. Environment variables (SSLCHAINS_ prefix)
      2. .env file
      3. Default values

    Every field has a default, so a bare `AppSettings()` always validates
    unless the environment carries a bad value.
    """

    model_config = SettingsConfigDict(
        env_prefix="SSLCHAINS_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    engine: EngineSettings = Field(default_factory=lambda: EngineSettings())
    traversal: TraversalSettings = Field(default_factory=lambda: TraversalSettings())
    output: OutputSettings = Field(default_factory=lambda: OutputSettings())

    log_level: str = Field(default="WARNING")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Accept only standard logging level names, case-insensitively."""
        level = value.strip().upper()
        if not isinstance(logging.getLevelNamesMapping().get(level), int):
            raise ValueError(
                f"Unknown log level {value!r}; expected one of DEBUG, INFO, WARNING, ERROR, CRITICAL"
            )
        return level
