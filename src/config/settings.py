from __future__ import annotations

import re
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from errors import ConfigError

CONFIG_FILENAME = "luats.toml"

_TYPE_NAME_RE = re.compile(r"^[A-Za-z_$][\w$]*$")


class FixerRule(BaseModel):
    """A text substitution applied to source before parsing."""

    model_config = ConfigDict(extra="forbid")

    file_name: str | None = Field(
        default=None,
        description="Apply only to files whose path ends with this name",
    )
    find: str = Field(min_length=1, description="Literal text to replace")
    replace: str = Field(default="", description="Replacement text")


class LuatsConfig(BaseModel):
    """Configuration for declaration generation."""

    model_config = ConfigDict(extra="forbid")

    output_dir: str = Field(
        default="types",
        description="Output directory for generated declarations",
    )
    include: list[str] = Field(
        default_factory=list,
        description="Glob patterns for files to include (empty = all Lua files)",
    )
    exclude: list[str] = Field(
        default_factory=list,
        description="Glob patterns for files to exclude",
    )
    nested_gitignore: bool = Field(
        default=False,
        description=(
            "Enable nested .gitignore composition (default: false for root-only)"
        ),
    )
    workers: int = Field(
        default=4,
        ge=1,
        le=64,
        description="Parallel parse workers",
    )
    write_symbol_index: bool = Field(
        default=False,
        description="Also write symbols.json (exported name -> source path)",
    )
    fallback_types: dict[str, str] = Field(
        default_factory=dict,
        description="Extra stub declarations for names no file exports",
    )
    fixers: list[FixerRule] = Field(
        default_factory=list,
        description="Text substitutions applied before parsing",
    )

    @field_validator("fallback_types", mode="before")
    @classmethod
    def validate_fallback_types(cls, v: Any) -> Any:
        """Keys must be plain type names; values are emitted verbatim."""
        if v is None:
            return {}
        if not isinstance(v, dict):
            msg = "fallback_types must be a mapping of type name -> declaration"
            raise ValueError(msg)
        for name, declaration in v.items():
            if not isinstance(name, str) or not isinstance(declaration, str):
                msg = "fallback_types must be a mapping of str -> str"
                raise ValueError(msg)
            if not _TYPE_NAME_RE.match(name):
                msg = f"Invalid fallback type name '{name}'"
                raise ValueError(msg)
        return v


def resolve_output_dir(root: Path, output_dir: str) -> Path:
    """Resolve a config-provided output_dir safely within the project root.

    Absolute paths, ``~`` paths and paths that escape the root are rejected.
    """
    if not output_dir:
        msg = "output_dir must be a non-empty relative path"
        raise ConfigError(msg)

    output_path = Path(output_dir)
    if output_dir.startswith("~") or output_path.is_absolute():
        msg = "output_dir must be a relative path within the project root"
        raise ConfigError(msg)

    try:
        resolved_root = root.resolve()
        resolved_output = (resolved_root / output_path).resolve()
    except OSError as exc:
        msg = f"Failed to resolve output_dir '{output_dir}': {exc}"
        raise ConfigError(msg) from exc

    try:
        resolved_output.relative_to(resolved_root)
    except ValueError as exc:
        msg = f"output_dir '{output_dir}' escapes the project root"
        raise ConfigError(msg) from exc

    if resolved_output == resolved_root:
        msg = "output_dir must not be the project root itself"
        raise ConfigError(msg)

    return resolved_output


def load_config(root: Path) -> LuatsConfig:
    """Load configuration from luats.toml if it exists."""
    config_path = Path(root) / CONFIG_FILENAME

    if not config_path.is_file():
        return LuatsConfig()

    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {config_path}: {e}"
        raise ConfigError(msg) from e

    try:
        return LuatsConfig.model_validate(data)
    except ValidationError as e:
        msg = f"Invalid config in {config_path}: {e}"
        raise ConfigError(msg) from e


__all__ = [
    "CONFIG_FILENAME",
    "FixerRule",
    "LuatsConfig",
    "load_config",
    "resolve_output_dir",
]
