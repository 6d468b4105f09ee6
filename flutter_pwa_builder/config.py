"""Flutter PWA Builder configuration.

Typed settings for the CLI and the project engine.  All settings use Pydantic
v2 models so they can be validated at construction time and serialised to or
from JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from flutter_pwa_builder.templating.flutter_adapter import compare_versions

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean flag, got {raw!r}")


class Config(BaseModel):
    """Global builder configuration.

    Instances are typically created once by the CLI entry point and handed to
    the :class:`~flutter_pwa_builder.project.engine.ProjectEngine`.
    """

    output_dir: Path = Field(default=Path("./output"), description="Root for built projects")
    default_flutter_version: Optional[str] = Field(
        default=None,
        description="Flutter version applied to projects that do not pin one",
    )
    validate_before_commit: bool = Field(default=True)
    force_write: bool = Field(
        default=False, description="Commit even when validation reports errors"
    )
    verbose: bool = Field(default=False)
    builtin_modules: list[str] = Field(
        default_factory=lambda: ["pwa", "drift"],
        description="Built-in content modules registered at start-up",
    )
    config_dir: str = Field(default=".pwa-builder")

    @field_validator("default_flutter_version")
    @classmethod
    def _check_version(cls, version: Optional[str]) -> Optional[str]:
        if version is not None:
            compare_versions(version, "0.0.0")
        return version

    # ------------------------------------------------------------------
    # Derived paths
    # ------------------------------------------------------------------

    @property
    def config_path(self) -> Path:
        """Default location of the persisted configuration."""
        return self.output_dir / self.config_dir / "config.json"

    def project_output(self, project_name: str) -> Path:
        """Directory a project named *project_name* is built into."""
        return self.output_dir / project_name

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path | None = None) -> Path:
        """Persist the configuration to a JSON file.

        Args:
            path: Destination file. Defaults to :attr:`config_path`.

        Returns:
            The path where the file was written.
        """
        target = Path(path) if path is not None else self.config_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            PWA_BUILDER_OUTPUT_DIR, PWA_BUILDER_FLUTTER_VERSION,
            PWA_BUILDER_VALIDATE, PWA_BUILDER_FORCE, PWA_BUILDER_VERBOSE,
            PWA_BUILDER_MODULES (comma-separated built-in module ids).
        """
        kwargs: dict[str, object] = {
            "output_dir": Path(os.environ.get("PWA_BUILDER_OUTPUT_DIR", "./output")),
            "validate_before_commit": _env_flag("PWA_BUILDER_VALIDATE", True),
            "force_write": _env_flag("PWA_BUILDER_FORCE", False),
            "verbose": _env_flag("PWA_BUILDER_VERBOSE", False),
        }
        if os.environ.get("PWA_BUILDER_FLUTTER_VERSION"):
            kwargs["default_flutter_version"] = os.environ["PWA_BUILDER_FLUTTER_VERSION"]
        if "PWA_BUILDER_MODULES" in os.environ:
            kwargs["builtin_modules"] = [
                m.strip() for m in os.environ["PWA_BUILDER_MODULES"].split(",") if m.strip()
            ]
        return cls(**kwargs)
