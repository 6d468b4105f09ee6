"""Pydantic v2 models for the Flutter PWA Builder.

Defines the value objects shared by the template engine, module registry and
project engine: project definitions and their PWA/offline sub-configuration,
templates and their output descriptors, module manifests with their
lifecycle interface, and the files a generation run produces.
"""

from __future__ import annotations

import inspect
import uuid
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from flutter_pwa_builder.utils import utc_now_iso, with_defaults

if TYPE_CHECKING:
    from flutter_pwa_builder.modules.hooks import HookContext


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class Architecture(str, Enum):
    """Source layout style of the generated Flutter project."""
    CLEAN = "clean"
    FEATURE_FIRST = "feature-first"
    LAYER_FIRST = "layer-first"


class StateManagement(str, Enum):
    RIVERPOD = "riverpod"
    BLOC = "bloc"
    PROVIDER = "provider"


class TargetPlatform(str, Enum):
    WEB = "web"
    ANDROID = "android"
    IOS = "ios"
    WINDOWS = "windows"
    MACOS = "macos"
    LINUX = "linux"


class OfflineStrategy(str, Enum):
    OFFLINE_FIRST = "offline-first"
    ONLINE_FIRST = "online-first"
    CACHE_FIRST = "cache-first"


class DisplayMode(str, Enum):
    STANDALONE = "standalone"
    FULLSCREEN = "fullscreen"
    MINIMAL_UI = "minimal-ui"


class Orientation(str, Enum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"
    ANY = "any"


class TemplateType(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"
    SNIPPET = "snippet"


class ConditionOperator(str, Enum):
    """Operators understood by template conditions."""
    EQ = "eq"
    NEQ = "neq"
    IN = "in"
    NOT_IN = "notIn"
    EXISTS = "exists"
    NOT_EXISTS = "notExists"


class TransformType(str, Enum):
    CAMEL_CASE = "camelCase"
    PASCAL_CASE = "pascalCase"
    SNAKE_CASE = "snakeCase"
    KEBAB_CASE = "kebabCase"
    PLURALIZE = "pluralize"
    SINGULARIZE = "singularize"


class LifecycleEvent(str, Enum):
    """The fixed set of lifecycle events a module can react to."""
    ON_INSTALL = "onInstall"
    BEFORE_GENERATE = "beforeGenerate"
    ON_GENERATE = "onGenerate"
    AFTER_GENERATE = "afterGenerate"
    BEFORE_BUILD = "beforeBuild"
    AFTER_BUILD = "afterBuild"
    ON_UNINSTALL = "onUninstall"

    @property
    def method_name(self) -> str:
        """Name of the :class:`Module` method handling this event."""
        return _EVENT_METHODS[self]


_EVENT_METHODS: dict[LifecycleEvent, str] = {
    LifecycleEvent.ON_INSTALL: "on_install",
    LifecycleEvent.BEFORE_GENERATE: "before_generate",
    LifecycleEvent.ON_GENERATE: "on_generate",
    LifecycleEvent.AFTER_GENERATE: "after_generate",
    LifecycleEvent.BEFORE_BUILD: "before_build",
    LifecycleEvent.AFTER_BUILD: "after_build",
    LifecycleEvent.ON_UNINSTALL: "on_uninstall",
}


# ---------------------------------------------------------------------------
# PWA / offline configuration
# ---------------------------------------------------------------------------

class IconConfig(BaseModel):
    src: str
    sizes: str
    type: str
    purpose: Optional[str] = Field(default=None, description="any, maskable or monochrome")


class PWAConfig(BaseModel):
    """Web app manifest settings."""
    name: str = Field(default="My PWA")
    short_name: str = Field(default="MyPWA")
    description: str = Field(default="An offline-first Progressive Web Application")
    theme_color: str = Field(default="#2196F3")
    background_color: str = Field(default="#FFFFFF")
    display: DisplayMode = Field(default=DisplayMode.STANDALONE)
    orientation: Orientation = Field(default=Orientation.ANY)
    icons: list[IconConfig] = Field(default_factory=list)
    start_url: str = Field(default="/")
    scope: str = Field(default="/")


class RetryPolicy(BaseModel):
    max_retries: int = Field(default=3, ge=0)
    backoff_ms: int = Field(default=1000, ge=0)


class SyncConfig(BaseModel):
    enabled: bool = Field(default=False)
    strategy: str = Field(default="manual", description="manual, auto or periodic")
    interval: Optional[int] = Field(default=None, description="Seconds between periodic syncs")
    retry_policy: Optional[RetryPolicy] = Field(default=None)


class StorageConfig(BaseModel):
    type: str = Field(default="drift")
    encryption: bool = Field(default=False)
    max_size: Optional[int] = Field(default=None)


class CachingConfig(BaseModel):
    assets: bool = Field(default=True)
    api: bool = Field(default=True)
    ttl: int = Field(default=3600, description="Cache time-to-live in seconds")


class OfflineConfig(BaseModel):
    """Offline storage, caching and sync settings."""
    strategy: OfflineStrategy = Field(default=OfflineStrategy.OFFLINE_FIRST)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    caching: CachingConfig = Field(default_factory=CachingConfig)
    sync: Optional[SyncConfig] = Field(default=None)


_pwa_defaults = with_defaults(PWAConfig().model_dump())
_offline_defaults = with_defaults(OfflineConfig().model_dump())


# ---------------------------------------------------------------------------
# Project definition
# ---------------------------------------------------------------------------

class ModuleConfig(BaseModel):
    """One module entry of a project definition."""
    id: str = Field(..., description="Registered module id")
    enabled: bool = Field(default=True)
    config: dict[str, Any] = Field(default_factory=dict)


class ProjectDefinition(BaseModel):
    """Declarative description of a project to generate.

    Missing fields are filled with the builder defaults: ``display_name``
    falls back to ``name``, ``pwa.name`` to ``display_name`` and
    ``pwa.short_name`` to ``name``; partial ``pwa``/``offline`` mappings are
    deep-merged over the defaults.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Immutable project id")
    name: str = Field(default="untitled_project", description="Dart package name")
    display_name: str = Field(default="", description="Human-readable project name")
    version: str = Field(default="1.0.0")
    architecture: Architecture = Field(default=Architecture.FEATURE_FIRST)
    state_management: StateManagement = Field(default=StateManagement.RIVERPOD)
    modules: list[ModuleConfig] = Field(default_factory=list)
    targets: list[TargetPlatform] = Field(
        default_factory=lambda: [TargetPlatform.WEB], min_length=1
    )
    pwa: PWAConfig = Field(default_factory=PWAConfig)
    offline: OfflineConfig = Field(default_factory=OfflineConfig)
    flutter_version: Optional[str] = Field(
        default=None, description="Target Flutter SDK version for API adaptation"
    )
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)

    @model_validator(mode="before")
    @classmethod
    def _apply_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        name = data.get("name") or "untitled_project"
        display_name = data.get("display_name") or name
        data["display_name"] = display_name

        pwa = data.get("pwa")
        if not isinstance(pwa, BaseModel):
            pwa = dict(pwa or {})
            pwa.setdefault("name", display_name)
            pwa.setdefault("short_name", name)
            data["pwa"] = _pwa_defaults(pwa)

        offline = data.get("offline")
        if offline is not None and not isinstance(offline, BaseModel):
            data["offline"] = _offline_defaults(offline)
        return data

    @field_validator("targets")
    @classmethod
    def _dedupe_targets(cls, targets: list[TargetPlatform]) -> list[TargetPlatform]:
        return list(dict.fromkeys(targets))

    @field_validator("modules")
    @classmethod
    def _unique_modules(cls, modules: list[ModuleConfig]) -> list[ModuleConfig]:
        seen: set[str] = set()
        for entry in modules:
            if entry.id in seen:
                raise ValueError(f"duplicate module entry: {entry.id}")
            seen.add(entry.id)
        return modules

    def module_config(self, module_id: str) -> Optional[ModuleConfig]:
        """Return the project's entry for *module_id*, if any."""
        return next((m for m in self.modules if m.id == module_id), None)


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

class TemplateCondition(BaseModel):
    """A ``field operator value`` gate evaluated against the render context."""
    model_config = ConfigDict(frozen=True)

    field: str = Field(..., description="Dotted path into the render namespace")
    operator: ConditionOperator
    value: Any = Field(default=None)


class Transform(BaseModel):
    """A named string transform applied to one context field before rendering."""
    model_config = ConfigDict(frozen=True)

    type: TransformType
    field: str


class TemplateOutput(BaseModel):
    """Where a rendered template lands.

    All three parts are template strings.  ``extension`` never carries the
    leading dot; the engine inserts it.
    """
    model_config = ConfigDict(frozen=True)

    path: str = Field(default="", description="Directory, empty for the project root")
    filename: str = Field(..., description="File name without extension")
    extension: str = Field(default="", description="Extension without the leading dot")

    @field_validator("extension")
    @classmethod
    def _no_leading_separator(cls, extension: str) -> str:
        if extension.startswith("."):
            raise ValueError(
                f"extension must not include the leading separator: {extension!r}"
            )
        return extension


class Template(BaseModel):
    """A parametrised text blueprint plus its output-location blueprint."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = Field(default="")
    description: str = Field(default="")
    type: TemplateType = Field(default=TemplateType.FILE)
    source: str = Field(default="")
    output: TemplateOutput
    conditions: list[TemplateCondition] = Field(default_factory=list)
    transforms: list[Transform] = Field(default_factory=list)
    requires: list[str] = Field(default_factory=list)


class RenderedFile(BaseModel):
    """Result of rendering one template."""
    model_config = ConfigDict(frozen=True)

    path: str
    content: str
    template: Template


class GeneratedFile(BaseModel):
    """The unit of pipeline output."""
    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Relative POSIX path")
    content: str = Field(default="")
    module: Optional[str] = Field(default=None, description="Producing module id")


# ---------------------------------------------------------------------------
# Modules
# ---------------------------------------------------------------------------

class ModuleDependency(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    version: str = Field(default="*", description="Version constraint (recorded, not solved)")
    optional: bool = Field(default=False)


class Asset(BaseModel):
    model_config = ConfigDict(frozen=True)

    src: str
    dest: str
    type: str = Field(default="file", description="file or directory")


class Module(BaseModel):
    """A self-contained unit of installable functionality.

    Content packs subclass ``Module``, give the manifest fields defaults and
    override whichever lifecycle methods they need.  Every lifecycle method
    defaults to a no-op, so a module reacts only to the events it implements.
    Instances are frozen: a new version means unregister, then register.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Globally unique module id")
    name: str = Field(default="")
    version: str = Field(default="1.0.0")
    description: str = Field(default="")
    compatible_targets: list[TargetPlatform] = Field(
        default_factory=lambda: list(TargetPlatform)
    )
    dependencies: list[ModuleDependency] = Field(default_factory=list)
    conflicts: list[str] = Field(default_factory=list)
    config_schema: dict[str, Any] = Field(default_factory=dict)
    default_config: dict[str, Any] = Field(default_factory=dict)
    templates: list[Template] = Field(default_factory=list)
    assets: list[Asset] = Field(default_factory=list)

    # -- Lifecycle interface -------------------------------------------------

    async def on_install(self, ctx: HookContext) -> None:
        return None

    async def before_generate(self, ctx: HookContext) -> None:
        return None

    async def on_generate(self, ctx: HookContext) -> list[GeneratedFile]:
        return []

    async def after_generate(self, ctx: HookContext) -> None:
        return None

    async def before_build(self, ctx: HookContext) -> None:
        return None

    async def after_build(self, ctx: HookContext) -> None:
        return None

    async def on_uninstall(self, ctx: HookContext) -> None:
        return None

    async def dispatch(self, event: LifecycleEvent, ctx: HookContext) -> Any:
        """Invoke the handler for *event* and await it if it is a coroutine."""
        result = getattr(self, event.method_name)(ctx)
        if inspect.isawaitable(result):
            result = await result
        return result

    def implements(self, event: LifecycleEvent) -> bool:
        """Return ``True`` when this module overrides the handler for *event*."""
        return getattr(type(self), event.method_name) is not getattr(Module, event.method_name)

    def summary(self) -> dict[str, Any]:
        """Manifest fields exposed to templates as ``module``."""
        return self.model_dump(mode="json", exclude={"templates", "config_schema"})


class TemplateContext(BaseModel):
    """Closed render context: the project, the owning module and extra data."""

    project: ProjectDefinition
    module: Optional[Module] = Field(default=None)
    data: dict[str, Any] = Field(default_factory=dict)
