"""Template catalog and rendering.

Provides the :class:`TemplateEngine` which keeps a catalog of
:class:`~flutter_pwa_builder.models.Template` objects, helpers and partials,
and renders templates against a :class:`~flutter_pwa_builder.models.TemplateContext`.
Template sources use the Handlebars-style vocabulary understood by
:mod:`flutter_pwa_builder.templating.compiler` and are executed by Jinja2.
"""

from __future__ import annotations

import copy
import inspect
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Optional

import jinja2
from jinja2 import ChainableUndefined, Environment

from flutter_pwa_builder.errors import (
    BuilderError,
    DuplicateTemplateError,
    InvalidTemplateError,
    TemplateNotFoundError,
    TemplateRenderError,
    TemplateSyntaxError,
)
from flutter_pwa_builder.models import (
    ConditionOperator,
    RenderedFile,
    Template,
    TemplateCondition,
    TemplateContext,
    Transform,
)
from flutter_pwa_builder.templating.compiler import PathRef, compile_template
from flutter_pwa_builder.templating.helpers import TRANSFORMS, builtin_helpers
from flutter_pwa_builder.utils import normalize_relative_path

_MISSING = object()


# ---------------------------------------------------------------------------
# Runtime support for compiled templates
# ---------------------------------------------------------------------------


def _get(current: Any, part: str) -> Any:
    if current is None:
        return None
    if isinstance(current, Mapping):
        return current.get(part)
    if isinstance(current, (list, tuple, str)):
        if part == "length":
            return len(current)
        if part.isdigit() and int(part) < len(current):
            return current[int(part)]
        return None
    if part.startswith("_"):
        return None
    return getattr(current, part, None)


def _lookup(scopes: tuple[Any, ...], data: Mapping[str, Any], ref: PathRef) -> Any:
    if ref.data_var is not None:
        return data.get(ref.data_var)
    if ref.root:
        current = scopes[0]
    else:
        index = len(scopes) - 1 - ref.depth
        if index < 0:
            return None
        current = scopes[index]
    for part in ref.parts:
        current = _get(current, part)
        if current is None:
            return None
    return current


def _has_key(scope: Any, part: str) -> bool:
    if isinstance(scope, Mapping):
        return part in scope
    return not part.startswith("_") and hasattr(scope, part)


def _callable_without_args(fn: Callable[..., Any]) -> bool:
    """True when *fn* takes no positional input, so a bare name can call it."""
    try:
        parameters = inspect.signature(fn).parameters.values()
    except (TypeError, ValueError):
        return False
    return all(
        parameter.default is not inspect.Parameter.empty
        for parameter in parameters
        if parameter.kind is not inspect.Parameter.VAR_KEYWORD
    )


def _iterate(value: Any) -> list[tuple[Any, Any]]:
    if isinstance(value, Mapping):
        return list(value.items())
    if isinstance(value, (list, tuple)):
        return list(enumerate(value))
    return []


def _truthy(value: Any) -> bool:
    if isinstance(value, Mapping):
        return True
    return bool(value)


def _frame(data: Mapping[str, Any], key: Any, loop: Any) -> dict[str, Any]:
    return {**data, "key": key, "index": loop.index0, "first": loop.first, "last": loop.last}


def _finalize(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join(str(_finalize(item)) for item in value)
    if isinstance(value, ChainableUndefined):
        return ""
    return value


def _resolve_field(namespace: Mapping[str, Any], field: str) -> Any:
    current: Any = namespace
    for part in field.split("."):
        if isinstance(current, Mapping) and part in current:
            current = current[part]
        elif isinstance(current, (list, tuple)) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return _MISSING
    return current


def _replace_field(namespace: Mapping[str, Any], parts: list[str], value: Any) -> dict[str, Any]:
    updated = dict(namespace)
    head = parts[0]
    if len(parts) == 1:
        updated[head] = value
    else:
        updated[head] = _replace_field(updated[head], parts[1:], value)
    return updated


def condition_holds(condition: TemplateCondition, namespace: Mapping[str, Any]) -> bool:
    """Evaluate one condition against a render namespace."""
    value = _resolve_field(namespace, condition.field)
    if value is _MISSING:
        value = None
    expected = condition.value
    operator = condition.operator

    if operator == ConditionOperator.EQ:
        return value == expected
    if operator == ConditionOperator.NEQ:
        return value != expected
    if operator == ConditionOperator.IN:
        return isinstance(expected, (list, tuple)) and value in expected
    if operator == ConditionOperator.NOT_IN:
        return not (isinstance(expected, (list, tuple)) and value in expected)
    if operator == ConditionOperator.EXISTS:
        return value is not None
    return value is None


def apply_transforms(namespace: Mapping[str, Any], transforms: Iterable[Transform]) -> dict[str, Any]:
    """Return a copy of *namespace* with each transform applied in place.

    Only the mappings along a transformed field's path are copied; a field
    that is missing or not a string is left untouched.
    """
    result = dict(namespace)
    for transform in transforms:
        value = _resolve_field(result, transform.field)
        if not isinstance(value, str):
            continue
        result = _replace_field(result, transform.field.split("."), TRANSFORMS[transform.type.value](value))
    return result


# ---------------------------------------------------------------------------
# TemplateEngine
# ---------------------------------------------------------------------------


class TemplateEngine:
    """Catalog of templates, helpers and partials with a rendering front end.

    Output is never HTML-escaped.  Missing values render as the empty string,
    booleans as ``true``/``false`` and lists comma-joined.  Compiled sources
    are cached, so rendering the same template repeatedly is cheap and
    yields identical output for identical input.
    """

    def __init__(self) -> None:
        self.env = Environment(
            autoescape=False,
            keep_trailing_newline=True,
            finalize=_finalize,
            undefined=ChainableUndefined,
        )
        self.env.globals.update(
            _lookup=_lookup,
            _iterate=_iterate,
            _truthy=_truthy,
            _frame=_frame,
            _value=self._value,
            _call=self._call_helper,
            _partial=self._render_partial,
        )
        self._templates: dict[str, Template] = {}
        self._helpers: dict[str, Callable[..., Any]] = builtin_helpers()
        self._bare_helpers = {name for name, fn in self._helpers.items() if _callable_without_args(fn)}
        self._partials: dict[str, str] = {}
        self._compiled: dict[str, tuple[jinja2.Template, list[Any]]] = {}

    # -- Catalog -----------------------------------------------------------

    def register(self, template: Template) -> None:
        """Add *template* to the catalog, compiling all of its strings.

        Raises:
            DuplicateTemplateError: If the id is already registered.
            InvalidTemplateError: If the output filename is blank.
            TemplateSyntaxError: If any of its strings fails to compile.
        """
        if template.id in self._templates:
            raise DuplicateTemplateError(template.id)
        self.check(template)
        self._templates[template.id] = template

    def check(self, template: Template) -> None:
        """Compile every string of *template* without registering it."""
        if not template.output.filename.strip():
            raise InvalidTemplateError(template.id, "output filename is empty")
        for source in (
            template.source,
            template.output.path,
            template.output.filename,
            template.output.extension,
        ):
            self._compile(source, template.id)

    def unregister(self, template_id: str) -> None:
        if template_id not in self._templates:
            raise TemplateNotFoundError(template_id)
        del self._templates[template_id]

    def get(self, template_id: str) -> Optional[Template]:
        return self._templates.get(template_id)

    def list(self) -> list[Template]:
        return list(self._templates.values())

    def __contains__(self, template_id: object) -> bool:
        return template_id in self._templates

    # -- Helpers and partials ----------------------------------------------

    def register_helper(self, name: str, fn: Callable[..., Any]) -> None:
        """Register (or replace) a helper callable under *name*."""
        self._helpers[name] = fn
        if _callable_without_args(fn):
            self._bare_helpers.add(name)
        else:
            self._bare_helpers.discard(name)

    def register_partial(self, name: str, source: str) -> None:
        """Register (or replace) a partial; its source is compiled eagerly."""
        self._compile(source)
        self._partials[name] = source

    @property
    def helper_names(self) -> list[str]:
        return sorted(self._helpers)

    # -- Rendering ---------------------------------------------------------

    def render_string(self, source: str, data: Mapping[str, Any]) -> str:
        """Render an inline template source against *data*.

        *data* is deep-copied first so neither templates nor helpers can
        mutate the caller's mapping.
        """
        return self._run(source, copy.deepcopy(dict(data)))

    def render(self, template_id: str, context: TemplateContext) -> Optional[RenderedFile]:
        """Render a catalog template.

        Returns:
            The rendered file, or ``None`` when the template's conditions do
            not all hold for *context*.
        """
        template = self._templates.get(template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)
        return self.render_template(template, context)

    def render_template(self, template: Template, context: TemplateContext) -> Optional[RenderedFile]:
        """Render *template* whether or not it is in the catalog."""
        namespace = self.build_namespace(context)
        if not self.evaluate_conditions(template.conditions, namespace):
            return None
        namespace = apply_transforms(namespace, template.transforms)
        content = self._run(template.source, namespace, template.id)
        path = self._output_path(template, namespace)
        return RenderedFile(path=path, content=content, template=template)

    def render_multiple(self, template_ids: Iterable[str], context: TemplateContext) -> list[RenderedFile]:
        """Render several templates; skipped ones are omitted, errors abort."""
        rendered: list[RenderedFile] = []
        for template_id in template_ids:
            result = self.render(template_id, context)
            if result is not None:
                rendered.append(result)
        return rendered

    def preview(self, template_id: str, context: TemplateContext) -> str:
        """Render a catalog template's source ignoring its conditions."""
        template = self._templates.get(template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)
        namespace = apply_transforms(self.build_namespace(context), template.transforms)
        return self._run(template.source, namespace, template.id)

    # -- Context -----------------------------------------------------------

    @staticmethod
    def build_namespace(context: TemplateContext) -> dict[str, Any]:
        """Flatten a :class:`TemplateContext` into the render namespace."""
        data = copy.deepcopy(context.data)
        return {
            "project": context.project.model_dump(mode="json"),
            "module": context.module.summary() if context.module is not None else None,
            "data": data,
            **data,
        }

    @staticmethod
    def evaluate_conditions(conditions: Iterable[TemplateCondition], namespace: Mapping[str, Any]) -> bool:
        return all(condition_holds(condition, namespace) for condition in conditions)

    # -- Internals ---------------------------------------------------------

    def _compile(self, source: str, template_id: Optional[str] = None) -> tuple[jinja2.Template, list[Any]]:
        cached = self._compiled.get(source)
        if cached is not None:
            return cached
        try:
            compiled = compile_template(source)
            jinja_template = self.env.from_string(compiled.source)
        except TemplateSyntaxError as exc:
            if template_id is None:
                raise
            raise TemplateSyntaxError(str(exc), source, template_id) from exc
        except jinja2.TemplateSyntaxError as exc:
            raise TemplateSyntaxError(exc.message or str(exc), source, template_id) from exc
        entry = (jinja_template, compiled.constants)
        self._compiled[source] = entry
        return entry

    def _run(self, source: str, namespace: Mapping[str, Any], template_id: Optional[str] = None) -> str:
        if not source:
            return ""
        jinja_template, constants = self._compile(source, template_id)
        try:
            return jinja_template.render(_scopes=(namespace,), _data={}, _k=constants)
        except TemplateRenderError as exc:
            if exc.template_id is not None or template_id is None:
                raise
            raise TemplateRenderError(str(exc), template_id) from exc
        except jinja2.TemplateError as exc:
            raise TemplateRenderError(str(exc), template_id) from exc

    def _value(self, scopes: tuple[Any, ...], data: Mapping[str, Any], ref: PathRef) -> Any:
        value = _lookup(scopes, data, ref)
        name = ref.helper_candidate
        if value is None and name in self._bare_helpers and not _has_key(scopes[-1], name):
            return self._call_helper(name)
        return value

    def _call_helper(self, name: str, *args: Any) -> Any:
        helper = self._helpers.get(name)
        if helper is None:
            raise TemplateRenderError(f"Unknown helper: {name}")
        try:
            return helper(*args)
        except BuilderError:
            raise
        except Exception as exc:
            raise TemplateRenderError(f"Helper {name} failed: {exc}") from exc

    def _render_partial(
        self,
        name: str,
        scopes: tuple[Any, ...],
        data: Mapping[str, Any],
        indent: str = "",
    ) -> str:
        source = self._partials.get(name)
        if source is None:
            raise TemplateRenderError(f"Unknown partial: {name}")
        jinja_template, constants = self._compile(source)
        rendered = jinja_template.render(_scopes=tuple(scopes), _data=data, _k=constants)
        if indent:
            rendered = "".join(
                indent + line if line.strip() else line
                for line in rendered.splitlines(keepends=True)
            )
        return rendered

    def _output_path(self, template: Template, namespace: Mapping[str, Any]) -> str:
        output = template.output
        directory = self._run(output.path, namespace, template.id).strip()
        filename = self._run(output.filename, namespace, template.id).strip()
        extension = self._run(output.extension, namespace, template.id).strip()
        if not filename:
            raise InvalidTemplateError(template.id, "output filename rendered empty")
        if extension.startswith("."):
            raise InvalidTemplateError(
                template.id, f"extension must not include the leading separator: {extension}"
            )

        name = f"{filename}.{extension}" if extension else filename
        joined = f"{directory.rstrip('/')}/{name}" if directory else name
        normalized = normalize_relative_path(joined)
        if normalized is None:
            raise InvalidTemplateError(template.id, f"output path must stay relative: {joined}")
        return normalized
