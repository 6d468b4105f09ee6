"""Command-line front end for the Flutter PWA Builder.

Sub-commands::

    flutter-pwa-builder generate  project.yaml        # list the files a build would write
    flutter-pwa-builder build     project.yaml -o out  # generate, validate and write
    flutter-pwa-builder validate  project.yaml
    flutter-pwa-builder modules                        # built-in module catalog
    flutter-pwa-builder templates                      # template catalog
    flutter-pwa-builder adapt lib/main.dart --flutter-version 3.29.0

Project definitions are YAML or JSON mappings of ``ProjectDefinition`` fields.
"""

from __future__ import annotations

import argparse
import asyncio
import inspect
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

import yaml
from pydantic import ValidationError
from rich.markup import escape
from rich.table import Table

from flutter_pwa_builder.config import Config
from flutter_pwa_builder.errors import BuilderError, ValidationBlockedError
from flutter_pwa_builder.project.engine import ProjectEngine
from flutter_pwa_builder.templating.flutter_adapter import (
    adapt_for_flutter_version,
    get_api_changes_for_version,
)
from flutter_pwa_builder.utils import (
    console,
    format_duration,
    print_error,
    print_header,
    print_success,
    print_summary_table,
    print_warning,
)
from flutter_pwa_builder.validation.report import print_validation_result


class ProjectFileError(BuilderError):
    """Raised when a project definition file cannot be read."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(f"Cannot read project file {path}: {reason}")


def load_project_file(path: Path) -> dict[str, Any]:
    """Read a YAML or JSON project definition into a plain mapping."""
    if not path.exists():
        raise ProjectFileError(path, "file not found")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ProjectFileError(path, str(exc)) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ProjectFileError(path, "expected a mapping at the top level")
    return data


def _engine(args: argparse.Namespace) -> ProjectEngine:
    config = Config.from_env()
    updates: dict[str, Any] = {}
    if getattr(args, "verbose", False):
        updates["verbose"] = True
    if getattr(args, "flutter_version", None):
        updates["default_flutter_version"] = args.flutter_version
    if getattr(args, "output", None):
        updates["output_dir"] = Path(args.output)
    if updates:
        config = config.model_copy(update=updates)
    engine = ProjectEngine(config=config)
    engine.register_builtin_modules()
    return engine


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def _cmd_generate(args: argparse.Namespace) -> int:
    engine = _engine(args)
    project = await engine.create(**load_project_file(Path(args.project)))
    files = await engine.generate(project.id)

    table = Table(title=f"Files for {project.name}", show_header=True, header_style="bold cyan")
    table.add_column("Path")
    table.add_column("Module", style="dim")
    table.add_column("Bytes", justify="right")
    for file in files:
        table.add_row(file.path, file.module or "", str(len(file.content.encode("utf-8"))))
    console.print(table)
    print_success(f"{len(files)} file(s) generated (nothing written)")
    return 0


async def _cmd_build(args: argparse.Namespace) -> int:
    engine = _engine(args)
    project = await engine.create(**load_project_file(Path(args.project)))
    print_header(f"Building {project.name}")

    try:
        result = await engine.build(
            project.id,
            args.target,
            validate=not args.no_validate,
            force=args.force,
            dry_run=args.dry_run,
        )
    except ValidationBlockedError as exc:
        print_validation_result(exc.result, title=f"Validation of {project.name}")
        raise

    if result.validation is not None:
        print_validation_result(result.validation, title=f"Validation of {project.name}")
    print_summary_table(
        {
            "Project": project.name,
            "Output": result.output_path,
            "Files": str(len(result.files)),
            "Modules": ", ".join(m.id for m in project.modules if m.enabled) or "-",
            "Duration": format_duration(result.duration_seconds),
        },
        title="Build Summary",
    )
    if result.dry_run:
        print_warning("Dry run: no files were written")
    else:
        print_success(f"Project written to {result.output_path}")
    return 0


async def _cmd_validate(args: argparse.Namespace) -> int:
    engine = _engine(args)
    try:
        project = await engine.create(**load_project_file(Path(args.project)))
    except ValidationBlockedError as exc:
        print_validation_result(exc.result, title=f"Validation of {exc.subject}")
        return 1
    result = await engine.validate(project.id)
    print_validation_result(result, title=f"Validation of {project.name}")
    return 0 if result.valid else 1


def _cmd_modules(args: argparse.Namespace) -> int:
    engine = _engine(args)
    table = Table(title="Modules", show_header=True, header_style="bold cyan")
    table.add_column("Id", style="bold")
    table.add_column("Name")
    table.add_column("Version")
    table.add_column("Targets")
    table.add_column("Templates", justify="right")
    for module in engine.registry.list():
        table.add_row(
            module.id,
            module.name,
            module.version,
            ", ".join(t.value for t in module.compatible_targets),
            str(len(module.templates)),
        )
    console.print(table)
    return 0


def _cmd_templates(args: argparse.Namespace) -> int:
    engine = _engine(args)
    table = Table(title="Templates", show_header=True, header_style="bold cyan")
    table.add_column("Id", style="bold")
    table.add_column("Output")
    table.add_column("Description", style="dim")
    for template in engine.template_engine.list():
        output = template.output
        filename = f"{output.filename}.{output.extension}" if output.extension else output.filename
        location = f"{output.path}/{filename}" if output.path else filename
        table.add_row(template.id, location, template.description)
    console.print(table)
    return 0


def _cmd_adapt(args: argparse.Namespace) -> int:
    source = Path(args.file)
    if not source.exists():
        raise ProjectFileError(source, "file not found")
    code = source.read_text(encoding="utf-8")
    adapted = adapt_for_flutter_version(code, args.flutter_version)

    changes = get_api_changes_for_version(args.flutter_version)
    if args.in_place:
        source.write_text(adapted, encoding="utf-8")
        for change in changes:
            console.print(f"  [dim]- {change}[/dim]")
        if adapted == code:
            print_success(f"{source} already targets Flutter {args.flutter_version}")
        else:
            print_success(f"Adapted {source} for Flutter {args.flutter_version}")
    else:
        sys.stdout.write(adapted)
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flutter-pwa-builder",
        description="Flutter PWA Builder -- generate offline-first Flutter PWA projects",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  flutter-pwa-builder build project.yaml -o ./my_pwa\n"
            "  flutter-pwa-builder validate project.yaml\n"
            "  flutter-pwa-builder adapt lib/app.dart --flutter-version 3.29.0\n"
        ),
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Print each generation step")
    sub = parser.add_subparsers(dest="command", required=True)

    generate = sub.add_parser("generate", help="List the files a project would produce")
    generate.add_argument("project", help="Path to a YAML or JSON project definition")
    generate.add_argument("--flutter-version", default=None, help="Target Flutter SDK version")

    build = sub.add_parser("build", help="Generate, validate and write a project")
    build.add_argument("project", help="Path to a YAML or JSON project definition")
    build.add_argument(
        "--target", "-t",
        default=None,
        help="Directory to write into (default: <output>/<project name>)",
    )
    build.add_argument("--output", "-o", default=None, help="Output root (default: ./output)")
    build.add_argument("--flutter-version", default=None, help="Target Flutter SDK version")
    build.add_argument("--no-validate", action="store_true", help="Skip validation")
    build.add_argument("--force", action="store_true", help="Write despite validation errors")
    build.add_argument("--dry-run", action="store_true", help="Stop before writing anything")

    validate = sub.add_parser("validate", help="Validate a project definition")
    validate.add_argument("project", help="Path to a YAML or JSON project definition")

    sub.add_parser("modules", help="List the built-in modules")
    sub.add_parser("templates", help="List the template catalog")

    adapt = sub.add_parser("adapt", help="Rewrite a Dart file for a Flutter version")
    adapt.add_argument("file", help="Dart source file")
    adapt.add_argument("--flutter-version", required=True, help="Target Flutter SDK version")
    adapt.add_argument("--in-place", action="store_true", help="Overwrite the file")

    return parser


_COMMANDS = {
    "generate": _cmd_generate,
    "build": _cmd_build,
    "validate": _cmd_validate,
    "modules": _cmd_modules,
    "templates": _cmd_templates,
    "adapt": _cmd_adapt,
}


def run(argv: Optional[Sequence[str]] = None) -> int:
    """Parse *argv*, run the command and return its exit status."""
    args = build_parser().parse_args(argv)
    command = _COMMANDS[args.command]
    try:
        if inspect.iscoroutinefunction(command):
            return asyncio.run(command(args))
        return command(args)
    except (BuilderError, ValidationError, ValueError) as exc:
        print_error(f"Error: {escape(str(exc))}")
        return 1
    except Exception:
        print_error("Error: unexpected failure")
        console.print_exception()
        return 1


def main(argv: Optional[Sequence[str]] = None) -> None:
    """CLI entry point for ``flutter-pwa-builder`` and ``python -m flutter_pwa_builder``."""
    sys.exit(run(argv))


if __name__ == "__main__":
    main()
