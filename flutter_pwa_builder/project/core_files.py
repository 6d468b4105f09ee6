"""Core project files every generated Flutter project starts from.

Generates:
- ``pubspec.yaml``    -- package manifest with state-management and storage deps
- ``lib/main.dart``   -- entry point (wrapped in ``ProviderScope`` for riverpod)
- ``lib/app.dart``    -- ``MaterialApp`` themed from the PWA theme colour
- ``<dir>/.gitkeep``  -- the directory skeleton of the chosen architecture

The three source files are catalog templates (ids ``core-*``); the
dependency lists they need are computed here and passed in as data.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from flutter_pwa_builder.models import (
    Architecture,
    GeneratedFile,
    ProjectDefinition,
    StateManagement,
    Template,
    TemplateContext,
    TemplateOutput,
)

if TYPE_CHECKING:
    from flutter_pwa_builder.templating.engine import TemplateEngine

CORE_MODULE_ID = "core"

ARCHITECTURE_DIRECTORIES: dict[Architecture, tuple[str, ...]] = {
    Architecture.CLEAN: (
        "lib/domain/entities",
        "lib/domain/repositories",
        "lib/domain/usecases",
        "lib/data/models",
        "lib/data/repositories",
        "lib/data/datasources",
        "lib/presentation/pages",
        "lib/presentation/widgets",
        "lib/core/constants",
        "lib/core/errors",
        "lib/core/utils",
    ),
    Architecture.FEATURE_FIRST: (
        "lib/features",
        "lib/shared/widgets",
        "lib/shared/services",
        "lib/shared/models",
        "lib/core/constants",
        "lib/core/theme",
        "lib/core/utils",
    ),
    Architecture.LAYER_FIRST: (
        "lib/models",
        "lib/services",
        "lib/providers",
        "lib/screens",
        "lib/widgets",
        "lib/utils",
        "lib/constants",
    ),
}

STATE_DEPENDENCIES: dict[StateManagement, dict[str, str]] = {
    StateManagement.RIVERPOD: {
        "flutter_riverpod": "^2.4.0",
        "riverpod_annotation": "^2.3.0",
    },
    StateManagement.BLOC: {
        "flutter_bloc": "^8.1.0",
        "bloc": "^8.1.0",
    },
    StateManagement.PROVIDER: {
        "provider": "^6.1.0",
    },
}

DRIFT_DEPENDENCIES = {
    "drift": "^2.14.0",
    "drift_sqflite": "^2.2.0",
    "sqlite3_flutter_libs": "^0.5.18",
    "path_provider": "^2.1.0",
    "path": "^1.8.3",
}


# ---------------------------------------------------------------------------
# Template sources
# ---------------------------------------------------------------------------

PUBSPEC_SOURCE = """\
name: {{project.name}}
description: {{json project.pwa.description}}
version: {{project.version}}
publish_to: 'none'

environment:
  sdk: '>=3.0.0 <4.0.0'

dependencies:
  flutter:
    sdk: flutter
{{#each dependencies}}
  {{@key}}: {{this}}
{{/each}}

dev_dependencies:
  flutter_test:
    sdk: flutter
{{#each devDependencies}}
  {{@key}}: {{this}}
{{/each}}

flutter:
  uses-material-design: true
"""

MAIN_SOURCE = """\
import 'package:flutter/material.dart';
{{#eq project.state_management "riverpod"}}
import 'package:flutter_riverpod/flutter_riverpod.dart';
{{/eq}}

import 'app.dart';

void main() {
  WidgetsFlutterBinding.ensureInitialized();
{{#eq project.state_management "riverpod"}}
  runApp(const ProviderScope(child: App()));
{{else}}
  runApp(const App());
{{/eq}}
}
"""

APP_SOURCE = """\
import 'package:flutter/material.dart';

class App extends StatelessWidget {
  const App({super.key});

  @override
  Widget build(BuildContext context) {
    return MaterialApp(
      title: '{{appTitle}}',
      debugShowCheckedModeBanner: false,
      theme: ThemeData(
        colorScheme: ColorScheme.fromSeed(
          seedColor: const Color(0xFF{{themeColorHex}}),
        ),
        useMaterial3: true,
      ),
      home: const HomePage(),
    );
  }
}

class HomePage extends StatelessWidget {
  const HomePage({super.key});

  @override
  Widget build(BuildContext context) {
    return Scaffold(
      appBar: AppBar(
        title: const Text('{{appTitle}}'),
      ),
      body: const Center(
        child: Text('Welcome to {{appTitle}}!'),
      ),
    );
  }
}
"""

CORE_TEMPLATES: tuple[Template, ...] = (
    Template(
        id="core-pubspec",
        name="pubspec.yaml",
        description="Package manifest",
        source=PUBSPEC_SOURCE,
        output=TemplateOutput(filename="pubspec", extension="yaml"),
    ),
    Template(
        id="core-main",
        name="main.dart",
        description="Application entry point",
        source=MAIN_SOURCE,
        output=TemplateOutput(path="lib", filename="main", extension="dart"),
        requires=["core-app"],
    ),
    Template(
        id="core-app",
        name="app.dart",
        description="Root widget",
        source=APP_SOURCE,
        output=TemplateOutput(path="lib", filename="app", extension="dart"),
    ),
)


def core_data(project: ProjectDefinition) -> dict[str, Any]:
    """Compute the render data the core templates need for *project*."""
    dependencies = dict(STATE_DEPENDENCIES[project.state_management])
    dev_dependencies = {
        "flutter_lints": "^3.0.0",
        "build_runner": "^2.4.0",
    }
    if project.state_management == StateManagement.RIVERPOD:
        dev_dependencies["riverpod_generator"] = "^2.3.0"
    if project.offline.storage.type == "drift":
        dependencies.update(DRIFT_DEPENDENCIES)
        dev_dependencies["drift_dev"] = "^2.14.0"

    return {
        "dependencies": dependencies,
        "devDependencies": dev_dependencies,
        "appTitle": project.pwa.name.replace("\\", "\\\\").replace("'", "\\'"),
        "themeColorHex": project.pwa.theme_color.lstrip("#").upper(),
    }


def skeleton_files(project: ProjectDefinition) -> list[GeneratedFile]:
    """Empty ``.gitkeep`` placeholders for the architecture's directories."""
    return [
        GeneratedFile(path=f"{directory}/.gitkeep", content="", module=CORE_MODULE_ID)
        for directory in ARCHITECTURE_DIRECTORIES[project.architecture]
    ]


def render_core_files(engine: TemplateEngine, project: ProjectDefinition) -> list[GeneratedFile]:
    """Render the core templates and the skeleton, all owned by ``core``.

    A catalog template registered under a ``core-*`` id takes precedence
    over the built-in definition, so callers can swap one out by
    unregistering and re-registering it.
    """
    context = TemplateContext(project=project, data=core_data(project))
    files: list[GeneratedFile] = []
    for template in CORE_TEMPLATES:
        rendered = engine.render_template(engine.get(template.id) or template, context)
        if rendered is not None:
            files.append(
                GeneratedFile(path=rendered.path, content=rendered.content, module=CORE_MODULE_ID)
            )
    files.extend(skeleton_files(project))
    return files
