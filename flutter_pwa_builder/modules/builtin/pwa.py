"""Progressive Web App module.

Contributes the web app manifest, an offline fallback page and a small Dart
service wrapping install-prompt and connectivity state.  The manifest reads
the project's own ``pwa`` settings; the module config only toggles the
service worker and install prompt behaviour.

Generates:
- ``web/manifest.json``               -- web app manifest
- ``web/offline.html``                -- offline fallback (service worker on)
- ``web/browserconfig.xml``           -- Windows tile configuration
- ``web/robots.txt``
- ``lib/core/pwa/pwa_service.dart``   -- install prompt / connectivity service
- ``lib/core/pwa/pwa.dart``           -- barrel file
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any

from pydantic import Field

from flutter_pwa_builder.models import (
    ConditionOperator,
    GeneratedFile,
    Module,
    ProjectDefinition,
    TargetPlatform,
    Template,
    TemplateCondition,
    TemplateOutput,
)
from flutter_pwa_builder.utils import print_warning

if TYPE_CHECKING:
    from flutter_pwa_builder.modules.hooks import HookContext

DEFAULT_CONFIG: dict[str, Any] = {
    "serviceWorker": {
        "enabled": True,
        "offlineFallbackPage": "offline.html",
    },
    "installPrompt": {
        "enabled": True,
        "delay": 30000,
    },
}

REQUIRED_ICON_SIZES = ("192x192", "512x512")
MAX_SHORT_NAME_LENGTH = 12


# ---------------------------------------------------------------------------
# Template sources
# ---------------------------------------------------------------------------

MANIFEST_SOURCE = """\
{
  "name": "{{project.pwa.name}}",
  "short_name": "{{project.pwa.short_name}}",
  "description": "{{project.pwa.description}}",
  "start_url": "{{project.pwa.start_url}}",
  "scope": "{{project.pwa.scope}}",
  "display": "{{project.pwa.display}}",
  "orientation": "{{project.pwa.orientation}}",
  "theme_color": "{{project.pwa.theme_color}}",
  "background_color": "{{project.pwa.background_color}}",
  "icons": {{json project.pwa.icons}}
}
"""

OFFLINE_PAGE_SOURCE = """\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <meta name="theme-color" content="{{project.pwa.theme_color}}">
  <title>{{project.pwa.name}} - Offline</title>
  <style>
    body {
      margin: 0;
      min-height: 100vh;
      display: flex;
      align-items: center;
      justify-content: center;
      font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
      background: {{project.pwa.background_color}};
      color: #333333;
    }
    .offline-card {
      text-align: center;
      padding: 2rem;
    }
    .offline-card button {
      margin-top: 1.5rem;
      padding: 0.75rem 1.5rem;
      border: none;
      border-radius: 8px;
      background: {{project.pwa.theme_color}};
      color: #ffffff;
      cursor: pointer;
    }
  </style>
</head>
<body>
  <div class="offline-card">
    <h1>You are offline</h1>
    <p>{{project.pwa.short_name}} needs a connection for this page. Content you
    opened before is still available.</p>
    <button onclick="window.location.reload()">Try again</button>
  </div>
</body>
</html>
"""

PWA_SERVICE_SOURCE = """\
// GENERATED CODE - DO NOT MODIFY BY HAND
// PWA service for {{project.pwa.name}}

import 'dart:async';

import 'package:flutter/foundation.dart';

/// Tracks connectivity and install-prompt state of the web app.
class PwaService extends ChangeNotifier {
  PwaService._();

  static final PwaService instance = PwaService._();

  static const bool serviceWorkerEnabled = {{serviceWorker.enabled}};
  static const bool installPromptEnabled = {{installPrompt.enabled}};
  static const Duration installPromptDelay = Duration(milliseconds: {{installPrompt.delay}});
{{#if serviceWorker.offlineFallbackPage}}
  static const String offlineFallbackPage = '{{serviceWorker.offlineFallbackPage}}';
{{/if}}

  bool _isOnline = true;
  bool _canInstall = false;
  Timer? _promptTimer;

  bool get isOnline => _isOnline;
  bool get canInstall => installPromptEnabled && _canInstall;

  void updateConnectivity(bool online) {
    if (_isOnline == online) {
      return;
    }
    _isOnline = online;
    notifyListeners();
  }

  void scheduleInstallPrompt() {
    if (!kIsWeb || !installPromptEnabled) {
      return;
    }
    _promptTimer?.cancel();
    _promptTimer = Timer(installPromptDelay, () {
      _canInstall = true;
      notifyListeners();
    });
  }

  @override
  void dispose() {
    _promptTimer?.cancel();
    super.dispose();
  }
}
"""

PWA_TEMPLATES: tuple[Template, ...] = (
    Template(
        id="pwa-manifest",
        name="Web App Manifest",
        description="manifest.json generated from the project's PWA settings",
        source=MANIFEST_SOURCE,
        output=TemplateOutput(path="web", filename="manifest", extension="json"),
    ),
    Template(
        id="pwa-offline-page",
        name="Offline Fallback Page",
        description="Page served by the service worker when the network is gone",
        source=OFFLINE_PAGE_SOURCE,
        output=TemplateOutput(path="web", filename="offline", extension="html"),
        conditions=[
            TemplateCondition(
                field="serviceWorker.enabled", operator=ConditionOperator.EQ, value=True
            ),
        ],
    ),
    Template(
        id="pwa-service",
        name="PWA Service",
        description="Dart service exposing connectivity and install prompt state",
        source=PWA_SERVICE_SOURCE,
        output=TemplateOutput(path="lib/core/pwa", filename="pwa_service", extension="dart"),
    ),
)


# ---------------------------------------------------------------------------
# Programmatic content
# ---------------------------------------------------------------------------


def browser_config(theme_color: str) -> str:
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        "<browserconfig>\n"
        "  <msapplication>\n"
        "    <tile>\n"
        '      <square150x150logo src="/icons/mstile-150x150.png"/>\n'
        f"      <TileColor>{theme_color}</TileColor>\n"
        "    </tile>\n"
        "  </msapplication>\n"
        "</browserconfig>\n"
    )


ROBOTS_TXT = "User-agent: *\nAllow: /\n\nSitemap: /sitemap.xml\n"

BARREL_SOURCE = """\
/// PWA module exports.
///
/// Provides install prompt handling and connectivity state.

export 'pwa_service.dart';
"""


def build_warnings(project: ProjectDefinition, config: dict[str, Any]) -> list[str]:
    """Return the pre-build warnings for *project*'s PWA setup.

    Args:
        project: The project being built.
        config: The module's effective configuration.

    Returns:
        Human-readable warnings; empty when the setup looks installable.
    """
    warnings: list[str] = []
    icons = project.pwa.icons
    for size in REQUIRED_ICON_SIZES:
        if not any(icon.sizes == size for icon in icons):
            warnings.append(f"Missing required icon size: {size}")
    if not any(icon.purpose == "maskable" for icon in icons):
        warnings.append("No maskable icon defined - recommended for Android")
    if len(project.pwa.short_name) > MAX_SHORT_NAME_LENGTH:
        warnings.append(
            f'Short name "{project.pwa.short_name}" exceeds {MAX_SHORT_NAME_LENGTH} characters'
        )
    if not config.get("serviceWorker", {}).get("enabled", True):
        warnings.append("Service Worker is disabled - offline functionality limited")
    return warnings


# ---------------------------------------------------------------------------
# Module
# ---------------------------------------------------------------------------


class PWAModule(Module):
    """Web manifest, offline page and install prompt support."""

    id: str = "pwa"
    name: str = "Progressive Web App"
    version: str = "1.0.0"
    description: str = "PWA features including manifest, offline page and install prompt"
    compatible_targets: list[TargetPlatform] = Field(
        default_factory=lambda: [TargetPlatform.WEB]
    )
    default_config: dict[str, Any] = Field(default_factory=lambda: copy.deepcopy(DEFAULT_CONFIG))
    templates: list[Template] = Field(default_factory=lambda: list(PWA_TEMPLATES))

    async def on_generate(self, ctx: HookContext) -> list[GeneratedFile]:
        return [
            GeneratedFile(
                path="web/browserconfig.xml",
                content=browser_config(ctx.project.pwa.theme_color),
                module=self.id,
            ),
            GeneratedFile(path="web/robots.txt", content=ROBOTS_TXT, module=self.id),
            GeneratedFile(path="lib/core/pwa/pwa.dart", content=BARREL_SOURCE, module=self.id),
        ]

    async def before_build(self, ctx: HookContext) -> None:
        for warning in build_warnings(ctx.project, ctx.config):
            print_warning(f"pwa: {warning}")

