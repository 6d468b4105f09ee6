"""Template rendering: the catalog engine, its helpers and the Flutter adapter."""

from flutter_pwa_builder.templating.engine import TemplateEngine
from flutter_pwa_builder.templating.flutter_adapter import (
    API_MAPPINGS,
    adapt_for_flutter_version,
    compare_versions,
    get_api_changes_for_version,
)

__all__ = [
    "API_MAPPINGS",
    "TemplateEngine",
    "adapt_for_flutter_version",
    "compare_versions",
    "get_api_changes_for_version",
]
