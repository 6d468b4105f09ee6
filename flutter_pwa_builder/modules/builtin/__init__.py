"""Built-in content modules shipped with the builder.

Key classes:
    PWAModule    - Web manifest, offline page and install prompt service
    DriftModule  - Drift (SQLite/WASM) database, tables and DAOs
"""

from .drift import DriftModule
from .pwa import PWAModule

BUILTIN_MODULES = {
    "pwa": PWAModule,
    "drift": DriftModule,
}

__all__ = [
    "BUILTIN_MODULES",
    "DriftModule",
    "PWAModule",
]
