"""Project engine and the generation pipeline.

Key classes:
    ProjectEngine   - Façade over projects, modules, generation and builds
    GenerationRun   - One run's state machine: collect, validate, commit
    BuildResult     - Outcome of a build
"""

from .core_files import CORE_TEMPLATES, render_core_files
from .engine import ProjectEngine
from .generation import BuildResult, GenerationRun, RunState

__all__ = [
    # Engine
    "ProjectEngine",
    # Generation
    "BuildResult",
    "GenerationRun",
    "RunState",
    # Core files
    "CORE_TEMPLATES",
    "render_core_files",
]
