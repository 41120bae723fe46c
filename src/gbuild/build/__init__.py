"""Build graph core: targets, stages and the graph builder.

Public API:
    build: Build a unit and its imports, linking commands.
    build_command: Compile and link a unit directly (test binaries).
    BuildContext: Collaborators and layout shared by every target.
    Target / Outcome: Memoized one-shot build results.
"""

from .build_context import BuildContext
from .callbacks import BuildCallback, NullCallback, StagePhase
from .errors import (
    BuildError,
    ImportCycleError,
    MetadataError,
    ToolchainError,
    UpstreamError,
)
from .orchestrator import (
    build,
    build_command,
    build_dependencies,
    build_package,
    compile_package,
)
from .package import Package, Scope
from .registry import TargetRegistry
from .target import DoneTarget, ErrTarget, Outcome, Target, TaskTarget

__all__ = [
    "BuildCallback",
    "BuildContext",
    "BuildError",
    "DoneTarget",
    "ErrTarget",
    "ImportCycleError",
    "MetadataError",
    "NullCallback",
    "Outcome",
    "Package",
    "Scope",
    "StagePhase",
    "Target",
    "TargetRegistry",
    "TaskTarget",
    "ToolchainError",
    "UpstreamError",
    "build",
    "build_command",
    "build_dependencies",
    "build_package",
    "compile_package",
]
