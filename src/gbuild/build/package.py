"""Compilation unit metadata.

A Package is created by a resolver before the build core sees it and is
read-only afterwards. Many targets (compile, archive, install, link) hold a
reference to the same instance.
"""

import posixpath
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .errors import BuildError


class Scope(Enum):
    """Build scope of a unit."""

    NORMAL = "normal"
    TEST = "test"


@dataclass(frozen=True)
class Package:
    """One buildable unit, identified by import path and scope.

    Attributes:
        import_path: Unique identifier of the unit (e.g. "example.com/lib")
        dir: Directory containing the unit's source files
        scope: Build scope
        sources: Primary source files, relative to dir
        asm_files: Assembly source files, relative to dir
        imports: Import paths of the units this unit depends on
        complete: True if the lone produced object can stand in for the unit
        command: True if the unit produces an executable
        extra_includes: Extra include path used by test-scope builds
        error: Metadata failure from resolution, None if the unit is valid
    """

    import_path: str
    dir: Path
    scope: Scope = Scope.NORMAL
    sources: tuple[str, ...] = ()
    asm_files: tuple[str, ...] = ()
    imports: tuple[str, ...] = ()
    complete: bool = True
    command: bool = False
    extra_includes: Path | None = None
    error: BuildError | None = None

    @classmethod
    def missing(cls, import_path: str, error: BuildError, scope: Scope = Scope.NORMAL) -> "Package":
        """Create a unit whose resolution failed."""
        return cls(import_path=import_path, dir=Path(), scope=scope, error=error)

    @property
    def name(self) -> str:
        """Last element of the import path."""
        return posixpath.basename(self.import_path)

    @property
    def key(self) -> tuple[str, str]:
        """Registry key: (scope, import path)."""
        return (self.scope.value, self.import_path)

    def __str__(self) -> str:
        if self.scope is Scope.TEST:
            return f"{self.import_path} [test]"
        return self.import_path
