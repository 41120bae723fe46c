"""Build Context - everything the build core needs from its surroundings.

Design:
    The context bundles the external collaborators (toolchain, package
    resolver, staleness oracle, progress callback) with the on-disk layout
    and the target registry. It is created once per build invocation and
    passed explicitly to the graph builder and orchestrator.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from .cache import is_stale
from .callbacks import BuildCallback, NullCallback
from .package import Package, Scope
from .registry import TargetRegistry

if TYPE_CHECKING:
    from ..config import ProjectConfig
    from ..resolve import PackageResolver
    from ..toolchain import IToolchain


@dataclass(frozen=True)
class BuildContext:
    """Build configuration and collaborators shared by every target.

    Attributes:
        workdir: Directory for intermediate objects and linked binaries
        pkgdir: Directory where library archives are installed
        toolchain: Compiler/assembler/archiver/linker implementation
        resolver: Resolves import paths to packages
        stdlib: Import paths that are never built
        force: Rebuild every unit regardless of staleness
        staleness: Oracle deciding whether a unit must be rebuilt
        callback: Receives stage progress updates
        registry: Dedups targets by (scope, import path)
    """

    workdir: Path
    pkgdir: Path
    toolchain: "IToolchain"
    resolver: "PackageResolver"
    stdlib: frozenset[str] = frozenset()
    force: bool = False
    staleness: Callable[["BuildContext", Package], bool] = is_stale
    callback: BuildCallback = field(default_factory=NullCallback)
    registry: TargetRegistry = field(default_factory=TargetRegistry)

    @classmethod
    def from_config(
        cls,
        config: "ProjectConfig",
        callback: BuildCallback | None = None,
        force: bool = False,
    ) -> "BuildContext":
        """Create a context from a parsed project file.

        Environment overrides: GBUILD_WORKDIR, GBUILD_PKGDIR, GBUILD_FORCE=1.

        Args:
            config: Parsed gbuild.ini
            callback: Progress callback (defaults to NullCallback)
            force: Force a rebuild of every unit

        Returns:
            A fresh BuildContext with an empty registry
        """
        from ..resolve import ManifestResolver
        from ..toolchain import CommandToolchain

        workdir_env = os.environ.get("GBUILD_WORKDIR")
        pkgdir_env = os.environ.get("GBUILD_PKGDIR")
        return cls(
            workdir=Path(workdir_env).resolve() if workdir_env else config.workdir,
            pkgdir=Path(pkgdir_env).resolve() if pkgdir_env else config.pkgdir,
            toolchain=CommandToolchain(config.toolchain_commands()),
            resolver=ManifestResolver(config),
            stdlib=config.stdlib,
            force=force or config.force or os.environ.get("GBUILD_FORCE") == "1",
            callback=callback if callback is not None else NullCallback(),
        )

    def include_paths(self) -> list[Path]:
        """Include paths passed to the compiler and linker."""
        return [self.workdir, self.pkgdir]

    def resolve(self, import_path: str, scope: Scope = Scope.NORMAL) -> Package:
        """Resolve an import path through the configured resolver."""
        return self.resolver.resolve(import_path, scope)
