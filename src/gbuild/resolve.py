"""Package resolution - import path to Package.

Resolvers never raise for a missing or malformed unit. They return a
Package whose error is set, and the build core turns that into a failed
target without running any stage.
"""

import logging
from typing import Mapping, Protocol, runtime_checkable

from .build.errors import MetadataError
from .build.package import Package, Scope
from .config import PackageSpec, ProjectConfig

logger = logging.getLogger(__name__)


@runtime_checkable
class PackageResolver(Protocol):
    """Resolves import paths to unit metadata."""

    def resolve(self, import_path: str, scope: Scope = Scope.NORMAL) -> Package:
        """Resolve an import path.

        Args:
            import_path: Unit import path
            scope: Scope the unit is built in

        Returns:
            The resolved Package (with error set if resolution failed)
        """
        ...


class StaticResolver:
    """Resolves units from an in-memory mapping of import path to Package."""

    def __init__(self, packages: Mapping[str, Package]) -> None:
        self._packages = dict(packages)

    def resolve(self, import_path: str, scope: Scope = Scope.NORMAL) -> Package:
        pkg = self._packages.get(import_path)
        if pkg is None:
            return Package.missing(import_path, MetadataError(import_path, "cannot find package"), scope)
        return pkg


class ManifestResolver:
    """Resolves units from the [package:...] sections of gbuild.ini.

    Args:
        config: Parsed project file.
    """

    def __init__(self, config: ProjectConfig) -> None:
        self._config = config

    def resolve(self, import_path: str, scope: Scope = Scope.NORMAL) -> Package:
        spec = self._config.get_package(import_path)
        if spec is None:
            logger.debug(f"{import_path}: no [package:{import_path}] section")
            return Package.missing(import_path, MetadataError(import_path, "cannot find package"), scope)
        return self._from_spec(spec, scope)

    @staticmethod
    def _from_spec(spec: PackageSpec, scope: Scope) -> Package:
        error = None
        if not spec.dir.is_dir():
            error = MetadataError(spec.import_path, f"source directory not found: {spec.dir}")
        else:
            missing = [f for f in spec.sources + spec.asm_files if not (spec.dir / f).is_file()]
            if missing:
                error = MetadataError(spec.import_path, f"missing source files: {', '.join(missing)}")

        return Package(
            import_path=spec.import_path,
            dir=spec.dir,
            scope=scope,
            sources=spec.sources,
            asm_files=spec.asm_files,
            imports=spec.imports,
            complete=spec.complete if spec.complete is not None else not spec.asm_files,
            command=spec.command,
            extra_includes=spec.extra_includes,
            error=error,
        )
