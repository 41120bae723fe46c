"""Graph construction for units and their transitive imports.

build() is the entry point: it turns a unit into a tree of targets, shared
dependencies are deduplicated through the context's registry, and commands
get a link stage on top.

Graph construction is depth-first and runs on the calling thread; only the
stage targets themselves execute concurrently.
"""

import logging
from typing import TYPE_CHECKING, Iterable, Sequence

from .cache import cached_package, install
from .errors import ImportCycleError, MetadataError
from .package import Package
from .stages import AsmTarget, CompileTarget, LinkTarget, PackTarget
from .target import ErrTarget, Target

if TYPE_CHECKING:
    from .build_context import BuildContext

logger = logging.getLogger(__name__)


def build(ctx: "BuildContext", pkg: Package) -> Target:
    """Build a unit and its dependencies.

    Waits for the unit's package target. If it succeeded and the unit is a
    command, the returned target links the final binary.

    Args:
        ctx: Build context
        pkg: Unit to build

    Returns:
        Target whose outcome is the unit's archive, or its binary for commands
    """
    target = build_package(ctx, pkg)
    if target.result().ok and pkg.command:
        target = LinkTarget(ctx, pkg, target)
    return target


def build_package(ctx: "BuildContext", pkg: Package) -> Target:
    """Return the target building pkg and everything it imports.

    Dependency targets are constructed before the staleness decision, so a
    stale dependency of an up to date unit is still rebuilt.
    """
    if pkg.error is not None:
        return ErrTarget(MetadataError(pkg.import_path, f"build package: {pkg.error}"))
    try:
        return ctx.registry.get_or_create(
            pkg.key,
            lambda: _package_target(ctx, pkg, build_dependencies(ctx, pkg.imports)),
        )
    except ImportCycleError as e:
        return ErrTarget(e)


def compile_package(ctx: "BuildContext", pkg: Package, *deps: Target) -> Target:
    """Return the target building pkg against caller supplied dependencies."""
    if pkg.error is not None:
        return ErrTarget(MetadataError(pkg.import_path, f"compile: {pkg.error}"))
    try:
        return ctx.registry.get_or_create(pkg.key, lambda: _package_target(ctx, pkg, deps))
    except ImportCycleError as e:
        return ErrTarget(e)


def build_command(ctx: "BuildContext", pkg: Package) -> Target:
    """Compile pkg as a command and link it.

    Used for test binaries and other direct command builds: the unit itself
    skips the registry, the staleness check and installation.
    """
    if pkg.error is not None:
        return ErrTarget(MetadataError(pkg.import_path, f"build command: {pkg.error}"))
    deps = build_dependencies(ctx, pkg.imports)
    objs = _objects(ctx, pkg, deps)
    if not objs:
        return ErrTarget(MetadataError(pkg.import_path, "no buildable source files"))
    return LinkTarget(ctx, pkg, _archive(ctx, pkg, objs))


def build_dependencies(ctx: "BuildContext", imports: Iterable[str]) -> list[Target]:
    """Resolve and build every non-stdlib import, in import order."""
    deps: list[Target] = []
    for path in imports:
        if path in ctx.stdlib:
            continue
        logger.debug(f"resolving dependency {path}")
        deps.append(build_package(ctx, ctx.resolve(path)))
    return deps


def _package_target(ctx: "BuildContext", pkg: Package, deps: Sequence[Target]) -> Target:
    if not ctx.staleness(ctx, pkg):
        return cached_package(ctx, pkg)
    objs = _objects(ctx, pkg, deps)
    if not objs:
        return ErrTarget(MetadataError(pkg.import_path, "no buildable source files"))
    return install(ctx, pkg, _archive(ctx, pkg, objs))


def _objects(ctx: "BuildContext", pkg: Package, deps: Sequence[Target]) -> list[Target]:
    objs: list[Target] = []
    if pkg.sources:
        objs.append(CompileTarget(ctx, pkg, pkg.sources, *deps))
        deps = ()
    # without a compile stage the assembler stages carry the dependencies
    for sfile in pkg.asm_files:
        objs.append(AsmTarget(ctx, pkg, sfile, *deps))
    return objs


def _archive(ctx: "BuildContext", pkg: Package, objs: list[Target]) -> Target:
    if pkg.complete and len(objs) == 1:
        return objs[0]
    return PackTarget(ctx, pkg, *objs)
