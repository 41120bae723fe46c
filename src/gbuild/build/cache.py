"""Install location, staleness and cached-artifact handling.

Library units are installed to pkgdir/<import_path>.a after a successful
build. When the installed file is still valid the unit is not rebuilt and a
pre-resolved target pointing at it is used instead.
"""

import logging
import shutil
from pathlib import Path
from typing import TYPE_CHECKING

from .errors import BuildError
from .package import Package, Scope
from .target import DoneTarget, Target, TaskTarget

if TYPE_CHECKING:
    from .build_context import BuildContext

logger = logging.getLogger(__name__)


def pkgfile(ctx: "BuildContext", pkg: Package) -> Path:
    """Installed location of a unit's archive."""
    return ctx.pkgdir / (pkg.import_path + ".a")


def _mtime(path: Path) -> float | None:
    """Modification time of path, None if it cannot be read."""
    try:
        return path.stat().st_mtime
    except FileNotFoundError:
        return None
    except OSError as e:
        logger.debug(f"cannot stat {path}: {e}")
        return None


def is_stale(ctx: "BuildContext", pkg: Package) -> bool:
    """Decide whether a unit must be rebuilt.

    A unit is stale when a rebuild is forced, it is test scoped or a command
    (neither is installed), its installed archive is missing, any of its
    source files is newer than the archive, or any non-stdlib import's
    installed archive is missing or newer.

    Args:
        ctx: Build context
        pkg: Unit to check

    Returns:
        True if the unit must be rebuilt
    """
    if ctx.force or pkg.scope is Scope.TEST or pkg.command:
        return True

    installed = _mtime(pkgfile(ctx, pkg))
    if installed is None:
        return True

    for name in pkg.sources + pkg.asm_files:
        src = _mtime(pkg.dir / name)
        if src is None or src > installed:
            return True

    for path in pkg.imports:
        if path in ctx.stdlib:
            continue
        dep = _mtime(ctx.pkgdir / (path + ".a"))
        if dep is None or dep > installed:
            return True

    return False


def dependency_archives(ctx: "BuildContext", pkg: Package) -> list[Path]:
    """Installed archives of every non-stdlib unit pkg imports, transitively.

    Importers come before the units they import, so the list can be handed
    to a single-pass static linker. Commands are never installed and are left
    out.
    """
    order: list[Package] = []
    seen: set[str] = set()

    def visit(import_path: str) -> None:
        if import_path in seen or import_path in ctx.stdlib:
            return
        seen.add(import_path)
        dep = ctx.resolve(import_path)
        for sub in dep.imports:
            visit(sub)
        if not dep.command:
            order.append(dep)

    for path in pkg.imports:
        visit(path)
    return [pkgfile(ctx, dep) for dep in reversed(order)]


def cached_package(ctx: "BuildContext", pkg: Package) -> Target:
    """Return a resolved target for a unit whose installed archive is valid."""
    path = pkgfile(ctx, pkg)
    logger.debug(f"cached {pkg} [{path}]")
    return DoneTarget(path)


class InstallTarget(TaskTarget):
    """Copies a built archive to the unit's install location."""

    def __init__(self, ctx: "BuildContext", pkg: Package, target: Target) -> None:
        self.ctx = ctx
        self.pkg = pkg
        self.target = target
        super().__init__(self._install, target, callback=ctx.callback)

    def __str__(self) -> str:
        return f"install {self.pkg}"

    @property
    def pkgfile(self) -> Path:
        return pkgfile(self.ctx, self.pkg)

    def _install(self) -> Path:
        src = self.target.result().artifact
        if src is None:
            raise BuildError(f"{self}: upstream produced no artifact")
        dst = self.pkgfile
        logger.info(f"install {self.pkg} [{dst}]")
        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(src, dst)
        except OSError as e:
            raise BuildError(f"{self}: {e}") from e
        return dst


def install(ctx: "BuildContext", pkg: Package, target: Target) -> Target:
    """Install a unit's final artifact.

    Test-scope units and commands are not installed; their target is
    returned unchanged.
    """
    if pkg.scope is Scope.TEST or pkg.command:
        return target
    return InstallTarget(ctx, pkg, target)
