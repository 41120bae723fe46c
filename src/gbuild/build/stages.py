"""Build stage targets.

Each stage wraps exactly one toolchain call in a TaskTarget:

    CompileTarget  primary sources + dependency targets -> objdir/<name>.a
    AsmTarget      one assembly file                    -> workdir/<path>/<stem>.o
    PackTarget     compile + assembly objects           -> objdir/<name>.a
    LinkTarget     final archive + imported archives    -> objdir/<name>[.test]

Output paths are deterministic from the unit's import path and scope, so
they are available before the stage has run.
"""

import logging
import posixpath
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Sequence

from .cache import dependency_archives
from .errors import BuildError
from .package import Package, Scope
from .target import Target, TaskTarget

if TYPE_CHECKING:
    from .build_context import BuildContext

logger = logging.getLogger(__name__)


def objdir(ctx: "BuildContext", pkg: Package) -> Path:
    """Destination for object files compiled for this unit."""
    parent = posixpath.dirname(pkg.import_path)
    if pkg.scope is Scope.TEST:
        return testobjdir(ctx, pkg).joinpath(*PurePosixPath(parent).parts)
    return ctx.workdir.joinpath(*PurePosixPath(parent).parts)


def testobjdir(ctx: "BuildContext", pkg: Package) -> Path:
    """Root of the object tree for a test-scope unit."""
    return ctx.workdir.joinpath(*PurePosixPath(pkg.import_path).parts, "_test")


def stripext(path: str) -> str:
    """Remove the final extension from path."""
    return posixpath.splitext(path)[0]


def _includes(ctx: "BuildContext", pkg: Package) -> list[Path]:
    includes = ctx.include_paths()
    if pkg.scope is Scope.TEST and pkg.extra_includes is not None:
        includes.append(pkg.extra_includes)
    return includes


class CompileTarget(TaskTarget):
    """Compiles a unit's primary sources once its dependencies are built."""

    def __init__(self, ctx: "BuildContext", pkg: Package, files: Sequence[str], *deps: Target) -> None:
        self.ctx = ctx
        self.pkg = pkg
        self.files = tuple(files)
        super().__init__(self._compile, *deps, callback=ctx.callback)

    def __str__(self) -> str:
        return f"compile {self.pkg}"

    @property
    def objfile(self) -> Path:
        return objdir(self.ctx, self.pkg) / f"{self.pkg.name}.a"

    def _compile(self) -> Path:
        logger.info(f"compile {self.pkg.import_path} {list(self.files)}")
        self.ctx.toolchain.compile(
            _includes(self.ctx, self.pkg),
            self.pkg.import_path,
            self.pkg.dir,
            self.objfile,
            self.files,
            self.pkg.complete,
        )
        return self.objfile


class AsmTarget(TaskTarget):
    """Assembles one assembly file, independently of its sibling files."""

    def __init__(self, ctx: "BuildContext", pkg: Package, sfile: str, *deps: Target) -> None:
        self.ctx = ctx
        self.pkg = pkg
        self.sfile = sfile
        super().__init__(self._asm, *deps, callback=ctx.callback)

    def __str__(self) -> str:
        return f"asm {self.pkg}/{self.sfile}"

    @property
    def objfile(self) -> Path:
        return self.ctx.workdir.joinpath(*PurePosixPath(self.pkg.import_path).parts, stripext(self.sfile) + ".o")

    def _asm(self) -> Path:
        logger.info(f"asm {self.sfile}")
        self.ctx.toolchain.assemble(self.pkg.dir, self.objfile, self.pkg.dir / self.sfile)
        return self.objfile


class PackTarget(TaskTarget):
    """Packs object files into the unit's archive.

    The inputs are awaited in order and the first failure is reported; the
    archiver never runs on a partial set of objects.
    """

    def __init__(self, ctx: "BuildContext", pkg: Package, *objs: Target) -> None:
        self.ctx = ctx
        self.pkg = pkg
        self.objs = objs
        super().__init__(self._pack, *objs, callback=ctx.callback)

    def __str__(self) -> str:
        return f"pack {self.pkg}"

    @property
    def objfile(self) -> Path:
        return objdir(self.ctx, self.pkg) / f"{self.pkg.name}.a"

    def _pack(self) -> Path:
        logger.debug(f"pack {self.pkg}")
        afile = self.objfile
        members: list[Path] = []
        for obj in self.objs:
            path = obj.result().artifact
            if path is None:
                raise BuildError(f"{self}: {obj} produced no object file")
            # compiled sources are written straight into the archive
            if path != afile:
                members.append(path)
        self.ctx.toolchain.archive(afile, members)
        return afile


class LinkTarget(TaskTarget):
    """Links a unit's final archive and its imported archives into an executable."""

    def __init__(self, ctx: "BuildContext", pkg: Package, afile: Target) -> None:
        self.ctx = ctx
        self.pkg = pkg
        self.afile = afile
        super().__init__(self._link, afile, callback=ctx.callback)

    def __str__(self) -> str:
        return f"link {self.pkg}"

    @property
    def binfile(self) -> Path:
        target = objdir(self.ctx, self.pkg) / self.pkg.name
        if self.pkg.scope is Scope.TEST:
            target = target.with_name(target.name + ".test")
        return target

    def _link(self) -> Path:
        archive = self.afile.result().artifact
        if archive is None:
            raise BuildError(f"{self}: {self.afile} produced no archive")
        target = self.binfile
        libs = dependency_archives(self.ctx, self.pkg)
        logger.info(f"link {target} [{archive}]")
        self.ctx.toolchain.link(_includes(self.ctx, self.pkg), target, archive, libs)
        return target
