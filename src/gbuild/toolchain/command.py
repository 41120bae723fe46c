"""Command-template toolchain.

Runs the compiler, assembler, archiver and linker as external processes,
building each argv from a configurable template. Templates are split with
shlex, then placeholders are substituted per token:

    scalar:  {output} {import_path} {source_dir} {source} {archive}
    list:    {files} {objects} {includes} {complete} {libs}

A token that is exactly a list placeholder expands to zero or more argv
entries ({includes} expands to "-I<path>" entries, {complete} to the
configured complete flag when the unit is complete, {libs} to the installed
archives of the imported units).

The compile template runs in one of two modes:

- Per source (no {files}): runs once for each primary source with {source}
  and an object file as {output}. The objects are then packed into the
  unit's archive with the archive template.
- Whole unit ({files} present): runs once and must itself write an archive
  to {output}.

Either way the compile output is an archive that the pack stage can append
assembly objects to.

Example:
    compile = cc -c {includes} {source} -o {output}
    archive = ar rcs {archive} {objects}
    link = cc -o {output} {archive} {libs}
"""

import logging
import posixpath
import shlex
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Sequence

from ..build.errors import ToolchainError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolchainCommands:
    """Command templates for each tool.

    Attributes:
        compile: Template compiling primary sources (per source, or the whole unit with {files})
        assemble: Template assembling one assembly file
        archive: Template adding objects to an archive
        link: Template linking an archive and its imported archives into an executable
        complete_flag: Argument substituted for {complete} on complete units
    """

    compile: str = "cc -c {includes} {source} -o {output}"
    assemble: str = "as -o {output} {source}"
    archive: str = "ar rcs {archive} {objects}"
    link: str = "cc -o {output} {archive} {libs}"
    complete_flag: str = ""

    @property
    def compiles_whole_unit(self) -> bool:
        """True if the compile template takes every source at once."""
        return "{files}" in self.compile.split()


def expand_template(template: str, scalars: dict[str, str], lists: dict[str, list[str]]) -> list[str]:
    """Expand a command template into an argv list.

    Args:
        template: Command template
        scalars: Values for scalar placeholders
        lists: Values for list placeholders

    Returns:
        Expanded argv

    Raises:
        ValueError: If the template is empty or uses an unknown placeholder.
    """
    tokens = shlex.split(template)
    if not tokens:
        raise ValueError("empty command template")

    argv: list[str] = []
    for token in tokens:
        if token.startswith("{") and token.endswith("}") and token[1:-1] in lists:
            argv.extend(lists[token[1:-1]])
            continue
        try:
            argv.append(token.format(**scalars))
        except (KeyError, IndexError) as e:
            raise ValueError(f"unknown placeholder in {token!r}") from e
    return argv


def object_dir(output: Path) -> Path:
    """Scratch directory for per-source objects of the archive at output."""
    return output.with_name(output.name + ".objs")


def _creation_flags() -> int:
    """CREATE_NO_WINDOW on Windows so tools do not flash a console, else 0."""
    if sys.platform == "win32":
        return subprocess.CREATE_NO_WINDOW
    return 0


class CommandToolchain:
    """IToolchain implementation running external commands.

    Args:
        commands: Command templates for each tool.
    """

    def __init__(self, commands: ToolchainCommands | None = None) -> None:
        self.commands = commands if commands is not None else ToolchainCommands()

    def compile(
        self,
        includes: Sequence[Path],
        import_path: str,
        source_dir: Path,
        output: Path,
        files: Sequence[str],
        complete: bool,
    ) -> None:
        stage = f"compile {import_path}"
        scalars = {"import_path": import_path, "source_dir": str(source_dir)}
        lists = {
            "files": list(files),
            "includes": [f"-I{p}" for p in includes],
            "complete": [self.commands.complete_flag] if complete and self.commands.complete_flag else [],
        }

        if self.commands.compiles_whole_unit:
            argv = self._expand(stage, self.commands.compile, {**scalars, "output": str(output)}, lists)
            self._run(stage, argv, output, cwd=source_dir)
            return

        objects: list[Path] = []
        for name in files:
            obj = object_dir(output).joinpath(*PurePosixPath(posixpath.splitext(name)[0] + ".o").parts)
            argv = self._expand(stage, self.commands.compile, {**scalars, "output": str(obj), "source": name}, lists)
            self._run(stage, argv, obj, cwd=source_dir)
            objects.append(obj)

        # the archiver appends, so a previous build's archive must not survive
        output.unlink(missing_ok=True)
        self._archive(stage, output, objects)

    def assemble(self, source_dir: Path, output: Path, source: Path) -> None:
        argv = self._expand(
            f"asm {source.name}",
            self.commands.assemble,
            scalars={"output": str(output), "source": str(source), "source_dir": str(source_dir)},
            lists={},
        )
        self._run(f"asm {source.name}", argv, output, cwd=source_dir)

    def archive(self, archive: Path, objects: Sequence[Path]) -> None:
        self._archive(f"pack {archive.name}", archive, objects)

    def link(self, includes: Sequence[Path], output: Path, archive: Path, libs: Sequence[Path]) -> None:
        argv = self._expand(
            f"link {output.name}",
            self.commands.link,
            scalars={"output": str(output), "archive": str(archive)},
            lists={"includes": [f"-I{p}" for p in includes], "libs": [str(p) for p in libs]},
        )
        self._run(f"link {output.name}", argv, output)

    def _archive(self, stage: str, archive: Path, objects: Sequence[Path]) -> None:
        argv = self._expand(
            stage,
            self.commands.archive,
            scalars={"archive": str(archive), "output": str(archive)},
            lists={"objects": [str(o) for o in objects]},
        )
        self._run(stage, argv, archive)

    @staticmethod
    def _expand(stage: str, template: str, scalars: dict[str, str], lists: dict[str, list[str]]) -> list[str]:
        try:
            return expand_template(template, scalars, lists)
        except ValueError as e:
            raise ToolchainError(stage, f"bad command template: {e}") from e

    @staticmethod
    def _run(stage: str, argv: list[str], output: Path, cwd: Path | None = None) -> None:
        """Run one tool, raising ToolchainError on failure.

        The output directory is created first. stdin is redirected to DEVNULL
        so child processes cannot read from the parent terminal.
        """
        output.parent.mkdir(parents=True, exist_ok=True)
        logger.debug(f"{stage}: {' '.join(argv)}")

        kwargs = {}
        flags = _creation_flags()
        if flags:
            kwargs["creationflags"] = flags

        try:
            result = subprocess.run(
                argv,
                cwd=str(cwd) if cwd is not None else None,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                **kwargs,
            )
        except OSError as e:
            raise ToolchainError(stage, f"cannot run {argv[0]}: {e}") from e

        if result.returncode != 0:
            stderr_preview = result.stderr[:200].replace("\n", " ")
            logger.debug(f"{stage} stderr preview: {stderr_preview}")
            raise ToolchainError(
                stage,
                f"{argv[0]} exited with status {result.returncode}",
                returncode=result.returncode,
                stderr=result.stderr,
            )
