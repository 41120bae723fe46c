"""Toolchain interface consumed by the build stages."""

from pathlib import Path
from typing import Protocol, Sequence, runtime_checkable


@runtime_checkable
class IToolchain(Protocol):
    """The four external tool invocations behind the build stages.

    Each method returns None on success and raises ToolchainError on failure.
    Implementations are called concurrently from stage threads.
    """

    def compile(
        self,
        includes: Sequence[Path],
        import_path: str,
        source_dir: Path,
        output: Path,
        files: Sequence[str],
        complete: bool,
    ) -> None:
        """Compile the unit's primary sources into the archive output."""
        ...

    def assemble(self, source_dir: Path, output: Path, source: Path) -> None:
        """Assemble one assembly source file into output."""
        ...

    def archive(self, archive: Path, objects: Sequence[Path]) -> None:
        """Add objects to archive, creating it if it does not exist."""
        ...

    def link(self, includes: Sequence[Path], output: Path, archive: Path, libs: Sequence[Path]) -> None:
        """Link archive into the executable output.

        libs are the installed archives of the unit's transitive imports,
        importers before the units they import.
        """
        ...
