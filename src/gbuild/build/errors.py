"""Build error hierarchy.

Every failure a build target can resolve to is a BuildError:
- MetadataError: the unit itself could not be resolved (missing package,
  malformed source set, import cycle). No stage work is attempted.
- UpstreamError: a dependency failed, so this stage never ran.
- ToolchainError: the compiler, assembler, archiver or linker call failed.
"""


class BuildError(Exception):
    """Base class for all build failures."""

    pass


class MetadataError(BuildError):
    """Raised when a unit's own metadata is invalid."""

    def __init__(self, import_path: str, message: str) -> None:
        super().__init__(f"{import_path}: {message}")
        self.import_path = import_path


class ImportCycleError(MetadataError):
    """Raised when a unit is requested again while it is still being constructed."""

    def __init__(self, key: tuple[str, str]) -> None:
        scope, import_path = key
        super().__init__(import_path, f"import cycle detected ({scope} scope)")
        self.key = key


class UpstreamError(BuildError):
    """A stage was skipped because one of its dependencies failed.

    Attributes:
        stage: Description of the skipped stage (e.g. "link example.com/app").
        cause: The failure of the first failing dependency, in input order.
    """

    def __init__(self, stage: str, cause: BuildError) -> None:
        self.stage = stage
        self.cause = cause
        super().__init__(f"{stage}: dependency failed: {self.root}")

    @property
    def root(self) -> BuildError:
        """The original failure at the bottom of the upstream chain."""
        err: BuildError = self.cause
        while isinstance(err, UpstreamError):
            err = err.cause
        return err


class ToolchainError(BuildError):
    """An external toolchain invocation failed.

    Attributes:
        stage: Description of the failing stage.
        returncode: Process exit code, or None if the process never ran.
        stderr: Captured standard error of the process.
    """

    def __init__(self, stage: str, message: str, returncode: int | None = None, stderr: str = "") -> None:
        super().__init__(f"{stage}: {message}")
        self.stage = stage
        self.returncode = returncode
        self.stderr = stderr

    def format(self) -> str:
        """Format the error with a truncated stderr preview.

        Returns:
            Human-readable multi-line error description
        """
        lines = [str(self)]
        if self.stderr:
            stderr_preview = self.stderr[:500]
            if len(self.stderr) > 500:
                stderr_preview += "... (truncated)"
            lines.append(f"  stderr: {stderr_preview}")
        return "\n".join(lines)
