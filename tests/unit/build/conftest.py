"""Shared fixtures for build core tests."""

import threading
from pathlib import Path
from typing import Callable, Sequence

import pytest

from gbuild.build import BuildContext, Package, ToolchainError
from gbuild.build.callbacks import StagePhase
from gbuild.resolve import StaticResolver


class RecordingToolchain:
    """Thread-safe fake toolchain that records every call and writes output files.

    Args:
        fail: Stage keys that should fail, e.g. {("compile", "example.com/b")}.
              Assembler keys use the source file name, archiver and linker keys
              the output file name.
    """

    def __init__(self, fail: set[tuple[str, str]] | None = None) -> None:
        self.fail = fail or set()
        self.calls: list[tuple] = []
        self._lock = threading.Lock()

    def compile(self, includes: Sequence[Path], import_path: str, source_dir: Path, output: Path, files: Sequence[str], complete: bool) -> None:
        self._record(("compile", import_path, tuple(includes), source_dir, output, tuple(files), complete))
        self._check("compile", import_path)
        self._touch(output)

    def assemble(self, source_dir: Path, output: Path, source: Path) -> None:
        self._record(("asm", source.name, source_dir, output, source))
        self._check("asm", source.name)
        self._touch(output)

    def archive(self, archive: Path, objects: Sequence[Path]) -> None:
        self._record(("archive", archive.name, archive, tuple(objects)))
        self._check("archive", archive.name)
        self._touch(archive)

    def link(self, includes: Sequence[Path], output: Path, archive: Path, libs: Sequence[Path]) -> None:
        self._record(("link", output.name, tuple(includes), output, archive, tuple(libs)))
        self._check("link", output.name)
        self._touch(output)

    def calls_for(self, stage: str) -> list[tuple]:
        with self._lock:
            return [c for c in self.calls if c[0] == stage]

    def stage_keys(self) -> list[tuple[str, str]]:
        with self._lock:
            return [(c[0], c[1]) for c in self.calls]

    def _record(self, call: tuple) -> None:
        with self._lock:
            self.calls.append(call)

    def _check(self, stage: str, name: str) -> None:
        if (stage, name) in self.fail:
            raise ToolchainError(f"{stage} {name}", "exit status 2", returncode=2, stderr=f"{name}: boom")

    @staticmethod
    def _touch(path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(path.name)


class RecordingCallback:
    """Thread-safe callback that records all stage updates."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, StagePhase, str]] = []
        self._lock = threading.Lock()

    def on_stage(self, name: str, phase: StagePhase, detail: str) -> None:
        with self._lock:
            self.calls.append((name, phase, detail))

    def phases_for(self, name: str) -> list[StagePhase]:
        with self._lock:
            return [c[1] for c in self.calls if c[0] == name]


def make_pkg(import_path: str, sources: Sequence[str] = ("main.src",), **kwargs) -> Package:
    """Create a Package with sensible defaults for testing."""
    kwargs.setdefault("dir", Path("/src") / import_path)
    return Package(import_path=import_path, sources=tuple(sources), **kwargs)


@pytest.fixture
def toolchain() -> RecordingToolchain:
    return RecordingToolchain()


@pytest.fixture
def callback() -> RecordingCallback:
    return RecordingCallback()


@pytest.fixture
def make_ctx(tmp_path: Path, toolchain: RecordingToolchain) -> Callable[..., BuildContext]:
    """Factory for a BuildContext over an in-memory set of packages.

    Every unit is stale unless listed in `fresh`.
    """

    def _make(packages: Sequence[Package], fresh: Sequence[str] = (), **kwargs) -> BuildContext:
        fresh_set = set(fresh)
        kwargs.setdefault("staleness", lambda ctx, pkg: pkg.import_path not in fresh_set)
        kwargs.setdefault("toolchain", toolchain)
        return BuildContext(
            workdir=tmp_path / "work",
            pkgdir=tmp_path / "pkg",
            resolver=StaticResolver({p.import_path: p for p in packages}),
            **kwargs,
        )

    return _make


@pytest.fixture(name="make_pkg")
def make_pkg_fixture() -> Callable[..., Package]:
    return make_pkg
