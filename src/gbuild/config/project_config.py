"""gbuild.ini parser.

Example project file:

    [build]
    workdir = .gbuild/work
    pkgdir = .gbuild/pkg
    stdlib = libc libm
    force = false

    [toolchain]
    compile = cc -c {includes} {source} -o {output}
    archive = ar rcs {archive} {objects}

    [package:example.com/app]
    dir = app
    sources = main.c
    imports = example.com/lib libc
    command = true

Relative directories are resolved against the directory holding the file.
"""

import configparser
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..toolchain.command import ToolchainCommands

PACKAGE_PREFIX = "package:"

_TOOLCHAIN_KEYS = ("compile", "assemble", "archive", "link", "complete_flag")


class ConfigError(Exception):
    """Raised when the project file is missing or invalid."""

    pass


@dataclass(frozen=True)
class PackageSpec:
    """One [package:<import_path>] section, before resolution.

    Attributes:
        import_path: Unit import path
        dir: Absolute source directory
        sources: Primary source files
        asm_files: Assembly source files
        imports: Imported unit paths
        command: True if the unit links into an executable
        complete: Explicit complete flag, None to derive it
        extra_includes: Extra include path for test builds
    """

    import_path: str
    dir: Path
    sources: tuple[str, ...]
    asm_files: tuple[str, ...]
    imports: tuple[str, ...]
    command: bool
    complete: bool | None
    extra_includes: Path | None


class ProjectConfig:
    """Parsed gbuild.ini project file.

    Args:
        ini_path: Path to gbuild.ini

    Raises:
        ConfigError: If the file does not exist or cannot be parsed.
    """

    def __init__(self, ini_path: Path) -> None:
        self.ini_path = Path(ini_path)
        if not self.ini_path.exists():
            raise ConfigError(f"gbuild.ini not found: {self.ini_path}")

        self.root = self.ini_path.parent.resolve()
        self._parser = configparser.ConfigParser(interpolation=None)
        try:
            self._parser.read(self.ini_path, encoding="utf-8")
        except configparser.Error as e:
            raise ConfigError(f"Failed to parse {self.ini_path}: {e}") from e

        self._packages: dict[str, PackageSpec] = {}
        for section in self._parser.sections():
            if section.startswith(PACKAGE_PREFIX):
                spec = self._parse_package(section)
                self._packages[spec.import_path] = spec

    @property
    def workdir(self) -> Path:
        return self._path("build", "workdir", ".gbuild/work")

    @property
    def pkgdir(self) -> Path:
        return self._path("build", "pkgdir", ".gbuild/pkg")

    @property
    def stdlib(self) -> frozenset[str]:
        return frozenset(self._list("build", "stdlib"))

    @property
    def force(self) -> bool:
        return self._bool("build", "force", False)

    def toolchain_commands(self) -> ToolchainCommands:
        """Build toolchain command templates, falling back to the defaults."""
        if not self._parser.has_section("toolchain"):
            return ToolchainCommands()
        unknown = set(self._parser["toolchain"]) - set(_TOOLCHAIN_KEYS)
        if unknown:
            raise ConfigError(f"Unknown [toolchain] keys: {', '.join(sorted(unknown))}")
        overrides: dict[str, Any] = dict(self._parser["toolchain"])
        return ToolchainCommands(**overrides)

    def packages(self) -> dict[str, PackageSpec]:
        """Return all package sections keyed by import path."""
        return dict(self._packages)

    def get_package(self, import_path: str) -> PackageSpec | None:
        """Get a package section by import path."""
        return self._packages.get(import_path)

    def commands(self) -> list[str]:
        """Import paths of all command units, in file order."""
        return [p.import_path for p in self._packages.values() if p.command]

    def _parse_package(self, section: str) -> PackageSpec:
        import_path = section[len(PACKAGE_PREFIX) :].strip()
        if not import_path:
            raise ConfigError(f"Empty import path in section [{section}]")
        complete = None
        if self._parser.has_option(section, "complete"):
            complete = self._bool(section, "complete", True)
        extra = self._parser.get(section, "extra_includes", fallback="").strip()
        return PackageSpec(
            import_path=import_path,
            dir=self._path(section, "dir", import_path),
            sources=tuple(self._list(section, "sources")),
            asm_files=tuple(self._list(section, "asm")),
            imports=tuple(self._list(section, "imports")),
            command=self._bool(section, "command", False),
            complete=complete,
            extra_includes=(self.root / extra).resolve() if extra else None,
        )

    def _path(self, section: str, option: str, default: str) -> Path:
        value = self._parser.get(section, option, fallback=default).strip() or default
        return (self.root / value).resolve()

    def _list(self, section: str, option: str) -> list[str]:
        return self._parser.get(section, option, fallback="").split()

    def _bool(self, section: str, option: str, default: bool) -> bool:
        try:
            return self._parser.getboolean(section, option, fallback=default)
        except ValueError as e:
            raise ConfigError(f"[{section}] {option}: {e}") from e
