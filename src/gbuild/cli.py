"""
Command-line interface for gbuild.

This module provides the `gbuild` CLI tool for building the units of a
gbuild.ini project.
"""

import argparse
import logging
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from gbuild import __version__
from gbuild.build import BuildContext, NullCallback, Outcome, ToolchainError, UpstreamError, build
from gbuild.build.callbacks import BuildCallback
from gbuild.build.progress_display import BuildProgressDisplay
from gbuild.config import ConfigError, ProjectConfig


@dataclass
class BuildArgs:
    """Arguments for the build command."""

    project_dir: Path
    packages: list[str] = field(default_factory=list)
    force: bool = False
    verbose: bool = False
    tui: Optional[bool] = None


def _describe_failure(outcome: Outcome) -> str:
    err = outcome.error
    if isinstance(err, UpstreamError):
        err = err.root
    if isinstance(err, ToolchainError):
        return err.format()
    return str(err)


def _build_one(ctx: BuildContext, import_path: str) -> Outcome:
    return build(ctx, ctx.resolve(import_path)).result()


def build_units(ctx: BuildContext, import_paths: list[str]) -> dict[str, Outcome]:
    """Build several top-level units concurrently.

    Each unit is built from its own thread; shared dependencies are built
    once through the context's registry. Repeated import paths are built once.

    Args:
        ctx: Build context
        import_paths: Units to build

    Returns:
        Outcome per import path, in input order
    """
    unique = list(dict.fromkeys(import_paths))
    if not unique:
        return {}
    with ThreadPoolExecutor(max_workers=len(unique), thread_name_prefix="build") as pool:
        futures = {path: pool.submit(_build_one, ctx, path) for path in unique}
        return {path: future.result() for path, future in futures.items()}


def build_command(args: BuildArgs, console: Console) -> int:
    """Build units of a gbuild project.

    Examples:
        gbuild build                         # Build every command unit
        gbuild build example.com/app         # Build one unit
        gbuild build -C path/to/project -f   # Force a full rebuild

    Returns:
        Process exit code
    """
    try:
        config = ProjectConfig(args.project_dir / "gbuild.ini")
    except ConfigError as e:
        console.print(f"[red]✗ {e}[/red]")
        return 1

    import_paths = args.packages or config.commands()
    if not import_paths:
        console.print("[red]✗ Nothing to build: no units given and no command units in gbuild.ini[/red]")
        return 1

    use_tui = args.tui if args.tui is not None else console.is_terminal
    display = BuildProgressDisplay(console, ", ".join(import_paths), verbose=args.verbose) if use_tui else None
    callback: BuildCallback = display if display is not None else NullCallback()

    try:
        ctx = BuildContext.from_config(config, callback=callback, force=args.force)
    except ConfigError as e:
        console.print(f"[red]✗ {e}[/red]")
        return 1

    start_time = time.time()
    if display is not None:
        with display:
            results = build_units(ctx, import_paths)
    else:
        results = build_units(ctx, import_paths)
    build_time = time.time() - start_time

    failed = 0
    for path, outcome in results.items():
        if outcome.ok:
            console.print(f"[green]✓[/green] {path} -> {outcome.artifact}")
        else:
            failed += 1
            console.print(f"[red]✗ {path}[/red]: {_describe_failure(outcome)}")

    if failed:
        console.print(f"[red bold]Build failed[/red bold] ({failed} of {len(results)} units, {build_time:.2f}s)")
        return 1
    console.print(f"[green bold]Build successful[/green bold] ({len(results)} units, {build_time:.2f}s)")
    return 0


def _setup_logging(console: Console, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def main(argv: Optional[list[str]] = None) -> int:
    """gbuild entry point."""
    parser = argparse.ArgumentParser(prog="gbuild", description="Incremental build graph executor")
    parser.add_argument("--version", action="version", version=f"gbuild {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser("build", help="Build units and their dependencies")
    build_parser.add_argument("packages", nargs="*", help="Import paths to build (default: all command units)")
    build_parser.add_argument("-C", "--project-dir", type=Path, default=Path.cwd(), help="Directory containing gbuild.ini")
    build_parser.add_argument("-f", "--force", action="store_true", help="Rebuild every unit")
    build_parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    build_parser.add_argument("--no-tui", dest="tui", action="store_false", default=None, help="Disable the live progress display")

    parsed = parser.parse_args(argv)
    console = Console()
    _setup_logging(console, parsed.verbose)

    args = BuildArgs(
        project_dir=parsed.project_dir,
        packages=parsed.packages,
        force=parsed.force,
        verbose=parsed.verbose,
        tui=parsed.tui,
    )
    try:
        return build_command(args, console)
    except KeyboardInterrupt:
        console.print("\n[yellow]Build interrupted[/yellow]")
        return 130


if __name__ == "__main__":
    sys.exit(main())
