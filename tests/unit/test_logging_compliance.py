"""Unit tests for logging compliance across the codebase.

Production code reports through logging or the stage callback; only the
CLI writes to the terminal directly.
"""

import re
from pathlib import Path

import pytest

SRC_DIR = Path(__file__).parent.parent.parent / "src" / "gbuild"


def _source_files() -> list[Path]:
    return [p for p in SRC_DIR.rglob("*.py") if "__pycache__" not in p.parts]


class TestLoggingCompliance:
    def test_no_print_statements_outside_cli(self):
        """Verify no print() calls exist in non-CLI code."""
        python_files = _source_files()
        assert python_files, f"No Python files found in {SRC_DIR}"

        violations = []
        for file_path in python_files:
            if file_path.name in ("cli.py", "__main__.py"):
                continue
            for line_num, line in enumerate(file_path.read_text(encoding="utf-8").split("\n"), start=1):
                stripped = line.strip()
                if stripped.startswith("#"):
                    continue
                if re.search(r"(?<![\w.])print\s*\(", stripped):
                    violations.append(f"{file_path}:{line_num}: {stripped}")

        if violations:
            pytest.fail(f"Found {len(violations)} print() statements in production code:\n" + "\n".join(violations) + "\n\nUse logging or the build callback instead.")

    @pytest.mark.parametrize(
        "relative",
        [
            "build/target.py",
            "build/registry.py",
            "build/orchestrator.py",
            "toolchain/command.py",
            "resolve.py",
        ],
    )
    def test_modules_use_logging(self, relative):
        content = (SRC_DIR / relative).read_text(encoding="utf-8")
        assert "import logging" in content
        assert re.search(r"\blog(ger|ging)\.debug\(", content)
