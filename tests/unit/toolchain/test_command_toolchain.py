"""Unit tests for the command-template toolchain.

subprocess.run is mocked; tests check the argv each stage produces and how
process failures map to ToolchainError.
"""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from gbuild.build.errors import ToolchainError
from gbuild.toolchain import CommandToolchain, IToolchain, ToolchainCommands, expand_template
from gbuild.toolchain.command import object_dir


# ─── Helpers ─────────────────────────────────────────────────────────────────


def _completed(returncode: int = 0, stderr: str = "") -> MagicMock:
    result = MagicMock()
    result.returncode = returncode
    result.stdout = ""
    result.stderr = stderr
    return result


@pytest.fixture
def mock_run():
    with patch("gbuild.toolchain.command.subprocess.run", return_value=_completed()) as run:
        yield run


# ─── expand_template ─────────────────────────────────────────────────────────


class TestExpandTemplate:
    def test_scalars_and_lists(self):
        argv = expand_template(
            "cc -c {includes} {files} -o {output}",
            {"output": "/w/lib.a"},
            {"includes": ["-I/w", "-I/p"], "files": ["a.c", "b.c"]},
        )
        assert argv == ["cc", "-c", "-I/w", "-I/p", "a.c", "b.c", "-o", "/w/lib.a"]

    def test_empty_list_placeholder_drops_token(self):
        argv = expand_template("tool {complete} {output}", {"output": "o"}, {"complete": []})
        assert argv == ["tool", "o"]

    def test_scalar_inside_token(self):
        argv = expand_template("tool --out={output}", {"output": "x.o"}, {})
        assert argv == ["tool", "--out=x.o"]

    def test_quoted_template_keeps_spaces(self):
        argv = expand_template("'my tool' {output}", {"output": "o"}, {})
        assert argv == ["my tool", "o"]

    def test_unknown_placeholder(self):
        with pytest.raises(ValueError, match="unknown placeholder"):
            expand_template("cc {nope}", {}, {})

    def test_empty_template(self):
        with pytest.raises(ValueError, match="empty"):
            expand_template("   ", {}, {})


# ─── CommandToolchain ────────────────────────────────────────────────────────


class TestCommandToolchain:
    def test_implements_protocol(self):
        assert isinstance(CommandToolchain(), IToolchain)

    def test_compile_argv(self, mock_run, tmp_path):
        tc = CommandToolchain(ToolchainCommands(compile="gc -p {import_path} {complete} {includes} -o {output} {files}", complete_flag="-complete"))
        output = tmp_path / "work" / "lib.a"

        tc.compile([Path("/w"), Path("/p")], "example.com/lib", tmp_path, output, ["a.src"], True)

        argv = mock_run.call_args.args[0]
        assert argv == ["gc", "-p", "example.com/lib", "-complete", "-I/w", "-I/p", "-o", str(output), "a.src"]
        assert mock_run.call_args.kwargs["cwd"] == str(tmp_path)
        assert mock_run.call_args.kwargs["stdin"] == subprocess.DEVNULL
        assert output.parent.is_dir()

    def test_incomplete_unit_omits_complete_flag(self, mock_run, tmp_path):
        tc = CommandToolchain(ToolchainCommands(compile="gc {complete} {files}", complete_flag="-complete"))
        tc.compile([], "lib", tmp_path, tmp_path / "lib.a", ["a.src"], False)
        assert mock_run.call_args.args[0] == ["gc", "a.src"]

    def test_per_source_compile_packs_objects(self, mock_run, tmp_path):
        """The default compile template builds one object per source, then archives them."""
        output = tmp_path / "work" / "lib.a"
        output.parent.mkdir(parents=True)
        output.write_text("archive from a previous build")
        objs = object_dir(output)

        CommandToolchain().compile([Path("/w")], "lib", tmp_path, output, ["a.c", "sub/b.c"], True)

        argvs = [c.args[0] for c in mock_run.call_args_list]
        assert argvs == [
            ["cc", "-c", "-I/w", "a.c", "-o", str(objs / "a.o")],
            ["cc", "-c", "-I/w", "sub/b.c", "-o", str(objs / "sub" / "b.o")],
            ["ar", "rcs", str(output), str(objs / "a.o"), str(objs / "sub" / "b.o")],
        ]
        assert [c.kwargs["cwd"] for c in mock_run.call_args_list[:2]] == [str(tmp_path)] * 2
        assert not output.exists()

    def test_per_source_compile_stops_at_first_failure(self, tmp_path):
        with patch("gbuild.toolchain.command.subprocess.run", return_value=_completed(1, "a.c: error")) as run:
            with pytest.raises(ToolchainError) as exc_info:
                CommandToolchain().compile([], "lib", tmp_path, tmp_path / "lib.a", ["a.c", "b.c"], True)
        assert exc_info.value.stage == "compile lib"
        assert run.call_count == 1

    def test_whole_unit_mode_detection(self):
        assert not ToolchainCommands().compiles_whole_unit
        assert ToolchainCommands(compile="gc -o {output} {files}").compiles_whole_unit

    def test_assemble_archive_link_argv(self, mock_run, tmp_path):
        tc = CommandToolchain()
        obj = tmp_path / "lib" / "fast.o"
        afile = tmp_path / "lib.a"
        binary = tmp_path / "app"

        tc.assemble(tmp_path, obj, tmp_path / "fast.s")
        tc.archive(afile, [obj])
        tc.link([tmp_path], binary, afile, [tmp_path / "pkg" / "dep.a"])

        argvs = [c.args[0] for c in mock_run.call_args_list]
        assert argvs == [
            ["as", "-o", str(obj), str(tmp_path / "fast.s")],
            ["ar", "rcs", str(afile), str(obj)],
            ["cc", "-o", str(binary), str(afile), str(tmp_path / "pkg" / "dep.a")],
        ]

    def test_nonzero_exit_raises_toolchain_error(self, tmp_path):
        with patch("gbuild.toolchain.command.subprocess.run", return_value=_completed(1, "lib.c:3: error")):
            with pytest.raises(ToolchainError) as exc_info:
                CommandToolchain().link([], tmp_path / "app", tmp_path / "app.a", [])

        err = exc_info.value
        assert err.stage == "link app"
        assert err.returncode == 1
        assert "cc exited with status 1" in str(err)
        assert "lib.c:3: error" in err.format()

    def test_missing_tool_raises_toolchain_error(self, tmp_path):
        with patch("gbuild.toolchain.command.subprocess.run", side_effect=FileNotFoundError("no such file")):
            with pytest.raises(ToolchainError, match="cannot run ar"):
                CommandToolchain().archive(tmp_path / "lib.a", [])

    def test_bad_template_raises_toolchain_error(self, mock_run, tmp_path):
        tc = CommandToolchain(ToolchainCommands(assemble="as {bogus}"))
        with pytest.raises(ToolchainError, match="bad command template"):
            tc.assemble(tmp_path, tmp_path / "x.o", tmp_path / "x.s")
        mock_run.assert_not_called()
