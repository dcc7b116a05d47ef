"""Tests for the fnpack command-line interface."""

import json

from conftest import write_js
from fnpack.cli import build_config, build_parser, main


class TestBuildConfig:
    def test_defaults(self):
        config = build_config(build_parser().parse_args(["src", "dest"]))
        assert config.search_roots == []
        assert config.feature_flags == {}
        assert config.tree_shake_entries == ("renderNextPage",)
        assert config.max_workers is None

    def test_options(self):
        args = build_parser().parse_args(
            [
                "src", "dest",
                "--search-root", "/plugins",
                "--flag", "build_python_source",
                "--tree-shake",
                "--tree-shake-entry", "ssr",
                "--workers", "3",
            ]
        )
        config = build_config(args)
        assert config.search_roots == ["/plugins"]
        assert config.feature_flags == {"build_python_source": True, "tree_shake": True}
        assert config.tree_shake_entries == ("ssr",)
        assert config.max_workers == 3

    def test_command_line_overrides_environment(self, monkeypatch):
        monkeypatch.setenv("FNPACK_FEATURE_FLAGS", "tree_shake,build_python_source")
        config = build_config(build_parser().parse_args(["src", "dest", "--flag", "!tree_shake"]))
        assert config.feature_flags == {"tree_shake": False, "build_python_source": True}


class TestMain:
    def test_success(self, project, tmp_path, capsys):
        out = tmp_path / "out"
        assert main([str(project / "functions"), str(out)]) == 0
        stdout = capsys.readouterr().out
        assert "hello  js" in stdout
        assert (out / "hello.zip").is_file()

    def test_json_output(self, project, tmp_path, capsys):
        assert main([str(project / "functions"), str(tmp_path / "out"), "--json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data == [
            {
                "name": "hello",
                "path": str(tmp_path / "out" / "hello.zip"),
                "runtime": "js",
                "error": None,
            }
        ]

    def test_failure_exit_code(self, project, tmp_path, capsys):
        write_js(project / "functions" / "broken" / "broken.js", "require('nope');\n")
        assert main([str(project / "functions"), str(tmp_path / "out")]) == 1
        stdout = capsys.readouterr().out
        assert "broken  ERROR" in stdout
        assert "hello  js" in stdout

    def test_source_missing(self, tmp_path, capsys):
        assert main([str(tmp_path / "missing"), str(tmp_path / "out")]) == 1
        assert "not a directory" in capsys.readouterr().err

    def test_invalid_workers(self, project, tmp_path, capsys):
        assert main([str(project / "functions"), str(tmp_path / "out"), "--workers", "0"]) == 1
        assert "--workers" in capsys.readouterr().err

    def test_no_functions(self, tmp_path, capsys):
        (tmp_path / "src").mkdir()
        assert main([str(tmp_path / "src"), str(tmp_path / "out")]) == 0
        assert "No functions found" in capsys.readouterr().out
