"""Shared test fixtures for fnpack tests."""

import json
import sys
import textwrap
from pathlib import Path

import pytest

# Add src to path so tests can import fnpack
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fnpack.dependencies.manifest import clear_manifest_cache  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path_factory, monkeypatch):
    """Fresh manifest cache and no host-level module folders for every test."""
    clear_manifest_cache()
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("NODE_PATH", raising=False)
    monkeypatch.delenv("NODE_PREFIX", raising=False)
    monkeypatch.delenv("FNPACK_FEATURE_FLAGS", raising=False)
    yield
    clear_manifest_cache()


def write_js(path: Path, source: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(source))
    return path


def write_package(directory: Path, name: str, **fields) -> Path:
    """Write ``directory/package.json`` with ``name`` and any extra fields."""
    directory.mkdir(parents=True, exist_ok=True)
    manifest = directory / "package.json"
    manifest.write_text(json.dumps({"name": name, "version": "1.0.0", **fields}))
    return manifest


@pytest.fixture
def project(tmp_path):
    """A project with one function, a local helper and an installed dependency.

    Layout::

        package.json            (depends on left-pad)
        functions/hello/hello.js -> ./helper, left-pad
        functions/hello/helper.js
        node_modules/left-pad/{package.json,index.js,README.md}
    """
    root = tmp_path / "project"
    write_package(root, "project", dependencies={"left-pad": "^1.0.0"})
    write_js(
        root / "functions" / "hello" / "hello.js",
        """\
        const helper = require('./helper');
        const leftPad = require('left-pad');
        exports.handler = async () => leftPad(helper(), 5);
        """,
    )
    write_js(root / "functions" / "hello" / "helper.js", "module.exports = () => 'hi';\n")
    left_pad = root / "node_modules" / "left-pad"
    write_package(left_pad, "left-pad", main="index.js")
    write_js(left_pad / "index.js", "module.exports = (s, n) => s.padStart(n);\n")
    (left_pad / "README.md").write_text("# left-pad\n")
    return root
