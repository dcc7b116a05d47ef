"""Tests for Node.js module resolution.

Covers: node_modules ancestor lookup, file and directory loading, scoped
packages, symlink preservation and the host search fallback.
"""

import os

import pytest

from conftest import write_js, write_package
from fnpack.dependencies.errors import PackageNotFoundError
from fnpack.dependencies.resolver import (
    host_search_roots,
    node_modules_paths,
    resolve_package,
    resolve_path_preserve_symlinks,
    resolve_with_host_search,
)


class TestNodeModulesPaths:
    def test_ancestors_nearest_first(self):
        paths = node_modules_paths("/a/b")
        assert paths[:3] == ["/a/b/node_modules", "/a/node_modules", "/node_modules"]

    def test_skips_node_modules_dirs(self):
        paths = node_modules_paths("/app/node_modules/pkg")
        assert "/app/node_modules/node_modules" not in paths
        assert paths[:2] == ["/app/node_modules/pkg/node_modules", "/app/node_modules"]


class TestResolvePackage:
    def test_found_in_ancestor(self, project):
        manifest = resolve_package("left-pad", [str(project / "functions" / "hello")])
        assert manifest == str(project / "node_modules" / "left-pad" / "package.json")

    def test_scoped(self, tmp_path):
        write_package(tmp_path / "node_modules" / "@scope" / "pkg", "@scope/pkg")
        manifest = resolve_package("@scope/pkg", [str(tmp_path)])
        assert manifest.endswith(os.path.join("@scope", "pkg", "package.json"))

    def test_nested_copy_wins(self, tmp_path):
        write_package(tmp_path / "node_modules" / "dep", "dep")
        parent = tmp_path / "node_modules" / "parent"
        write_package(parent / "node_modules" / "dep", "dep")
        assert resolve_package("dep", [str(parent)]) == str(
            parent / "node_modules" / "dep" / "package.json"
        )

    def test_later_basedir(self, tmp_path):
        other = tmp_path / "plugins"
        write_package(other / "node_modules" / "plugin-dep", "plugin-dep")
        manifest = resolve_package("plugin-dep", [str(tmp_path / "fn"), str(other)])
        assert manifest == str(other / "node_modules" / "plugin-dep" / "package.json")

    def test_not_found(self, tmp_path):
        with pytest.raises(PackageNotFoundError) as exc_info:
            resolve_package("nope", [str(tmp_path)])
        assert exc_info.value.module_name == "nope"
        assert isinstance(exc_info.value, ModuleNotFoundError)


class TestResolvePath:
    def test_relative_with_extension_probe(self, tmp_path):
        write_js(tmp_path / "lib" / "util.js", "")
        assert resolve_path_preserve_symlinks("./lib/util", [str(tmp_path)]) == str(
            tmp_path / "lib" / "util.js"
        )

    def test_exact_file_first(self, tmp_path):
        write_js(tmp_path / "data", "")
        write_js(tmp_path / "data.js", "")
        assert resolve_path_preserve_symlinks("./data", [str(tmp_path)]) == str(tmp_path / "data")

    def test_json_extension(self, tmp_path):
        (tmp_path / "config.json").write_text("{}")
        assert resolve_path_preserve_symlinks("./config", [str(tmp_path)]) == str(
            tmp_path / "config.json"
        )

    def test_directory_index(self, tmp_path):
        write_js(tmp_path / "lib" / "index.js", "")
        assert resolve_path_preserve_symlinks("./lib", [str(tmp_path)]) == str(
            tmp_path / "lib" / "index.js"
        )

    def test_directory_main(self, tmp_path):
        lib = tmp_path / "lib"
        write_package(lib, "lib", main="./dist/entry")
        write_js(lib / "dist" / "entry.js", "")
        write_js(lib / "index.js", "")
        assert resolve_path_preserve_symlinks("./lib", [str(tmp_path)]) == str(
            lib / "dist" / "entry.js"
        )

    def test_missing_main_falls_back_to_index(self, tmp_path):
        lib = tmp_path / "lib"
        write_package(lib, "lib", main="missing.js")
        write_js(lib / "index.js", "")
        assert resolve_path_preserve_symlinks("./lib", [str(tmp_path)]) == str(lib / "index.js")

    def test_bare_package_main(self, project):
        found = resolve_path_preserve_symlinks("left-pad", [str(project / "functions" / "hello")])
        assert found == str(project / "node_modules" / "left-pad" / "index.js")

    def test_bare_subpath(self, project):
        write_js(project / "node_modules" / "left-pad" / "lib" / "extra.js", "")
        found = resolve_path_preserve_symlinks("left-pad/lib/extra", [str(project)])
        assert found == str(project / "node_modules" / "left-pad" / "lib" / "extra.js")

    def test_not_found(self, tmp_path):
        with pytest.raises(PackageNotFoundError):
            resolve_path_preserve_symlinks("./missing", [str(tmp_path)])
        with pytest.raises(PackageNotFoundError):
            resolve_path_preserve_symlinks("missing-pkg", [str(tmp_path)])

    def test_symlinks_preserved(self, tmp_path):
        real = tmp_path / "workspace" / "shared"
        write_package(real, "shared", main="index.js")
        write_js(real / "index.js", "")
        project = tmp_path / "app"
        (project / "node_modules").mkdir(parents=True)
        os.symlink(real, project / "node_modules" / "shared")

        found = resolve_path_preserve_symlinks("shared", [str(project)])
        assert found == str(project / "node_modules" / "shared" / "index.js")
        assert resolve_package("shared", [str(project)]) == str(
            project / "node_modules" / "shared" / "package.json"
        )


class TestHostSearch:
    def test_roots_order(self, monkeypatch, tmp_path):
        monkeypatch.setenv("NODE_PATH", os.pathsep.join(["/one", "/two"]))
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.setenv("NODE_PREFIX", "/usr/local")
        assert host_search_roots() == [
            "/one",
            "/two",
            str(tmp_path / ".node_modules"),
            str(tmp_path / ".node_libraries"),
            os.path.join("/usr/local", "lib", "node"),
        ]

    def test_node_path(self, monkeypatch, tmp_path):
        global_dir = tmp_path / "global"
        write_js(global_dir / "globalmod" / "index.js", "")
        monkeypatch.setenv("NODE_PATH", str(global_dir))
        assert resolve_with_host_search("globalmod") == str(global_dir / "globalmod" / "index.js")

    def test_not_found(self):
        with pytest.raises(PackageNotFoundError):
            resolve_with_host_search("definitely-not-installed")
