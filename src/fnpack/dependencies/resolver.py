"""Package Resolver — Node.js module resolution that preserves symlinks.

Implements the parts of Node's ``require.resolve`` algorithm needed to find
files on disk:

- ``node_modules`` lookup: every ancestor of the importing directory
  contributes ``<ancestor>/node_modules`` (ancestors named ``node_modules``
  themselves are skipped).
- LOAD_AS_FILE: the exact path, then the path with each of
  ``RESOLVE_EXTENSIONS`` appended.
- LOAD_AS_DIRECTORY: the ``main`` of the directory's package.json, then
  ``index`` with each extension.

Paths are joined and normalized lexically, never passed through
``realpath``. A package installed through a symlink (workspaces, pnpm)
therefore keeps its location inside the project tree, and sibling lookups
relative to it behave as the package author intended.
"""

import logging
import os
from typing import Iterable, Optional

from fnpack.dependencies.errors import PackageNotFoundError
from fnpack.dependencies.manifest import MANIFEST_NAME, get_package_descriptor
from fnpack.dependencies.module_name import get_module_name, is_local_specifier

logger = logging.getLogger(__name__)

RESOLVE_EXTENSIONS = (".js", ".json", ".node", ".cjs", ".mjs")

NODE_MODULES = "node_modules"


# ── node_modules Lookup ──


def node_modules_paths(basedir: str) -> list[str]:
    """Candidate ``node_modules`` directories for a lookup starting at ``basedir``, nearest first."""
    current = os.path.abspath(basedir)
    paths: list[str] = []
    while True:
        if os.path.basename(current) != NODE_MODULES:
            paths.append(os.path.join(current, NODE_MODULES))
        parent = os.path.dirname(current)
        if parent == current:
            return paths
        current = parent


def resolve_package(module_name: str, basedirs: Iterable[str]) -> str:
    """Return the absolute path of ``module_name``'s package.json.

    Each base directory is tried in order, walking up its ``node_modules``
    chain. The returned path keeps any symlinks found along the way.

    Raises:
        PackageNotFoundError: No base directory can see the package.
    """
    basedirs = list(basedirs)
    for basedir in basedirs:
        for modules_dir in node_modules_paths(basedir):
            manifest = os.path.join(modules_dir, module_name, MANIFEST_NAME)
            if os.path.isfile(manifest):
                return manifest
    raise PackageNotFoundError(module_name, basedirs)


# ── File Resolution ──


def _load_as_file(path: str) -> Optional[str]:
    if os.path.isfile(path):
        return path
    for ext in RESOLVE_EXTENSIONS:
        if os.path.isfile(path + ext):
            return path + ext
    return None


def _load_index(path: str) -> Optional[str]:
    for ext in RESOLVE_EXTENSIONS:
        candidate = os.path.join(path, "index" + ext)
        if os.path.isfile(candidate):
            return candidate
    return None


def _load_as_directory(path: str) -> Optional[str]:
    if not os.path.isdir(path):
        return None
    if os.path.isfile(os.path.join(path, MANIFEST_NAME)):
        main = get_package_descriptor(path).main
        if main:
            target = os.path.normpath(os.path.join(path, main))
            found = _load_as_file(target) or _load_index(target)
            if found:
                return found
            logger.debug("Declared main %r of %s does not exist", main, path)
    return _load_index(path)


def _load(path: str) -> Optional[str]:
    path = os.path.normpath(path)
    return _load_as_file(path) or _load_as_directory(path)


def _resolve_local(specifier: str, basedir: str) -> Optional[str]:
    target = os.path.join(os.path.abspath(basedir), specifier)
    if specifier.endswith("/"):
        return _load_as_directory(os.path.normpath(target))
    return _load(target)


def _resolve_bare(specifier: str, basedir: str) -> Optional[str]:
    if get_module_name(specifier) is None:
        return None
    for modules_dir in node_modules_paths(basedir):
        found = _load(os.path.join(modules_dir, specifier))
        if found:
            return found
    return None


def resolve_path_preserve_symlinks(specifier: str, basedirs: Iterable[str]) -> str:
    """Resolve an import specifier to an absolute file path.

    Relative and absolute specifiers are resolved against each base
    directory; bare specifiers (``pkg``, ``pkg/sub/file``) through the
    ``node_modules`` lookup of each base directory.

    Raises:
        PackageNotFoundError: Nothing on disk matches the specifier.
    """
    basedirs = list(basedirs)
    local = is_local_specifier(specifier)
    for basedir in basedirs:
        if local:
            found = _resolve_local(specifier, basedir)
        else:
            found = _resolve_bare(specifier.replace("\\", "/"), basedir)
        if found:
            return found
    raise PackageNotFoundError(specifier, basedirs)


# ── Host Fallback ──


def host_search_roots() -> list[str]:
    """Global folders Node searches after ``node_modules``: NODE_PATH, then the home and prefix folders."""
    roots = [p for p in os.environ.get("NODE_PATH", "").split(os.pathsep) if p]
    home = os.path.expanduser("~")
    roots.append(os.path.join(home, ".node_modules"))
    roots.append(os.path.join(home, ".node_libraries"))
    prefix = os.environ.get("NODE_PREFIX")
    if prefix:
        roots.append(os.path.join(prefix, "lib", "node"))
    return roots


def resolve_with_host_search(specifier: str) -> str:
    """Resolve a bare specifier against the host's global module folders.

    Covers modules only reachable through environment-level search path
    extensions such as ``NODE_PATH``.

    Raises:
        PackageNotFoundError: No global folder holds the module.
    """
    roots = host_search_roots()
    for root in roots:
        found = _load(os.path.join(os.path.abspath(root), specifier))
        if found:
            logger.debug("Resolved %s through host search root %s", specifier, root)
            return found
    raise PackageNotFoundError(specifier, roots)
