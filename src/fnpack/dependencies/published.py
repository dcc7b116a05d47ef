"""Published-File Set Builder — the files a package ships.

Honors the package's ``files`` inclusion list when it declares one, and
otherwise takes every file under the package root. The package's own
``node_modules`` directory is always left out: nested dependencies are
resolved and added independently by the walker. Only paths are
enumerated; file contents are never read.
"""

import fnmatch
import logging
import os
import re
from pathlib import Path, PurePosixPath

from fnpack.dependencies.manifest import get_package_descriptor
from fnpack.dependencies.resolver import NODE_MODULES, RESOLVE_EXTENSIONS

logger = logging.getLogger(__name__)

# Never useful at runtime
IGNORED_FILES = (
    ".npmignore",
    "package-lock.json",
    "yarn.lock",
    "*.log",
    "*.lock",
    "*~",
    "*.map",
    "*.ts",
    "*.patch",
)

# Root files npm publishes whatever the ``files`` list says
_ALWAYS_PUBLISHED_RE = re.compile(r"^(package\.json|readme|license|licence|changelog|changes|history)(\..*)?$", re.IGNORECASE)


def _is_ignored(rel_path: str) -> bool:
    name = PurePosixPath(rel_path).name
    return any(fnmatch.fnmatchcase(name, pattern) for pattern in IGNORED_FILES)


def _walk_package(package_dir: Path) -> list[str]:
    """Package-relative POSIX paths of every file, skipping the top-level node_modules."""
    rel_paths: list[str] = []
    for root, dirs, files in os.walk(package_dir):
        root = Path(root)
        if root == package_dir:
            dirs[:] = [d for d in dirs if d != NODE_MODULES]
        dirs.sort()
        rel_root = root.relative_to(package_dir)
        rel_paths.extend((rel_root / name).as_posix() for name in sorted(files))
    return rel_paths


def _normalize_pattern(pattern: str) -> str:
    pattern = pattern.strip().replace("\\", "/")
    while pattern.startswith("./"):
        pattern = pattern[2:]
    return pattern.strip("/")


def _matches(rel_path: str, pattern: str) -> bool:
    """Whether a ``files`` entry covers ``rel_path``, either directly or through a parent directory."""
    if not pattern:
        return False
    if fnmatch.fnmatchcase(rel_path, pattern):
        return True
    parts = rel_path.split("/")
    for i in range(1, len(parts)):
        if fnmatch.fnmatchcase("/".join(parts[:i]), pattern):
            return True
    # Entries without a slash match at any depth, like .gitignore entries
    if "/" not in pattern:
        return any(fnmatch.fnmatchcase(part, pattern) for part in parts)
    return False


def is_declared_file(rel_path: str, patterns: list[str]) -> bool:
    """Apply a ``files`` list to one path. Later entries win; ``!`` entries exclude."""
    included = False
    for raw in patterns:
        negate = raw.startswith("!")
        pattern = _normalize_pattern(raw[1:] if negate else raw)
        if _matches(rel_path, pattern):
            included = not negate
    return included


def _main_files(main: str | None) -> set[str]:
    if not main:
        return set()
    rel = os.path.normpath(main).replace(os.sep, "/")
    return {rel} | {rel + ext for ext in RESOLVE_EXTENSIONS} | {f"{rel}/index{ext}" for ext in RESOLVE_EXTENSIONS}


def get_published_files(package_dir: str) -> set[str]:
    """Absolute paths of the files that belong to the package rooted at ``package_dir``."""
    package_dir = Path(os.path.abspath(package_dir))
    descriptor = get_package_descriptor(str(package_dir))
    rel_paths = [rel for rel in _walk_package(package_dir) if not _is_ignored(rel)]

    if descriptor.files is not None:
        main_files = _main_files(descriptor.main)
        rel_paths = [
            rel
            for rel in rel_paths
            if rel in main_files
            or ("/" not in rel and _ALWAYS_PUBLISHED_RE.match(rel))
            or is_declared_file(rel, descriptor.files)
        ]
        logger.debug("%s declares files %s: %d published", package_dir, descriptor.files, len(rel_paths))

    return {str(package_dir / rel) for rel in rel_paths}
