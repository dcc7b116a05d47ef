"""Packager — turns a directory of functions into deployable zip archives.

Each direct child of the source directory is one function:

  - ``*.zip``: already packaged, copied as-is (runtime ``js``)
  - directory or ``*.js`` file with a JS handler: Node.js function, zipped
    with the files its handler requires (runtime ``js``)
  - directory ``name/`` holding ``name.py``: Python function, zipped whole
    (runtime ``py``, behind the ``build_python_source`` feature flag)
  - ELF executable built by Go: zipped alone (runtime ``go``)
  - anything else is not a function and is skipped

Functions are packaged concurrently and independently: a failure is
recorded on that function's result and never stops its siblings.
"""

import logging
import os
import shutil
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from fnpack.archive import ZipArchive, add_toolchain_file
from fnpack.binary import is_go_executable
from fnpack.dependencies import find_module_dir, resolve_dependencies
from fnpack.dependencies.walker import (
    DEFAULT_TREE_SHAKE_ENTRIES,
    TreeShakePolicy,
    entry_point_trigger,
)
from fnpack.utils import is_junk, is_within, unixify

logger = logging.getLogger(__name__)

# ── Constants ──

RUNTIME_JS = "js"
RUNTIME_GO = "go"
RUNTIME_PYTHON = "py"

FEATURE_FLAGS_ENV = "FNPACK_FEATURE_FLAGS"

# Flags understood by the packager; unknown names are kept but unused
KNOWN_FEATURE_FLAGS = frozenset({"tree_shake", "build_python_source"})

_NODE_MODULES = "node_modules"


# ── Exceptions ──


class PackagingError(Exception):
    """Base exception for packaging errors."""


class MissingHandlerError(PackagingError):
    """A function directory has no recognizable entry file."""


# ── Data Classes ──


@dataclass
class PackagerConfig:
    """Configuration for packaging functions.

    Attributes:
        search_roots: Extra directories searched for modules after the
            importer's own ``node_modules`` chain (e.g. build plugin modules).
        feature_flags: ``tree_shake`` tree-shakes every dependency;
            ``build_python_source`` enables Python functions.
        tree_shake_entries: Entry-point basenames whose whole subtree is tree-shaken.
        max_workers: Thread pool size for batch packaging (default: up to 8).
    """

    search_roots: list[str] = field(default_factory=list)
    feature_flags: dict[str, bool] = field(default_factory=dict)
    tree_shake_entries: tuple[str, ...] = DEFAULT_TREE_SHAKE_ENTRIES
    max_workers: Optional[int] = None

    def flag(self, name: str) -> bool:
        return bool(self.feature_flags.get(name, False))

    def tree_shake_policy(self) -> TreeShakePolicy:
        return TreeShakePolicy(
            enabled=self.flag("tree_shake"),
            trigger=entry_point_trigger(self.tree_shake_entries),
        )


@dataclass
class FunctionResult:
    """Outcome of packaging one function.

    Attributes:
        name: Function name (file or directory name without extension).
        path: Archive written, None if packaging failed.
        runtime: ``js``, ``go`` or ``py``; None if packaging failed.
        error: Error message if packaging failed.
        duration_ms: Wall-clock time spent on this function.
    """

    name: str
    path: Optional[Path] = None
    runtime: Optional[str] = None
    error: Optional[str] = None
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None

    def as_dict(self) -> dict:
        return {
            "name": self.name,
            "path": str(self.path) if self.path else None,
            "runtime": self.runtime,
            "error": self.error,
        }


# ── Configuration ──


def parse_feature_flags(value: str) -> dict[str, bool]:
    """Parse ``"tree_shake,!build_python_source"`` into a flag mapping."""
    flags: dict[str, bool] = {}
    for raw in value.split(","):
        name = raw.strip()
        if not name:
            continue
        enabled = not name.startswith("!")
        name = name.lstrip("!").strip().replace("-", "_")
        if name not in KNOWN_FEATURE_FLAGS:
            logger.warning("Unknown feature flag: %s", name)
        flags[name] = enabled
    return flags


def load_feature_flags(environ: Optional[dict] = None) -> dict[str, bool]:
    """Feature flags from the FNPACK_FEATURE_FLAGS environment variable."""
    environ = os.environ if environ is None else environ
    return parse_feature_flags(environ.get(FEATURE_FLAGS_ENV, ""))


# ── Helpers ──


def _function_name(function_path: Path) -> str:
    if function_path.suffix in (".js", ".zip"):
        return function_path.stem
    return function_path.name


def _walk_files(directory: Path, skip_node_modules: bool = True) -> set[str]:
    files: set[str] = set()
    for root, dirs, names in os.walk(directory):
        if skip_node_modules:
            dirs[:] = [d for d in dirs if d != _NODE_MODULES]
        for name in names:
            files.add(os.path.join(root, name))
    return files


def find_handler(function_dir: str | Path) -> str:
    """Entry file of a JS function directory: ``<dir>/<dir>.js``, else ``<dir>/index.js``.

    Raises:
        MissingHandlerError: Neither file exists.
    """
    function_dir = Path(function_dir)
    for candidate in (function_dir / f"{function_dir.name}.js", function_dir / "index.js"):
        if candidate.is_file():
            return str(candidate)
    raise MissingHandlerError(f"Failed to find handler for {function_dir}")


def _has_js_handler(function_dir: Path) -> bool:
    try:
        find_handler(function_dir)
    except MissingHandlerError:
        return False
    return True


def _python_main_file(function_dir: Path) -> Optional[Path]:
    main_file = function_dir / f"{function_dir.name}.py"
    return main_file if main_file.is_file() else None


def common_prefix(files: list[str]) -> str:
    """Deepest directory containing every file in ``files``."""
    return os.path.commonpath([os.path.dirname(f) for f in files])


def zip_entry_path(file: str, prefix: str) -> str:
    """Archive entry name of ``file`` below ``prefix``, with forward slashes.

    Every entry of one archive shares the same prefix, so relative requires
    between archived files resolve the same way they do on disk.
    """
    if not is_within(file, prefix):
        raise PackagingError(f"{file} is outside the archive root {prefix}")
    return unixify(os.path.relpath(file, prefix))


# ── File Selection ──


def files_for_function_zip(
    function_path: str | Path, config: Optional[PackagerConfig] = None
) -> list[str]:
    """Sorted absolute paths to bundle for a Node.js function.

    For a directory: every file in it (outside ``node_modules``) plus the
    dependency closure of its handler. For a single file: the file plus its
    dependency closure. Junk files are dropped. Sorting keeps the archive's
    checksum deterministic.

    Raises:
        MissingHandlerError: A function directory has no handler.
        ResolutionError: Dependency resolution failed.
    """
    config = config or PackagerConfig()
    function_path = Path(function_path).absolute()

    if function_path.is_dir():
        handler = find_handler(function_path)
        tree_files = _walk_files(function_path)
        basedir = str(function_path)
    else:
        handler = str(function_path)
        tree_files = {handler}
        basedir = str(function_path.parent)

    base_directory = find_module_dir(basedir) or basedir
    dep_files = resolve_dependencies(
        handler,
        base_directory,
        config.search_roots,
        config.feature_flags,
        tree_shake_policy=config.tree_shake_policy(),
    )

    files = {os.path.normpath(f) for f in tree_files | set(dep_files)}
    return sorted(f for f in files if not is_junk(f))


# ── Zipping ──


def _zip_files(files: list[str], zip_path: Path, runtime: str, prefix: str) -> Path:
    with ZipArchive(zip_path) as archive:
        for file in files:
            archive.add_file(file, zip_entry_path(file, prefix))
        add_toolchain_file(archive, runtime)
    return zip_path


def zip_js(function_path: Path, zip_path: Path, config: PackagerConfig) -> Path:
    files = files_for_function_zip(function_path, config)
    prefix = common_prefix(files)
    logger.debug("%s: %d files below %s", function_path, len(files), prefix)
    return _zip_files(files, zip_path, RUNTIME_JS, prefix)


def zip_go_exe(file: Path, zip_path: Path) -> Path:
    with ZipArchive(zip_path) as archive:
        archive.add_file(file, file.name)
        add_toolchain_file(archive, RUNTIME_GO)
    return zip_path


def zip_python(function_dir: Path, zip_path: Path) -> Path:
    files = sorted(f for f in _walk_files(function_dir, skip_node_modules=False) if not is_junk(f))
    return _zip_files(files, zip_path, RUNTIME_PYTHON, str(function_dir))


def zip_function(
    function_path: str | Path,
    dest_dir: str | Path,
    config: Optional[PackagerConfig] = None,
) -> Optional[FunctionResult]:
    """Package one function into ``<dest_dir>/<name>.zip``.

    Returns None when ``function_path`` is not a function.

    Raises:
        PackagingError: The function can't be packaged.
        ResolutionError: Its dependencies can't be resolved.
    """
    config = config or PackagerConfig()
    function_path = Path(function_path).absolute()
    if function_path.name == _NODE_MODULES:
        return None

    name = _function_name(function_path)
    zip_path = Path(dest_dir) / f"{name}.zip"
    start = time.monotonic()

    if function_path.suffix == ".zip" and function_path.is_file():
        zip_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(function_path, zip_path)
        runtime = RUNTIME_JS
    elif function_path.is_dir():
        if _has_js_handler(function_path):
            zip_js(function_path, zip_path, config)
            runtime = RUNTIME_JS
        elif config.flag("build_python_source") and _python_main_file(function_path):
            zip_python(function_path, zip_path)
            runtime = RUNTIME_PYTHON
        else:
            raise MissingHandlerError(f"Failed to find handler for {function_path}")
    elif function_path.suffix == ".js":
        zip_js(function_path, zip_path, config)
        runtime = RUNTIME_JS
    elif function_path.is_file() and is_go_executable(function_path):
        zip_go_exe(function_path, zip_path)
        runtime = RUNTIME_GO
    else:
        logger.debug("Not a function: %s", function_path)
        return None

    logger.info("Packaged %s (%s) -> %s", name, runtime, zip_path)
    return FunctionResult(name=name, path=zip_path, runtime=runtime, duration_ms=_elapsed_ms(start))


def _package_one(function_path: Path, dest_dir: Path, config: PackagerConfig) -> Optional[FunctionResult]:
    start = time.monotonic()
    try:
        return zip_function(function_path, dest_dir, config)
    except Exception as exc:
        logger.error("Failed to package %s: %s", function_path, exc)
        return FunctionResult(
            name=_function_name(function_path),
            error=str(exc),
            duration_ms=_elapsed_ms(start),
        )


def zip_functions(
    src_dir: str | Path,
    dest_dir: str | Path,
    config: Optional[PackagerConfig] = None,
) -> list[FunctionResult]:
    """Package every function in ``src_dir``. Results are sorted by function name.

    Each function gets its own traversal state; failures are reported per
    function in ``FunctionResult.error``.
    """
    config = config or PackagerConfig()
    src_dir = Path(src_dir).absolute()
    dest_dir = Path(dest_dir).absolute()
    if not src_dir.is_dir():
        raise PackagingError(f"Source path is not a directory: {src_dir}")

    candidates = sorted(p for p in src_dir.iterdir() if p.name != _NODE_MODULES)
    if not candidates:
        return []

    workers = config.max_workers or min(8, len(candidates))
    results: list[FunctionResult] = []
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(_package_one, path, dest_dir, config) for path in candidates]
        for future in as_completed(futures):
            result = future.result()
            if result is not None:
                results.append(result)

    return sorted(results, key=lambda r: r.name)


def _elapsed_ms(start: float) -> float:
    return (time.monotonic() - start) * 1000
