"""Node.js dependency resolution — the files a function needs at runtime.

Pure Python. Reads package.json files and node_modules directories; never
runs Node.js.
"""

from fnpack.dependencies.errors import (
    InvalidManifestError,
    PackageNotFoundError,
    ResolutionError,
    UnresolvedDependencyError,
)
from fnpack.dependencies.manifest import (
    PackageDescriptor,
    clear_manifest_cache,
    find_module_dir,
    get_package_descriptor,
)
from fnpack.dependencies.module_name import get_module_name
from fnpack.dependencies.published import get_published_files
from fnpack.dependencies.resolver import resolve_package, resolve_path_preserve_symlinks
from fnpack.dependencies.side_files import get_side_files
from fnpack.dependencies.state import TraversalState
from fnpack.dependencies.walker import (
    EXCLUDED_MODULES,
    DependencyResolution,
    DependencyWalker,
    ResolutionStatus,
    TreeShakePolicy,
    entry_point_trigger,
    list_dependency_modules,
    resolve_dependencies,
)

__all__ = [
    # Errors
    "ResolutionError",
    "PackageNotFoundError",
    "UnresolvedDependencyError",
    "InvalidManifestError",
    # Manifests
    "PackageDescriptor",
    "get_package_descriptor",
    "find_module_dir",
    "clear_manifest_cache",
    # Resolution building blocks
    "get_module_name",
    "resolve_package",
    "resolve_path_preserve_symlinks",
    "get_published_files",
    "get_side_files",
    # Walker
    "TraversalState",
    "TreeShakePolicy",
    "entry_point_trigger",
    "DependencyWalker",
    "DependencyResolution",
    "ResolutionStatus",
    "EXCLUDED_MODULES",
    "resolve_dependencies",
    "list_dependency_modules",
]
