"""fnpack — Package serverless functions with exactly the files they need."""

from fnpack.archive import TOOLCHAIN_ENTRY, ZipArchive, add_toolchain_file
from fnpack.binary import is_go_executable
from fnpack.dependencies import (
    DependencyWalker,
    InvalidManifestError,
    PackageNotFoundError,
    ResolutionError,
    TraversalState,
    TreeShakePolicy,
    UnresolvedDependencyError,
    resolve_dependencies,
)
from fnpack.imports import list_imports
from fnpack.packager import (
    FunctionResult,
    MissingHandlerError,
    PackagerConfig,
    PackagingError,
    files_for_function_zip,
    zip_function,
    zip_functions,
)

__all__ = [
    # Dependency resolution
    "resolve_dependencies",
    "DependencyWalker",
    "TraversalState",
    "TreeShakePolicy",
    "ResolutionError",
    "PackageNotFoundError",
    "UnresolvedDependencyError",
    "InvalidManifestError",
    # Collaborators
    "list_imports",
    "ZipArchive",
    "add_toolchain_file",
    "TOOLCHAIN_ENTRY",
    "is_go_executable",
    # Packaging
    "PackagerConfig",
    "FunctionResult",
    "PackagingError",
    "MissingHandlerError",
    "files_for_function_zip",
    "zip_function",
    "zip_functions",
]
