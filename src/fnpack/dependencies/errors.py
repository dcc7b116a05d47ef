"""Exceptions raised while resolving a function's dependencies."""


class ResolutionError(Exception):
    """Base exception for dependency resolution errors."""


class PackageNotFoundError(ResolutionError, ModuleNotFoundError):
    """No candidate search root contains the requested module.

    Subclasses the built-in ``ModuleNotFoundError``. Recoverable: the walker
    tolerates it for excluded and optional modules.
    """

    def __init__(self, module_name: str, basedirs=()):
        self.module_name = module_name
        self.basedirs = list(basedirs)
        message = f"Cannot find module '{module_name}'"
        if self.basedirs:
            message += f" from {', '.join(self.basedirs)}"
        super().__init__(message)


class UnresolvedDependencyError(ResolutionError):
    """A required module could not be found by any resolution strategy."""

    def __init__(self, module_name: str, importer: str, entry_file: str | None = None):
        self.module_name = module_name
        self.importer = importer
        self.entry_file = entry_file
        message = f"Could not find module '{module_name}' required by {importer}"
        if entry_file and entry_file != importer:
            message = f'In file "{entry_file}"\n{message}'
        super().__init__(message)


class InvalidManifestError(ResolutionError):
    """A package.json exists but cannot be read or parsed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid package manifest {path}: {reason}")
