"""Package Descriptor Reader — parsed, cached ``package.json`` manifests.

Manifests are deserialized as JSON, never executed. Only the declared
dependency names, the entry file and the ``files`` inclusion rule are
consumed. Descriptors are cached for the process lifetime, keyed by the
absolute package directory.
"""

import json
import logging
import os
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from fnpack.dependencies.errors import InvalidManifestError
from fnpack.utils import read_text_safe

logger = logging.getLogger(__name__)

MANIFEST_NAME = "package.json"


# ── Data Class ──


@dataclass
class PackageDescriptor:
    """The parts of a package.json the resolver cares about.

    Attributes:
        name: Declared package name ("" when absent).
        path: Absolute path of the manifest file ("" for an empty descriptor).
        dependencies: ``dependencies`` section, name -> version range.
        peer_dependencies: ``peerDependencies`` section.
        optional_dependencies: ``optionalDependencies`` section.
        peer_dependencies_meta: ``peerDependenciesMeta`` section.
        main: Declared entry file, if any.
        files: ``files`` inclusion list, or None when the package doesn't declare one.
    """

    name: str = ""
    path: str = ""
    dependencies: dict[str, str] = field(default_factory=dict)
    peer_dependencies: dict[str, str] = field(default_factory=dict)
    optional_dependencies: dict[str, str] = field(default_factory=dict)
    peer_dependencies_meta: dict[str, dict] = field(default_factory=dict)
    main: Optional[str] = None
    files: Optional[list[str]] = None

    @property
    def directory(self) -> str:
        return os.path.dirname(self.path) if self.path else ""

    @classmethod
    def from_dict(cls, data: dict, path: str = "") -> "PackageDescriptor":
        """Build a descriptor from decoded package.json content, ignoring malformed sections."""
        main = data.get("main")
        files = data.get("files")
        return cls(
            name=data.get("name") if isinstance(data.get("name"), str) else "",
            path=path,
            dependencies=_mapping(data.get("dependencies")),
            peer_dependencies=_mapping(data.get("peerDependencies")),
            optional_dependencies=_mapping(data.get("optionalDependencies")),
            peer_dependencies_meta={
                name: meta
                for name, meta in _mapping(data.get("peerDependenciesMeta")).items()
                if isinstance(meta, dict)
            },
            main=main if isinstance(main, str) and main.strip() else None,
            files=[f for f in files if isinstance(f, str)] if isinstance(files, list) else None,
        )


def _mapping(value) -> dict:
    return dict(value) if isinstance(value, dict) else {}


# ── Cache ──

_cache: dict[str, PackageDescriptor] = {}
_cache_lock = threading.Lock()


def clear_manifest_cache() -> None:
    """Forget every cached descriptor."""
    with _cache_lock:
        _cache.clear()


# ── Reading ──


def read_manifest(manifest_path: str) -> PackageDescriptor:
    """Parse the manifest at ``manifest_path`` (uncached).

    Raises:
        InvalidManifestError: The file can't be read, isn't JSON, or isn't a JSON object.
    """
    try:
        data = json.loads(read_text_safe(manifest_path))
    except OSError as e:
        raise InvalidManifestError(manifest_path, f"cannot read file: {e}") from e
    except json.JSONDecodeError as e:
        raise InvalidManifestError(manifest_path, f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise InvalidManifestError(manifest_path, "top-level value is not an object")

    return PackageDescriptor.from_dict(data, path=manifest_path)


def get_package_descriptor(package_dir: str) -> PackageDescriptor:
    """Return the descriptor of the package rooted at ``package_dir``, cached per directory."""
    package_dir = os.path.abspath(package_dir)
    with _cache_lock:
        cached = _cache.get(package_dir)
    if cached is not None:
        return cached

    descriptor = read_manifest(os.path.join(package_dir, MANIFEST_NAME))
    with _cache_lock:
        # First writer wins so every caller sees the same object
        descriptor = _cache.setdefault(package_dir, descriptor)
    return descriptor


def find_module_dir(directory: str) -> Optional[str]:
    """Walk up from ``directory`` to the nearest directory holding a package.json."""
    current = Path(os.path.abspath(directory))
    for candidate in (current, *current.parents):
        if (candidate / MANIFEST_NAME).is_file():
            return str(candidate)
    return None


def find_project_descriptor(directory: str) -> PackageDescriptor:
    """Descriptor of the nearest enclosing package, or an empty one when there is none."""
    module_dir = find_module_dir(directory)
    if module_dir is None:
        logger.debug("No %s found above %s", MANIFEST_NAME, directory)
        return PackageDescriptor()
    return get_package_descriptor(module_dir)


# ── Queries ──


def get_nested_dependencies(descriptor: PackageDescriptor) -> list[str]:
    """Declared dependency names: direct, then peer, then optional, without repeats."""
    names: list[str] = []
    for section in (
        descriptor.dependencies,
        descriptor.peer_dependencies,
        descriptor.optional_dependencies,
    ):
        for name in section:
            if name not in names:
                names.append(name)
    return names


def is_optional_dependency(descriptor: Optional[PackageDescriptor], module_name: str) -> bool:
    """True if the package may run without ``module_name`` installed."""
    if descriptor is None:
        return False
    if module_name in descriptor.optional_dependencies:
        return True
    meta = descriptor.peer_dependencies_meta.get(module_name, {})
    return meta.get("optional") is True
