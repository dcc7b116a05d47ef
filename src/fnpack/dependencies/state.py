"""Traversal State — the per-run cache that keeps the dependency walk finite.

One instance per top-level resolution, passed explicitly to every traversal
step and discarded afterwards. All three indices support atomic
test-and-insert: the first caller to claim an entry gets True, later
callers get False and skip the work.
"""

import threading
from dataclasses import dataclass, field


@dataclass
class TraversalState:
    """Visited local files, module names and package directories for one run.

    Module-name entries are ``(name, importer_dir, tree_shaken)``. A
    tree-shaken lookup only adds the package manifest, so it must not stop a
    later full lookup of the same name from expanding the package.
    """

    visited_files: set[str] = field(default_factory=set)
    visited_module_names: set[tuple[str, str, bool]] = field(default_factory=set)
    visited_package_dirs: set[str] = field(default_factory=set)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def _claim(self, index: set, key) -> bool:
        with self._lock:
            if key in index:
                return False
            index.add(key)
            return True

    def claim_file(self, path: str) -> bool:
        """Mark a local file expanded. False if it already was."""
        return self._claim(self.visited_files, path)

    def claim_module_name(self, module_name: str, importer_dir: str, tree_shaken: bool = False) -> bool:
        """Mark a module name resolved from ``importer_dir``. False if it already was.

        Node looks names up relative to the importer, so a name seen from one
        directory may still be a different installed copy from another.
        """
        return self._claim(self.visited_module_names, (module_name, importer_dir, tree_shaken))

    def claim_package_dir(self, package_dir: str) -> bool:
        """Mark a package directory expanded. False if it already was."""
        return self._claim(self.visited_package_dirs, package_dir)

    def has_module_name(self, module_name: str, importer_dir: str, tree_shaken: bool = False) -> bool:
        with self._lock:
            return (module_name, importer_dir, tree_shaken) in self.visited_module_names

    @property
    def module_names(self) -> set[str]:
        """Every module name resolved so far, regardless of importer."""
        with self._lock:
            return {name for name, _, _ in self.visited_module_names}

    # ── Rollback ──

    def snapshot(self) -> "TraversalState":
        """Independent copy of the three indices."""
        with self._lock:
            return TraversalState(
                set(self.visited_files),
                set(self.visited_module_names),
                set(self.visited_package_dirs),
            )

    def restore(self, snapshot: "TraversalState") -> None:
        """Reset the indices to a previous ``snapshot()``."""
        with self._lock:
            self.visited_files = set(snapshot.visited_files)
            self.visited_module_names = set(snapshot.visited_module_names)
            self.visited_package_dirs = set(snapshot.visited_package_dirs)
