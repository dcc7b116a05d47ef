"""Dependency Graph Walker — every file a Node.js entry file needs at runtime.

We only ship the files a function actually uses: archives have a size limit
and smaller archives start faster.

Starting from the entry file, the walker drains a work queue of two kinds of
items:

- **Local files**: listed for imports once each. Relative imports are
  resolved to files and queued again; bare imports become package edges.
- **Package edges**: a bare specifier seen from an importer directory. The
  package is located in ``node_modules`` and, by default, its whole
  published file set (plus side files) is added. Its declared dependencies
  are then queued as edges of their own, which makes the walk transitive
  over the install tree.

Tree-shaking is a per-edge policy computed once when the edge is created
and inherited by everything below it. A tree-shaken edge adds only the
package manifest and walks the file the specifier resolves to, like a
local file.

The three indices of ``TraversalState`` bound the walk: each local file is
listed once, each package directory is expanded once, each module name is
looked up once per importer directory and edge kind (full or tree-shaken).
"""

import logging
import os
import posixpath
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Iterable, Optional, Union

from fnpack.dependencies.errors import PackageNotFoundError, UnresolvedDependencyError
from fnpack.dependencies.manifest import (
    PackageDescriptor,
    find_project_descriptor,
    get_nested_dependencies,
    get_package_descriptor,
    is_optional_dependency,
)
from fnpack.dependencies.module_name import get_module_name, is_local_specifier
from fnpack.dependencies.published import get_published_files
from fnpack.dependencies.resolver import (
    resolve_package,
    resolve_path_preserve_symlinks,
    resolve_with_host_search,
)
from fnpack.dependencies.side_files import get_side_files
from fnpack.dependencies.state import TraversalState
from fnpack.imports import list_imports as default_list_imports

logger = logging.getLogger(__name__)

# ── Constants ──

# Provided by the execution environment; never bundled
EXCLUDED_MODULES = frozenset({"aws-sdk"})

# Entry point used by Next.js integrations: everything it requires is tree-shaken
DEFAULT_TREE_SHAKE_ENTRIES = ("renderNextPage",)


def is_excluded_module(module_name: str) -> bool:
    return module_name in EXCLUDED_MODULES or module_name.startswith("@types/")


# ── Policy ──


def entry_point_trigger(names: Iterable[str]) -> Callable[[str], bool]:
    """Predicate matching specifiers whose basename (without ``.js``) is one of ``names``."""
    names = frozenset(names)

    def trigger(specifier: str) -> bool:
        base = posixpath.basename(specifier.replace("\\", "/"))
        if base.endswith(".js"):
            base = base[: -len(".js")]
        return base in names

    return trigger


@dataclass(frozen=True)
class TreeShakePolicy:
    """When to walk a dependency file by file instead of shipping its published files.

    Attributes:
        enabled: Tree-shake every package edge.
        trigger: Predicate over import specifiers; a match turns tree-shaking
            on for that edge and everything reached through it.
    """

    enabled: bool = False
    trigger: Callable[[str], bool] = field(
        default_factory=lambda: entry_point_trigger(DEFAULT_TREE_SHAKE_ENTRIES)
    )

    def should_tree_shake(self, specifier: str, inherited: bool = False) -> bool:
        return inherited or self.enabled or self.trigger(specifier)


# ── Results ──


class ResolutionStatus(Enum):
    RESOLVED = "resolved"
    ALREADY_VISITED = "already_visited"
    EXCLUDED = "excluded"
    MISSING_OPTIONAL = "missing_optional"
    FALLBACK = "fallback"
    IGNORED = "ignored"


@dataclass
class DependencyResolution:
    """Outcome of one package edge.

    Every status except RESOLVED contributes no package files. FALLBACK means
    the module was found through the host search path and its file was
    queued as a local file.
    """

    status: ResolutionStatus
    module_name: Optional[str] = None
    package_dir: Optional[str] = None
    files: set[str] = field(default_factory=set)


# ── Work Items ──


@dataclass
class _LocalFile:
    path: str
    importer: PackageDescriptor
    tree_shake: bool = False


@dataclass
class _PackageEdge:
    specifier: str
    importer_dir: str
    importer: PackageDescriptor
    importer_file: str
    tree_shake: bool = False
    declared: bool = False  # from a manifest rather than an import statement


_WorkItem = Union[_LocalFile, _PackageEdge]


# ── Walker ──


class DependencyWalker:
    """Computes the file closure of entry files within one project.

    Usage::

        walker = DependencyWalker("/path/to/project")
        files = walker.walk("/path/to/project/functions/hello/hello.js")

    A walker owns one ``TraversalState``; create a new walker per entry file
    unless files should be de-duplicated across entries on purpose.
    """

    def __init__(
        self,
        base_directory: str,
        search_roots: Iterable[str] = (),
        *,
        tree_shake_policy: Optional[TreeShakePolicy] = None,
        list_imports: Optional[Callable[[str], Iterable[str]]] = None,
        state: Optional[TraversalState] = None,
    ):
        self.base_directory = os.path.abspath(base_directory)
        self.search_roots = [os.path.abspath(root) for root in search_roots]
        self.policy = tree_shake_policy or TreeShakePolicy()
        self.list_imports = list_imports or default_list_imports
        self.state = state if state is not None else TraversalState()
        self.project = find_project_descriptor(self.base_directory)

        self._queue: list[_WorkItem] = []
        self._files: set[str] = set()
        self._entry_file: Optional[str] = None

    # ── Public API ──

    def walk(self, entry_file: str) -> list[str]:
        """Return the sorted absolute paths needed to run ``entry_file``, itself included.

        Raises:
            UnresolvedDependencyError: A required module can't be found.
            InvalidManifestError: A package.json on the way is unreadable.
        """
        self._entry_file = os.path.abspath(entry_file)
        self._queue.append(_LocalFile(self._entry_file, self.project))
        self._drain()
        return sorted(self._files)

    def walk_modules(self, module_names: Iterable[str]) -> tuple[list[str], list[str]]:
        """Resolve bare module names from the base directory.

        Returns ``(module_names, paths)``: every module name reached, and the
        files they contribute. A module whose subtree can't be fully resolved
        contributes nothing, not even the part walked before the failure.
        """
        for name in module_names:
            edge = _PackageEdge(
                specifier=name,
                importer_dir=self.base_directory,
                importer=self.project,
                importer_file=self.base_directory,
                tree_shake=self.policy.should_tree_shake(name),
            )
            files_before = set(self._files)
            state_before = self.state.snapshot()
            try:
                self.resolve_edge(edge)
                self._drain()
            except UnresolvedDependencyError as e:
                logger.debug("Skipping module %s: %s", name, e)
                self._queue.clear()
                self._files = files_before
                self.state.restore(state_before)
        return sorted(self.state.module_names), sorted(self._files)

    def resolve_edge(self, edge: _PackageEdge) -> DependencyResolution:
        """Handle one bare specifier; declared dependencies are queued, not followed here."""
        module_name = get_module_name(edge.specifier)

        # Happens when doing require("@scope") (not "@scope/name") or other oddities
        if module_name is None:
            return DependencyResolution(ResolutionStatus.IGNORED)

        if is_excluded_module(module_name):
            logger.debug("Excluded module %s", module_name)
            return DependencyResolution(ResolutionStatus.EXCLUDED, module_name)

        if not edge.tree_shake and self.state.has_module_name(module_name, edge.importer_dir):
            return DependencyResolution(ResolutionStatus.ALREADY_VISITED, module_name)

        try:
            manifest = resolve_package(module_name, [edge.importer_dir, *self.search_roots])
        except PackageNotFoundError:
            return self._handle_missing(edge, module_name)

        package_dir = os.path.dirname(manifest)
        descriptor = get_package_descriptor(package_dir)
        first_lookup = self.state.claim_module_name(module_name, edge.importer_dir, edge.tree_shake)

        if edge.tree_shake:
            files = self._tree_shake_package(edge, manifest, descriptor, module_name)
            follow_dependencies = first_lookup
        elif self.state.claim_package_dir(package_dir):
            files = get_published_files(package_dir) | get_side_files(package_dir, module_name)
            follow_dependencies = True
        else:
            return DependencyResolution(ResolutionStatus.ALREADY_VISITED, module_name, package_dir)

        self._files |= files
        if follow_dependencies:
            for name in get_nested_dependencies(descriptor):
                self._queue.append(
                    _PackageEdge(
                        specifier=name,
                        importer_dir=package_dir,
                        importer=descriptor,
                        importer_file=manifest,
                        tree_shake=self.policy.should_tree_shake(name, edge.tree_shake),
                        declared=True,
                    )
                )

        logger.debug("Resolved %s -> %s (%d files)", edge.specifier, package_dir, len(files))
        return DependencyResolution(ResolutionStatus.RESOLVED, module_name, package_dir, files)

    # ── Traversal ──

    def _drain(self) -> None:
        while self._queue:
            item = self._queue.pop()
            if isinstance(item, _LocalFile):
                self._visit_file(item)
            else:
                self.resolve_edge(item)

    def _visit_file(self, item: _LocalFile) -> None:
        if not self.state.claim_file(item.path):
            return
        self._files.add(item.path)

        basedir = os.path.dirname(item.path)
        for specifier in self.list_imports(item.path):
            if not specifier:
                continue
            tree_shake = self.policy.should_tree_shake(specifier, item.tree_shake)

            if not is_local_specifier(specifier):
                self._queue.append(
                    _PackageEdge(
                        specifier=specifier,
                        importer_dir=basedir,
                        importer=item.importer,
                        importer_file=item.path,
                        tree_shake=tree_shake,
                    )
                )
                continue

            try:
                path = resolve_path_preserve_symlinks(specifier, [basedir])
            except PackageNotFoundError:
                logger.warning("Cannot resolve %r required by %s, skipping", specifier, item.path)
                continue
            self._queue.append(_LocalFile(path, item.importer, tree_shake))

    def _tree_shake_package(
        self,
        edge: _PackageEdge,
        manifest: str,
        descriptor: PackageDescriptor,
        module_name: str,
    ) -> set[str]:
        """Queue the file the specifier points to; fall back to published files if there is none."""
        try:
            path = resolve_path_preserve_symlinks(
                edge.specifier, [edge.importer_dir, *self.search_roots]
            )
        except PackageNotFoundError:
            package_dir = os.path.dirname(manifest)
            logger.debug("No entry file for %s, shipping its published files", edge.specifier)
            if not self.state.claim_package_dir(package_dir):
                return set()
            return get_published_files(package_dir) | get_side_files(package_dir, module_name)

        self._queue.append(_LocalFile(path, descriptor, True))
        return {manifest}

    def _handle_missing(self, edge: _PackageEdge, module_name: str) -> DependencyResolution:
        tolerated = is_optional_dependency(edge.importer, module_name) or (
            edge.declared
            and module_name in edge.importer.peer_dependencies
            and module_name not in edge.importer.dependencies
        )
        if tolerated:
            logger.warning(
                "Missing optional dependency %s (required by %s)", module_name, edge.importer_file
            )
            return DependencyResolution(ResolutionStatus.MISSING_OPTIONAL, module_name)

        try:
            path = resolve_with_host_search(edge.specifier)
        except PackageNotFoundError as e:
            raise UnresolvedDependencyError(module_name, edge.importer_file, self._entry_file) from e

        self._queue.append(_LocalFile(path, edge.importer, edge.tree_shake))
        return DependencyResolution(ResolutionStatus.FALLBACK, module_name, files={path})


# ── Entry Points ──


def resolve_dependencies(
    entry_file: str,
    base_directory: str,
    search_roots: Iterable[str] = (),
    feature_flags: Optional[dict[str, bool]] = None,
    *,
    tree_shake_policy: Optional[TreeShakePolicy] = None,
    list_imports: Optional[Callable[[str], Iterable[str]]] = None,
) -> list[str]:
    """Every file needed to run ``entry_file``, sorted, with a fresh traversal state.

    Args:
        entry_file: The function's entry file.
        base_directory: Directory whose nearest package.json describes the project.
        search_roots: Auxiliary module-search roots tried after the importer's directory.
        feature_flags: ``tree_shake`` tree-shakes every package edge.
        tree_shake_policy: Overrides the default policy (the flag still applies).
        list_imports: Import lister, ``path -> specifiers``.

    Raises:
        UnresolvedDependencyError: A required module can't be found anywhere.
        InvalidManifestError: A package.json on the way is unreadable.
    """
    flags = feature_flags or {}
    policy = tree_shake_policy or TreeShakePolicy()
    if flags.get("tree_shake"):
        policy = replace(policy, enabled=True)

    walker = DependencyWalker(
        base_directory,
        search_roots,
        tree_shake_policy=policy,
        list_imports=list_imports,
    )
    return walker.walk(entry_file)


def list_dependency_modules(
    dependencies: Iterable[str],
    base_directory: str,
    search_roots: Iterable[str] = (),
) -> tuple[list[str], list[str]]:
    """Module names and files reached from a list of bare module names.

    Used for modules a function configuration marks as external: they are
    never imported statically, so the walker can't find them on its own.
    """
    walker = DependencyWalker(base_directory, search_roots)
    return walker.walk_modules(dependencies)
