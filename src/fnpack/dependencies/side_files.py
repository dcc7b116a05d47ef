"""Side-File Augmenter — runtime files some packages keep outside their own directory.

Maintained data, not derived: each entry maps a module name to glob
patterns relative to the package directory. A trailing ``/**`` takes the
whole directory tree.
"""

import glob
import os
from pathlib import Path

SIDE_FILES: dict[str, tuple[str, ...]] = {
    # `prisma generate` writes the client engine and schema next to @prisma
    "@prisma/client": ("../../.prisma/**",),
}


def _tree(directory: Path) -> set[str]:
    if not directory.is_dir():
        return set()
    return {str(path) for path in directory.rglob("*") if path.is_file()}


def get_side_files(package_dir: str, module_name: str) -> set[str]:
    """Extra absolute file paths required by ``module_name``; empty for most modules."""
    patterns = SIDE_FILES.get(module_name, ())
    files: set[str] = set()
    for pattern in patterns:
        # normpath rather than resolve() keeps symlinked package directories in place
        target = os.path.normpath(os.path.join(os.path.abspath(package_dir), pattern))
        if pattern.endswith("/**"):
            files |= _tree(Path(target[: -len("/**")]))
        else:
            files |= {path for path in glob.glob(target) if os.path.isfile(path)}
    return files
