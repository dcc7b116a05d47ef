"""Module-Name Parser — package names from import specifiers."""

import os
from typing import Optional


def is_local_specifier(specifier: str) -> bool:
    """True for specifiers resolved against the importing file (``./x``, ``../x``, ``.``, absolute)."""
    specifier = specifier.replace("\\", "/")
    return (
        specifier in (".", "..")
        or specifier.startswith(("./", "../", "/"))
        or os.path.isabs(specifier)
    )


def get_module_name(specifier: str) -> Optional[str]:
    """Return the package name a bare specifier refers to.

    Sub-paths are stripped::

        "lodash/fp"            -> "lodash"
        "@babel/core/lib/x.js" -> "@babel/core"

    Returns None for specifiers that don't name a package, e.g.
    ``require("@scope")`` without a package part, empty strings or local paths.
    """
    specifier = specifier.replace("\\", "/").strip()
    if not specifier or is_local_specifier(specifier):
        return None

    parts = specifier.split("/")
    if specifier.startswith("@"):
        if len(parts) < 2 or len(parts[0]) < 2 or not parts[1]:
            return None
        return f"{parts[0]}/{parts[1]}"
    return parts[0]
