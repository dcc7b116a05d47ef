"""Import Lister — static extraction of import specifiers from JS/TS sources.

Regex-based: strips comments, then collects the module specifiers of ES6
``import``/``export ... from`` statements, CommonJS ``require()`` calls and
``import()`` expressions with string literals. Nothing is executed.

Node core modules (``fs``, ``node:path``...) are dropped since the runtime
provides them. ``require(variable)`` and other non-literal forms are
unresolvable statically and are skipped.
"""

import logging
import re
from pathlib import Path

from fnpack.utils import read_text_safe

logger = logging.getLogger(__name__)

# ── Constants ──

# Sources the lister understands. Anything else (.json, .node, assets) is
# shipped as-is without being parsed.
JS_EXTENSIONS = {".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs"}

NODE_CORE_MODULES = frozenset({
    "assert",
    "async_hooks",
    "buffer",
    "child_process",
    "cluster",
    "console",
    "constants",
    "crypto",
    "dgram",
    "diagnostics_channel",
    "dns",
    "domain",
    "events",
    "fs",
    "http",
    "http2",
    "https",
    "inspector",
    "module",
    "net",
    "os",
    "path",
    "perf_hooks",
    "process",
    "punycode",
    "querystring",
    "readline",
    "repl",
    "stream",
    "string_decoder",
    "sys",
    "timers",
    "tls",
    "trace_events",
    "tty",
    "url",
    "util",
    "v8",
    "vm",
    "wasi",
    "worker_threads",
    "zlib",
})

# ── Import Patterns ──

# import default, { named } from 'module'
_ES6_IMPORT_DEFAULT_NAMED_RE = re.compile(
    r"""\bimport\s+\w+\s*,\s*\{[^}]*\}\s*from\s*['"]([^'"]+)['"]""",
    re.DOTALL,
)

# import default from 'module'
_ES6_IMPORT_DEFAULT_RE = re.compile(
    r"""\bimport\s+[\w$]+\s+from\s*['"]([^'"]+)['"]"""
)

# import { named } from 'module'
_ES6_IMPORT_NAMED_RE = re.compile(
    r"""\bimport\s*\{[^}]*\}\s*from\s*['"]([^'"]+)['"]""",
    re.DOTALL,
)

# import * as name from 'module'
_ES6_IMPORT_NAMESPACE_RE = re.compile(
    r"""\bimport\s*\*\s*as\s+[\w$]+\s+from\s*['"]([^'"]+)['"]"""
)

# import 'module'  (side-effect)
_ES6_IMPORT_SIDE_EFFECT_RE = re.compile(
    r"""^\s*import\s*['"]([^'"]+)['"]""", re.MULTILINE
)

# export { ... } from 'module'  (re-export)
_ES6_REEXPORT_RE = re.compile(
    r"""\bexport\s*\{[^}]*\}\s*from\s*['"]([^'"]+)['"]""", re.DOTALL
)

# export * from 'module' / export * as ns from 'module'
_ES6_REEXPORT_ALL_RE = re.compile(
    r"""\bexport\s*\*\s*(?:as\s+[\w$]+\s+)?from\s*['"]([^'"]+)['"]"""
)

# Dynamic import('module') with string literal
_DYNAMIC_IMPORT_LITERAL_RE = re.compile(
    r"""\bimport\s*\(\s*['"]([^'"]+)['"]\s*\)"""
)

# require('module'), require.resolve('module'), any assignment form
_REQUIRE_RE = re.compile(
    r"""(?<![\w$.])require(?:\.resolve)?\s*\(\s*['"`]([^'"`$]+)['"`]\s*\)"""
)

_PATTERNS = (
    _ES6_IMPORT_DEFAULT_NAMED_RE,
    _ES6_IMPORT_DEFAULT_RE,
    _ES6_IMPORT_NAMED_RE,
    _ES6_IMPORT_NAMESPACE_RE,
    _ES6_IMPORT_SIDE_EFFECT_RE,
    _ES6_REEXPORT_RE,
    _ES6_REEXPORT_ALL_RE,
    _DYNAMIC_IMPORT_LITERAL_RE,
    _REQUIRE_RE,
)


# ── Comment Stripping ──


def _skip_string(source: str, i: int, result: list[str]) -> int:
    """Copy a quoted string starting at ``source[i]`` into result; return the index after it."""
    quote = source[i]
    n = len(source)
    result.append(quote)
    i += 1
    while i < n and source[i] != quote:
        if source[i] == "\\":
            result.append(source[i])
            i += 1
            if i < n:
                result.append(source[i])
                i += 1
            continue
        if quote != "`" and source[i] == "\n":
            # Unterminated string literal; stop at the line end
            break
        result.append(source[i])
        i += 1
    if i < n and source[i] == quote:
        result.append(source[i])
        i += 1
    return i


def strip_js_comments(source: str) -> str:
    """Remove JS/TS comments while preserving line numbers and string contents."""
    result: list[str] = []
    i = 0
    n = len(source)

    while i < n:
        c = source[i]

        if c in ("'", '"', "`"):
            i = _skip_string(source, i, result)
            continue

        # Single-line comment
        if c == "/" and i + 1 < n and source[i + 1] == "/":
            i += 2
            while i < n and source[i] != "\n":
                i += 1
            continue

        # Multi-line comment
        if c == "/" and i + 1 < n and source[i + 1] == "*":
            i += 2
            while i < n - 1:
                if source[i] == "\n":
                    result.append("\n")  # preserve line numbers
                if source[i] == "*" and source[i + 1] == "/":
                    i += 2
                    break
                i += 1
            else:
                i = n
            continue

        result.append(c)
        i += 1

    return "".join(result)


# ── Extraction ──


def is_core_module(specifier: str) -> bool:
    """True for Node built-ins, with or without the ``node:`` scheme."""
    if specifier.startswith("node:"):
        return True
    return specifier.split("/")[0] in NODE_CORE_MODULES


def extract_imports(source: str) -> list[str]:
    """Return the module specifiers imported by ``source``, in source order.

    Core modules are excluded and each specifier appears once.
    """
    clean = strip_js_comments(source)
    found: list[tuple[int, str]] = []
    seen_spans: list[tuple[int, int]] = []  # track matched spans to avoid dupes

    for pattern in _PATTERNS:
        for m in pattern.finditer(clean):
            start = m.start(1)
            if any(s[0] <= start < s[1] for s in seen_spans):
                continue
            seen_spans.append(m.span())
            found.append((start, m.group(1).strip()))

    specifiers: list[str] = []
    for _, specifier in sorted(found):
        if not specifier or is_core_module(specifier) or specifier in specifiers:
            continue
        specifiers.append(specifier)
    return specifiers


def list_imports(path: str | Path) -> list[str]:
    """List the import specifiers of the file at ``path``.

    Files that are not JS/TS sources have no imports. Raises OSError if a
    source file cannot be read.
    """
    path = Path(path)
    if path.suffix not in JS_EXTENSIONS:
        return []
    specifiers = extract_imports(read_text_safe(path))
    logger.debug("%s imports %s", path, specifiers)
    return specifiers
