"""Shared helpers — encoding-safe reading, junk filtering, archive path normalization."""

import os
import re
from pathlib import Path

# ── Encoding-safe file reading ──

# BOM signatures for UTF-16 variants
_UTF16_LE_BOM = b"\xff\xfe"
_UTF16_BE_BOM = b"\xfe\xff"


def read_text_safe(path: str | Path) -> str:
    """Read a text file, handling UTF-8, UTF-16 (BOM), and latin-1 gracefully.

    Raises OSError if the file cannot be read at all.
    """
    raw = Path(path).read_bytes()
    # Detect UTF-16 BOM before trying UTF-8
    if raw[:2] in (_UTF16_LE_BOM, _UTF16_BE_BOM):
        return raw.decode("utf-16")
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return raw.decode("latin-1")


# ── Junk Files ──

# Temporary and OS metadata files never worth shipping
_JUNK_RE = re.compile(
    "|".join(
        (
            r"^npm-debug\.log$",
            r"^\..*\.swp$",
            r"^\.DS_Store$",
            r"^\.AppleDouble$",
            r"^\.LSOverride$",
            r"^Icon\r$",
            r"^\._.*",
            r"^\.Spotlight-V100$",
            r"\.Trashes",
            r"^__MACOSX$",
            r"~$",
            r"^Thumbs\.db$",
            r"^ehthumbs\.db$",
            r"^Desktop\.ini$",
            r"@eaDir$",
        )
    )
)


def is_junk(path: str) -> bool:
    """True if the basename of ``path`` is a temporary or OS metadata file."""
    return _JUNK_RE.search(os.path.basename(path)) is not None


# ── Paths ──


def unixify(path: str) -> str:
    """Convert a relative path to forward slashes, as zip readers and ``require()`` expect."""
    return path.replace(os.sep, "/").lstrip("/")


def is_within(path: str, directory: str) -> bool:
    """True if ``path`` is ``directory`` itself or lies below it (lexically)."""
    directory = directory.rstrip(os.sep)
    return path == directory or path.startswith(directory + os.sep)
