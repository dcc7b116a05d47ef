"""Archive Sink — deterministic zip archives plus the toolchain metadata entry.

Entries are written in the order they are added, so callers add files in
sorted order to get byte-identical archives for identical inputs.
"""

import json
import logging
import os
import stat
import time
import zipfile
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Entry read by the execution environment to pick an interpreter
TOOLCHAIN_ENTRY = "fnpack-toolchain"

# Earliest timestamp the zip format can store
_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)

_DEFAULT_FILE_MODE = 0o644


def _zip_date_time(mtime: Optional[float]) -> tuple:
    if mtime is None:
        return _ZIP_EPOCH
    date_time = time.gmtime(mtime)[:6]
    return max(date_time, _ZIP_EPOCH)


class ZipArchive:
    """Streams files into a deflated zip archive.

    Usage::

        with ZipArchive("/tmp/out/hello.zip") as archive:
            archive.add_file("/src/hello.js", "hello.js")
            add_toolchain_file(archive, "js")
    """

    def __init__(self, dest_path: str | Path):
        self.dest_path = Path(dest_path)
        self.dest_path.parent.mkdir(parents=True, exist_ok=True)
        self._zip = zipfile.ZipFile(self.dest_path, "w", zipfile.ZIP_DEFLATED, compresslevel=9)
        self._entries: set[str] = set()
        self._finalized = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.finalize()
        else:
            self._zip.close()
        return False

    def _add(self, entry_name: str, data: bytes, mode: int, mtime: Optional[float]) -> None:
        if self._finalized:
            raise ValueError(f"Archive already finalized: {self.dest_path}")
        if entry_name in self._entries:
            logger.debug("Skipping duplicate entry %s in %s", entry_name, self.dest_path)
            return
        self._entries.add(entry_name)

        info = zipfile.ZipInfo(entry_name, date_time=_zip_date_time(mtime))
        info.compress_type = zipfile.ZIP_DEFLATED
        info.create_system = 3  # unix, so external_attr carries permissions
        info.external_attr = (stat.S_IFREG | stat.S_IMODE(mode)) << 16
        self._zip.writestr(info, data)

    def add_file(
        self,
        path: str | Path,
        entry_name: str,
        mode: Optional[int] = None,
        mtime: Optional[float] = None,
    ) -> None:
        """Add the file at ``path`` as ``entry_name``. Mode and mtime default to the file's own."""
        if mode is None or mtime is None:
            st = os.stat(path)
            mode = st.st_mode if mode is None else mode
            mtime = st.st_mtime if mtime is None else mtime
        self._add(entry_name, Path(path).read_bytes(), mode, mtime)

    def add_content(self, content: str | bytes, entry_name: str) -> None:
        """Add in-memory content with a fixed timestamp."""
        data = content.encode("utf-8") if isinstance(content, str) else content
        self._add(entry_name, data, _DEFAULT_FILE_MODE, None)

    def finalize(self) -> Path:
        """Close the archive and return its path."""
        if not self._finalized:
            self._zip.close()
            self._finalized = True
        return self.dest_path

    @property
    def entry_names(self) -> list[str]:
        return sorted(self._entries)


def add_toolchain_file(archive: ZipArchive, runtime: str) -> None:
    """Record which runtime executes the archive."""
    payload = {"runtime": runtime}
    archive.add_content(json.dumps(payload), TOOLCHAIN_ENTRY)
