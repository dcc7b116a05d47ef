"""Binary Classifier — recognizes precompiled Go functions.

A Go executable is an ELF file carrying a ``.note.go.buildid`` section. Only
the ELF and section headers are decoded; nothing is executed.
"""

import logging
import struct
from pathlib import Path

logger = logging.getLogger(__name__)

ELF_MAGIC = b"\x7fELF"
GO_BUILD_ID_SECTION = ".note.go.buildid"

_ELFCLASS32 = 1
_ELFCLASS64 = 2
_ELFDATA2LSB = 1
_ELFDATA2MSB = 2


class ElfFormatError(ValueError):
    """The bytes are not a well-formed ELF file."""


def read_section_names(data: bytes) -> list[str]:
    """Return the section names of an ELF image.

    Raises:
        ElfFormatError: Not an ELF image, or its section headers are truncated.
    """
    if len(data) < 16 or data[:4] != ELF_MAGIC:
        raise ElfFormatError("missing ELF magic")

    elf_class, byte_order = data[4], data[5]
    if byte_order == _ELFDATA2LSB:
        endian = "<"
    elif byte_order == _ELFDATA2MSB:
        endian = ">"
    else:
        raise ElfFormatError(f"unknown byte order {byte_order}")

    try:
        if elf_class == _ELFCLASS64:
            (shoff,) = struct.unpack_from(endian + "Q", data, 0x28)
            shentsize, shnum, shstrndx = struct.unpack_from(endian + "HHH", data, 0x3A)
            section_fmt = endian + "I20xQQ"  # sh_name, ..., sh_offset, sh_size
        elif elf_class == _ELFCLASS32:
            (shoff,) = struct.unpack_from(endian + "I", data, 0x20)
            shentsize, shnum, shstrndx = struct.unpack_from(endian + "HHH", data, 0x2E)
            section_fmt = endian + "I12xII"
        else:
            raise ElfFormatError(f"unknown ELF class {elf_class}")

        if shnum == 0 or shstrndx >= shnum:
            return []

        headers = [
            struct.unpack_from(section_fmt, data, shoff + i * shentsize)
            for i in range(shnum)
        ]
    except struct.error as e:
        raise ElfFormatError(f"truncated section headers: {e}") from e

    _, strtab_offset, strtab_size = headers[shstrndx]
    strtab = data[strtab_offset:strtab_offset + strtab_size]

    names: list[str] = []
    for name_offset, _, _ in headers:
        end = strtab.find(b"\x00", name_offset)
        if end == -1:
            end = len(strtab)
        names.append(strtab[name_offset:end].decode("ascii", errors="replace"))
    return names


def is_go_executable(path: str | Path) -> bool:
    """True if ``path`` is an ELF executable built by the Go toolchain."""
    path = Path(path)
    try:
        with path.open("rb") as f:
            if f.read(4) != ELF_MAGIC:
                return False
        names = read_section_names(path.read_bytes())
    except (OSError, ElfFormatError) as e:
        logger.debug("Not a Go executable %s: %s", path, e)
        return False
    return GO_BUILD_ID_SECTION in names
