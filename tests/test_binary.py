"""Tests for ELF section parsing and Go executable detection."""

import struct

import pytest

from fnpack.binary import ElfFormatError, is_go_executable, read_section_names


def make_elf(section_names, elf_class=64, endian="<"):
    """Build a minimal ELF image holding only a section header table.

    Section 0 is the null section and section 1 the name string table.
    """
    names = ["", ".shstrtab", *section_names]
    strtab = b""
    offsets = []
    for name in names:
        offsets.append(len(strtab))
        strtab += name.encode("ascii") + b"\x00"

    if elf_class == 64:
        ehsize, shentsize, section_fmt = 64, 64, "I20xQQ"
        shoff_at, shoff_fmt, counts_at = 0x28, "Q", 0x3A
    else:
        ehsize, shentsize, section_fmt = 52, 40, "I12xII"
        shoff_at, shoff_fmt, counts_at = 0x20, "I", 0x2E

    strtab_offset = ehsize
    shoff = strtab_offset + len(strtab)

    header = bytearray(ehsize)
    header[:7] = b"\x7fELF" + bytes([1 if elf_class == 32 else 2, 1 if endian == "<" else 2, 1])
    struct.pack_into(endian + shoff_fmt, header, shoff_at, shoff)
    struct.pack_into(endian + "HHH", header, counts_at, shentsize, len(names), 1)

    sections = b""
    for i, name_offset in enumerate(offsets):
        if i == 1:
            entry = struct.pack(endian + section_fmt, name_offset, strtab_offset, len(strtab))
        else:
            entry = struct.pack(endian + section_fmt, name_offset, 0, 0)
        sections += entry.ljust(shentsize, b"\x00")

    return bytes(header) + strtab + sections


class TestReadSectionNames:
    def test_elf64_little_endian(self):
        data = make_elf([".text", ".note.go.buildid"])
        assert read_section_names(data) == ["", ".shstrtab", ".text", ".note.go.buildid"]

    def test_elf32_big_endian(self):
        data = make_elf([".data"], elf_class=32, endian=">")
        assert read_section_names(data) == ["", ".shstrtab", ".data"]

    def test_not_elf(self):
        with pytest.raises(ElfFormatError):
            read_section_names(b"#!/bin/sh\necho hi\n")

    def test_truncated(self):
        data = make_elf([".text"])
        with pytest.raises(ElfFormatError):
            read_section_names(data[:80])


class TestIsGoExecutable:
    def test_go_binary(self, tmp_path):
        exe = tmp_path / "hello"
        exe.write_bytes(make_elf([".text", ".note.go.buildid"]))
        assert is_go_executable(exe)

    def test_other_elf(self, tmp_path):
        exe = tmp_path / "hello"
        exe.write_bytes(make_elf([".text", ".note.gnu.build-id"]))
        assert not is_go_executable(exe)

    def test_text_file(self, tmp_path):
        f = tmp_path / "notes.txt"
        f.write_text("hello")
        assert not is_go_executable(f)

    def test_missing_file(self, tmp_path):
        assert not is_go_executable(tmp_path / "nope")

    def test_corrupt_elf(self, tmp_path):
        f = tmp_path / "corrupt"
        f.write_bytes(b"\x7fELF\x02\x01\x01" + b"\x00" * 9)
        assert not is_go_executable(f)
