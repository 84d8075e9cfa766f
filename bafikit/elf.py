"""Loader for 32-bit little-endian ELF shared objects into a simulated address space.

The file's loadable segments are copied to their virtual addresses relative to
``base``. Uninitialised data is zeroed, the string table is carried over and
REL relocations are applied.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import ClassVar

_MASK32 = 0xFFFFFFFF
PAGE_SIZE = 4096
MAX_SYMBOL_INDEX = 10000

R_386_NONE = 0
R_386_32 = 1
R_386_PC32 = 2
R_386_GLOB_DAT = 6
R_386_JMP_SLOT = 7
R_386_RELATIVE = 8

PT_LOAD = 1
PT_DYNAMIC = 2

DT_NULL = 0
DT_PLTRELSZ = 2
DT_PLTGOT = 3
DT_STRTAB = 5
DT_SYMTAB = 6
DT_STRSZ = 10
DT_SYMENT = 11
DT_REL = 17
DT_RELSZ = 18
DT_PLTREL = 20
DT_JMPREL = 23

_DYN_FORMAT = "<iI"
_DYN_SIZE = struct.calcsize(_DYN_FORMAT)
_REL_FORMAT = "<II"
_REL_SIZE = struct.calcsize(_REL_FORMAT)


class ElfError(ValueError):
    """The image is malformed or cannot be loaded."""


@dataclass(frozen=True)
class ElfHeader:
    """The ELF file header."""

    e_ident: bytes
    e_type: int
    e_machine: int
    e_version: int
    e_entry: int
    e_phoff: int
    e_shoff: int
    e_flags: int
    e_ehsize: int
    e_phentsize: int
    e_phnum: int
    e_shentsize: int
    e_shnum: int
    e_shstrndx: int

    FORMAT: ClassVar[str] = "<16sHHIIIIIHHHHHH"
    SIZE: ClassVar[int] = struct.calcsize("<16sHHIIIIIHHHHHH")

    @classmethod
    def from_bytes(cls, data: bytes) -> "ElfHeader":
        if len(data) < cls.SIZE:
            raise ElfError("File too small to be an ELF")
        return cls(*struct.unpack_from(cls.FORMAT, data))

    def is_valid(self) -> bool:
        """True for a 32-bit little-endian ELF identification."""
        ident = self.e_ident
        return ident[0] == 0x7F and ident[1:4] == b"ELF" and ident[4] == 1 and ident[5] == 1


@dataclass(frozen=True)
class ProgramHeader:
    """One program header table entry."""

    ph_type: int
    ph_offset: int
    ph_vaddr: int
    ph_paddr: int
    ph_filesz: int
    ph_memsz: int
    ph_flags: int
    ph_align: int

    FORMAT: ClassVar[str] = "<8I"
    SIZE: ClassVar[int] = struct.calcsize("<8I")

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> "ProgramHeader":
        if offset < 0 or offset + cls.SIZE > len(data):
            raise ElfError("Program headers outside file bounds")
        return cls(*struct.unpack_from(cls.FORMAT, data, offset))


@dataclass(frozen=True)
class Symbol:
    """One symbol table entry."""

    st_name: int
    st_value: int
    st_size: int
    st_info: int
    st_other: int
    st_shndx: int

    FORMAT: ClassVar[str] = "<IIIBBH"
    SIZE: ClassVar[int] = struct.calcsize("<IIIBBH")

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> "Symbol":
        if offset < 0 or offset + cls.SIZE > len(data):
            raise ElfError("Symbol outside image bounds")
        return cls(*struct.unpack_from(cls.FORMAT, data, offset))


@dataclass
class _Dynamic:
    strtab: int = 0
    strsz: int = 0
    symtab: int = 0
    syment: int = 0
    rel: int = 0
    relsz: int = 0
    pltgot: int = 0
    pltrelsz: int = 0
    pltrel: int = 0
    jmprel: int = 0

    _TAGS: ClassVar[dict[int, str]] = {
        DT_STRTAB: "strtab",
        DT_STRSZ: "strsz",
        DT_SYMTAB: "symtab",
        DT_SYMENT: "syment",
        DT_REL: "rel",
        DT_RELSZ: "relsz",
        DT_PLTGOT: "pltgot",
        DT_PLTRELSZ: "pltrelsz",
        DT_PLTREL: "pltrel",
        DT_JMPREL: "jmprel",
    }

    def apply(self, tag: int, value: int) -> None:
        name = self._TAGS.get(tag)
        if name is not None:
            setattr(self, name, value)


@dataclass
class LoadedImage:
    """A loaded image: its base address, entry point and memory contents."""

    base: int
    entry: int
    memory: bytearray = field(repr=False)
    strtab: int = 0
    symtab: int = 0
    rel: int = 0
    relsz: int = 0

    def read_u32(self, offset: int) -> int:
        """Little-endian word at ``offset`` from the image base."""
        if offset < 0 or offset + 4 > len(self.memory):
            raise ElfError(f"offset {offset:#x} outside image")
        return int.from_bytes(self.memory[offset : offset + 4], "little")

    def _write_u32(self, offset: int, value: int) -> None:
        if offset < 0 or offset + 4 > len(self.memory):
            raise ElfError(f"relocation offset {offset:#x} outside image")
        self.memory[offset : offset + 4] = (value & _MASK32).to_bytes(4, "little")


def _ensure(memory: bytearray, end: int) -> None:
    if end > len(memory):
        memory.extend(bytes(end - len(memory)))


def _load_segment(data: bytes, memory: bytearray, base: int, header: ProgramHeader) -> None:
    if header.ph_offset + header.ph_filesz > len(data):
        raise ElfError("Load segment outside file bounds")
    if header.ph_vaddr + header.ph_filesz > _MASK32:
        raise ElfError("Load address arithmetic overflow")
    if (base + header.ph_vaddr) % 4:
        raise ElfError("Load address not properly aligned")

    start = header.ph_vaddr
    end = start + max(header.ph_filesz, header.ph_memsz)
    _ensure(memory, end)
    memory[start : start + header.ph_filesz] = data[
        header.ph_offset : header.ph_offset + header.ph_filesz
    ]
    if header.ph_memsz > header.ph_filesz:
        bss_start = start + header.ph_filesz
        memory[bss_start:end] = bytes(end - bss_start)


def _read_dynamic(data: bytes, header: ProgramHeader, dynamic: _Dynamic) -> None:
    if header.ph_offset + header.ph_filesz > len(data):
        raise ElfError("Dynamic segment outside file bounds")
    count = header.ph_filesz // _DYN_SIZE
    for tag, value in struct.iter_unpack(
        _DYN_FORMAT, data[header.ph_offset : header.ph_offset + count * _DYN_SIZE]
    ):
        if tag == DT_NULL:
            break
        dynamic.apply(tag, value)


def _get_symbol(image: LoadedImage, dynamic: _Dynamic, index: int) -> Symbol:
    if dynamic.symtab == 0 or dynamic.syment == 0:
        raise ElfError("relocation refers to a symbol but there is no symbol table")
    if index > MAX_SYMBOL_INDEX:
        raise ElfError(f"symbol index {index} too large")
    offset = dynamic.symtab + index * dynamic.syment
    if (image.base + offset) % 4:
        raise ElfError("symbol entry not properly aligned")
    return Symbol.from_bytes(image.memory, offset)


def _apply_relocations(image: LoadedImage, dynamic: _Dynamic) -> None:
    count = dynamic.relsz // _REL_SIZE
    if count == 0:
        return
    end = dynamic.rel + count * _REL_SIZE
    if end > len(image.memory):
        raise ElfError("relocation table outside image")
    table = bytes(image.memory[dynamic.rel : end])
    base = image.base

    for r_offset, r_info in struct.iter_unpack(_REL_FORMAT, table):
        rel_type = r_info & 0xFF
        sym_index = r_info >> 8
        if rel_type == R_386_32:
            sym = _get_symbol(image, dynamic, sym_index)
            image._write_u32(r_offset, image.read_u32(r_offset) + base + sym.st_value)
        elif rel_type == R_386_PC32:
            sym = _get_symbol(image, dynamic, sym_index)
            current = image.read_u32(r_offset)
            image._write_u32(r_offset, current + (base + sym.st_value) - (base + r_offset))
        elif rel_type == R_386_RELATIVE:
            image._write_u32(r_offset, image.read_u32(r_offset) + base)


def load_lib(data: bytes, base: int) -> LoadedImage:
    """Load the ELF image ``data`` at address ``base``."""
    data = bytes(data)
    header = ElfHeader.from_bytes(data)
    if not header.is_valid():
        raise ElfError("Invalid ELF header")
    if base == 0:
        raise ElfError("Failed to allocate memory for ELF")
    if base % PAGE_SIZE:
        raise ElfError("Base address not page-aligned")
    if header.e_phoff == 0 or header.e_phnum == 0:
        raise ElfError("No program headers found")
    if header.e_phoff + header.e_phnum * header.e_phentsize > len(data):
        raise ElfError("Program headers outside file bounds")

    memory = bytearray(len(data))
    dynamic = _Dynamic()
    program_headers = [
        ProgramHeader.from_bytes(data, header.e_phoff + i * ProgramHeader.SIZE)
        for i in range(header.e_phnum)
    ]
    for ph in program_headers:
        if ph.ph_type == PT_LOAD:
            _load_segment(data, memory, base, ph)
        elif ph.ph_type == PT_DYNAMIC:
            _read_dynamic(data, ph, dynamic)

    if dynamic.strtab and dynamic.strsz:
        end = dynamic.strtab + dynamic.strsz
        if end > len(data):
            raise ElfError("String table outside file bounds")
        _ensure(memory, end)
        memory[dynamic.strtab : end] = data[dynamic.strtab : end]

    image = LoadedImage(
        base=base,
        entry=(base + header.e_entry) & _MASK32,
        memory=memory,
        strtab=dynamic.strtab,
        symtab=dynamic.symtab,
        rel=dynamic.rel,
        relsz=dynamic.relsz,
    )

    if dynamic.rel and dynamic.relsz:
        _apply_relocations(image, dynamic)

    return image