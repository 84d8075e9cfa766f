import struct

import pytest

from bafikit.elf import (
    DT_REL,
    DT_RELSZ,
    DT_STRSZ,
    DT_STRTAB,
    DT_SYMENT,
    DT_SYMTAB,
    PT_DYNAMIC,
    PT_LOAD,
    R_386_32,
    R_386_PC32,
    R_386_RELATIVE,
    ElfError,
    ElfHeader,
    ProgramHeader,
    Symbol,
    load_lib,
)

BASE = 0x40_0000
SIZE = 0x400
IDENT = b"\x7fELF\x01\x01\x01" + bytes(9)


def make_elf(*, dyn=(), extra=(), entry=0x40, ident=IDENT, load_size=SIZE, phnum=None, patches=None):
    buf = bytearray(SIZE)
    phdrs = [(PT_LOAD, 0, 0, 0, load_size, load_size, 5, 0x1000)]
    if dyn:
        dyn_bytes = b"".join(struct.pack("<iI", t, v) for t, v in dyn) + struct.pack("<iI", 0, 0)
        buf[0x200 : 0x200 + len(dyn_bytes)] = dyn_bytes
        phdrs.append((PT_DYNAMIC, 0x200, 0x200, 0x200, len(dyn_bytes), len(dyn_bytes), 6, 4))
    phdrs.extend(extra)
    count = len(phdrs) if phnum is None else phnum
    header = struct.pack(
        "<16sHHIIIIIHHHHHH", ident, 3, 3, 1, entry, 52, 0, 0, 52, 32, count, 40, 0, 0
    )
    buf[0:52] = header
    for i, ph in enumerate(phdrs):
        buf[52 + 32 * i : 84 + 32 * i] = struct.pack("<8I", *ph)
    for offset, value in (patches or {}).items():
        buf[offset : offset + len(value)] = value
    return bytes(buf)


def test_header_from_bytes_reads_fields():
    hdr = ElfHeader.from_bytes(make_elf(entry=0x40))
    assert hdr.e_entry == 0x40
    assert hdr.e_phoff == 52
    assert hdr.e_phnum == 1
    assert hdr.is_valid()


def test_header_invalid_for_big_endian():
    ident = b"\x7fELF\x01\x02\x01" + bytes(9)
    assert ElfHeader.from_bytes(make_elf(ident=ident)).is_valid() is False


def test_header_invalid_magic():
    ident = b"\x7fELG\x01\x01\x01" + bytes(9)
    assert not ElfHeader.from_bytes(make_elf(ident=ident)).is_valid()


def test_too_small_file():
    with pytest.raises(ElfError):
        load_lib(b"\x7fELF", BASE)


def test_invalid_header_rejected():
    with pytest.raises(ElfError, match="Invalid ELF header"):
        load_lib(make_elf(ident=b"\x7fELF\x02\x01\x01" + bytes(9)), BASE)


def test_unaligned_base_rejected():
    with pytest.raises(ElfError, match="page-aligned"):
        load_lib(make_elf(), BASE + 0x10)


def test_no_program_headers_rejected():
    with pytest.raises(ElfError, match="No program headers"):
        load_lib(make_elf(phnum=0), BASE)


def test_program_headers_outside_file():
    with pytest.raises(ElfError):
        load_lib(make_elf(phnum=60), BASE)


def test_entry_and_segment_copy():
    data = make_elf(entry=0x40, patches={0x100: b"\xde\xad\xbe\xef"})
    image = load_lib(data, BASE)
    assert image.entry == BASE + 0x40
    assert image.base == BASE
    assert image.memory[0x100:0x104] == b"\xde\xad\xbe\xef"
    assert bytes(image.memory[:52]) == data[:52]


def test_bss_is_zeroed_and_segment_placed():
    seg = (PT_LOAD, 0x100, 0x1000, 0x1000, 4, 0x20, 6, 4)
    data = make_elf(extra=[seg], patches={0x100: b"\x01\x02\x03\x04", 0x104: b"\xff" * 8})
    image = load_lib(data, BASE)
    assert image.memory[0x1000:0x1004] == b"\x01\x02\x03\x04"
    assert image.memory[0x1004:0x1020] == bytes(0x1C)
    assert len(image.memory) >= 0x1020


def test_load_segment_outside_file():
    seg = (PT_LOAD, 0x3F0, 0x1000, 0x1000, 0x100, 0x100, 6, 4)
    with pytest.raises(ElfError, match="outside file bounds"):
        load_lib(make_elf(extra=[seg]), BASE)


def test_unaligned_load_address():
    seg = (PT_LOAD, 0x100, 0x1002, 0x1002, 4, 4, 6, 4)
    with pytest.raises(ElfError, match="aligned"):
        load_lib(make_elf(extra=[seg]), BASE)


def test_relative_relocation_adds_base():
    data = make_elf(
        dyn=[(DT_REL, 0x280), (DT_RELSZ, 8)],
        patches={0x180: struct.pack("<I", 0x10), 0x280: struct.pack("<II", 0x180, R_386_RELATIVE)},
    )
    image = load_lib(data, BASE)
    assert image.read_u32(0x180) == BASE + 0x10
    assert image.rel == 0x280


def test_absolute_and_pc_relative_relocations():
    symbol = struct.pack("<IIIBBH", 1, 0x24, 0, 0x12, 0, 1)
    rels = struct.pack("<II", 0x184, (1 << 8) | R_386_32) + struct.pack(
        "<II", 0x188, (1 << 8) | R_386_PC32
    )
    data = make_elf(
        dyn=[(DT_REL, 0x280), (DT_RELSZ, 16), (DT_SYMTAB, 0x300), (DT_SYMENT, 16)],
        patches={0x184: struct.pack("<I", 4), 0x280: rels, 0x310: symbol},
    )
    image = load_lib(data, BASE)
    assert image.read_u32(0x184) == 4 + BASE + 0x24
    assert image.read_u32(0x188) == (0x24 - 0x188) & 0xFFFFFFFF


def test_symbol_relocation_without_symtab_fails():
    data = make_elf(
        dyn=[(DT_REL, 0x280), (DT_RELSZ, 8)],
        patches={0x280: struct.pack("<II", 0x184, (1 << 8) | R_386_32)},
    )
    with pytest.raises(ElfError):
        load_lib(data, BASE)


def test_string_table_copied_from_file():
    data = make_elf(
        dyn=[(DT_STRTAB, 0x380), (DT_STRSZ, 8)],
        load_size=0x300,
        patches={0x380: b"libc.so\x00"},
    )
    image = load_lib(data, BASE)
    assert image.memory[0x380:0x388] == b"libc.so\x00"
    assert image.memory[0x300:0x380] == bytes(0x80)
    assert image.strtab == 0x380


def test_program_header_round_trip_and_truncation():
    raw = struct.pack("<8I", PT_LOAD, 1, 2, 3, 4, 5, 6, 7)
    ph = ProgramHeader.from_bytes(b"\x00" * 4 + raw, 4)
    assert (ph.ph_type, ph.ph_offset, ph.ph_align) == (PT_LOAD, 1, 7)
    with pytest.raises(ElfError):
        ProgramHeader.from_bytes(raw[:20], 0)


def test_symbol_from_bytes():
    raw = struct.pack("<IIIBBH", 9, 0x24, 8, 0x12, 0, 3)
    sym = Symbol.from_bytes(raw, 0)
    assert sym.st_value == 0x24
    assert sym.st_shndx == 3
    with pytest.raises(ElfError):
        Symbol.from_bytes(raw, 4)


def test_read_u32_out_of_range():
    image = load_lib(make_elf(), BASE)
    with pytest.raises(ElfError):
        image.read_u32(len(image.memory) - 2)