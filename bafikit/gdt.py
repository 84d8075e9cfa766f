"""Global descriptor table and task state segment layouts for 32-bit x86."""

from __future__ import annotations

import struct
from dataclasses import dataclass

_TSS_FORMAT = "<HxxIHxxIHxxIHxxIII8I" + "Hxx" * 7 + "xxHI"

KERNEL_CODE_ACCESS = 0x9A
KERNEL_DATA_ACCESS = 0x92
USER_CODE_ACCESS = 0xFA
USER_DATA_ACCESS = 0xF2
TSS_ACCESS = 0x89
GRANULARITY_32BIT = 0xC
FLAT_LIMIT = 0xFFFFF


def segment_entry(base: int, limit: int, access: int, flags: int) -> int:
    """Encode one 8-byte segment descriptor as an integer."""
    if not 0 <= base <= 0xFFFFFFFF:
        raise ValueError("base must fit in 32 bits")
    if not 0 <= limit <= 0xFFFFF:
        raise ValueError("limit must fit in 20 bits")
    if not 0 <= access <= 0xFF:
        raise ValueError("access must fit in 8 bits")
    if not 0 <= flags <= 0xF:
        raise ValueError("flags must fit in 4 bits")
    return (
        (limit & 0xFFFF)
        | (base & 0xFFFF) << 16
        | ((base >> 16) & 0xFF) << 32
        | access << 40
        | ((limit >> 16) & 0xF) << 48
        | flags << 52
        | ((base >> 24) & 0xFF) << 56
    )


@dataclass
class TaskStateSegment:
    """32-bit task state segment; only ring-0 stack is set by default."""

    link: int = 0
    esp0: int = 0x30_0000
    ss0: int = 0x10
    esp1: int = 0
    ss1: int = 0
    esp2: int = 0
    ss2: int = 0
    cr3: int = 0
    eip: int = 0
    eflags: int = 0
    eax: int = 0
    ecx: int = 0
    edx: int = 0
    ebx: int = 0
    esp: int = 0
    ebp: int = 0
    esi: int = 0
    edi: int = 0
    es: int = 0
    cs: int = 0
    ss: int = 0
    ds: int = 0
    fs: int = 0
    gs: int = 0
    ldtr: int = 0
    iopb: int = 0
    ssp: int = 0

    def pack(self) -> bytes:
        return struct.pack(
            _TSS_FORMAT,
            self.link, self.esp0, self.ss0, self.esp1, self.ss1, self.esp2, self.ss2,
            self.cr3, self.eip, self.eflags,
            self.eax, self.ecx, self.edx, self.ebx, self.esp, self.ebp, self.esi, self.edi,
            self.es, self.cs, self.ss, self.ds, self.fs, self.gs, self.ldtr,
            self.iopb, self.ssp,
        )

    @classmethod
    def size(cls) -> int:
        return struct.calcsize(_TSS_FORMAT)


class Gdt:
    """Null, kernel code/data, user code/data and TSS descriptors."""

    def __init__(self) -> None:
        self.entries: list[int] = [
            0,
            segment_entry(0, FLAT_LIMIT, KERNEL_CODE_ACCESS, GRANULARITY_32BIT),
            segment_entry(0, FLAT_LIMIT, KERNEL_DATA_ACCESS, GRANULARITY_32BIT),
            segment_entry(0, FLAT_LIMIT, USER_CODE_ACCESS, GRANULARITY_32BIT),
            segment_entry(0, FLAT_LIMIT, USER_DATA_ACCESS, GRANULARITY_32BIT),
            0,
        ]

    def write_tss(self, tss_base: int) -> int:
        """Point the last descriptor at a TSS at ``tss_base``; return its low 16 bits."""
        self.entries[5] = segment_entry(tss_base, TaskStateSegment.size() - 1, TSS_ACCESS, 0)
        return tss_base & 0xFFFF

    def descriptor(self, offset: int) -> bytes:
        """The 6-byte operand for ``lgdt`` for a table placed at ``offset``."""
        return struct.pack("<HI", len(self.entries) * 8 - 1, offset)

    def pack(self) -> bytes:
        return b"".join(entry.to_bytes(8, "little") for entry in self.entries)