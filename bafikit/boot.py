"""Boot information handed from the boot stages to the kernel."""

from __future__ import annotations

import struct
from dataclasses import dataclass, fields
from typing import ClassVar

MMAP_ENTRIES = 32


def _require(data: bytes, size: int, what: str) -> bytes:
    data = bytes(data)
    if len(data) < size:
        raise ValueError(f"{what} needs {size} bytes, got {len(data)}")
    return data


@dataclass(frozen=True)
class MemoryMapEntry:
    """One E820 memory map record."""

    base: int = 0
    length: int = 0
    memory_type: int = 0
    reserved_acpi: int = 0

    FORMAT: ClassVar[str] = "<QQII"
    SIZE: ClassVar[int] = struct.calcsize("<QQII")

    @classmethod
    def from_bytes(cls, data: bytes) -> "MemoryMapEntry":
        data = _require(data, cls.SIZE, "memory map entry")
        return cls(*struct.unpack_from(cls.FORMAT, data))


@dataclass(frozen=True)
class Rsdp:
    """ACPI root system description pointer (revision 0 layout)."""

    signature: bytes = bytes(8)
    checksum: int = 0
    oem_id: bytes = bytes(6)
    revision: int = 0
    rsdt_address: int = 0

    FORMAT: ClassVar[str] = "<8sB6sBI"
    SIZE: ClassVar[int] = struct.calcsize("<8sB6sBI")

    @classmethod
    def from_bytes(cls, data: bytes) -> "Rsdp":
        data = _require(data, cls.SIZE, "RSDP")
        return cls(*struct.unpack_from(cls.FORMAT, data))


@dataclass(frozen=True)
class _VbeInfo:
    signature: bytes = bytes(4)
    version: int = 0
    oem: tuple[int, int] = (0, 0)
    dunno: bytes = bytes(4)
    video_ptr: int = 0
    memory_size: int = 0
    reserved: bytes = bytes(492)

    FORMAT: ClassVar[str] = "<4sH2H4sIH492s"
    SIZE: ClassVar[int] = struct.calcsize("<4sH2H4sIH492s")

    @classmethod
    def _from_bytes(cls, data: bytes) -> "_VbeInfo":
        sig, version, oem0, oem1, dunno, video_ptr, mem, reserved = struct.unpack_from(
            cls.FORMAT, data
        )
        return cls(sig, version, (oem0, oem1), dunno, video_ptr, mem, reserved)


_MODE_FORMAT = "<HBBHHHHIHHH" + "B" * 18 + "IIHH" + "B" * 10 + "I189s"


@dataclass(frozen=True)
class VbeModeInfo:
    """VBE mode information block as filled in by the video BIOS."""

    attributes: int = 0
    window_a: int = 0
    window_b: int = 0
    granularity: int = 0
    window_size: int = 0
    segment_a: int = 0
    segment_b: int = 0
    win_func_ptr: int = 0
    pitch: int = 0
    width: int = 0
    height: int = 0
    w_char: int = 0
    y_char: int = 0
    planes: int = 0
    bpp: int = 0
    banks: int = 0
    memory_model: int = 0
    bank_size: int = 0
    image_pages: int = 0
    reserved0: int = 0
    red_mask_size: int = 0
    red_field_position: int = 0
    green_mask_size: int = 0
    green_field_position: int = 0
    blue_mask_size: int = 0
    blue_field_position: int = 0
    reserved_mask_size: int = 0
    reserved_field_position: int = 0
    direct_color_mode_info: int = 0
    framebuffer: int = 0
    reserved1: int = 0
    reserved2: int = 0
    lin_bytes_per_scan_line: int = 0
    bnk_image_pages: int = 0
    lin_image_pages: int = 0
    lin_red_mask_size: int = 0
    lin_red_field_position: int = 0
    lin_green_mask_size: int = 0
    lin_green_field_position: int = 0
    lin_blue_mask_size: int = 0
    lin_blue_field_position: int = 0
    lin_reserved_mask_size: int = 0
    lin_reserved_field_position: int = 0
    max_pixel_clock: int = 0
    reserved3: bytes = bytes(189)

    FORMAT: ClassVar[str] = _MODE_FORMAT
    SIZE: ClassVar[int] = struct.calcsize(_MODE_FORMAT)

    @classmethod
    def from_bytes(cls, data: bytes) -> "VbeModeInfo":
        data = _require(data, cls.SIZE, "VBE mode info")
        return cls(*struct.unpack_from(cls.FORMAT, data))


@dataclass(frozen=True)
class BootInfo:
    """Memory map, ACPI pointer, TSS selector and video mode from the loader."""

    mmap: tuple[MemoryMapEntry, ...]
    rsdp: Rsdp
    tss: int
    vbe: _VbeInfo
    mode: VbeModeInfo

    SIZE: ClassVar[int] = (
        MMAP_ENTRIES * MemoryMapEntry.SIZE + Rsdp.SIZE + 2 + _VbeInfo.SIZE + VbeModeInfo.SIZE
    )

    @classmethod
    def from_bytes(cls, data: bytes) -> "BootInfo":
        data = _require(data, cls.SIZE, "boot info")
        offset = 0
        mmap = []
        for _ in range(MMAP_ENTRIES):
            mmap.append(MemoryMapEntry.from_bytes(data[offset : offset + MemoryMapEntry.SIZE]))
            offset += MemoryMapEntry.SIZE
        rsdp = Rsdp.from_bytes(data[offset : offset + Rsdp.SIZE])
        offset += Rsdp.SIZE
        (tss,) = struct.unpack_from("<H", data, offset)
        offset += 2
        vbe = _VbeInfo._from_bytes(data[offset : offset + _VbeInfo.SIZE])
        offset += _VbeInfo.SIZE
        mode = VbeModeInfo.from_bytes(data[offset : offset + VbeModeInfo.SIZE])
        return cls(tuple(mmap), rsdp, tss, vbe, mode)

    def get_mmap(self, start: int) -> MemoryMapEntry:
        """Return the memory map entry whose base is ``start``."""
        for entry in self.mmap:
            if entry.base == start:
                return entry
        raise LookupError(f"no memory map entry starts at {start:#x}")

    @classmethod
    def null(cls) -> "BootInfo":
        """Boot info with every field zeroed."""
        return cls(
            mmap=tuple(MemoryMapEntry() for _ in range(MMAP_ENTRIES)),
            rsdp=Rsdp(),
            tss=0,
            vbe=_VbeInfo(),
            mode=VbeModeInfo(),
        )

    def __post_init__(self) -> None:
        if len(self.mmap) != MMAP_ENTRIES:
            raise ValueError(f"memory map must have {MMAP_ENTRIES} entries")


__all_fields__ = tuple(f.name for f in fields(VbeModeInfo))