"""First-fit free-list allocator over a simulated address range.

Blocks are carved from the high end of a free segment. Each free segment
carries an 8-byte header (size and link). Each allocated block carries a
4-byte header holding its size. Freed blocks are merged with neighbours
that touch them.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass, replace

FREE_HEADER_SIZE = 8
USED_HEADER_SIZE = 4
WORD_ALIGN = 4
DEFAULT_BASE = 0x10_0000


class OutOfMemoryError(MemoryError):
    """No free segment can hold the requested block."""


@dataclass
class FreeSegment:
    """A free region whose header sits at ``address``."""

    address: int
    size: int

    @property
    def start(self) -> int:
        return self.address + FREE_HEADER_SIZE

    @property
    def end(self) -> int:
        return self.start + self.size


class Allocator:
    """Allocator managing ``size`` bytes starting at ``base``."""

    def __init__(self, size: int, base: int = DEFAULT_BASE) -> None:
        if base < 0 or base % FREE_HEADER_SIZE:
            raise ValueError(f"base must be a non-negative multiple of {FREE_HEADER_SIZE}")
        size -= size % FREE_HEADER_SIZE
        if size <= FREE_HEADER_SIZE:
            raise ValueError("region too small to hold a free segment")
        self._free: list[FreeSegment] = [FreeSegment(base, size - FREE_HEADER_SIZE)]
        self._used: dict[int, int] = {}

    @staticmethod
    def _header_for(segment: FreeSegment, size: int, align: int) -> int | None:
        if segment.size < USED_HEADER_SIZE + size:
            return None
        unaligned = segment.end - size
        aligned = unaligned - unaligned % align
        header = aligned - USED_HEADER_SIZE
        if header < segment.start:
            return None
        return header

    def alloc(self, size: int, align: int = 1) -> int:
        """Reserve ``size`` bytes aligned to ``align``; return the data address."""
        if size <= 0:
            raise ValueError("size must be positive")
        if align < 1 or align & (align - 1):
            raise ValueError("align must be a power of two")
        align = max(align, WORD_ALIGN)

        if not self._free:
            raise OutOfMemoryError("Out of memory: Failed to allocate")

        for index, segment in enumerate(self._free):
            header = self._header_for(segment, size, align)
            if header is None:
                continue
            used_end = segment.end
            self._used[header] = used_end - (header + USED_HEADER_SIZE)
            segment.size = header - segment.start
            if segment.size < FREE_HEADER_SIZE:
                del self._free[index]
            return header + USED_HEADER_SIZE

        raise OutOfMemoryError(f"no free segment can hold {size} bytes aligned to {align}")

    def dealloc(self, address: int) -> None:
        """Return the block whose data starts at ``address`` to the free list."""
        header = address - USED_HEADER_SIZE
        try:
            used_size = self._used.pop(header)
        except KeyError:
            raise ValueError(f"address {address:#x} is not an allocated block") from None
        self._insert(FreeSegment(header, used_size + USED_HEADER_SIZE - FREE_HEADER_SIZE))

    def _insert(self, segment: FreeSegment) -> None:
        pos = bisect.bisect_left([s.address for s in self._free], segment.address)
        self._free.insert(pos, segment)

        if pos + 1 < len(self._free):
            following = self._free[pos + 1]
            if segment.end == following.address:
                segment.size = following.end - segment.start
                del self._free[pos + 1]

        if pos > 0:
            previous = self._free[pos - 1]
            if previous.end == segment.address:
                previous.size = segment.end - previous.start
                del self._free[pos]

    def free_segments(self) -> list[FreeSegment]:
        """Snapshot of the free list in address order."""
        return [replace(segment) for segment in self._free]