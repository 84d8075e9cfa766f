"""A separate-chaining hash map keyed by FNV-1a hashes."""

from __future__ import annotations

from typing import Any, Generic, Hashable, Iterator, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

_MASK64 = 0xFFFFFFFFFFFFFFFF
_MASK_USIZE = 0xFFFFFFFF
_FNV_OFFSET = 0xCBF29CE484222325
_FNV_PRIME = 0x100000001B3
INITIAL_BUCKETS = 16


class FnvHasher:
    """64-bit FNV-1a hasher."""

    def __init__(self) -> None:
        self.state = _FNV_OFFSET

    def write(self, data: bytes) -> None:
        state = self.state
        for byte in bytes(data):
            state ^= byte
            state = (state * _FNV_PRIME) & _MASK64
        self.state = state

    def finish(self) -> int:
        return self.state


def _key_bytes(key: Any) -> bytes:
    if isinstance(key, str):
        return key.encode("utf-8") + b"\xff"
    if isinstance(key, (bytes, bytearray)):
        return bytes(key)
    if isinstance(key, bool):
        return bytes([int(key)])
    if isinstance(key, int) and -(1 << 63) <= key < (1 << 64):
        return (key & _MASK64).to_bytes(8, "little")
    return repr(key).encode("utf-8")


def _bucket_index(key: Any, bucket_count: int) -> int:
    hasher = FnvHasher()
    hasher.write(_key_bytes(key))
    return (hasher.finish() & _MASK_USIZE) % bucket_count


class HashMap(Generic[K, V]):
    """Hash map that doubles its bucket array once three quarters full."""

    def __init__(self, capacity: int = INITIAL_BUCKETS) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._buckets: list[list[tuple[K, V]] | None] = [None] * capacity
        self._items = 0

    def _resize(self) -> None:
        new_size = len(self._buckets) * 2
        new_buckets: list[list[tuple[K, V]] | None] = [None] * new_size
        for bucket in self._buckets:
            for key, value in bucket or ():
                idx = _bucket_index(key, new_size)
                if new_buckets[idx] is None:
                    new_buckets[idx] = []
                new_buckets[idx].append((key, value))
        self._buckets = new_buckets

    def insert(self, key: K, value: V) -> V | None:
        """Store ``value`` under ``key``; return the value it replaced, if any."""
        if self._items >= len(self._buckets) * 3 // 4:
            self._resize()

        idx = _bucket_index(key, len(self._buckets))
        if self._buckets[idx] is None:
            self._buckets[idx] = []
        bucket = self._buckets[idx]

        for pos, (existing_key, existing_value) in enumerate(bucket):
            if existing_key == key:
                bucket[pos] = (existing_key, value)
                return existing_value

        bucket.append((key, value))
        self._items += 1
        return None

    def get(self, key: K, default: V | None = None) -> V | None:
        bucket = self._buckets[_bucket_index(key, len(self._buckets))]
        for existing_key, value in bucket or ():
            if existing_key == key:
                return value
        return default

    def remove(self, key: K) -> V:
        """Remove ``key`` and return its value; raise KeyError if absent."""
        bucket = self._buckets[_bucket_index(key, len(self._buckets))]
        for pos, (existing_key, value) in enumerate(bucket or ()):
            if existing_key == key:
                del bucket[pos]
                self._items -= 1
                return value
        raise KeyError(key)

    def bucket_count(self) -> int:
        return len(self._buckets)

    def items(self) -> Iterator[tuple[K, V]]:
        for bucket in self._buckets:
            yield from bucket or ()

    def __len__(self) -> int:
        return self._items

    def __contains__(self, key: object) -> bool:
        sentinel = object()
        return self.get(key, sentinel) is not sentinel  # type: ignore[arg-type]

    def __getitem__(self, key: K) -> V:
        sentinel = object()
        value = self.get(key, sentinel)  # type: ignore[arg-type]
        if value is sentinel:
            raise KeyError(key)
        return value  # type: ignore[return-value]

    def __setitem__(self, key: K, value: V) -> None:
        self.insert(key, value)

    def __delitem__(self, key: K) -> None:
        self.remove(key)

    def __iter__(self) -> Iterator[K]:
        return (key for key, _ in self.items())

    def __repr__(self) -> str:
        body = ", ".join(f"{k!r}: {v!r}" for k, v in self.items())
        return "{" + body + "}"