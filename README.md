# bafikit

bafikit holds the parts of a small x86 hobby operating system that make sense
outside the machine they were written for. They are plain Python objects and
byte layouts. You can use them to inspect boot structures and ELF images,
exercise an allocator, or build network packets.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## What is inside

- `bafikit.hashmap`: `FnvHasher` (64-bit FNV-1a, with `write` and `finish`) and a separate-chaining `HashMap`. The map has `insert`, `get(key, default)`, `remove`, `items` and `bucket_count`, and supports `in`, `[]`, `del` and `len`. It doubles its bucket array once it is three quarters full. `remove` raises `KeyError` for a missing key.
- `bafikit.rng`: `LcgRng`, a 64-bit linear congruential generator with an xor-shift output mix. It has `next()` and `range(low, high)`, and `range` raises `ValueError` unless `low < high`. A generator is also an iterator. `LcgRng.global_rng()` returns a generator that draws from a state shared by all such generators.
- `bafikit.mutex`: `Mutex`, a lock around a single value. `lock()` blocks until the lock is free and returns a guard. The guard exposes `.value` and can be used as a context manager. The mutex also has `into_inner`, `force_unlock` and `locked`.
- `bafikit.heap`: a first-fit `Allocator` over a simulated address range. `alloc(size, align)` returns a data address and `dealloc(address)` frees it, merging neighbours. `free_segments()` returns a snapshot of `FreeSegment` records. It raises `OutOfMemoryError` when no segment fits.
- `bafikit.boot`: `BootInfo`, `MemoryMapEntry`, `Rsdp` and `VbeModeInfo`, each parsed with `from_bytes` from its packed little-endian layout. `BootInfo.null()` gives a zeroed record. `BootInfo.get_mmap(start)` raises `LookupError` when no entry starts at `start`.
- `bafikit.gdt`: `segment_entry(base, limit, access, flags)` encodes a descriptor. `Gdt` holds null, kernel code/data, user code/data and TSS descriptors, and has `write_tss`, `descriptor` and `pack`. `TaskStateSegment` has `pack` and `size`.
- `bafikit.elf`: `load_lib(data, base)` loads a 32-bit little-endian ELF image and returns a `LoadedImage` with `base`, `entry`, `memory` and `read_u32`. It copies the loadable segments, zeroes uninitialised data, carries over the string table and applies REL relocations. A malformed image raises `ElfError`. `ElfHeader`, `ProgramHeader` and `Symbol` parse the individual records.
- `bafikit.packets`: `IpHeader` and `UdpHeader`, each with `pack` and `from_bytes`, and the Internet `checksum`. `build_udp_packet` builds an IPv4 packet carrying a UDP datagram; datagrams to port 67 are always sent from 0.0.0.0. `build_ethernet_frame` adds an Ethernet II header.
- `bafikit.dhcp`: `build_dhcp_discover`, `build_dhcp_request`, `DhcpMessage` (`from_bytes`, `option`), `search_option` and `NetConfig`. `handle_dhcp(config, message)` answers an offer with a request payload. On an acknowledgement it fills in the address, subnet, gateway and DNS of the `NetConfig`.

## Examples

```python
from bafikit.hashmap import HashMap

table = HashMap()
table.insert("elf", "icons/elf.tga")
print(table.get("elf"))
```

```python
from bafikit.dhcp import build_dhcp_discover
from bafikit.packets import build_ethernet_frame, build_udp_packet

mac = bytes([0x02, 0x00, 0x00, 0x00, 0x00, 0x01])
payload = build_dhcp_discover(mac)
packet = build_udp_packet(68, payload, bytes([255, 255, 255, 255]), 67, bytes(4))
frame = build_ethernet_frame(packet, b"\xff" * 6, mac, 0x0800)
```

## What it does not do

bafikit is a library only. It installs no command and has no interactive
terminal or command interpreter. It provides no file system and does not read
or write FAT directory entries. It has no 128-bit digest function; the only
hashing is the FNV-1a hasher behind `HashMap`. Packets are built as bytes and
are never sent; nothing here opens a socket or talks to a network card.