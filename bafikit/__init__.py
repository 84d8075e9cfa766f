"""Building blocks of a small x86 operating system: hash map, RNG, mutex, allocator, boot structures, GDT, ELF loading, packets and DHCP."""

__version__ = "0.1.0"