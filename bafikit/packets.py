"""IPv4, UDP and Ethernet framing with the Internet checksum."""

from __future__ import annotations

import struct
from dataclasses import dataclass, replace
from typing import ClassVar, Iterable, Union

Address = Union[bytes, bytearray, Iterable[int]]

ETH_TYPE_IPV4 = 0x0800
ETH_TYPE_ARP = 0x0806
IP_PROTO_ICMP = 0x01
IP_PROTO_TCP = 0x06
IP_PROTO_UDP = 0x11
DHCP_SERVER_PORT = 67
BROADCAST_MAC = b"\xff" * 6
_MAX_U16 = 0xFFFF


def _address(value: Address, size: int, what: str) -> bytes:
    raw = bytes(value)
    if len(raw) != size:
        raise ValueError(f"{what} must be {size} bytes, got {len(raw)}")
    return raw


def _u16(value: int, what: str) -> int:
    if not 0 <= value <= _MAX_U16:
        raise ValueError(f"{what} must fit in 16 bits, got {value}")
    return value


def checksum(data: bytes) -> int:
    """Internet checksum: ones' complement of the folded sum of big-endian words."""
    data = bytes(data)
    if len(data) % 2:
        data += b"\x00"
    total = sum(word for (word,) in struct.iter_unpack("!H", data))
    while total >> 16:
        total = (total & 0xFFFF) + (total >> 16)
    return ~total & 0xFFFF


@dataclass(frozen=True)
class IpHeader:
    """A 20-byte IPv4 header without options."""

    total_length: int
    src_ip: bytes = bytes(4)
    dest_ip: bytes = bytes(4)
    protocol: int = IP_PROTO_UDP
    ttl: int = 255
    version_ihl: int = 0x45
    dscp_ecn: int = 0
    identification: int = 0
    flags_fragment_offset: int = 0
    checksum: int = 0

    FORMAT: ClassVar[str] = "!BBHHHBBH4s4s"
    SIZE: ClassVar[int] = struct.calcsize("!BBHHHBBH4s4s")

    def __post_init__(self) -> None:
        object.__setattr__(self, "src_ip", _address(self.src_ip, 4, "source IP"))
        object.__setattr__(self, "dest_ip", _address(self.dest_ip, 4, "destination IP"))
        _u16(self.total_length, "total length")

    def pack(self) -> bytes:
        return struct.pack(
            self.FORMAT,
            self.version_ihl,
            self.dscp_ecn,
            self.total_length,
            self.identification,
            self.flags_fragment_offset,
            self.ttl,
            self.protocol,
            self.checksum,
            self.src_ip,
            self.dest_ip,
        )

    def with_checksum(self) -> "IpHeader":
        """Copy of this header carrying the checksum of its own bytes."""
        return replace(self, checksum=checksum(replace(self, checksum=0).pack()))

    @classmethod
    def from_bytes(cls, data: bytes) -> "IpHeader":
        data = bytes(data)
        if len(data) < cls.SIZE:
            raise ValueError(f"IP header needs {cls.SIZE} bytes, got {len(data)}")
        (
            version_ihl,
            dscp_ecn,
            total_length,
            identification,
            flags_fragment_offset,
            ttl,
            protocol,
            header_checksum,
            src_ip,
            dest_ip,
        ) = struct.unpack_from(cls.FORMAT, data)
        return cls(
            total_length=total_length,
            src_ip=src_ip,
            dest_ip=dest_ip,
            protocol=protocol,
            ttl=ttl,
            version_ihl=version_ihl,
            dscp_ecn=dscp_ecn,
            identification=identification,
            flags_fragment_offset=flags_fragment_offset,
            checksum=header_checksum,
        )


@dataclass(frozen=True)
class UdpHeader:
    """An 8-byte UDP header."""

    src_port: int
    dest_port: int
    length: int
    checksum: int = 0

    FORMAT: ClassVar[str] = "!HHHH"
    SIZE: ClassVar[int] = struct.calcsize("!HHHH")

    def __post_init__(self) -> None:
        _u16(self.src_port, "source port")
        _u16(self.dest_port, "destination port")
        _u16(self.length, "UDP length")

    def pack(self) -> bytes:
        return struct.pack(self.FORMAT, self.src_port, self.dest_port, self.length, self.checksum)

    @classmethod
    def from_bytes(cls, data: bytes) -> "UdpHeader":
        data = bytes(data)
        if len(data) < cls.SIZE:
            raise ValueError(f"UDP header needs {cls.SIZE} bytes, got {len(data)}")
        return cls(*struct.unpack_from(cls.FORMAT, data))


def build_ethernet_frame(data: bytes, dst_mac: Address, src_mac: Address, eth_type: int) -> bytes:
    """Prefix ``data`` with an Ethernet II header."""
    header = (
        _address(dst_mac, 6, "destination MAC")
        + _address(src_mac, 6, "source MAC")
        + struct.pack("!H", _u16(eth_type, "EtherType"))
    )
    return header + bytes(data)


def build_udp_packet(
    src_port: int,
    data: bytes,
    dest_ip: Address,
    dest_port: int,
    src_ip: Address,
) -> bytes:
    """An IPv4 packet carrying ``data`` in a UDP datagram without a UDP checksum.

    Datagrams to the DHCP server port leave from 0.0.0.0 whatever ``src_ip`` is.
    """
    data = bytes(data)
    udp_length = UdpHeader.SIZE + len(data)
    total_length = IpHeader.SIZE + udp_length
    if total_length > _MAX_U16:
        raise ValueError(f"payload too large for one IP packet: {len(data)} bytes")

    udp = UdpHeader(src_port=src_port, dest_port=dest_port, length=udp_length)
    source = bytes(4) if dest_port == DHCP_SERVER_PORT else _address(src_ip, 4, "source IP")
    ip = IpHeader(
        total_length=total_length,
        src_ip=source,
        dest_ip=dest_ip,
        protocol=IP_PROTO_UDP,
        ttl=255,
    ).with_checksum()
    return ip.pack() + udp.pack() + data