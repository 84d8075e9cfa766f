"""DHCP client messages: building discover/request payloads and applying replies."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import ClassVar

MAGIC_COOKIE = bytes([0x63, 0x82, 0x53, 0x63])
TRANSACTION_ID = 0xFE55A
BROADCAST_FLAG = 0x8000
OPTIONS_SIZE = 312

OPT_PAD = 0
OPT_SUBNET_MASK = 1
OPT_ROUTER = 3
OPT_DNS = 6
OPT_REQUESTED_IP = 50
OPT_MESSAGE_TYPE = 53
OPT_SERVER_ID = 54
OPT_PARAMETER_LIST = 55
OPT_CLIENT_ID = 61
OPT_END = 255


class MessageType(IntEnum):
    DISCOVER = 1
    OFFER = 2
    REQUEST = 3
    ACK = 5


def _fixed(value: bytes, size: int, what: str) -> bytes:
    raw = bytes(value)
    if len(raw) != size:
        raise ValueError(f"{what} must be {size} bytes, got {len(raw)}")
    return raw


@dataclass
class NetConfig:
    """Interface addresses as learned from the network card and DHCP."""

    mac_address: bytes = bytes(6)
    ip: bytes = bytes(4)
    subnet: bytes = bytes(4)
    gateway: bytes = bytes(4)
    dns: bytes = bytes(4)

    def __post_init__(self) -> None:
        self.mac_address = _fixed(self.mac_address, 6, "MAC address")
        self.ip = _fixed(self.ip, 4, "IP address")
        self.subnet = _fixed(self.subnet, 4, "subnet mask")
        self.gateway = _fixed(self.gateway, 4, "gateway")
        self.dns = _fixed(self.dns, 4, "DNS server")

    def is_initialized(self) -> bool:
        """True once a MAC address has been assigned."""
        return self.mac_address != bytes(6)


def search_option(options: bytes, tag: int) -> bytes | None:
    """Find option ``tag`` in an options area that begins with the magic cookie."""
    options = bytes(options)
    idx = len(MAGIC_COOKIE)
    while idx < len(options):
        current = options[idx]
        if current == OPT_END:
            return None
        if current == OPT_PAD:
            idx += 1
            continue
        if idx + 1 >= len(options):
            return None
        data_start = idx + 2
        data_end = data_start + options[idx + 1]
        if data_end > len(options):
            return None
        if current == tag:
            return options[data_start:data_end]
        idx = data_end
    return None


@dataclass
class DhcpMessage:
    """A BOOTP/DHCP message with its options area."""

    op: int = 1
    htype: int = 1
    hlen: int = 6
    hops: int = 0
    xid: int = TRANSACTION_ID
    secs: int = 0
    flags: int = BROADCAST_FLAG
    ciaddr: bytes = bytes(4)
    yiaddr: bytes = bytes(4)
    siaddr: bytes = bytes(4)
    giaddr: bytes = bytes(4)
    chaddr: bytes = bytes(16)
    sname: bytes = bytes(64)
    file: bytes = bytes(128)
    options: bytes = field(default=bytes(OPTIONS_SIZE))

    FORMAT: ClassVar[str] = "!BBBBIHH4s4s4s4s16s64s128s"
    HEADER_SIZE: ClassVar[int] = struct.calcsize("!BBBBIHH4s4s4s4s16s64s128s")

    @classmethod
    def from_bytes(cls, data: bytes) -> "DhcpMessage":
        data = bytes(data)
        if len(data) < cls.HEADER_SIZE:
            raise ValueError(f"DHCP message needs {cls.HEADER_SIZE} bytes, got {len(data)}")
        fields_ = struct.unpack_from(cls.FORMAT, data)
        options = data[cls.HEADER_SIZE : cls.HEADER_SIZE + OPTIONS_SIZE]
        options += bytes(OPTIONS_SIZE - len(options))
        return cls(*fields_, options=options)

    def option(self, tag: int) -> bytes | None:
        return search_option(self.options, tag)


def _build(mac: bytes, body: bytes) -> bytes:
    mac = _fixed(mac, 6, "MAC address")
    header = struct.pack(
        DhcpMessage.FORMAT,
        1,
        1,
        6,
        0,
        TRANSACTION_ID,
        0,
        BROADCAST_FLAG,
        bytes(4),
        bytes(4),
        bytes(4),
        bytes(4),
        mac + bytes(10),
        bytes(64),
        bytes(128),
    )
    return header + MAGIC_COOKIE + body + bytes([OPT_END])


def build_dhcp_discover(mac: bytes) -> bytes:
    """DHCPDISCOVER payload for the client with hardware address ``mac``."""
    mac = _fixed(mac, 6, "MAC address")
    body = (
        bytes([OPT_MESSAGE_TYPE, 1, MessageType.DISCOVER])
        + bytes([OPT_PARAMETER_LIST, 4, OPT_SUBNET_MASK, OPT_ROUTER, OPT_DNS, 15])
        + bytes([OPT_CLIENT_ID, 7, 1])
        + mac
    )
    return _build(mac, body)


def build_dhcp_request(mac: bytes, new_ip: bytes, server_ip: bytes) -> bytes:
    """DHCPREQUEST payload asking ``server_ip`` for ``new_ip``."""
    new_ip = _fixed(new_ip, 4, "requested IP")
    server_ip = _fixed(server_ip, 4, "server IP")
    body = (
        bytes([OPT_MESSAGE_TYPE, 1, MessageType.REQUEST])
        + bytes([OPT_REQUESTED_IP, 4])
        + new_ip
        + bytes([OPT_SERVER_ID, 4])
        + server_ip
    )
    return _build(mac, body)


def _address_option(message: DhcpMessage, tag: int) -> bytes:
    value = message.option(tag)
    if value is None or len(value) < 4:
        raise ValueError(f"DHCP message lacks a usable option {tag}")
    return value[:4]


def handle_dhcp(config: NetConfig, message: DhcpMessage) -> bytes | None:
    """React to a server reply.

    An offer yields the request payload to send back. An acknowledgement
    updates ``config`` and yields None. Other message types are ignored.
    """
    message_type = message.option(OPT_MESSAGE_TYPE)
    if not message_type:
        raise ValueError("DHCP message has no message type option")

    if message_type[0] == MessageType.OFFER:
        return build_dhcp_request(config.mac_address, message.yiaddr, message.siaddr)

    if message_type[0] == MessageType.ACK:
        subnet = _address_option(message, OPT_SUBNET_MASK)
        gateway = _address_option(message, OPT_ROUTER)
        dns = _address_option(message, OPT_DNS)
        config.subnet = subnet
        config.ip = _fixed(message.yiaddr, 4, "assigned IP")
        config.gateway = gateway
        config.dns = dns
    return None