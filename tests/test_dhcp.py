import pytest

from bafikit.dhcp import (
    MAGIC_COOKIE,
    DhcpMessage,
    NetConfig,
    build_dhcp_discover,
    build_dhcp_request,
    handle_dhcp,
    search_option,
)

MAC = bytes([0x02, 0x00, 0x00, 0x00, 0x00, 0x01])


def _options(*pairs):
    body = b""
    for tag, value in pairs:
        body += bytes([tag, len(value)]) + bytes(value)
    return MAGIC_COOKIE + body + b"\xff"


def test_discover_header_fields():
    payload = build_dhcp_discover(MAC)
    msg = DhcpMessage.from_bytes(payload)
    assert msg.op == 1
    assert msg.xid == 0xFE55A
    assert msg.flags == 0x8000
    assert msg.chaddr[:6] == MAC
    assert payload[236:240] == bytes([0x63, 0x82, 0x53, 0x63])
    assert payload[-1] == 255


def test_discover_options():
    msg = DhcpMessage.from_bytes(build_dhcp_discover(MAC))
    assert msg.option(53) == bytes([1])
    assert msg.option(55) == bytes([1, 3, 6, 15])
    assert msg.option(61) == b"\x01" + MAC
    assert msg.option(50) is None


def test_request_options():
    new_ip = bytes([10, 0, 2, 15])
    server_ip = bytes([10, 0, 2, 2])
    msg = DhcpMessage.from_bytes(build_dhcp_request(MAC, new_ip, server_ip))
    assert msg.option(53) == bytes([3])
    assert msg.option(50) == new_ip
    assert msg.option(54) == server_ip


def test_bad_mac_rejected():
    with pytest.raises(ValueError):
        build_dhcp_discover(b"\x01\x02")


def test_search_option_skips_padding():
    options = MAGIC_COOKIE + b"\x00\x00" + bytes([6, 4, 8, 8, 8, 8]) + b"\xff"
    assert search_option(options, 6) == bytes([8, 8, 8, 8])


def test_search_option_stops_at_end():
    options = MAGIC_COOKIE + b"\xff" + bytes([6, 4, 8, 8, 8, 8])
    assert search_option(options, 6) is None


def test_search_option_truncated():
    options = MAGIC_COOKIE + bytes([6, 10, 1, 2])
    assert search_option(options, 6) is None


def test_from_bytes_too_short():
    with pytest.raises(ValueError):
        DhcpMessage.from_bytes(bytes(100))


def test_net_config_initialized():
    assert not NetConfig().is_initialized()
    assert NetConfig(mac_address=MAC).is_initialized()


def test_handle_offer_builds_request():
    config = NetConfig(mac_address=MAC)
    offer = DhcpMessage(
        op=2,
        yiaddr=bytes([10, 0, 2, 15]),
        siaddr=bytes([10, 0, 2, 2]),
        options=_options((53, [2])),
    )
    reply = handle_dhcp(config, offer)
    msg = DhcpMessage.from_bytes(reply)
    assert msg.option(53) == bytes([3])
    assert msg.option(50) == bytes([10, 0, 2, 15])
    assert msg.option(54) == bytes([10, 0, 2, 2])
    assert msg.chaddr[:6] == MAC
    assert config.ip == bytes(4)


def test_handle_ack_updates_config():
    config = NetConfig(mac_address=MAC)
    ack = DhcpMessage(
        op=2,
        yiaddr=bytes([10, 0, 2, 15]),
        options=_options(
            (53, [5]),
            (1, [255, 255, 255, 0]),
            (3, [10, 0, 2, 2]),
            (6, [10, 0, 2, 3]),
        ),
    )
    assert handle_dhcp(config, ack) is None
    assert config.ip == bytes([10, 0, 2, 15])
    assert config.subnet == bytes([255, 255, 255, 0])
    assert config.gateway == bytes([10, 0, 2, 2])
    assert config.dns == bytes([10, 0, 2, 3])


def test_handle_ack_missing_option_leaves_config():
    config = NetConfig(mac_address=MAC)
    ack = DhcpMessage(
        yiaddr=bytes([10, 0, 2, 15]),
        options=_options((53, [5]), (1, [255, 255, 255, 0])),
    )
    with pytest.raises(ValueError):
        handle_dhcp(config, ack)
    assert config.ip == bytes(4)


def test_handle_without_message_type():
    with pytest.raises(ValueError):
        handle_dhcp(NetConfig(mac_address=MAC), DhcpMessage(options=_options()))