"""Test individual protocol dissectors."""

import struct

import pytest

from pcap_tree.models import (
    LayerHint, EthernetLayer, Dot1QLayer, IPv4Layer, TCPLayer, UndecodedLayer,
    mac_to_string, ipv4_to_string,
)
from pcap_tree.dissectors import (
    DISSECTORS,
    MalformedLayerError,
    get_dissector,
    ethernet_from_bytes,
    dot1q_from_bytes,
    ipv4_from_bytes,
    tcp_from_bytes,
    undecoded_from_bytes,
)

from conftest import build_ethernet, build_ipv4, build_tcp


def test_every_hint_has_a_dissector():
    assert set(DISSECTORS) == set(LayerHint)
    assert get_dissector(LayerHint.TCP) is tcp_from_bytes


class TestEthernet:
    def test_ipv4_ether_type(self):
        layer, consumed, hint = ethernet_from_bytes(0, build_ethernet(payload=b"\x00" * 30))

        assert isinstance(layer, EthernetLayer)
        assert consumed == 14
        assert hint == LayerHint.IPV4
        assert mac_to_string(layer.destination_mac) == "00:11:22:33:44:55"
        assert mac_to_string(layer.source_mac) == "00:aa:bb:cc:dd:ee"
        assert layer.ether_type == 0x0800
        assert (layer.offset, layer.length) == (0, 14)

    def test_unmapped_ether_type_hints_undecoded(self):
        _, consumed, hint = ethernet_from_bytes(0, build_ethernet(ether_type=0x0806))
        assert consumed == 14
        assert hint == LayerHint.UNDECODED

    def test_vlan_ether_type_hints_dot1q(self):
        _, consumed, hint = ethernet_from_bytes(0, build_ethernet(ether_type=0x8100, payload=b"\x00" * 4))
        assert consumed == 14
        assert hint == LayerHint.DOT1Q

    def test_summary(self):
        layer, _, _ = ethernet_from_bytes(0, build_ethernet())
        assert "Src: 00:aa:bb:cc:dd:ee" in layer.summary()
        assert "Type: IPv4 (0x0800)" in layer.summary()

    def test_short_input(self):
        with pytest.raises(MalformedLayerError):
            ethernet_from_bytes(0, b"\x00" * 13)


class TestDot1Q:
    def test_tag_fields_and_inner_type(self):
        tci = (5 << 13) | (1 << 12) | 100
        layer, consumed, hint = dot1q_from_bytes(14, struct.pack('>HH', tci, 0x0800))

        assert isinstance(layer, Dot1QLayer)
        assert consumed == 4
        assert hint == LayerHint.IPV4
        assert layer.priority == 5
        assert layer.drop_eligible == 1
        assert layer.vlan_id == 100
        assert layer.offset == 14

    def test_short_input(self):
        with pytest.raises(MalformedLayerError):
            dot1q_from_bytes(14, b"\x00\x64")


class TestIPv4:
    def test_header_fields(self):
        layer, consumed, hint = ipv4_from_bytes(14, build_ipv4(payload=b"\x00" * 20))

        assert isinstance(layer, IPv4Layer)
        assert consumed == 20
        assert hint == LayerHint.TCP
        assert layer.version == 4
        assert layer.header_len == 5
        assert layer.diffserv == 0x2E
        assert layer.congestion_notification == 1
        assert layer.total_length == 40
        assert layer.identification == 0x1234
        assert layer.flags == 0x2
        assert layer.fragment_offset == 3
        assert layer.ttl == 64
        assert layer.protocol == 6
        assert layer.header_checksum == 0xBEEF
        assert ipv4_to_string(layer.source_addr) == "192.168.1.1"
        assert ipv4_to_string(layer.dest_addr) == "192.168.1.2"
        assert (layer.offset, layer.length) == (14, 20)

    def test_non_tcp_protocol_hints_undecoded(self):
        _, _, hint = ipv4_from_bytes(0, build_ipv4(proto=17))
        assert hint == LayerHint.UNDECODED

    def test_options_are_consumed(self):
        data = build_ipv4(ihl=6, options=b"\x01\x01\x01\x00", payload=b"xyz")
        layer, consumed, _ = ipv4_from_bytes(0, data)
        assert consumed == 24
        assert layer.length == 24

    def test_short_input(self):
        with pytest.raises(MalformedLayerError):
            ipv4_from_bytes(0, build_ipv4()[:19])

    def test_header_length_below_minimum(self):
        data = bytearray(build_ipv4())
        data[0] = 0x44
        with pytest.raises(MalformedLayerError):
            ipv4_from_bytes(0, bytes(data))

    def test_header_length_past_end(self):
        data = bytearray(build_ipv4())
        data[0] = 0x4F
        with pytest.raises(MalformedLayerError):
            ipv4_from_bytes(0, bytes(data))

    def test_fields_for_verbose_rows(self):
        layer, _, _ = ipv4_from_bytes(0, build_ipv4())
        fields = dict(layer.fields())
        assert fields["Header Length"] == "20 bytes (5)"
        assert fields["Protocol"] == "TCP (6)"
        assert fields["Destination Address"] == "192.168.1.2"


class TestTCP:
    def test_header_fields(self):
        data = build_tcp(sport=502, dport=40000, seq=0xDEADBEEF, ack=7, flags=0x12, payload=b"ABCD")
        layer, consumed, hint = tcp_from_bytes(34, data)

        assert isinstance(layer, TCPLayer)
        assert consumed == 20
        assert hint == LayerHint.UNDECODED
        assert layer.source_port == 502
        assert layer.dest_port == 40000
        assert layer.sequence == 0xDEADBEEF
        assert layer.acknowledgment == 7
        assert layer.data_offset == 5
        assert layer.flags == 0x12
        assert layer.flag_names() == ["SYN", "ACK"]
        assert layer.window == 8192
        assert dict(layer.fields())["Source Port"] == "502 (Modbus)"

    def test_options_are_consumed(self):
        layer, consumed, _ = tcp_from_bytes(0, build_tcp(data_offset=8, options=b"\x01" * 12))
        assert consumed == 32
        assert layer.length == 32

    def test_short_input(self):
        with pytest.raises(MalformedLayerError):
            tcp_from_bytes(0, b"\x00" * 10)

    def test_data_offset_past_end(self):
        with pytest.raises(MalformedLayerError):
            tcp_from_bytes(0, build_tcp(data_offset=15))


class TestUndecoded:
    def test_consumes_everything(self):
        layer, consumed, hint = undecoded_from_bytes(54, b"ABCD")
        assert isinstance(layer, UndecodedLayer)
        assert consumed == 4
        assert hint == LayerHint.UNDECODED
        assert layer.start_offset == 54
        assert layer.summary() == "Undecoded Data [Starts: 54, Len: 4]"


@pytest.mark.parametrize("dissector,minimum", [
    (ethernet_from_bytes, 14),
    (dot1q_from_bytes, 4),
    (ipv4_from_bytes, 20),
    (tcp_from_bytes, 20),
])
def test_progress_on_minimum_length_input(dissector, minimum):
    """Fixed-header dissectors always consume bytes on well-formed input."""
    data = bytearray(minimum)
    if dissector is ipv4_from_bytes:
        data[0] = 0x45
    elif dissector is tcp_from_bytes:
        data[12] = 0x50
    _, consumed, _ = dissector(0, bytes(data))
    assert 0 < consumed <= minimum
