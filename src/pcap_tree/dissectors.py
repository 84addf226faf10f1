"""
Protocol dissectors.

Each dissector is a pure function ``from_bytes(offset, remaining)`` returning
``(layer, bytes_consumed, next_hint)``. All header fields are big-endian.
"""

import struct
from typing import Callable, Dict, Tuple

from .models import (
    Layer, LayerHint, EthernetLayer, Dot1QLayer, IPv4Layer, TCPLayer, UndecodedLayer,
    ETHERTYPE_IPV4, ETHERTYPE_VLAN, IP_PROTO_TCP,
)

DissectResult = Tuple[Layer, int, LayerHint]
Dissector = Callable[[int, bytes], DissectResult]

ETHERNET_HEADER_LEN = 14
DOT1Q_TAG_LEN = 4
IPV4_MIN_HEADER_LEN = 20
TCP_MIN_HEADER_LEN = 20

_ETHERNET = struct.Struct(">6s6sH")
_DOT1Q = struct.Struct(">HH")
_IPV4 = struct.Struct(">BBHHHBBH4s4s")
_TCP = struct.Struct(">HHIIBBHHH")


class MalformedLayerError(ValueError):
    """Raised when the remaining bytes cannot hold the protocol's header."""

    def __init__(self, protocol: str, offset: int, message: str):
        super().__init__(f"{protocol} at offset {offset}: {message}")
        self.protocol = protocol
        self.offset = offset


def _require(protocol: str, offset: int, remaining: bytes, minimum: int) -> None:
    if len(remaining) < minimum:
        raise MalformedLayerError(
            protocol, offset,
            f"need at least {minimum} bytes, got {len(remaining)}"
        )


def _hint_for_ether_type(ether_type: int) -> LayerHint:
    if ether_type == ETHERTYPE_IPV4:
        return LayerHint.IPV4
    if ether_type == ETHERTYPE_VLAN:
        return LayerHint.DOT1Q
    return LayerHint.UNDECODED


def ethernet_from_bytes(offset: int, remaining: bytes) -> DissectResult:
    _require("Ethernet", offset, remaining, ETHERNET_HEADER_LEN)
    dst, src, ether_type = _ETHERNET.unpack_from(remaining)

    layer = EthernetLayer(
        offset=offset,
        length=ETHERNET_HEADER_LEN,
        destination_mac=dst,
        source_mac=src,
        ether_type=ether_type,
    )
    return layer, ETHERNET_HEADER_LEN, _hint_for_ether_type(ether_type)


def dot1q_from_bytes(offset: int, remaining: bytes) -> DissectResult:
    """Decode an 802.1Q tag and re-read the EtherType that follows it."""
    _require("802.1Q", offset, remaining, DOT1Q_TAG_LEN)
    tci, ether_type = _DOT1Q.unpack_from(remaining)

    layer = Dot1QLayer(
        offset=offset,
        length=DOT1Q_TAG_LEN,
        priority=(tci >> 13) & 0x07,
        drop_eligible=(tci >> 12) & 0x01,
        vlan_id=tci & 0x0FFF,
        ether_type=ether_type,
    )
    return layer, DOT1Q_TAG_LEN, _hint_for_ether_type(ether_type)


def ipv4_from_bytes(offset: int, remaining: bytes) -> DissectResult:
    """
    Decode an IPv4 header.

    Consumes 4 * IHL bytes; options are left opaque inside that range.
    """
    _require("IPv4", offset, remaining, IPV4_MIN_HEADER_LEN)
    (ver_ihl, tos, total_length, identification, flags_frag,
     ttl, protocol, checksum, src, dst) = _IPV4.unpack_from(remaining)

    header_len = ver_ihl & 0x0F
    consumed = 4 * header_len
    if consumed < IPV4_MIN_HEADER_LEN:
        raise MalformedLayerError("IPv4", offset, f"header length {header_len} below minimum of 5")
    if consumed > len(remaining):
        raise MalformedLayerError(
            "IPv4", offset, f"header length {consumed} exceeds {len(remaining)} remaining bytes"
        )

    layer = IPv4Layer(
        offset=offset,
        length=consumed,
        version=(ver_ihl >> 4) & 0x0F,
        header_len=header_len,
        diffserv=(tos >> 2) & 0x3F,
        congestion_notification=tos & 0x03,
        total_length=total_length,
        identification=identification,
        flags=(flags_frag >> 13) & 0x07,
        fragment_offset=flags_frag & 0x1FFF,
        ttl=ttl,
        protocol=protocol,
        header_checksum=checksum,
        source_addr=src,
        dest_addr=dst,
    )
    next_hint = LayerHint.TCP if protocol == IP_PROTO_TCP else LayerHint.UNDECODED
    return layer, consumed, next_hint


def tcp_from_bytes(offset: int, remaining: bytes) -> DissectResult:
    """
    Decode a TCP header.

    Consumes 4 * data_offset bytes; options are left opaque. The payload is
    never dissected further.
    """
    _require("TCP", offset, remaining, TCP_MIN_HEADER_LEN)
    (sport, dport, seq, ack, off_res, flags,
     window, checksum, urgent) = _TCP.unpack_from(remaining)

    data_offset = (off_res >> 4) & 0x0F
    consumed = 4 * data_offset
    if consumed < TCP_MIN_HEADER_LEN:
        raise MalformedLayerError("TCP", offset, f"data offset {data_offset} below minimum of 5")
    if consumed > len(remaining):
        raise MalformedLayerError(
            "TCP", offset, f"header length {consumed} exceeds {len(remaining)} remaining bytes"
        )

    layer = TCPLayer(
        offset=offset,
        length=consumed,
        source_port=sport,
        dest_port=dport,
        sequence=seq,
        acknowledgment=ack,
        data_offset=data_offset,
        reserved=off_res & 0x0F,
        flags=flags,
        window=window,
        checksum=checksum,
        urgent_pointer=urgent,
    )
    return layer, consumed, LayerHint.UNDECODED


def undecoded_from_bytes(offset: int, remaining: bytes) -> DissectResult:
    layer = UndecodedLayer(offset=offset, length=len(remaining))
    return layer, len(remaining), LayerHint.UNDECODED


DISSECTORS: Dict[LayerHint, Dissector] = {
    LayerHint.ETHERNET: ethernet_from_bytes,
    LayerHint.DOT1Q: dot1q_from_bytes,
    LayerHint.IPV4: ipv4_from_bytes,
    LayerHint.TCP: tcp_from_bytes,
    LayerHint.UNDECODED: undecoded_from_bytes,
}

# Every hint must name a dissector
assert set(DISSECTORS) == set(LayerHint), "unmapped LayerHint in DISSECTORS"


def get_dissector(hint: LayerHint) -> Dissector:
    """Look up the dissector registered for a hint."""
    return DISSECTORS[hint]
