"""Configuration and fixtures for pytest tests."""

import pytest
import sys
import os
import socket
import struct

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src"))


def _mac_bytes(mac: str) -> bytes:
    return bytes(int(x, 16) for x in mac.split(':'))


def build_ethernet(dst="00:11:22:33:44:55", src="00:aa:bb:cc:dd:ee",
                   ether_type=0x0800, payload=b"") -> bytes:
    """14-byte Ethernet II header + payload."""
    return _mac_bytes(dst) + _mac_bytes(src) + struct.pack('>H', ether_type) + payload


def build_ipv4(src="192.168.1.1", dst="192.168.1.2", proto=6, payload=b"",
               ihl=5, options=b"") -> bytes:
    """IPv4 header with the given IHL + payload."""
    total_len = 4 * ihl + len(payload)
    hdr = struct.pack('>BBHHHBBH',
                      0x40 | ihl,     # version=4
                      0xB9,           # dscp=0x2e, ecn=1
                      total_len,
                      0x1234,         # identification
                      0x4000 | 3,     # DF flag, fragment offset 3
                      64,             # ttl
                      proto,
                      0xBEEF)         # checksum (not validated)
    hdr += socket.inet_aton(src) + socket.inet_aton(dst) + options
    return hdr + payload


def build_tcp(sport=12345, dport=80, seq=1, ack=0, flags=0x18, data_offset=5,
              options=b"", payload=b"") -> bytes:
    """TCP header with the given data offset + payload."""
    hdr = struct.pack('>HHIIBBHHH',
                      sport, dport, seq, ack,
                      data_offset << 4,
                      flags,
                      8192,           # window
                      0,              # checksum
                      0)              # urgent pointer
    return hdr + options + payload


def build_pcap(frames, link_type=1) -> bytes:
    """Legacy little-endian pcap file holding the given frames."""
    out = b'\xd4\xc3\xb2\xa1'
    out += struct.pack('<HHiIii', 2, 4, 0, 0, 65535, link_type)
    for i, frame in enumerate(frames):
        out += struct.pack('<IIII', 1234567890 + i, 500, len(frame), len(frame))
        out += frame
    return out


@pytest.fixture
def tcp_frame_bytes():
    """Ethernet/IPv4/TCP frame with a 4 byte payload (58 bytes)."""
    return build_ethernet(payload=build_ipv4(payload=build_tcp(payload=b"ABCD")))


@pytest.fixture
def sample_capture(tcp_frame_bytes):
    """Decoded capture of three frames: TCP, ARP and non-Ethernet."""
    from pcap_tree.models import ByteBuffer, Capture, Frame
    from pcap_tree.packet_decoder import decode_capture

    frames = [
        Frame(index=0, byte_buffer=ByteBuffer(tcp_frame_bytes)),
        Frame(index=1, byte_buffer=ByteBuffer(build_ethernet(ether_type=0x0806, payload=b"\x00" * 28))),
        Frame(index=2, byte_buffer=ByteBuffer(b"\x01\x02\x03\x04"), link_type=101),
    ]
    decode_capture(frames)
    return Capture(filename="sample.pcap", frames=frames)


@pytest.fixture
def pcap_file(tmp_path, tcp_frame_bytes):
    """Path to a two-frame pcap file on disk."""
    arp = build_ethernet(ether_type=0x0806, payload=b"\x00" * 28)
    path = tmp_path / "sample.pcap"
    path.write_bytes(build_pcap([tcp_frame_bytes, arp]))
    return str(path)
