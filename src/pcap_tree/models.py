"""
Data models for the packet tree viewer.

This module contains the core data structures used throughout the application
for representing captured frames, their byte buffers and decoded protocol layers.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from enum import Enum
import socket


# Link-layer header type for Ethernet (LINKTYPE_ETHERNET / DLT_EN10MB)
LINKTYPE_ETHERNET = 1

ETHERTYPE_IPV4 = 0x0800
ETHERTYPE_ARP = 0x0806
ETHERTYPE_VLAN = 0x8100
ETHERTYPE_IPV6 = 0x86DD

IP_PROTO_TCP = 6


class LayerHint(Enum):
    """Names the dissector that should run on the remaining bytes of a frame."""
    ETHERNET = "ethernet"
    DOT1Q = "dot1q"
    IPV4 = "ipv4"
    TCP = "tcp"
    UNDECODED = "undecoded"


def mac_to_string(mac: bytes) -> str:
    """Format a 6-byte MAC address as colon separated hex."""
    return ":".join(f"{b:02x}" for b in mac)


def ipv4_to_string(addr: bytes) -> str:
    """Format a 4-byte IPv4 address in dotted quad notation."""
    return socket.inet_ntoa(addr)


@dataclass(frozen=True)
class ByteBuffer:
    """
    The captured octets of a single frame.

    Immutable once built and owned exclusively by its Frame.
    """
    data: bytes = b""

    def __len__(self) -> int:
        return len(self.data)

    def __getitem__(self, key):
        return self.data[key]

    def hexdump(self, viewport_width: int) -> str:
        """Render this buffer as a hex + ASCII block fitting viewport_width."""
        from .hexdump import render
        return render(self, viewport_width)


@dataclass
class Layer:
    """
    Base for one protocol's decoded header within a frame.

    offset is the byte index in the frame where the layer starts and
    length the number of bytes its dissector consumed.
    """
    offset: int = 0
    length: int = 0

    name = "Layer"

    def summary(self) -> str:
        return self.name

    def fields(self) -> List[Tuple[str, str]]:
        """Ordered (name, text) pairs shown as verbose child rows."""
        return []

    def __str__(self) -> str:
        return self.summary()


@dataclass
class EthernetLayer(Layer):
    destination_mac: bytes = b"\x00" * 6
    source_mac: bytes = b"\x00" * 6
    ether_type: int = 0

    name = "Ethernet"

    def ether_type_name(self) -> str:
        return ETHERTYPE_NAMES.get(self.ether_type, "Unidentified")

    def summary(self) -> str:
        return (f"Ethernet II, Src: {mac_to_string(self.source_mac)}, "
                f"Dst: {mac_to_string(self.destination_mac)}, "
                f"Type: {self.ether_type_name()} ({self.ether_type:#06x})")

    def fields(self) -> List[Tuple[str, str]]:
        return [
            ("Destination", mac_to_string(self.destination_mac)),
            ("Source", mac_to_string(self.source_mac)),
            ("Type", f"{self.ether_type_name()} ({self.ether_type:#06x})"),
        ]


@dataclass
class Dot1QLayer(Layer):
    """802.1Q VLAN tag following an Ethernet header."""
    priority: int = 0
    drop_eligible: int = 0
    vlan_id: int = 0
    ether_type: int = 0

    name = "802.1Q"

    def summary(self) -> str:
        return (f"802.1Q Virtual LAN, PRI: {self.priority}, DEI: {self.drop_eligible}, "
                f"ID: {self.vlan_id}")

    def fields(self) -> List[Tuple[str, str]]:
        return [
            ("Priority", str(self.priority)),
            ("DEI", str(self.drop_eligible)),
            ("ID", str(self.vlan_id)),
            ("Type", f"{ETHERTYPE_NAMES.get(self.ether_type, 'Unidentified')} "
                     f"({self.ether_type:#06x})"),
        ]


@dataclass
class IPv4Layer(Layer):
    version: int = 4
    header_len: int = 5
    diffserv: int = 0
    congestion_notification: int = 0
    total_length: int = 0
    identification: int = 0
    flags: int = 0
    fragment_offset: int = 0
    ttl: int = 0
    protocol: int = 0
    header_checksum: int = 0
    source_addr: bytes = b"\x00" * 4
    dest_addr: bytes = b"\x00" * 4

    name = "IPv4"

    def summary(self) -> str:
        return (f"Internet Protocol Version 4, Src: {ipv4_to_string(self.source_addr)}, "
                f"Dst: {ipv4_to_string(self.dest_addr)}")

    def fields(self) -> List[Tuple[str, str]]:
        return [
            ("Version", str(self.version)),
            ("Header Length", f"{4 * self.header_len} bytes ({self.header_len})"),
            ("Differentiated Services Field", f"{self.diffserv:#04x}"),
            ("Explicit Congestion Notification", str(self.congestion_notification)),
            ("Total Length", str(self.total_length)),
            ("Identification", f"{self.identification:#06x} ({self.identification})"),
            ("Flags", f"{self.flags:#03x}"),
            ("Fragment Offset", str(self.fragment_offset)),
            ("Time to Live", str(self.ttl)),
            ("Protocol", f"{IP_PROTOCOL_NAMES.get(self.protocol, 'Unknown')} ({self.protocol})"),
            ("Header Checksum", f"{self.header_checksum:#06x}"),
            ("Source Address", ipv4_to_string(self.source_addr)),
            ("Destination Address", ipv4_to_string(self.dest_addr)),
        ]


TCP_FLAG_NAMES = ["FIN", "SYN", "RST", "PSH", "ACK", "URG", "ECE", "CWR"]


@dataclass
class TCPLayer(Layer):
    source_port: int = 0
    dest_port: int = 0
    sequence: int = 0
    acknowledgment: int = 0
    data_offset: int = 5
    reserved: int = 0
    flags: int = 0
    window: int = 0
    checksum: int = 0
    urgent_pointer: int = 0

    name = "TCP"

    def flag_names(self) -> List[str]:
        return [n for bit, n in enumerate(TCP_FLAG_NAMES) if self.flags & (1 << bit)]

    def summary(self) -> str:
        return (f"Transmission Control Protocol, Src Port: {self.source_port}, "
                f"Dst Port: {self.dest_port}, Seq: {self.sequence}, Len: {self.length}")

    def fields(self) -> List[Tuple[str, str]]:
        flags = ", ".join(self.flag_names()) or "none"
        return [
            ("Source Port", port_label(self.source_port)),
            ("Destination Port", port_label(self.dest_port)),
            ("Sequence Number", str(self.sequence)),
            ("Acknowledgment Number", str(self.acknowledgment)),
            ("Header Length", f"{4 * self.data_offset} bytes ({self.data_offset})"),
            ("Flags", f"{self.flags:#04x} ({flags})"),
            ("Window", str(self.window)),
            ("Checksum", f"{self.checksum:#06x}"),
            ("Urgent Pointer", str(self.urgent_pointer)),
        ]


@dataclass
class UndecodedLayer(Layer):
    """Bytes no dissector claimed; always the last layer of a frame."""

    name = "Undecoded"

    @property
    def start_offset(self) -> int:
        return self.offset

    def summary(self) -> str:
        return f"Undecoded Data [Starts: {self.offset}, Len: {self.length}]"


@dataclass
class Frame:
    """
    One captured packet plus its decode results.

    Once decoded is true, the layers partition the byte buffer in order
    with no gaps or overlaps.
    """
    index: int
    byte_buffer: ByteBuffer
    link_type: int = LINKTYPE_ETHERNET
    decoded: bool = False
    layers: List[Layer] = field(default_factory=list)
    timestamp: Optional[float] = None

    def decode(self) -> None:
        """Run the dissection engine over this frame, replacing any old layers."""
        from .packet_decoder import decode_frame
        decode_frame(self)

    def find_layer(self, layer_name: str) -> Optional[Layer]:
        """Find the first layer with the given protocol name."""
        for layer in self.layers:
            if layer.name.lower() == layer_name.lower():
                return layer
        return None

    def get_summary(self) -> str:
        return f"Packet Num {self.index} [ {len(self.byte_buffer)}B ]"

    def get_protocol_stack(self) -> str:
        """Short protocol chain such as 'Ethernet/IPv4/TCP'."""
        return "/".join(layer.name for layer in self.layers)

    def __str__(self) -> str:
        return self.get_summary()


@dataclass
class CaptureMetadata:
    """
    Metadata about a packet capture file.

    Contains summary information useful for displaying file details
    and understanding the scope of the capture.
    """
    filename: str
    packet_count: int = 0
    total_bytes: int = 0
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    protocols: List[str] = field(default_factory=list)
    file_size: int = 0

    def get_duration(self) -> Optional[float]:
        """Calculate capture duration in seconds."""
        if self.start_time is not None and self.end_time is not None:
            return self.end_time - self.start_time
        return None

    def get_duration_str(self) -> str:
        """Get human-readable duration string."""
        duration = self.get_duration()
        if duration is None:
            return "Unknown"

        if duration < 60:
            return f"{duration:.2f}s"
        elif duration < 3600:
            return f"{duration/60:.1f}m"
        else:
            return f"{duration/3600:.1f}h"

    def get_file_size_str(self) -> str:
        """Get human-readable file size string."""
        if self.file_size == 0:
            return "Unknown"

        size = self.file_size
        for unit in ['B', 'KB', 'MB', 'GB']:
            if size < 1024:
                return f"{size:.1f}{unit}"
            size /= 1024

        return f"{size:.1f}TB"

    def get_summary(self) -> str:
        """Generate a summary string for this capture."""
        return (f"{self.filename}: {self.packet_count} packets, "
                f"{self.total_bytes} bytes, "
                f"{self.get_duration_str()}, {self.get_file_size_str()}")


@dataclass
class Capture:
    """
    All frames of one capture file in capture order.

    The frame count is fixed at load time; frames are only mutated by decoding.
    """
    filename: str
    frames: List[Frame] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.frames)

    def __iter__(self):
        return iter(self.frames)

    def __getitem__(self, index: int) -> Frame:
        return self.frames[index]


ETHERTYPE_NAMES: Dict[int, str] = {
    ETHERTYPE_IPV4: "IPv4",
    ETHERTYPE_ARP: "ARP",
    ETHERTYPE_VLAN: "802.1Q",
    ETHERTYPE_IPV6: "IPv6",
}

IP_PROTOCOL_NAMES: Dict[int, str] = {
    1: "ICMP",
    IP_PROTO_TCP: "TCP",
    17: "UDP",
}

# Common protocol port mappings for enhanced field labels
COMMON_PORTS = {
    80: "HTTP",
    443: "HTTPS",
    53: "DNS",
    22: "SSH",
    21: "FTP",
    25: "SMTP",
    110: "POP3",
    143: "IMAP",
    502: "Modbus",
    993: "IMAPS",
    995: "POP3S",
    5060: "SIP",
    5061: "SIPS"
}


def port_label(port: int) -> str:
    service = COMMON_PORTS.get(port)
    return f"{port} ({service})" if service else str(port)


# Tree styles per layer kind, (foreground, background)
LAYER_COLORS = {
    "Frame": ("white", None),
    "Ethernet": ("black", "light_goldenrod1"),
    "802.1Q": ("black", "light_goldenrod1"),
    "IPv4": ("black", "light_goldenrod1"),
    "TCP": ("black", "light_goldenrod1"),
    "Undecoded": ("white", "red"),
}
