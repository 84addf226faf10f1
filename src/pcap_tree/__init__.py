"""
Packet Tree TUI - Terminal-based packet capture inspector.

A tool for browsing the frames of a Wireshark capture file (.pcap/.pcapng) as
a tree of decoded protocol layers, next to a hex view of the selected frame.
"""

__version__ = "0.1.0"
__author__ = "Packet Tree Contributors"
__email__ = "contributors@pcap-tree.example.com"

from . import models
from .packet_parser import PacketParser, CaptureLoadError
from .packet_decoder import decode_frame, decode_capture
from .navigation import TreeNavigator, flatten
from .hexdump import render

__all__ = [
    "models",
    "PacketParser",
    "CaptureLoadError",
    "decode_frame",
    "decode_capture",
    "TreeNavigator",
    "flatten",
    "render",
    "__version__",
]
