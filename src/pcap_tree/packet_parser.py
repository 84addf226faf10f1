"""
Packet capture loading.

This module reads pcap/pcapng files with dpkt, turns capture records into
Frames and runs the dissection engine over them before any UI starts.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union

import dpkt

from .models import ByteBuffer, Capture, CaptureMetadata, Frame, LINKTYPE_ETHERNET
from .packet_decoder import decode_capture

logger = logging.getLogger(__name__)


class CaptureLoadError(ValueError):
    """The capture file could not be opened or its record structure read."""


@dataclass(frozen=True)
class LinkTypeHeader:
    """File or section header announcing the link type of following records."""
    link_type: int


@dataclass(frozen=True)
class DataRecord:
    """One captured frame."""
    data: bytes
    captured_length: int
    timestamp: Optional[float] = None


@dataclass(frozen=True)
class OtherMetadata:
    """Any record that carries neither frame data nor a link type."""
    description: str = ""


CaptureRecord = Union[LinkTypeHeader, DataRecord, OtherMetadata]


def is_valid_pcap_file(filepath: str) -> bool:
    """
    Check if a file appears to be a valid pcap file.

    Args:
        filepath: Path to check

    Returns:
        True if file appears to be a valid pcap file
    """
    if not os.path.exists(filepath):
        return False

    # Check file extension
    path = Path(filepath)
    if path.suffix.lower() not in ['.pcap', '.pcapng', '.cap']:
        return False

    # Check file size (should be at least 24 bytes for pcap header)
    if os.path.getsize(filepath) < 24:
        return False

    # Check magic number
    try:
        with open(filepath, 'rb') as f:
            magic = f.read(4)
    except OSError:
        return False

    pcap_magics = [
        b'\xd4\xc3\xb2\xa1',  # pcap little endian
        b'\xa1\xb2\xc3\xd4',  # pcap big endian
        b'\x4d\x3c\xb2\xa1',  # pcap nanosecond little endian
        b'\xa1\xb2\x3c\x4d',  # pcap nanosecond big endian
        b'\x0a\x0d\x0d\x0a',  # pcapng
    ]
    return magic in pcap_magics


def iter_capture_records(filepath: str) -> Iterator[CaptureRecord]:
    """
    Yield the records of a capture file.

    The link type header comes first, followed by one DataRecord per frame.
    dpkt buffers file reads itself, so partial reads never surface here.

    Raises:
        CaptureLoadError: If the file cannot be opened or its header read
    """
    try:
        f = open(filepath, 'rb')
    except OSError as e:
        raise CaptureLoadError(f"Cannot open capture {filepath}: {e}") from e

    with f:
        try:
            reader = dpkt.pcap.UniversalReader(f)
        except (ValueError, dpkt.dpkt.Error) as e:
            raise CaptureLoadError(f"Failed to parse capture {filepath}: {e}") from e

        yield LinkTypeHeader(reader.datalink())

        count = 0
        try:
            for ts, buf in reader:
                yield DataRecord(bytes(buf), len(buf), float(ts))
                count += 1
        except dpkt.dpkt.NeedData:
            logger.warning(f"Truncated record after {count} frames in {filepath}")
        except dpkt.dpkt.Error as e:
            raise CaptureLoadError(f"Failed to read record {count} of {filepath}: {e}") from e


def frames_from_records(records: Iterable[CaptureRecord]) -> Iterator[Frame]:
    """
    Build Frames from capture records.

    Only data records produce frames and advance the frame index; link type
    headers apply to every frame after them.
    """
    link_type = LINKTYPE_ETHERNET
    index = 0

    for record in records:
        if isinstance(record, LinkTypeHeader):
            link_type = record.link_type
        elif isinstance(record, DataRecord):
            data = record.data[:record.captured_length]
            yield Frame(
                index=index,
                byte_buffer=ByteBuffer(data),
                link_type=link_type,
                timestamp=record.timestamp,
            )
            index += 1


class PacketParser:
    """
    Loader for packet capture files using the dpkt backend.

    Reads every frame into memory and decodes all of them eagerly.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def parse_capture(self, filepath: str) -> Capture:
        """
        Load and decode a capture file.

        Args:
            filepath: Path to the PCAP file

        Returns:
            Capture with every frame decoded

        Raises:
            CaptureLoadError: If file cannot be read
        """
        if not is_valid_pcap_file(filepath):
            raise CaptureLoadError(f"Invalid PCAP file: {filepath}")

        self.logger.info(f"Starting to parse {filepath}")

        frames = list(frames_from_records(iter_capture_records(filepath)))
        capture = Capture(filename=os.path.basename(filepath), frames=frames)
        decode_capture(capture.frames)

        self.logger.info(f"Successfully parsed {len(frames)} packets from {filepath}")
        return capture

    def extract_metadata(self, capture: Capture, filepath: str) -> CaptureMetadata:
        """
        Extract capture statistics and metadata.

        Args:
            capture: Loaded capture
            filepath: Path to the original capture file

        Returns:
            CaptureMetadata object with file statistics
        """
        file_size = os.path.getsize(filepath) if os.path.exists(filepath) else 0
        timestamps = [f.timestamp for f in capture.frames if f.timestamp is not None]

        protocols = set()
        for frame in capture.frames:
            for layer in frame.layers:
                protocols.add(layer.name)

        return CaptureMetadata(
            filename=os.path.basename(filepath),
            packet_count=len(capture.frames),
            total_bytes=sum(len(f.byte_buffer) for f in capture.frames),
            start_time=min(timestamps) if timestamps else None,
            end_time=max(timestamps) if timestamps else None,
            protocols=sorted(protocols),
            file_size=file_size,
        )


def load_capture(filepath: str) -> Capture:
    """Convenience wrapper around PacketParser.parse_capture."""
    return PacketParser().parse_capture(filepath)
