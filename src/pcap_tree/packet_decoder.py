"""
Packet dissection engine.

This module walks a frame's byte buffer, repeatedly invoking the dissector
named by the previous layer's hint until every byte belongs to a layer.
"""

import logging
import time
from typing import Iterable

from .models import Frame, LayerHint, UndecodedLayer, LINKTYPE_ETHERNET
from .dissectors import get_dissector, MalformedLayerError

logger = logging.getLogger(__name__)


def initial_hint(link_type: int) -> LayerHint:
    """Pick the first dissector for a capture link type."""
    if link_type == LINKTYPE_ETHERNET:
        return LayerHint.ETHERNET
    return LayerHint.UNDECODED


def decode_frame(frame: Frame) -> Frame:
    """
    Decode a frame's layers in place.

    Any previous layers are discarded first, so decoding twice gives the same
    result as decoding once. A dissector failure or one that makes no
    progress ends the chain with an Undecoded layer for the remainder.

    Args:
        frame: Frame to decode

    Returns:
        The same frame, with decoded set
    """
    buf = frame.byte_buffer.data
    num_bytes = len(buf)
    frame.layers = []

    next_byte = 0
    hint = initial_hint(frame.link_type)

    while next_byte != num_bytes:
        remaining = buf[next_byte:]
        dissector = get_dissector(hint)

        try:
            layer, consumed, hint = dissector(next_byte, remaining)
        except MalformedLayerError as e:
            logger.debug(f"Frame {frame.index}: {e}")
            frame.layers.append(UndecodedLayer(offset=next_byte, length=len(remaining)))
            break

        if consumed <= 0 or consumed > len(remaining):
            logger.debug(
                f"Frame {frame.index}: {layer.name} dissector consumed {consumed} "
                f"of {len(remaining)} bytes at offset {next_byte}"
            )
            frame.layers.append(UndecodedLayer(offset=next_byte, length=len(remaining)))
            break

        frame.layers.append(layer)
        next_byte += consumed

    frame.decoded = True
    return frame


def decode_capture(frames: Iterable[Frame]) -> int:
    """
    Eagerly decode every frame of a capture.

    Returns:
        Number of frames decoded
    """
    start_time = time.time()
    count = 0
    for frame in frames:
        decode_frame(frame)
        count += 1

        if count % 1000 == 0:
            logger.debug(f"Decoded {count} frames")

    logger.info(f"Decoded {count} frames in {time.time() - start_time:.2f}s")
    return count
