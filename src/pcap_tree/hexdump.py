"""
Hex + ASCII rendering of a frame's byte buffer.

The layout adapts to the viewport width: the number of bytes per line is the
largest power of two that fits, so column headers and byte columns stay
aligned across resizes.
"""

from typing import List, NamedTuple, Union

from .models import ByteBuffer

# "0x0000| " address column
PREAMBLE_WIDTH = 8
# "xx " per byte plus one ASCII column
COLUMNS_PER_BYTE = 4
GUTTER_SEPARATOR = "| "
# Lines before the first data row (column header and rule)
HEADER_LINES = 2


class HighlightSpan(NamedTuple):
    """A column range [start, end) on one line of rendered text."""
    line: int
    start: int
    end: int


def bytes_per_line(viewport_width: int) -> int:
    """Largest power of two n with PREAMBLE_WIDTH + 4n <= viewport_width, at least 1."""
    maximum = (viewport_width - PREAMBLE_WIDTH) // COLUMNS_PER_BYTE
    if maximum < 1:
        return 1
    return 1 << (maximum.bit_length() - 1)


def _ascii(chunk: bytes) -> str:
    return "".join(chr(b) if 0x20 <= b < 0x7F else "." for b in chunk)


def render_lines(data: Union[ByteBuffer, bytes], per_line: int) -> List[str]:
    """Render data with a fixed number of bytes per line."""
    if isinstance(data, ByteBuffer):
        data = data.data

    lines = [
        " " * PREAMBLE_WIDTH + "".join(f"{i:02x} " for i in range(per_line)) + "|",
        "-" * (PREAMBLE_WIDTH + per_line * COLUMNS_PER_BYTE),
    ]

    for address in range(0, len(data), per_line):
        chunk = data[address:address + per_line]
        hex_part = "".join(f"{b:02x} " for b in chunk)
        # Pad a short final row so the ASCII gutter still aligns
        hex_part += "   " * (per_line - len(chunk))
        lines.append(f"0x{address:04X}| {hex_part}{GUTTER_SEPARATOR}{_ascii(chunk)}")

    return lines


def render(data: Union[ByteBuffer, bytes], viewport_width: int) -> str:
    """
    Render a byte buffer as an address / hex / ASCII block.

    Args:
        data: Frame bytes to render
        viewport_width: Columns available for the block

    Returns:
        Newline separated text, recomputed on every call
    """
    return "\n".join(render_lines(data, bytes_per_line(viewport_width)))


def highlight_spans(offset: int, length: int, per_line: int) -> List[HighlightSpan]:
    """
    Locate a byte range within text produced by render_lines.

    Each covered row yields one span over its hex pairs and one over
    its ASCII characters.
    """
    spans: List[HighlightSpan] = []
    if length <= 0:
        return spans

    ascii_start = PREAMBLE_WIDTH + 3 * per_line + len(GUTTER_SEPARATOR)
    last = offset + length - 1
    for row in range(offset // per_line, last // per_line + 1):
        first_col = max(offset, row * per_line) - row * per_line
        last_col = min(last, (row + 1) * per_line - 1) - row * per_line
        line = HEADER_LINES + row
        spans.append(HighlightSpan(line, PREAMBLE_WIDTH + 3 * first_col,
                                   PREAMBLE_WIDTH + 3 * last_col + 2))
        spans.append(HighlightSpan(line, ascii_start + first_col, ascii_start + last_col + 1))
    return spans
