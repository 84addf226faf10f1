"""
Terminal User Interface for packet tree inspection.

This module provides the Textual-based TUI: a packet tree on the left and a
hex view of the selected frame on the right. All state lives in the
TreeNavigator; the widgets are redrawn from it after every key press.
"""

import asyncio
from typing import List, Optional

from textual.app import App, ComposeResult
from textual.containers import Horizontal, VerticalScroll
from textual.widgets import Header, Footer, Static
from textual import log
from rich.text import Text
from rich.style import Style

from .models import Capture, LAYER_COLORS
from .navigation import TreeNavigator, TreeRow
from .hexdump import GUTTER_SEPARATOR, bytes_per_line, render_lines, highlight_spans

HIGHLIGHT_SYMBOL = ">> "
SELECTED_STYLE = Style(color="black", bgcolor="bright_green", bold=True)
BYTE_HIGHLIGHT_STYLE = Style(color="black", bgcolor="bright_green")


class Pane(VerticalScroll, can_focus=False):
    """Scrolling pane that leaves the arrow keys to the app."""


def row_style(row: TreeRow) -> Style:
    fg, bg = LAYER_COLORS.get(row.kind, ("white", None))
    if row.depth == 2:
        bg = None
    return Style(color=fg, bgcolor=bg)


def render_tree(rows: List[TreeRow], selected: Optional[int], open_set) -> Text:
    """Build the tree pane text from flattened rows."""
    text = Text(no_wrap=True, overflow="ellipsis")
    for i, row in enumerate(rows):
        if i:
            text.append("\n")
        if row.expandable:
            marker = "▼ " if row.node_id in open_set else "▶ "
        else:
            marker = "  "
        prefix = HIGHLIGHT_SYMBOL if i == selected else " " * len(HIGHLIGHT_SYMBOL)
        style = SELECTED_STYLE if i == selected else row_style(row)
        text.append(prefix + "  " * row.depth + marker)
        text.append(row.label, style=style)
    return text


def render_bytes(data: bytes, width: int, byte_range=None) -> Text:
    """Build the byte pane text, highlighting byte_range when given."""
    per_line = bytes_per_line(width - len(GUTTER_SEPARATOR))
    lines = render_lines(data, per_line)
    text = Text("\n".join(lines), no_wrap=True)

    if byte_range is not None:
        starts = []
        pos = 0
        for line in lines:
            starts.append(pos)
            pos += len(line) + 1
        for span in highlight_spans(byte_range[0], byte_range[1], per_line):
            base = starts[span.line]
            text.stylize(BYTE_HIGHLIGHT_STYLE, base + span.start, base + span.end)
    return text


class PacketTreeApp(App):
    """Main TUI application for packet inspection."""

    TITLE = "PCAP Tree"

    CSS = """
    #tree-pane {
        width: 3fr;
        border: solid $accent;
    }
    #byte-pane {
        width: 2fr;
        border: solid $accent;
    }
    """

    BINDINGS = [
        ("up", "cursor_up", "Up"),
        ("down", "cursor_down", "Down"),
        ("left", "collapse", "Collapse"),
        ("right", "expand", "Expand"),
        ("v", "toggle_fields", "Fields"),
        ("q", "quit", "Quit"),
    ]

    def __init__(self, capture: Capture, verbose: bool = False, **kwargs):
        super().__init__(**kwargs)
        self.capture = capture
        self.navigator = TreeNavigator(capture, verbose=verbose)

    def compose(self) -> ComposeResult:
        """Create the TUI layout."""
        yield Header()

        with Horizontal():
            with Pane(id="tree-pane"):
                yield Static("", id="packet-tree")
            with Pane(id="byte-pane"):
                yield Static("", id="byte-view")

        yield Footer()

    def on_mount(self) -> None:
        """Initialize the application."""
        self.title = f"PCAP Tree: {self.capture.filename}"
        self.query_one("#tree-pane").border_title = "Packet View"
        self.query_one("#byte-pane").border_title = "Byte View"
        log(f"Loaded {len(self.capture)} frames from {self.capture.filename}")
        self.call_after_refresh(self.refresh_views)

    def on_resize(self) -> None:
        self.call_after_refresh(self.refresh_views)

    def refresh_views(self) -> None:
        """Redraw both panes from the navigation state."""
        rows = self.navigator.rows()
        selected = self.navigator.selected_index()
        open_set = self.navigator.state.open_set

        tree_pane = self.query_one("#tree-pane", Pane)
        self.query_one("#packet-tree", Static).update(render_tree(rows, selected, open_set))
        if selected is not None:
            self._scroll_into_view(tree_pane, selected)

        byte_view = self.query_one("#byte-view", Static)
        frame = self.navigator.selected_frame()
        if frame is None:
            byte_view.update("")
            return

        width = self.query_one("#byte-pane", Pane).scrollable_content_region.width or 80
        byte_view.update(render_bytes(
            frame.byte_buffer.data, width, self.navigator.selected_byte_range()
        ))

    def _scroll_into_view(self, pane: Pane, line: int) -> None:
        height = pane.scrollable_content_region.height
        if height <= 0:
            return
        if line < pane.scroll_y:
            pane.scroll_to(y=line, animate=False)
        elif line >= pane.scroll_y + height:
            pane.scroll_to(y=line - height + 1, animate=False)

    def action_cursor_up(self) -> None:
        self.navigator.up()
        self.refresh_views()

    def action_cursor_down(self) -> None:
        self.navigator.down()
        self.refresh_views()

    def action_collapse(self) -> None:
        self.navigator.left()
        self.refresh_views()

    def action_expand(self) -> None:
        self.navigator.right()
        self.refresh_views()

    def action_toggle_fields(self) -> None:
        """Show or hide per-field rows under each layer."""
        self.navigator.set_verbose(not self.navigator.verbose)
        self.refresh_views()

    def action_quit(self) -> None:
        """Quit the application."""
        self.exit()


async def run_tui(capture: Capture, verbose: bool = False) -> None:
    """Run the TUI application."""
    app = PacketTreeApp(capture, verbose=verbose)
    await app.run_async()


if __name__ == "__main__":
    import sys
    from .packet_parser import load_capture

    if len(sys.argv) != 2:
        print("Usage: python -m pcap_tree.tui <file>")
        sys.exit(1)

    asyncio.run(run_tui(load_capture(sys.argv[1])))
