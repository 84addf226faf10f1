"""
Tree navigation model for browsing a decoded capture.

The tree is never stored: the visible rows are recomputed on demand from the
capture and the set of expanded nodes. A node's identity is its path of
indices from the root, e.g. ``(frame,)``, ``(frame, layer)`` or, when field
rows are shown, ``(frame, layer, field)``.

Selection policy: ``select()`` may address a node below closed ancestors, in
which case every ancestor is opened. The arrow-key movements only ever land on
visible rows, so the selected path always names a row of the flattened view.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple

from .models import Capture, Frame, Layer

NodeId = Tuple[int, ...]


@dataclass(frozen=True)
class TreeRow:
    """One visible row of the flattened tree."""
    depth: int
    node_id: NodeId
    label: str
    expandable: bool
    kind: str = "Frame"


@dataclass
class NavigationState:
    """Which nodes are expanded and which single node is selected."""
    open_set: Set[NodeId] = field(default_factory=set)
    selected_path: List[int] = field(default_factory=list)


def _layer_expandable(layer: Layer, verbose: bool) -> bool:
    return verbose and bool(layer.fields())


def flatten(capture: Capture, open_set: Set[NodeId], verbose: bool = False) -> List[TreeRow]:
    """
    Produce the visible rows in depth-first pre-order.

    A node's children are included only when its id is in open_set.
    """
    rows: List[TreeRow] = []

    for fi, frame in enumerate(capture.frames):
        frame_id = (fi,)
        rows.append(TreeRow(0, frame_id, frame.get_summary(), bool(frame.layers)))
        if frame_id not in open_set:
            continue

        for li, layer in enumerate(frame.layers):
            layer_id = (fi, li)
            expandable = _layer_expandable(layer, verbose)
            rows.append(TreeRow(1, layer_id, layer.summary(), expandable, layer.name))
            if not (expandable and layer_id in open_set):
                continue

            for ki, (name, value) in enumerate(layer.fields()):
                rows.append(TreeRow(2, (fi, li, ki), f"{name}: {value}", False, layer.name))

    return rows


class TreeNavigator:
    """
    Selection and expansion state over a capture's tree.

    All movements are computed against a freshly flattened view and are
    silent no-ops when they cannot move.
    """

    def __init__(self, capture: Capture, verbose: bool = False,
                 state: Optional[NavigationState] = None):
        self.capture = capture
        self._verbose = verbose
        self.state = state if state is not None else NavigationState()

    @property
    def verbose(self) -> bool:
        return self._verbose

    def set_verbose(self, verbose: bool) -> None:
        """Show or hide field rows, moving a hidden selection up to its layer."""
        self._verbose = verbose
        if not verbose and len(self.state.selected_path) > 2:
            self.state.selected_path = self.state.selected_path[:2]

    def rows(self) -> List[TreeRow]:
        return flatten(self.capture, self.state.open_set, self._verbose)

    def _selected_index(self, rows: List[TreeRow]) -> Optional[int]:
        if not self.state.selected_path:
            return None
        selected = tuple(self.state.selected_path)
        for i, row in enumerate(rows):
            if row.node_id == selected:
                return i
        return None

    def _select_row(self, row: TreeRow) -> None:
        self.state.selected_path = list(row.node_id)

    def selected_index(self) -> Optional[int]:
        """Position of the selected row in the flattened view."""
        return self._selected_index(self.rows())

    def selected_row(self) -> Optional[TreeRow]:
        rows = self.rows()
        idx = self._selected_index(rows)
        return rows[idx] if idx is not None else None

    def down(self) -> None:
        rows = self.rows()
        if not rows:
            return
        idx = self._selected_index(rows)
        if idx is None:
            self._select_row(rows[0])
        elif idx < len(rows) - 1:
            self._select_row(rows[idx + 1])

    def up(self) -> None:
        rows = self.rows()
        idx = self._selected_index(rows)
        if idx is not None and idx > 0:
            self._select_row(rows[idx - 1])

    def right(self) -> None:
        """Open the selected node, or step into its first child if already open."""
        rows = self.rows()
        if not rows:
            return
        idx = self._selected_index(rows)
        if idx is None:
            self._select_row(rows[0])
            return

        row = rows[idx]
        if not row.expandable:
            return
        if row.node_id not in self.state.open_set:
            self.state.open_set.add(row.node_id)
            return

        if idx + 1 < len(rows) and rows[idx + 1].depth > row.depth:
            self._select_row(rows[idx + 1])

    def left(self) -> None:
        """Close the selected node, or step out to its parent if closed or a leaf."""
        rows = self.rows()
        idx = self._selected_index(rows)
        if idx is None:
            return

        row = rows[idx]
        if row.expandable and row.node_id in self.state.open_set:
            self.state.open_set.discard(row.node_id)
        elif len(row.node_id) > 1:
            self.state.selected_path = list(row.node_id[:-1])

    def select(self, path: List[int]) -> None:
        """
        Select a node by path, opening any closed ancestors.

        Raises:
            IndexError: If the path does not address a node
        """
        path = list(path)
        if not path:
            self.state.selected_path = []
            return
        self._resolve(path)
        for depth in range(1, len(path)):
            self.state.open_set.add(tuple(path[:depth]))
        self.state.selected_path = path

    def _resolve(self, path: List[int]):
        if len(path) > 3 or (len(path) == 3 and not self._verbose):
            raise IndexError(f"No tree node at {path}")
        if not 0 <= path[0] < len(self.capture.frames):
            raise IndexError(f"No frame at {path}")
        node = self.capture.frames[path[0]]
        if len(path) > 1:
            if not 0 <= path[1] < len(node.layers):
                raise IndexError(f"No layer at {path}")
            node = node.layers[path[1]]
        if len(path) > 2 and not 0 <= path[2] < len(node.fields()):
            raise IndexError(f"No field at {path}")
        return node

    def selected_frame(self) -> Optional[Frame]:
        if not self.state.selected_path:
            return None
        return self.capture.frames[self.state.selected_path[0]]

    def selected_layer(self) -> Optional[Layer]:
        path = self.state.selected_path
        if len(path) < 2:
            return None
        return self.capture.frames[path[0]].layers[path[1]]

    def selected_byte_range(self) -> Optional[Tuple[int, int]]:
        """(offset, length) of the bytes behind the selected node."""
        layer = self.selected_layer()
        if layer is not None:
            return layer.offset, layer.length
        frame = self.selected_frame()
        if frame is not None:
            return 0, len(frame.byte_buffer)
        return None
