"""
Focus/Selection Tracker

FocusState is an immutable value: every transition returns a new state and
never touches the aggregate tree it reads. FocusTracker is the small mutable
holder a single view owns; it just swaps states.

States: Unfocused (narrow_focus is None) and Focused (narrow_focus is a set of
first-dimension keys). Transitions:
    toggle_dimension  add/remove/evict-oldest, resets focus and selection
    toggle_focus      depth-1 nodes only; same keys again clears
    apply_focus       clears a focus that would leave no records
    select            stores the key path from the root to a node
"""

import logging
from dataclasses import dataclass, replace
from typing import FrozenSet, Iterable, List, Optional, Sequence, Tuple

from .aggregator import MAX_DIMENSIONS, AggregateNode, qualifying, restrict_to_keys
from .records import Dimension, Record

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FocusState:
    active_dimensions: Tuple[Dimension, ...] = ()
    narrow_focus: Optional[FrozenSet[str]] = None
    selection_path: Tuple[str, ...] = ()
    focus_label: Optional[str] = None

    @property
    def is_focused(self) -> bool:
        return self.narrow_focus is not None

    @property
    def primary_dimension(self) -> Optional[Dimension]:
        return self.active_dimensions[0] if self.active_dimensions else None

    def clear_focus(self) -> 'FocusState':
        return replace(self, narrow_focus=None, focus_label=None)


def toggle_dimension(state: FocusState, dimension: Dimension) -> FocusState:
    """
    Add or remove a grouping dimension.

    Adding a third dimension evicts the oldest. Any change resets focus and
    selection, since both refer to keys of the previous grouping.
    """
    active: List[Dimension] = list(state.active_dimensions)
    if dimension in active:
        active.remove(dimension)
    else:
        if len(active) >= MAX_DIMENSIONS:
            evicted = active.pop(0)
            logger.debug(f"Evicting dimension '{evicted.name}' to make room for '{dimension.name}'")
        active.append(dimension)
    return FocusState(active_dimensions=tuple(active))


def clear_dimensions(state: FocusState) -> FocusState:
    """The "Total" control: no grouping, no focus, no selection."""
    return FocusState()


def toggle_focus(state: FocusState, tree: AggregateNode, node: AggregateNode) -> FocusState:
    """
    Focus on (or un-focus from) a depth-1 node of ``tree``.

    Calls on nodes that are not direct children of the root, or while no
    dimension is active, are ignored.
    """
    if not state.active_dimensions:
        logger.debug("toggle_focus ignored: no active dimension")
        return state
    if not any(child is node for child in tree.children):
        logger.debug(f"toggle_focus ignored: '{node.key}' is not a depth-1 node of the current tree")
        return state

    keys = frozenset(node.source_keys) or frozenset([node.key])
    if state.narrow_focus == keys:
        return state.clear_focus()
    return replace(state, narrow_focus=keys, focus_label=node.key)


def apply_focus(state: FocusState, records: Iterable[Record]) -> Tuple[FocusState, List[Record]]:
    """
    Narrow ``records`` by the current focus.

    Returns the (possibly auto-cleared) state with the working records. A focus
    with no active dimension, or one that would leave zero qualifying records,
    is cleared and the records are returned unnarrowed.
    """
    records = list(records)
    if not state.is_focused:
        return state, records
    dimension = state.primary_dimension
    if dimension is None:
        return state.clear_focus(), records
    narrowed = qualifying(restrict_to_keys(records, dimension, state.narrow_focus))
    if not narrowed:
        logger.info(f"Focus on {sorted(state.narrow_focus)} matches no records; clearing focus")
        return state.clear_focus(), records
    return state, narrowed


def path_to(tree: AggregateNode, node: AggregateNode) -> Optional[Tuple[str, ...]]:
    """Key path from the root (exclusive) to ``node``, or None when unreachable."""
    for path, candidate in tree.walk():
        if candidate is node:
            return path
    return None


def select(state: FocusState, tree: AggregateNode, node: AggregateNode) -> FocusState:
    """
    Store the path to ``node`` as the selection. Selecting the root clears it.

    Nodes not reachable from ``tree`` are ignored.
    """
    if node is tree:
        return replace(state, selection_path=())
    path = path_to(tree, node)
    if path is None:
        logger.debug(f"select ignored: '{node.key}' is not in the current tree")
        return state
    return replace(state, selection_path=path)


def select_path(state: FocusState, path: Sequence[str]) -> FocusState:
    return replace(state, selection_path=tuple(path))


def resolve_selection(tree: AggregateNode, path: Sequence[str]) -> AggregateNode:
    """
    Walk ``path`` through ``tree`` by key.

    A path that no longer matches (the tree changed after a period or filter
    change) resolves to the root.
    """
    current = tree
    for key in path:
        child = current.find_child(key)
        if child is None:
            logger.debug(f"Selection path {list(path)} is stale; falling back to root")
            return tree
        current = child
    return current


def share_of(node: AggregateNode, scope_total: float) -> Optional[float]:
    """
    Share of ``node`` within ``scope_total``.

    Returns None (undefined share, rendered as "—") when the scope total is not
    positive.
    """
    if scope_total is None or not scope_total > 0:
        return None
    return node.value / scope_total


class FocusTracker:
    """Owns the FocusState of one view."""

    def __init__(self, state: Optional[FocusState] = None):
        self.state = state or FocusState()

    @property
    def active_dimensions(self) -> Tuple[Dimension, ...]:
        return self.state.active_dimensions

    @property
    def narrow_focus(self) -> Optional[FrozenSet[str]]:
        return self.state.narrow_focus

    @property
    def selection_path(self) -> Tuple[str, ...]:
        return self.state.selection_path

    def toggle_dimension(self, dimension: Dimension) -> FocusState:
        self.state = toggle_dimension(self.state, dimension)
        return self.state

    def clear_dimensions(self) -> FocusState:
        self.state = clear_dimensions(self.state)
        return self.state

    def toggle_focus(self, tree: AggregateNode, node: AggregateNode) -> FocusState:
        self.state = toggle_focus(self.state, tree, node)
        return self.state

    def apply_focus(self, records: Iterable[Record]) -> List[Record]:
        self.state, working = apply_focus(self.state, records)
        return working

    def select(self, tree: AggregateNode, node: AggregateNode) -> FocusState:
        self.state = select(self.state, tree, node)
        return self.state

    def select_path(self, path: Sequence[str]) -> FocusState:
        self.state = select_path(self.state, path)
        return self.state

    def resolve(self, tree: AggregateNode) -> AggregateNode:
        return resolve_selection(tree, self.state.selection_path)

    def share(self, node: AggregateNode, tree: AggregateNode) -> Optional[float]:
        return share_of(node, tree.value)

    def reset(self) -> None:
        self.state = FocusState()
