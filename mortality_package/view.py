"""
Drill-down view: the re-aggregation cycle a rendering layer drives.

A DrillDownView owns one FocusTracker and re-runs the whole pipeline on every
refresh: period filter -> focus narrowing (auto-clearing a dead-end focus) ->
aggregate -> selection resolution -> share of the resolved node. Nothing is
updated incrementally.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .aggregator import AggregateNode, AggregationOptions, aggregate
from .filters import available_periods, filter_by_period
from .focus import FocusState, FocusTracker, share_of
from .records import OTHER_KEY, TOTAL_KEY, Dimension, Record

logger = logging.getLogger(__name__)

PATH_SEPARATOR = " › "
UNDEFINED_SHARE_TEXT = "—"


def format_share(share: Optional[float]) -> str:
    """'12.3%' for a share, '—' for an undefined one."""
    if share is None:
        return UNDEFINED_SHARE_TEXT
    return f"{share:.1%}"


def breadcrumb(path: Sequence[str], dimensions: Sequence[Dimension] = ()) -> List[str]:
    """
    Display labels for a selection path; ["Total"] for the root.

    An "Other" step is shown with the other-label of the dimension at that depth.
    """
    if not path:
        return [TOTAL_KEY]
    labels = []
    for depth, key in enumerate(path):
        if key == OTHER_KEY and depth < len(dimensions):
            labels.append(dimensions[depth].other_label)
        else:
            labels.append(key)
    return labels


def format_path(path: Sequence[str], dimensions: Sequence[Dimension] = ()) -> str:
    return PATH_SEPARATOR.join(breadcrumb(path, dimensions))


@dataclass(frozen=True)
class ViewSnapshot:
    tree: AggregateNode
    state: FocusState
    selected: AggregateNode
    breadcrumb: Tuple[str, ...]
    share: Optional[float]
    period: Optional[int] = None
    period_label: Optional[str] = None

    @property
    def scope_total(self) -> float:
        return self.tree.value

    @property
    def share_text(self) -> str:
        return format_share(self.share)

    @property
    def period_text(self) -> str:
        return f"in {self.period_label}" if self.period_label else "across all years"

    @property
    def focus_text(self) -> Optional[str]:
        dimension = self.state.primary_dimension
        if not self.state.is_focused or dimension is None:
            return None
        return f"Focusing on {self.state.focus_label} within {dimension.display_label}"

    @property
    def is_empty(self) -> bool:
        return self.tree.value == 0 and self.tree.is_leaf


class DrillDownView:
    """
    One chart's aggregation state.

    Args:
        records: Normalized records
        dimensions: Dimension catalog, keyed by name
        options: Top-N collapsing options
        period: Initial period (None means all periods)
    """

    def __init__(self, records: Iterable[Record], dimensions: Mapping[str, Dimension],
                 options: Optional[AggregationOptions] = None, period: Optional[int] = None):
        self.records: List[Record] = list(records)
        self.dimensions = dict(dimensions)
        self.options = options or AggregationOptions()
        self.period = period
        self.tracker = FocusTracker()
        self._period_labels = dict(available_periods(self.records))
        self._tree: Optional[AggregateNode] = None

    @property
    def periods(self) -> List[int]:
        return sorted(self._period_labels)

    @property
    def tree(self) -> AggregateNode:
        if self._tree is None:
            self.refresh()
        return self._tree

    def _resolve_dimension(self, dimension: Union[str, Dimension]) -> Dimension:
        if isinstance(dimension, Dimension):
            return dimension
        try:
            return self.dimensions[dimension]
        except KeyError:
            raise KeyError(f"Unknown dimension '{dimension}'; known: {list(self.dimensions)}")

    def set_period(self, period: Optional[int]) -> ViewSnapshot:
        self.period = period
        return self.refresh()

    def toggle_dimension(self, dimension: Union[str, Dimension]) -> ViewSnapshot:
        self.tracker.toggle_dimension(self._resolve_dimension(dimension))
        return self.refresh()

    def clear_dimensions(self) -> ViewSnapshot:
        self.tracker.clear_dimensions()
        return self.refresh()

    def toggle_focus(self, node: AggregateNode) -> ViewSnapshot:
        self.tracker.toggle_focus(self.tree, node)
        return self.refresh()

    def select(self, node: AggregateNode) -> ViewSnapshot:
        self.tracker.select(self.tree, node)
        return self.refresh()

    def click(self, node: AggregateNode) -> ViewSnapshot:
        """Select a node and, when it sits at depth 1, toggle focus on it too."""
        tree = self.tree
        self.tracker.select(tree, node)
        if any(child is node for child in tree.children):
            self.tracker.toggle_focus(tree, node)
        return self.refresh()

    def refresh(self) -> ViewSnapshot:
        working = filter_by_period(self.records, self.period)
        working = self.tracker.apply_focus(working)
        state = self.tracker.state
        tree = aggregate(working, state.active_dimensions, self.options, focus=state.narrow_focus)
        self._tree = tree
        logger.debug(f"Refreshed view: {len(working)} records, dims={[d.name for d in state.active_dimensions]}, period={self.period}")

        selected = self.tracker.resolve(tree)
        if selected is tree and state.selection_path:
            logger.debug(f"Dropping stale selection {list(state.selection_path)}")
            state = self.tracker.select_path(())
        return ViewSnapshot(
            tree=tree,
            state=state,
            selected=selected,
            breadcrumb=tuple(breadcrumb(state.selection_path, state.active_dimensions)),
            share=share_of(selected, tree.value),
            period=self.period,
            period_label=self._period_labels.get(self.period, str(self.period)) if self.period is not None else None,
        )

    def teardown(self) -> None:
        self.tracker.reset()
        self._tree = None
