"""
Aggregator

Groups normalized records along zero, one or two dimensions and collapses long
tails into an "Other" bucket.

Two output shapes:
    aggregate()        -> AggregateNode tree (sunburst, treemap, bar drill-down)
    aggregate_series() -> TimeSeries aligned by period (stacked areas/bars)

Ordering rule used everywhere: descending value, ties broken by ascending key.
Identical inputs always produce identical outputs, including "Other"
composition, regardless of record order.
"""

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Optional, Sequence, Tuple

import pandas as pd

from .records import OTHER_KEY, TOTAL_KEY, Dimension, Record

logger = logging.getLogger(__name__)

MAX_DIMENSIONS = 2


@dataclass(frozen=True)
class AggregationOptions:
    max_segments: int = 10
    collapse_other: bool = True

    def __post_init__(self):
        if isinstance(self.max_segments, bool) or not isinstance(self.max_segments, int):
            raise ValueError(f"max_segments must be an integer, got {self.max_segments!r}")
        if self.max_segments < 1:
            raise ValueError(f"max_segments must be >= 1, got {self.max_segments}")


@dataclass(frozen=True)
class AggregateNode:
    key: str
    value: float
    children: Tuple['AggregateNode', ...] = ()
    source_keys: FrozenSet[str] = frozenset()

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def is_other(self) -> bool:
        return self.key == OTHER_KEY

    def find_child(self, key: str) -> Optional['AggregateNode']:
        for child in self.children:
            if child.key == key:
                return child
        return None

    def walk(self, path: Tuple[str, ...] = ()) -> Iterator[Tuple[Tuple[str, ...], 'AggregateNode']]:
        """Pre-order traversal yielding (path, node); the root has an empty path."""
        yield path, self
        for child in self.children:
            yield from child.walk(path + (child.key,))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'key': self.key,
            'value': self.value,
            'source_keys': sorted(self.source_keys),
            'children': [child.to_dict() for child in self.children],
        }

    def to_frame(self) -> pd.DataFrame:
        """Flatten the tree into one row per node, shares relative to this node."""
        rows = []
        for path, node in self.walk():
            rows.append({
                'path': " › ".join(path) if path else TOTAL_KEY,
                'depth': len(path),
                'key': node.key,
                'value': node.value,
                'share': node.value / self.value if self.value > 0 else None,
                'is_other': node.is_other,
            })
        return pd.DataFrame(rows, columns=['path', 'depth', 'key', 'value', 'share', 'is_other'])


@dataclass(frozen=True)
class TimeSeries:
    periods: Tuple[int, ...] = ()
    keys: Tuple[str, ...] = ()
    series: Dict[int, Dict[str, float]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.periods

    def value(self, period: int, key: str) -> float:
        return self.series.get(period, {}).get(key, 0.0)

    def total(self, period: int) -> float:
        return math.fsum(self.series.get(period, {}).values())

    def share(self, period: int, key: str) -> Optional[float]:
        total = self.total(period)
        if total <= 0:
            return None
        return self.value(period, key) / total

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [[self.value(p, k) for k in self.keys] for p in self.periods],
            index=pd.Index(list(self.periods), name='period'),
            columns=list(self.keys),
            dtype=float,
        )


# =============================================================================
# GROUPING PRIMITIVES
# =============================================================================

def qualifying(records: Iterable[Record]) -> List[Record]:
    """Records that may take part in aggregation (finite, non-negative value)."""
    return [r for r in records if r.value is not None and math.isfinite(r.value) and r.value >= 0]


def rank_key(item: Tuple[str, float]) -> Tuple[float, str]:
    key, value = item
    return (-value, key)


def group_records(records: Sequence[Record], dimension: Dimension) -> Dict[str, List[Record]]:
    groups: Dict[str, List[Record]] = defaultdict(list)
    for record in records:
        groups[dimension.key_of(record)].append(record)
    return dict(groups)


def sum_values(records: Iterable[Record]) -> float:
    return math.fsum(r.value for r in records)


def rank_totals(totals: Dict[str, float]) -> List[Tuple[str, float]]:
    return sorted(totals.items(), key=rank_key)


def split_top(ranked: List[Tuple[str, float]], max_segments: int,
              collapse: bool) -> Tuple[List[Tuple[str, float]], List[Tuple[str, float]]]:
    """Split ranked (key, value) pairs into kept and folded parts."""
    if not collapse or len(ranked) <= max_segments:
        return ranked, []
    return ranked[:max_segments], ranked[max_segments:]


def restrict_to_keys(records: Iterable[Record], dimension: Dimension,
                     keys: Optional[FrozenSet[str]]) -> List[Record]:
    """Records whose key on ``dimension`` is in ``keys``; no restriction when keys is None."""
    if keys is None:
        return list(records)
    return [r for r in records if dimension.key_of(r) in keys]


# =============================================================================
# TREE MODE
# =============================================================================

def _build_level(records: Sequence[Record], dims: Sequence[Dimension],
                 options: AggregationOptions) -> Tuple[AggregateNode, ...]:
    dimension = dims[0]
    groups = group_records(records, dimension)
    totals = {key: sum_values(members) for key, members in groups.items()}
    collapse = options.collapse_other and dimension.collapsible
    kept, folded = split_top(rank_totals(totals), options.max_segments, collapse)

    nodes = []
    for key, value in kept:
        children: Tuple[AggregateNode, ...] = ()
        if len(dims) > 1:
            children = _build_level(groups[key], dims[1:], options)
        nodes.append(AggregateNode(key=key, value=value, children=children,
                                   source_keys=frozenset([key])))

    if folded:
        other_value = math.fsum(value for _, value in folded)
        folded_keys = frozenset(key for key, _ in folded)
        logger.debug(f"Folded {len(folded)} '{dimension.name}' groups into {OTHER_KEY}: {sorted(folded_keys)}")
        if other_value > 0:
            nodes.append(AggregateNode(key=OTHER_KEY, value=other_value, source_keys=folded_keys))

    return tuple(nodes)


def aggregate(records: Iterable[Record], dims: Sequence[Dimension] = (),
              options: Optional[AggregationOptions] = None,
              focus: Optional[FrozenSet[str]] = None) -> AggregateNode:
    """
    Build a drill-down tree over 0-2 dimensions.

    Args:
        records: Normalized records
        dims: Active grouping dimensions, outermost first
        options: Top-N collapsing options
        focus: Optional set of first-dimension keys the records are narrowed to

    Returns:
        Root node keyed "Total" whose value is the sum of all qualifying
        (and focused) record values. Empty input gives a root of value 0.
    """
    dims = tuple(dims)
    if len(dims) > MAX_DIMENSIONS:
        raise ValueError(f"At most {MAX_DIMENSIONS} dimensions can be active, got {len(dims)}")
    options = options or AggregationOptions()

    working = qualifying(records)
    if focus is not None and dims:
        working = restrict_to_keys(working, dims[0], focus)

    total = sum_values(working)
    if not dims or not working:
        return AggregateNode(key=TOTAL_KEY, value=total)

    children = _build_level(working, dims, options)
    # Collapsed remainders with zero value are dropped, so the root is the children's sum
    root_value = math.fsum(child.value for child in children)
    logger.debug(f"Aggregated {len(working)} records into {len(children)} groups by {[d.name for d in dims]}")
    return AggregateNode(
        key=TOTAL_KEY,
        value=root_value,
        children=children,
        source_keys=frozenset().union(*(c.source_keys for c in children)),
    )


# =============================================================================
# SERIES MODE
# =============================================================================

def aggregate_series(records: Iterable[Record], dims: Sequence[Dimension] = (),
                     options: Optional[AggregationOptions] = None) -> TimeSeries:
    """
    Build a period-aligned series over 0-1 dimensions.

    Legend keys are the top-N keys by overall total (same ranking rule as tree
    mode), followed by "Other" when folding happened and the folded overall
    total is positive. In each period, keys outside the legend are summed into
    "Other". Periods run contiguously from the first to the last period with
    data; gaps and absent cells read as 0.
    """
    dims = tuple(dims)
    if len(dims) > 1:
        raise ValueError(f"Series mode supports at most 1 dimension, got {len(dims)}")
    options = options or AggregationOptions()

    working = [r for r in qualifying(records) if r.period is not None]
    if not working:
        return TimeSeries()

    dimension = dims[0] if dims else None
    present = sorted({r.period for r in working})
    periods = tuple(range(present[0], present[-1] + 1))

    if dimension is None:
        by_period = defaultdict(list)
        for record in working:
            by_period[record.period].append(record.value)
        series = {p: {TOTAL_KEY: math.fsum(by_period.get(p, []))} for p in periods}
        return TimeSeries(periods=periods, keys=(TOTAL_KEY,), series=series)

    overall = {key: sum_values(members) for key, members in group_records(working, dimension).items()}
    collapse = options.collapse_other and dimension.collapsible
    kept, folded = split_top(rank_totals(overall), options.max_segments, collapse)
    legend = [key for key, _ in kept]
    include_other = bool(folded) and math.fsum(v for _, v in folded) > 0
    keys = tuple(legend + [OTHER_KEY]) if include_other else tuple(legend)
    legend_set = set(legend)

    cells: Dict[int, Dict[str, List[float]]] = {p: defaultdict(list) for p in periods}
    for record in working:
        key = dimension.key_of(record)
        if key not in legend_set:
            key = OTHER_KEY
        cells[record.period][key].append(record.value)

    series = {}
    for period in periods:
        series[period] = {key: math.fsum(cells[period].get(key, [])) for key in keys}
    return TimeSeries(periods=periods, keys=keys, series=series)
