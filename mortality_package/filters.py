"""Record filters applied before aggregation (period slider, year window, fixed categories)."""

from typing import Iterable, List, Mapping, Optional, Tuple

from .records import Record


def filter_by_period(records: Iterable[Record], period: Optional[int]) -> List[Record]:
    """Records of one period; ``None`` keeps every period."""
    if period is None:
        return list(records)
    return [r for r in records if r.period == period]


def filter_by_period_range(records: Iterable[Record], start: Optional[int] = None,
                           end: Optional[int] = None) -> List[Record]:
    """Records whose period lies in [start, end]; records without a period are dropped."""
    out = []
    for r in records:
        if r.period is None:
            continue
        if start is not None and r.period < start:
            continue
        if end is not None and r.period > end:
            continue
        out.append(r)
    return out


def filter_by_categories(records: Iterable[Record], criteria: Mapping[str, Optional[str]]) -> List[Record]:
    """
    Exact-match filter on normalized category keys.

    A criterion of None means "all" for that dimension.
    """
    active = {name: key for name, key in criteria.items() if key is not None}
    return [r for r in records if all(r.category(name) == key for name, key in active.items())]


def available_periods(records: Iterable[Record]) -> List[Tuple[int, str]]:
    """Ascending (period, label) pairs; the label is the first one seen for that period."""
    labels = {}
    for r in records:
        if r.period is None or r.period in labels:
            continue
        labels[r.period] = r.period_label or str(r.period)
    return sorted(labels.items())


def latest_period(records: Iterable[Record]) -> Optional[int]:
    periods = [r.period for r in records if r.period is not None]
    return max(periods) if periods else None


def default_period(records: Iterable[Record], preferred: Optional[int] = None) -> Optional[int]:
    """``preferred`` when the data has it, otherwise the earliest available period."""
    periods = available_periods(records)
    if not periods:
        return None
    if preferred is not None and any(p == preferred for p, _ in periods):
        return preferred
    return periods[0][0]
