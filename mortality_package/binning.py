"""
Binning / quantization for choropleth colouring.

Equal-width buckets over [min, max] of the finite input values, independent of
any palette. A value sitting exactly on an inner boundary belongs to the upper
bucket; values outside the domain clamp to the first or last bucket.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from .aggregator import qualifying
from .records import Dimension, Record

logger = logging.getLogger(__name__)

DEFAULT_DOMAIN = (0.0, 1.0)


@dataclass(frozen=True)
class Buckets:
    boundaries: Tuple[float, ...]
    has_data: bool = True

    @property
    def bucket_count(self) -> int:
        return len(self.boundaries) - 1

    @property
    def domain(self) -> Tuple[float, float]:
        return self.boundaries[0], self.boundaries[-1]

    def bucket_index(self, value: Optional[float]) -> Optional[int]:
        """Bucket for ``value`` in [0, bucket_count), or None when unavailable."""
        if value is None:
            return None
        try:
            value = float(value)
        except (TypeError, ValueError):
            return None
        if not math.isfinite(value):
            return None
        lo, hi = self.domain
        if not self.has_data and value not in (lo, hi):
            return None
        inner = np.asarray(self.boundaries[1:-1], dtype=float)
        index = int(np.searchsorted(inner, value, side='right'))
        return min(max(index, 0), self.bucket_count - 1)

    def __call__(self, value: Optional[float]) -> Optional[int]:
        return self.bucket_index(value)

    def tick_labels(self, fmt: str = "{:.1f}") -> List[str]:
        return [fmt.format(b) for b in self.boundaries]


def compute_buckets(values: Iterable[float], bucket_count: int) -> Buckets:
    """
    Equal-width quantization of the finite values.

    Args:
        values: Numbers to span; non-finite entries are ignored
        bucket_count: Number of buckets, at least 2

    Returns:
        Buckets with bucket_count + 1 non-decreasing boundaries. With no finite
        value the domain is [0, 1] and lookups return None except for 0 and 1.
    """
    if isinstance(bucket_count, bool) or not isinstance(bucket_count, (int, np.integer)) or bucket_count < 2:
        raise ValueError(f"bucket_count must be an integer >= 2, got {bucket_count!r}")

    array = np.asarray([v for v in values if v is not None], dtype=float)
    finite = array[np.isfinite(array)] if array.size else array
    if finite.size == 0:
        lo, hi = DEFAULT_DOMAIN
        has_data = False
    else:
        lo, hi = float(finite.min()), float(finite.max())
        has_data = True

    boundaries = np.linspace(lo, hi, int(bucket_count) + 1)
    # linspace can land a hair off the endpoints
    boundaries[0], boundaries[-1] = lo, hi
    return Buckets(boundaries=tuple(float(b) for b in boundaries), has_data=has_data)


def values_by_key(records: Iterable[Record], dimension: Dimension, combine: str = "sum") -> Dict[str, float]:
    """
    One value per key of ``dimension`` (e.g. one crude rate per state).

    combine='sum' adds values sharing a key, combine='mean' averages them.
    """
    if combine not in ("sum", "mean"):
        raise ValueError(f"combine must be 'sum' or 'mean', got {combine!r}")
    grouped: Dict[str, List[float]] = {}
    for record in qualifying(records):
        grouped.setdefault(dimension.key_of(record), []).append(record.value)
    if combine == "sum":
        return {key: math.fsum(vals) for key, vals in grouped.items()}
    return {key: math.fsum(vals) / len(vals) for key, vals in grouped.items()}


def bucket_by_key(values: Mapping[str, Optional[float]], buckets: Buckets,
                  keys: Optional[Sequence[str]] = None) -> Dict[str, Optional[int]]:
    """
    Bucket index per geography key.

    Keys listed in ``keys`` but missing from ``values`` map to None, so every
    outline the caller draws gets an entry.
    """
    keys = list(keys) if keys is not None else list(values)
    result = {key: buckets.bucket_index(values.get(key)) for key in keys}
    missing = sum(1 for v in result.values() if v is None)
    if missing:
        logger.debug(f"{missing} of {len(result)} keys have no usable value")
    return result
