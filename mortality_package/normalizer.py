"""
Record Normalizer

Turns heterogeneous raw rows (string-keyed, inconsistently formatted, with
suppressed or lag-flagged entries) into uniform Record objects.

Rules:
    - Values are parsed locale-free. "Unreliable" or blank means unavailable,
      not zero; an unavailable rate is re-derived from deaths / population when
      both are usable, otherwise the row is dropped.
    - Category labels are trimmed; blank becomes "(missing)".
    - A row whose category label contains a suppression marker is dropped.
    - Periods come from the leading digit run of the period label
      ("2020 (provisional)" -> 2020); the label itself is kept for display.

Nothing here raises for bad data. Callers that care how many rows were dropped
compare input and output lengths.
"""

import logging
import math
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from .records import MISSING_KEY, Record

logger = logging.getLogger(__name__)

UNAVAILABLE_TOKENS = {"", "unreliable"}
SUPPRESSION_MARKERS = (
    "data not shown due to",
    "suppressed",
)
RATE_MULTIPLIER = 100000

_LEADING_DIGITS = re.compile(r"^\s*(\d+)")


@dataclass
class FieldMap:
    """Which raw fields back the value, the period and each dimension."""
    value: str
    dimensions: Dict[str, str] = field(default_factory=dict)
    deaths: Optional[str] = None
    population: Optional[str] = None
    period: Optional[str] = None
    period_code: Optional[str] = None
    # Zero-pad numeric codes such as FIPS state codes ("1" -> "01")
    zero_pad: Dict[str, int] = field(default_factory=dict)
    suppression_markers: Sequence[str] = SUPPRESSION_MARKERS


def parse_number(raw: Any) -> Optional[float]:
    """
    Parse a raw cell into a finite float.

    Returns None for unavailable cells ("Unreliable", blank, NaN, unparseable
    text, infinities). Thousands separators are ignored; the decimal point is
    always '.'.
    """
    if raw is None:
        return None
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        value = float(raw)
        return value if math.isfinite(value) else None
    text = str(raw).strip()
    if text.lower() in UNAVAILABLE_TOKENS:
        return None
    try:
        value = float(text.replace(",", ""))
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def normalize_category(raw: Any) -> str:
    if raw is None:
        return MISSING_KEY
    if isinstance(raw, float) and math.isnan(raw):
        return MISSING_KEY
    text = str(raw).strip()
    return text or MISSING_KEY


def is_suppressed(label: str, markers: Sequence[str] = SUPPRESSION_MARKERS) -> bool:
    lowered = label.lower()
    return any(marker in lowered for marker in markers)


def parse_period(raw: Any) -> Tuple[Optional[int], Optional[str]]:
    """
    Return (period, label) for a raw period cell.

    The period is the leading digit run; the label is the trimmed original text.
    """
    if raw is None:
        return None, None
    if isinstance(raw, float):
        if math.isnan(raw):
            return None, None
        if raw.is_integer():
            raw = int(raw)
    label = str(raw).strip()
    if not label:
        return None, None
    match = _LEADING_DIGITS.match(label)
    if not match:
        return None, label
    return int(match.group(1)), label


def derive_value(row: Mapping[str, Any], field_map: FieldMap) -> Optional[float]:
    """Value for a row, re-deriving a rate from deaths and population when needed."""
    value = parse_number(row.get(field_map.value))
    if value is None and field_map.deaths and field_map.population:
        deaths = parse_number(row.get(field_map.deaths))
        population = parse_number(row.get(field_map.population))
        if deaths is not None and population:
            value = (deaths / population) * RATE_MULTIPLIER
    if value is None or value < 0:
        return None
    return value


def _iter_rows(raw_rows: Union[pd.DataFrame, Iterable[Mapping[str, Any]]]) -> Iterable[Mapping[str, Any]]:
    if isinstance(raw_rows, pd.DataFrame):
        return raw_rows.to_dict(orient='records')
    return raw_rows


def normalize_row(row: Mapping[str, Any], field_map: FieldMap) -> Tuple[Optional[Record], str]:
    """
    Normalize a single row.

    Returns:
        (record, reason) where record is None when the row is dropped and
        reason names why ('ok', 'suppressed', 'unavailable').
    """
    categories = {}
    for dimension, raw_field in field_map.dimensions.items():
        key = normalize_category(row.get(raw_field))
        width = field_map.zero_pad.get(dimension)
        if width and key.isdigit():
            key = key.zfill(width)
        if key != MISSING_KEY and is_suppressed(key, field_map.suppression_markers):
            return None, 'suppressed'
        categories[dimension] = key

    period, period_label = None, None
    if field_map.period:
        period, period_label = parse_period(row.get(field_map.period))
        if period_label and is_suppressed(period_label, field_map.suppression_markers):
            return None, 'suppressed'
    if period is None and field_map.period_code:
        period, code_label = parse_period(row.get(field_map.period_code))
        period_label = period_label or code_label

    value = derive_value(row, field_map)
    if value is None:
        return None, 'unavailable'

    return Record(categories=categories, value=value, period=period, period_label=period_label), 'ok'


def normalize(raw_rows: Union[pd.DataFrame, Iterable[Mapping[str, Any]]], field_map: FieldMap) -> List[Record]:
    """
    Convert raw rows into Records.

    Args:
        raw_rows: A DataFrame or an iterable of string-keyed mappings
        field_map: Raw field names backing the value, period and dimensions

    Returns:
        Records for every usable row, in input order
    """
    records: List[Record] = []
    reasons: Counter = Counter()
    total = 0
    for row in _iter_rows(raw_rows):
        total += 1
        record, reason = normalize_row(row, field_map)
        reasons[reason] += 1
        if record is not None:
            records.append(record)

    dropped = {k: v for k, v in reasons.items() if k != 'ok'}
    if dropped:
        logger.debug(f"Dropped rows by reason: {dropped}")
    logger.info(f"Normalized {len(records)} of {total} rows")
    return records
