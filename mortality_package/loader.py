"""
Dataset loading with ordered location fallback.

Each location (local path or URL) is tried in turn; the first one that reads
into a non-empty table wins. Only when every location fails does loading
raise, with every attempt listed in the message.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .config import get_locations

logger = logging.getLogger(__name__)

VALUE_COLUMNS = {'deaths', 'population', 'rate', 'year', 'notes'}
_CODE_SUFFIX = re.compile(r"code$", re.IGNORECASE)
_CRUDE_RATE = re.compile(r"crude rate", re.IGNORECASE)


class DatasetLoadError(IOError):
    """Raised when no location yields a non-empty dataset."""


def read_rows(location: str) -> List[Dict[str, str]]:
    """Read one CSV location into string-valued row dicts."""
    frame = pd.read_csv(location, dtype=str, keep_default_na=False)
    return frame.to_dict(orient='records')


def fetch_rows(locations: Sequence[str]) -> List[Dict[str, str]]:
    """
    Load rows from the first location that works.

    Args:
        locations: Ordered local paths / URLs

    Returns:
        Rows as dicts of raw strings

    Raises:
        DatasetLoadError: If every location fails or is empty
    """
    failures = []
    for location in locations:
        try:
            rows = read_rows(location)
        except (OSError, ValueError, pd.errors.ParserError) as e:
            logger.warning(f"Could not load dataset from {location}: {e}")
            failures.append(f"{location} ({e})")
            continue
        if not rows:
            logger.warning(f"Dataset at {location} is empty; trying next location")
            failures.append(f"{location} (empty)")
            continue
        logger.info(f"Loaded {len(rows)} rows from {location}")
        return rows

    if not failures:
        raise DatasetLoadError("No dataset locations given")
    raise DatasetLoadError("Could not load dataset from any location: " + "; ".join(failures))


def load_dataset(config: Dict[str, Any], dataset_name: str,
                 override: Optional[str] = None) -> List[Dict[str, str]]:
    """Fetch a configured dataset; ``override`` is tried before the configured locations."""
    locations = get_locations(config, dataset_name)
    if override:
        locations = [override] + locations
    return fetch_rows(locations)


def is_categorical_field(name: str) -> bool:
    if name.lower() in VALUE_COLUMNS:
        return False
    if _CODE_SUFFIX.search(name) or _CRUDE_RATE.search(name):
        return False
    return True


def discover_categorical_fields(rows: Sequence[Dict[str, Any]], limit: int = 12) -> List[str]:
    """Candidate grouping fields from the first row, in column order."""
    if not rows:
        return []
    return [name for name in rows[0].keys() if is_categorical_field(name)][:limit]
