"""
Mortality statistics aggregation and drill-down package.

This package turns flat mortality records into navigable aggregates along one
or two categorical dimensions (with long tails folded into "Other"), tracks
the focus/selection state of a chart, and buckets values for choropleths.
"""

__version__ = "0.1.0"

# Import record types
from .records import (
    MISSING_KEY,
    OTHER_KEY,
    TOTAL_KEY,
    REPORTED_OTHER_KEY,
    Record,
    Dimension,
    field_dimension
)

# Import normalizer
from .normalizer import FieldMap, normalize

# Import aggregation
from .aggregator import (
    AggregationOptions,
    AggregateNode,
    TimeSeries,
    aggregate,
    aggregate_series
)

# Import focus/selection tracking
from .focus import (
    FocusState,
    FocusTracker,
    toggle_dimension,
    toggle_focus,
    apply_focus,
    select,
    resolve_selection,
    share_of
)

# Import binning
from .binning import Buckets, compute_buckets, values_by_key, bucket_by_key

# Import view orchestration
from .view import DrillDownView, ViewSnapshot, format_share, format_path

# Import configuration and loading
from .config import load_config, build_field_map, build_dimensions, get_engine_defaults
from .loader import DatasetLoadError, fetch_rows, load_dataset, discover_categorical_fields
from .insights import build_insights

# Define what should be available in "from mortality_package import *"
__all__ = [
    # Records
    'MISSING_KEY',
    'OTHER_KEY',
    'TOTAL_KEY',
    'REPORTED_OTHER_KEY',
    'Record',
    'Dimension',
    'field_dimension',
    'FieldMap',
    'normalize',

    # Aggregation
    'AggregationOptions',
    'AggregateNode',
    'TimeSeries',
    'aggregate',
    'aggregate_series',

    # Focus and selection
    'FocusState',
    'FocusTracker',
    'toggle_dimension',
    'toggle_focus',
    'apply_focus',
    'select',
    'resolve_selection',
    'share_of',

    # Binning
    'Buckets',
    'compute_buckets',
    'values_by_key',
    'bucket_by_key',

    # Views
    'DrillDownView',
    'ViewSnapshot',
    'format_share',
    'format_path',

    # Configuration and loading
    'load_config',
    'build_field_map',
    'build_dimensions',
    'get_engine_defaults',
    'DatasetLoadError',
    'fetch_rows',
    'load_dataset',
    'discover_categorical_fields',
    'build_insights'
]
