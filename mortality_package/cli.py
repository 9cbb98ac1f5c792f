#!/usr/bin/env python3
"""
Command-line interface for the mortality aggregation engine.

Subcommands:
    fields   list candidate grouping fields of a dataset
    tree     drill-down aggregate over up to two dimensions
    series   period-aligned series over one dimension, with insights
    buckets  choropleth bucket index per geography key
"""

import argparse
import logging
import sys

import yaml

from .aggregator import AggregationOptions, aggregate, aggregate_series
from .binning import bucket_by_key, compute_buckets, values_by_key
from .config import (
    build_dimensions,
    build_field_map,
    get_engine_defaults,
    get_insight_templates,
    get_period_window,
    load_config,
)
from .filters import default_period, filter_by_categories, filter_by_period, filter_by_period_range
from .focus import FocusState, apply_focus, toggle_dimension
from .insights import build_insights
from .loader import DatasetLoadError, discover_categorical_fields, load_dataset
from .normalizer import normalize

# Setup logging
logger = logging.getLogger(__name__)


def _parse_filters(pairs):
    criteria = {}
    for pair in pairs or []:
        if '=' not in pair:
            raise ValueError(f"Filter must look like dimension=value, got '{pair}'")
        name, value = pair.split('=', 1)
        criteria[name.strip()] = value.strip()
    return criteria


def _pick_period(config, args, records):
    """--period when given, else the configured default period (when the data has periods)."""
    if not hasattr(args, 'period') or args.all_periods:
        return None
    if args.period is not None:
        return args.period
    preferred = get_engine_defaults(config).get('default_period')
    if preferred is None:
        return None
    period = default_period(records, int(preferred))
    if period is not None and period != int(preferred):
        logger.info(f"Default period {preferred} has no data; using {period}")
    return period


def _load_records(config, args):
    rows = load_dataset(config, args.dataset, override=args.csv)
    records = normalize(rows, build_field_map(config, args.dataset))
    window = get_period_window(config, args.dataset)
    if window:
        records = filter_by_period_range(records, window[0], window[1])
    period = _pick_period(config, args, records)
    if period is not None:
        records = filter_by_period(records, period)
    if getattr(args, 'filter', None):
        records = filter_by_categories(records, _parse_filters(args.filter))
    return rows, records


def _pick_dimensions(config, dataset, names):
    catalog = build_dimensions(config, dataset)
    unknown = [n for n in names if n not in catalog]
    if unknown:
        raise KeyError(f"Unknown dimension(s) {unknown}; known: {list(catalog)}")
    return [catalog[n] for n in names]


def _options(args, defaults, key):
    max_segments = args.max_segments if args.max_segments is not None else int(defaults[key])
    return AggregationOptions(max_segments=max_segments, collapse_other=not args.no_collapse)


def cmd_fields(config, args):
    rows = load_dataset(config, args.dataset, override=args.csv)
    for name in discover_categorical_fields(rows):
        print(name)
    return 0


def cmd_tree(config, args):
    _, records = _load_records(config, args)
    state = FocusState()
    for dimension in _pick_dimensions(config, args.dataset, args.dims):
        state = toggle_dimension(state, dimension)
    if args.focus:
        state = FocusState(active_dimensions=state.active_dimensions,
                           narrow_focus=frozenset(args.focus), focus_label=", ".join(args.focus))
        state, records = apply_focus(state, records)
        if not state.is_focused:
            logger.warning(f"Focus {args.focus} matches no records; showing all")

    tree = aggregate(records, state.active_dimensions, _options(args, get_engine_defaults(config), 'max_segments'),
                     focus=state.narrow_focus)
    print(tree.to_frame().to_csv(sep='\t', index=False), end='')
    return 0


def cmd_series(config, args):
    _, records = _load_records(config, args)
    dims = _pick_dimensions(config, args.dataset, [args.dim]) if args.dim else []
    series = aggregate_series(records, dims, _options(args, get_engine_defaults(config), 'series_max_segments'))
    if series.is_empty:
        logger.warning("No periods with data")
        return 0
    print(series.to_frame().to_csv(sep='\t'), end='')
    for message in build_insights(series, get_insight_templates(config)):
        print(message)
    return 0


def cmd_buckets(config, args):
    _, records = _load_records(config, args)
    key_dimension = _pick_dimensions(config, args.dataset, [args.key])[0]
    values = values_by_key(records, key_dimension, combine=args.combine)
    count = args.count if args.count is not None else int(get_engine_defaults(config)['bucket_count'])
    buckets = compute_buckets(values.values(), count)
    print("boundaries\t" + "\t".join(buckets.tick_labels()))
    for key, index in sorted(bucket_by_key(values, buckets).items()):
        print(f"{key}\t{values.get(key)}\t{'' if index is None else index}")
    return 0


def build_parser():
    parser = argparse.ArgumentParser(
        description="Mortality statistics aggregation and drill-down"
    )
    parser.add_argument('--version', action='store_true', help='Show version information')
    parser.add_argument('--config', help='Path to a datasets YAML file (packaged default otherwise)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')

    sub = parser.add_subparsers(dest='command')

    def add_common(p):
        p.add_argument('--dataset', required=True, help='Dataset name from the configuration')
        p.add_argument('--csv', help='CSV path/URL tried before the configured locations')

    p_fields = sub.add_parser('fields', help='List candidate grouping fields')
    add_common(p_fields)

    for name, helptext in (('tree', 'Drill-down aggregate'), ('series', 'Period-aligned series'),
                           ('buckets', 'Choropleth buckets')):
        p = sub.add_parser(name, help=helptext)
        add_common(p)
        p.add_argument('--filter', action='append', help='dimension=value, repeatable')
        if name != 'series':
            p.add_argument('--period', type=int, help='Restrict to one period (engine default_period otherwise)')
            p.add_argument('--all-periods', action='store_true', help='Ignore the default period')
        if name in ('tree', 'series'):
            p.add_argument('--max-segments', type=int, default=None)
            p.add_argument('--no-collapse', action='store_true', help='Do not fold long tails into Other')
        if name == 'tree':
            p.add_argument('--dims', nargs='*', default=[], help='Up to two dimension names')
            p.add_argument('--focus', nargs='*', help='First-dimension keys to narrow to')
        elif name == 'series':
            p.add_argument('--dim', help='Dimension name (omit for totals)')
        else:
            p.add_argument('--key', required=True, help='Geography dimension name')
            p.add_argument('--count', type=int, default=None, help='Number of buckets')
            p.add_argument('--combine', choices=['sum', 'mean'], default='sum')
    return parser


COMMANDS = {
    'fields': cmd_fields,
    'tree': cmd_tree,
    'series': cmd_series,
    'buckets': cmd_buckets,
}


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    # Configure logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if args.version:
        from . import __version__
        print(f"Mortality package version: {__version__}")
        return 0
    if not args.command:
        parser.print_help()
        return 0

    try:
        config = load_config(args.config)
        return COMMANDS[args.command](config, args)
    except (DatasetLoadError, FileNotFoundError, KeyError, ValueError, yaml.YAMLError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
