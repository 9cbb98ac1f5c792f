"""
Dataset and engine configuration backed by a YAML file.

The packaged ``configs/datasets.yaml`` describes, per dataset, where the rows
come from, which raw fields hold the value, deaths, population and period, and
which raw field backs each grouping dimension (with its display label).
"""

import os
from typing import Any, Dict, List, Optional

import yaml

from .normalizer import FieldMap
from .records import OTHER_KEY, Dimension, field_dimension

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'configs', 'datasets.yaml')

ENGINE_DEFAULTS = {
    'max_segments': 10,
    'series_max_segments': 6,
    'bucket_count': 9,
    'default_period': None,
}


def load_config(yaml_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load and parse the YAML configuration file.

    Args:
        yaml_path: Path to the YAML configuration file (packaged default when None)

    Returns:
        Dictionary containing the parsed configuration
    """
    yaml_path = yaml_path or DEFAULT_CONFIG_PATH
    try:
        with open(yaml_path, 'r') as file:
            config = yaml.safe_load(file)
        return config or {}
    except FileNotFoundError:
        raise FileNotFoundError(f"Configuration file not found: {yaml_path}")
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Error parsing YAML configuration {yaml_path}: {e}")


def get_all_datasets(config: Dict[str, Any]) -> List[str]:
    return list(config.get('datasets', {}).keys())


def get_dataset_info(config: Dict[str, Any], dataset_name: str) -> Dict[str, Any]:
    """
    Get the configuration block of one dataset.

    Args:
        config: Loaded configuration dictionary
        dataset_name: Dataset key under ``datasets``

    Returns:
        Dataset configuration, or an empty dict when unknown
    """
    return config.get('datasets', {}).get(dataset_name, {}) or {}


def _dimension_entries(config: Dict[str, Any], dataset_name: str) -> Dict[str, Dict[str, Any]]:
    entries = {}
    for name, info in get_dataset_info(config, dataset_name).get('dimensions', {}).items():
        # Shorthand form: "sex: Sex"
        if isinstance(info, str):
            info = {'field': info}
        entries[name] = info or {}
    return entries


def build_field_map(config: Dict[str, Any], dataset_name: str) -> FieldMap:
    """
    Build the normalizer field map for a dataset.

    Raises:
        KeyError: If the dataset is unknown or declares no value field
    """
    info = get_dataset_info(config, dataset_name)
    if 'value' not in info:
        raise KeyError(f"Dataset '{dataset_name}' is not configured or has no value field")

    entries = _dimension_entries(config, dataset_name)
    return FieldMap(
        value=info['value'],
        dimensions={name: entry.get('field', name) for name, entry in entries.items()},
        deaths=info.get('deaths'),
        population=info.get('population'),
        period=info.get('period'),
        period_code=info.get('period_code'),
        zero_pad={name: int(entry['pad']) for name, entry in entries.items() if entry.get('pad')},
    )


def build_dimensions(config: Dict[str, Any], dataset_name: str) -> Dict[str, Dimension]:
    """Dimension catalog of a dataset, keyed by dimension name, in configured order."""
    dimensions = {}
    for name, entry in _dimension_entries(config, dataset_name).items():
        dimensions[name] = field_dimension(
            name,
            label=entry.get('label'),
            collapsible=bool(entry.get('collapsible', True)),
            other_label=entry.get('other_label', OTHER_KEY),
        )
    return dimensions


def get_dimension_label(config: Dict[str, Any], dataset_name: str, dimension_name: str) -> str:
    """Display label of a dimension, falling back to its raw field name, then its name."""
    entry = _dimension_entries(config, dataset_name).get(dimension_name, {})
    return entry.get('label') or entry.get('field') or dimension_name


def get_engine_defaults(config: Dict[str, Any]) -> Dict[str, Any]:
    defaults = dict(ENGINE_DEFAULTS)
    defaults.update(config.get('engine', {}) or {})
    return defaults


def get_locations(config: Dict[str, Any], dataset_name: str) -> List[str]:
    return list(get_dataset_info(config, dataset_name).get('locations', []) or [])


def get_period_window(config: Dict[str, Any], dataset_name: str) -> Optional[List[int]]:
    window = get_dataset_info(config, dataset_name).get('period_window')
    if not window:
        return None
    return [int(window[0]), int(window[1])]


def get_insight_templates(config: Dict[str, Any]) -> Dict[str, str]:
    return dict(config.get('insights', {}) or {})
