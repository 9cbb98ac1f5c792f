"""
Narrative insights for period-aligned series.

Two messages at most: who leads the latest period (or the latest total when
there is no grouping) and which key moved the most between the first and the
last period. Wording comes from Jinja2 templates in the configuration.
"""

import logging
from typing import Any, Dict, List, Optional

from jinja2 import Template

from .aggregator import TimeSeries
from .records import TOTAL_KEY

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES = {
    'leader': "In {{ period }}, {{ key }} accounted for {{ share }} of deaths.",
    'total': "In {{ period }}, total recorded deaths reached {{ total }}.",
    'mover': "{{ key }} {{ verb }} {{ delta }} deaths between {{ start }} and {{ end }}.",
}


def format_number(value: float) -> str:
    return f"{value:,.0f}"


def format_percent(value: Optional[float]) -> str:
    if value is None:
        return "—"
    return f"{value:.1%}"


def render_template_text(template: str, context: Dict[str, Any]) -> str:
    """Render a Jinja2 template, returning an error string instead of raising."""
    try:
        return Template(template).render(**context)
    except Exception as e:
        logger.warning(f"Failed to render insight template: {e}")
        return f"Error filling template: {str(e)}"


def leader_context(series: TimeSeries) -> Dict[str, Any]:
    latest = series.periods[-1]
    ranked = sorted(series.keys, key=lambda k: (-series.value(latest, k), k))
    top = ranked[0]
    return {
        'period': latest,
        'key': top,
        'value': format_number(series.value(latest, top)),
        'share': format_percent(series.share(latest, top)),
        'total': format_number(series.total(latest)),
    }


def mover_context(series: TimeSeries) -> Optional[Dict[str, Any]]:
    start, end = series.periods[0], series.periods[-1]
    deltas = [(key, series.value(end, key) - series.value(start, key)) for key in series.keys]
    if not deltas:
        return None
    key, delta = sorted(deltas, key=lambda item: (-abs(item[1]), item[0]))[0]
    return {
        'key': key,
        'verb': 'gained' if delta >= 0 else 'lost',
        'delta': format_number(abs(delta)),
        'start': start,
        'end': end,
    }


def build_insights(series: TimeSeries, templates: Optional[Dict[str, str]] = None) -> List[str]:
    """
    Narrative messages for a series.

    Args:
        series: Output of aggregate_series
        templates: Overrides for the 'leader', 'total' and 'mover' templates

    Returns:
        Zero to two messages; empty for an empty series
    """
    if series.is_empty or not series.keys:
        return []
    merged = dict(DEFAULT_TEMPLATES)
    merged.update(templates or {})

    grouped = series.keys != (TOTAL_KEY,)
    messages = []
    first = render_template_text(merged['leader'] if grouped else merged['total'], leader_context(series))
    messages.append(first)

    mover = mover_context(series)
    if mover is not None:
        messages.append(render_template_text(merged['mover'], mover))
    return [m for m in messages if m]
