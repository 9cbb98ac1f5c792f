"""
Record and Dimension types shared by the normalizer, aggregator and focus tracker.

A Record is the uniform shape every raw row is reduced to: one canonical
category key per dimension, a non-negative numeric value and an optional
integer period. Dimensions are injected accessors so that grouping code never
depends on the raw field names of a particular dataset.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Mapping, Optional

MISSING_KEY = "(missing)"
OTHER_KEY = "Other"
TOTAL_KEY = "Total"
# Grouping key of a source category literally named "Other"
REPORTED_OTHER_KEY = "Other (reported)"


@dataclass(frozen=True)
class Record:
    """One normalized row."""
    categories: Mapping[str, str]
    value: float
    period: Optional[int] = None
    # Display only; grouping always uses the numeric period
    period_label: Optional[str] = field(default=None, compare=False)

    def __post_init__(self):
        if not isinstance(self.categories, MappingProxyType):
            object.__setattr__(self, 'categories', MappingProxyType(dict(self.categories)))

    def category(self, name: str) -> str:
        return self.categories.get(name, MISSING_KEY)


@dataclass(frozen=True)
class Dimension:
    """
    A named projection from Record to CategoryKey.

    Equality is by name only, so two Dimension objects built from the same
    configuration entry compare equal even though their accessors differ.
    """
    name: str
    accessor: Callable[[Record], str] = field(default=None, compare=False, repr=False)
    label: Optional[str] = field(default=None, compare=False)
    collapsible: bool = field(default=True, compare=False)
    other_label: str = field(default=OTHER_KEY, compare=False)

    def key_of(self, record: Record) -> str:
        if self.accessor is None:
            key = record.category(self.name)
        else:
            key = self.accessor(record)
            if key is None:
                return MISSING_KEY
            key = str(key).strip() or MISSING_KEY
        # "Other" is reserved for folded tails; a source category with that name is kept apart
        if key == OTHER_KEY:
            return REPORTED_OTHER_KEY
        return key

    @property
    def display_label(self) -> str:
        return self.label or self.name


def field_dimension(name: str, label: Optional[str] = None, collapsible: bool = True,
                    other_label: str = OTHER_KEY) -> Dimension:
    """Dimension reading the normalized category stored under ``name``."""
    return Dimension(
        name=name,
        accessor=lambda record: record.category(name),
        label=label,
        collapsible=collapsible,
        other_label=other_label,
    )
