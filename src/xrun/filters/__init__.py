"""Test filter engine.

This module provides:
- Single filter rules by method, class, namespace or trait
- Ordered filter collections with first-exclusion-wins evaluation
- Parsing of rule strings and config tables
"""

from .collection import FilterCollection
from .filter import TestFilter
from .models import FilterDecision, FilterType
from .parser import (
    FilterRule,
    format_filter,
    parse_filter,
    parse_filters,
    parse_rule,
    rule_from_dict,
)

__all__ = [
    # Models
    "FilterType",
    "FilterDecision",
    # Filters
    "TestFilter",
    "FilterCollection",
    # Parsing
    "FilterRule",
    "parse_rule",
    "parse_filter",
    "parse_filters",
    "rule_from_dict",
    "format_filter",
]
