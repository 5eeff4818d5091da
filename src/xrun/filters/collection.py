"""Ordered collection of filters with first-exclusion-wins evaluation."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator

from ..testing.models import TestAssemblyInfo, TestCase
from .filter import TestFilter


class FilterCollection:
    """Filters evaluated in insertion order.

    An empty collection excludes nothing. Otherwise the first filter that
    reports an exclusion decides and the remaining filters are skipped.
    """

    def __init__(self, filters: Iterable[TestFilter] | None = None):
        self._filters: list[TestFilter] = []
        if filters:
            self.extend(filters)

    def add(self, test_filter: TestFilter) -> None:
        """Append a filter. ``None`` is ignored."""
        if test_filter is not None:
            self._filters.append(test_filter)

    def extend(self, filters: Iterable[TestFilter]) -> None:
        for test_filter in filters:
            self.add(test_filter)

    def is_excluded(
        self, test_case: TestCase, log: Callable[[str], None] | None = None
    ) -> bool:
        """Check whether any filter excludes ``test_case``."""
        if not self._filters:
            return False

        for test_filter in self._filters:
            if test_filter.is_excluded(test_case, log):
                return True
        return False

    def is_excluded_assembly(
        self, assembly: TestAssemblyInfo, log: Callable[[str], None] | None = None
    ) -> bool:
        """Check whether any filter excludes the whole assembly."""
        if not self._filters:
            return False

        for test_filter in self._filters:
            if test_filter.is_excluded_assembly(assembly, log):
                return True
        return False

    def __len__(self) -> int:
        return len(self._filters)

    def __iter__(self) -> Iterator[TestFilter]:
        return iter(tuple(self._filters))

    def __bool__(self) -> bool:
        return bool(self._filters)

    def __repr__(self) -> str:
        rules = ", ".join(str(f) for f in self._filters)
        return f"FilterCollection([{rules}])"
