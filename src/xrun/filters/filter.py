"""Single inclusion/exclusion rule over test cases and assemblies.

Every kind follows the same polarity rule: when the rule's condition holds
the decision is the filter's ``exclude`` flag, otherwise (including every
"no data to match against" case) it is the opposite. Filters with
``exclude=False`` therefore behave as allow-list entries and filters with
``exclude=True`` as deny-list entries.

Example:
    from xrun.filters import TestFilter

    slow = TestFilter.by_trait("Category", "Slow", exclude=True)
    slow.is_excluded(test_case)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from ..testing.models import TestAssemblyInfo, TestCase
from ..utils.errors import InvalidArgumentError
from .models import FilterDecision, FilterType


def _require(value: str | None, argument: str) -> str:
    if not value:
        raise InvalidArgumentError("must not be None or empty", argument)
    return value


@dataclass(frozen=True)
class TestFilter:
    """One filter rule. Build instances with the ``by_*`` constructors."""

    filter_type: FilterType
    selector_name: str
    selector_value: str | None = None
    assembly_name: str | None = None
    exclude: bool = False

    __test__ = False

    def __post_init__(self) -> None:
        _require(self.selector_name, "selector_name")

    @classmethod
    def by_test_name(
        cls, name: str, exclude: bool, assembly_name: str | None = None
    ) -> TestFilter:
        """Filter on the test method name."""
        return cls(
            filter_type=FilterType.SINGLE,
            selector_name=_require(name, "name"),
            assembly_name=assembly_name or None,
            exclude=exclude,
        )

    @classmethod
    def by_class_name(
        cls, class_name: str, exclude: bool, assembly_name: str | None = None
    ) -> TestFilter:
        """Filter on the fully qualified test class name."""
        return cls(
            filter_type=FilterType.CLASS,
            selector_name=_require(class_name, "class_name"),
            assembly_name=assembly_name or None,
            exclude=exclude,
        )

    @classmethod
    def by_namespace(
        cls, namespace: str, exclude: bool, assembly_name: str | None = None
    ) -> TestFilter:
        """Filter on the namespace part of the qualified class name."""
        return cls(
            filter_type=FilterType.NAMESPACE,
            selector_name=_require(namespace, "namespace"),
            assembly_name=assembly_name or None,
            exclude=exclude,
        )

    @classmethod
    def by_trait(
        cls,
        trait_name: str,
        trait_value: str | None = None,
        exclude: bool = False,
        assembly_name: str | None = None,
    ) -> TestFilter:
        """Filter on a trait. Without a value only the trait name is matched."""
        return cls(
            filter_type=FilterType.TRAIT,
            selector_name=_require(trait_name, "trait_name"),
            selector_value=trait_value or "",
            assembly_name=assembly_name or None,
            exclude=exclude,
        )

    # -------------------------------------------------------------------------
    # Test case evaluation
    # -------------------------------------------------------------------------

    def evaluate(self, test_case: TestCase) -> FilterDecision:
        """Decide whether ``test_case`` is excluded by this filter."""
        matchers = {
            FilterType.SINGLE: self._match_single,
            FilterType.CLASS: self._match_class,
            FilterType.NAMESPACE: self._match_namespace,
            FilterType.TRAIT: self._match_trait,
        }
        matched = matchers[self.filter_type](test_case)
        excluded = self.exclude if matched else not self.exclude
        return FilterDecision(excluded, self._trace(test_case, excluded))

    def is_excluded(
        self, test_case: TestCase, log: Callable[[str], None] | None = None
    ) -> bool:
        """Evaluate and pass the trace line to ``log`` if given."""
        decision = self.evaluate(test_case)
        if log is not None and decision.message:
            log(decision.message)
        return decision.excluded

    def _match_single(self, test_case: TestCase) -> bool:
        if not test_case.method_name:
            return False
        return test_case.method_name == self.selector_name

    def _match_class(self, test_case: TestCase) -> bool:
        if not test_case.class_name:
            return False
        return test_case.class_name == self.selector_name

    def _match_namespace(self, test_case: TestCase) -> bool:
        if not test_case.class_name or "." not in test_case.class_name:
            return False
        namespace = test_case.class_name.rsplit(".", 1)[0]
        return namespace == self.selector_name

    def _match_trait(self, test_case: TestCase) -> bool:
        traits = test_case.traits
        if not traits or self.selector_name not in traits:
            return False

        values = traits[self.selector_name]
        if not values:
            # Name-only match when the filter carries no value
            return not self.selector_value

        wanted = (self.selector_value or "").casefold()
        return any(value.casefold() == wanted for value in values)

    def _trace(self, test_case: TestCase, excluded: bool) -> str:
        verdict = "Excluded" if excluded else "Included"
        selector = self.selector_name
        if self.filter_type == FilterType.TRAIT:
            selector = f"{self.selector_name}={self.selector_value}"
        return (
            f"[FILTER] {verdict} test '{test_case.display_name}' "
            f"due to {self.filter_type.value} filter '{selector}'."
        )

    # -------------------------------------------------------------------------
    # Assembly evaluation
    # -------------------------------------------------------------------------

    def evaluate_assembly(self, assembly: TestAssemblyInfo) -> FilterDecision:
        """Decide whether a whole assembly is excluded by this filter.

        Filters without an ``assembly_name`` have no effect at this scope.
        """
        if not self.assembly_name:
            return FilterDecision(False)

        if assembly.name == self.assembly_name:
            message = f"Excluded '{assembly.full_path}' due to filter" if self.exclude else None
            return FilterDecision(self.exclude, message)

        return FilterDecision(not self.exclude)

    def is_excluded_assembly(
        self, assembly: TestAssemblyInfo, log: Callable[[str], None] | None = None
    ) -> bool:
        decision = self.evaluate_assembly(assembly)
        if log is not None and decision.message:
            log(decision.message)
        return decision.excluded

    def __str__(self) -> str:
        from .parser import format_filter

        return format_filter(self)
