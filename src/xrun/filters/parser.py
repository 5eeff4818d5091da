"""Parse filter rules from CLI flags and config files.

Rule strings have the form::

    [!]kind:selector[=value][@assembly]

``kind`` is one of ``method`` (alias ``single``), ``class``, ``namespace``
or ``trait``. A leading ``!`` turns the rule into an exclusion. Only trait
rules accept ``=value``. Examples::

    trait:Category=Smoke           run only tests with Category=Smoke
    !trait:Category=Slow           skip slow tests
    !class:My.Tests.FlakyTests     skip one class
    !method:test_network@My.Tests  skip a method, and gate the My.Tests assembly
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ..utils.errors import InvalidArgumentError
from .collection import FilterCollection
from .filter import TestFilter
from .models import FilterType

KIND_ALIASES = {
    "method": FilterType.SINGLE,
    "single": FilterType.SINGLE,
    "name": FilterType.SINGLE,
    "class": FilterType.CLASS,
    "namespace": FilterType.NAMESPACE,
    "ns": FilterType.NAMESPACE,
    "trait": FilterType.TRAIT,
}

KIND_NAMES = {
    FilterType.SINGLE: "method",
    FilterType.CLASS: "class",
    FilterType.NAMESPACE: "namespace",
    FilterType.TRAIT: "trait",
}


class FilterRule(BaseModel):
    """A filter rule as written in a config file table."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: FilterType
    selector: str
    value: str | None = None
    assembly: str | None = None
    exclude: bool = False

    @field_validator("kind", mode="before")
    @classmethod
    def _resolve_kind(cls, value: Any) -> Any:
        if isinstance(value, str) and value.lower() in KIND_ALIASES:
            return KIND_ALIASES[value.lower()]
        return value

    def to_filter(self) -> TestFilter:
        """Build the immutable filter for this rule."""
        if self.value and self.kind != FilterType.TRAIT:
            raise InvalidArgumentError(
                f"only trait rules accept a value, got '{self.value}'", "value"
            )

        if self.kind == FilterType.SINGLE:
            return TestFilter.by_test_name(self.selector, self.exclude, self.assembly)
        if self.kind == FilterType.CLASS:
            return TestFilter.by_class_name(self.selector, self.exclude, self.assembly)
        if self.kind == FilterType.NAMESPACE:
            return TestFilter.by_namespace(self.selector, self.exclude, self.assembly)
        return TestFilter.by_trait(self.selector, self.value, self.exclude, self.assembly)


def rule_from_dict(data: Mapping[str, Any]) -> FilterRule:
    """Validate a rule table.

    Raises:
        InvalidArgumentError: If the table is malformed.
    """
    try:
        return FilterRule.model_validate(dict(data))
    except ValidationError as e:
        raise InvalidArgumentError(f"invalid filter rule {dict(data)}: {e}") from e


def parse_rule(text: str) -> FilterRule:
    """Parse a rule string into a FilterRule.

    Raises:
        InvalidArgumentError: If the string is malformed.
    """
    if not text or not text.strip():
        raise InvalidArgumentError("filter rule must not be empty", "rule")

    rule = text.strip()
    exclude = rule.startswith("!")
    if exclude:
        rule = rule[1:]

    kind, sep, rest = rule.partition(":")
    if not sep:
        raise InvalidArgumentError(f"filter rule '{text}' is missing 'kind:'")
    if kind.lower() not in KIND_ALIASES:
        choices = ", ".join(sorted(KIND_ALIASES))
        raise InvalidArgumentError(f"unknown filter kind '{kind}' (expected one of: {choices})")

    assembly = None
    if "@" in rest:
        rest, assembly = rest.rsplit("@", 1)

    selector, _, value = rest.partition("=")

    return rule_from_dict({
        "kind": kind,
        "selector": selector.strip(),
        "value": value.strip() or None,
        "assembly": (assembly or "").strip() or None,
        "exclude": exclude,
    })


def parse_filter(text: str) -> TestFilter:
    """Parse a rule string directly into a TestFilter."""
    return parse_rule(text).to_filter()


def parse_filters(
    rules: Iterable[str] = (),
    tables: Iterable[Mapping[str, Any]] = (),
) -> FilterCollection:
    """Build a collection from rule strings, then rule tables, in order."""
    collection = FilterCollection()
    for text in rules:
        collection.add(parse_filter(text))
    for table in tables:
        collection.add(rule_from_dict(table).to_filter())
    return collection


def format_filter(test_filter: TestFilter) -> str:
    """Render a filter back into its rule string."""
    text = f"{KIND_NAMES[test_filter.filter_type]}:{test_filter.selector_name}"
    if test_filter.filter_type == FilterType.TRAIT and test_filter.selector_value:
        text += f"={test_filter.selector_value}"
    if test_filter.assembly_name:
        text += f"@{test_filter.assembly_name}"
    if test_filter.exclude:
        text = "!" + text
    return text
