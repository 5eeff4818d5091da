"""Data models for test filters."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class FilterType(str, Enum):
    """Supported filter kinds."""

    SINGLE = "single"  # Test method name
    CLASS = "class"  # Fully qualified class name
    NAMESPACE = "namespace"  # Class name minus its last dot segment
    TRAIT = "trait"  # Trait name, optionally with a value


@dataclass(frozen=True)
class FilterDecision:
    """Outcome of evaluating one filter against a test case or assembly.

    Attributes:
        excluded: True when the entity must not run.
        message: Trace line describing the decision, if any.
    """

    excluded: bool
    message: str | None = None

    def __bool__(self) -> bool:
        return self.excluded
