"""Data models for test assemblies, test cases and run results."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class TestOutcome(str, Enum):
    """Outcome of a single executed test case."""

    PASS = "Pass"
    FAIL = "Fail"
    SKIP = "Skip"

    __test__ = False


@dataclass(frozen=True)
class TestCase:
    """A discovered test case.

    Attributes:
        display_name: Human readable name, usually "<class>.<method>".
        class_name: Dot-qualified owning class. The part after the last dot
            is the class, the prefix is the namespace.
        method_name: Test method name.
        traits: Trait name to trait values. May be None or empty.
    """

    display_name: str
    class_name: str | None = None
    method_name: str | None = None
    traits: Mapping[str, Sequence[str]] | None = None

    __test__ = False


@dataclass(frozen=True)
class TestAssemblyInfo:
    """A test assembly: its path on disk and its loaded handle."""

    full_path: Path
    assembly: Any = None

    __test__ = False

    @property
    def name(self) -> str:
        """Bare assembly name (file name without extension)."""
        return Path(self.full_path).stem

    def __str__(self) -> str:
        return str(self.full_path)


@dataclass
class CaseResult:
    """Result of executing one test case."""

    test_case: TestCase
    outcome: TestOutcome
    duration_seconds: float = 0.0
    message: str | None = None
    stack_trace: str | None = None
    skip_reason: str | None = None

    @property
    def passed(self) -> bool:
        return self.outcome == TestOutcome.PASS

    @property
    def failed(self) -> bool:
        return self.outcome == TestOutcome.FAIL

    @property
    def skipped(self) -> bool:
        return self.outcome == TestOutcome.SKIP


@dataclass
class FailureInfo:
    """Details about a failed test, kept for the end-of-run summary."""

    assembly_name: str
    test_name: str
    message: str | None = None

    def __str__(self) -> str:
        """Format failure for display."""
        text = f"[{self.assembly_name}] {self.test_name}"
        if self.message:
            text += f": {self.message.splitlines()[0][:200]}"
        return text


@dataclass
class ExecutionSummary:
    """Aggregate counts of a run or of a single assembly."""

    total: int = 0
    failed: int = 0
    skipped: int = 0
    errors: int = 0
    time: float = 0.0

    @property
    def passed(self) -> int:
        return self.total - self.failed - self.skipped

    def add(self, result: CaseResult) -> None:
        """Count one executed test case."""
        self.total += 1
        if result.failed:
            self.failed += 1
        elif result.skipped:
            self.skipped += 1
        self.time += result.duration_seconds

    def merge(self, other: ExecutionSummary) -> None:
        """Fold another summary into this one."""
        self.total += other.total
        self.failed += other.failed
        self.skipped += other.skipped
        self.errors += other.errors
        self.time += other.time

    def reset(self) -> None:
        self.total = 0
        self.failed = 0
        self.skipped = 0
        self.errors = 0
        self.time = 0.0

    def summary(self) -> str:
        """Generate a summary string."""
        parts = []
        if self.passed > 0:
            parts.append(f"{self.passed} passed")
        if self.failed > 0:
            parts.append(f"{self.failed} failed")
        if self.skipped > 0:
            parts.append(f"{self.skipped} skipped")
        if self.errors > 0:
            parts.append(f"{self.errors} errors")

        result = f"Tests: {', '.join(parts) or 'no tests run'}"
        if self.time > 0:
            result += f" ({self.time:.1f}s)"
        return result


@dataclass
class AssemblyRun:
    """Staged results of one assembly before they are committed to a run."""

    assembly: TestAssemblyInfo
    results: list[CaseResult] = field(default_factory=list)
    filtered: int = 0
    summary: ExecutionSummary = field(default_factory=ExecutionSummary)

    def add(self, result: CaseResult) -> None:
        self.results.append(result)
        self.summary.add(result)
