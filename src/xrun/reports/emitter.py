"""Build the neutral results tree from executed test cases."""

from __future__ import annotations

import platform
from collections.abc import Iterable, Sequence
from datetime import datetime

from ..testing.models import CaseResult, ExecutionSummary, TestAssemblyInfo
from .tree import ResultNode, ResultsTree

TEST_FRAMEWORK = "xrun"


def default_environment() -> str:
    """Environment string recorded on every assembly node."""
    return f"{platform.system()} {platform.release()} Python {platform.python_version()}"


def _counts(summary: ExecutionSummary) -> dict[str, str]:
    return {
        "total": str(summary.total),
        "passed": str(summary.passed),
        "failed": str(summary.failed),
        "skipped": str(summary.skipped),
        "errors": str(summary.errors),
        "time": f"{summary.time:.3f}",
    }


class ResultsEmitter:
    """Creates assembly nodes and the final results tree."""

    def __init__(self, environment: str | None = None, test_framework: str = TEST_FRAMEWORK):
        self.environment = environment or default_environment()
        self.test_framework = test_framework

    def build_test(self, result: CaseResult) -> ResultNode:
        case = result.test_case
        children: list[ResultNode] = []

        if case.traits:
            children.append(ResultNode("traits", children=tuple(
                ResultNode("trait", {"name": name, "value": value})
                for name, values in case.traits.items()
                for value in (values or [""])
            )))

        if result.failed:
            children.append(ResultNode("failure", {"exception-type": _exception_type(result)}, (
                ResultNode("message", text=result.message or ""),
                ResultNode("stack-trace", text=result.stack_trace or ""),
            )))
        elif result.skipped:
            children.append(ResultNode("reason", text=result.skip_reason or ""))

        return ResultNode(
            "test",
            {
                "name": case.display_name,
                "type": case.class_name or "",
                "method": case.method_name or "",
                "time": f"{result.duration_seconds:.3f}",
                "result": result.outcome.value,
            },
            tuple(children),
        )

    def build_collection(self, name: str, results: Sequence[CaseResult]) -> ResultNode:
        summary = ExecutionSummary()
        for result in results:
            summary.add(result)
        return ResultNode(
            "collection",
            {"name": name, **_counts(summary)},
            tuple(self.build_test(r) for r in results),
        )

    def build_assembly(
        self,
        assembly: TestAssemblyInfo,
        results: Iterable[CaseResult],
        started_at: datetime | None = None,
    ) -> ResultNode:
        """Build an ``assembly`` node, one ``collection`` per test class."""
        started_at = started_at or datetime.now()
        groups: dict[str, list[CaseResult]] = {}
        summary = ExecutionSummary()
        for result in results:
            groups.setdefault(result.test_case.class_name or assembly.name, []).append(result)
            summary.add(result)

        collections = tuple(
            self.build_collection(f"Test collection for {name}", group)
            for name, group in groups.items()
        )
        return ResultNode(
            "assembly",
            {
                "name": str(assembly.full_path),
                "test-framework": self.test_framework,
                "run-date": started_at.strftime("%Y-%m-%d"),
                "run-time": started_at.strftime("%H:%M:%S"),
                "environment": self.environment,
                **_counts(summary),
            },
            collections,
        )

    def build_tree(
        self, assemblies: Iterable[ResultNode], timestamp: datetime | None = None
    ) -> ResultsTree:
        timestamp = timestamp or datetime.now()
        root = ResultNode(
            "assemblies",
            {"timestamp": timestamp.strftime("%m/%d/%Y %H:%M:%S")},
            tuple(assemblies),
        )
        return ResultsTree(root)


def _exception_type(result: CaseResult) -> str:
    if result.message and ":" in result.message:
        return result.message.split(":", 1)[0]
    return "Exception"
