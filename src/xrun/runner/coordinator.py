"""Run coordinator: filters, executes and aggregates test assemblies.

Assemblies run one after another in the given order. Each assembly's
results are staged locally and committed to the shared summary and tree
only once the assembly has finished, so a failing assembly contributes
nothing and the run moves on to the next one.
"""

from __future__ import annotations

import logging
import threading
import traceback
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

from ..filters.collection import FilterCollection
from ..reports.emitter import ResultsEmitter
from ..reports.tree import ResultNode, ResultsTree
from ..testing.executor import TestExecutor
from ..testing.models import (
    AssemblyRun,
    ExecutionSummary,
    FailureInfo,
    TestAssemblyInfo,
)
from ..utils.errors import AssemblyExecutionError

logger = logging.getLogger(__name__)


class RunCoordinator:
    """Runs a set of test assemblies through a filter collection.

    Attributes:
        summary: Counts of executed tests across committed assemblies.
        total_tests: Executed tests, plus filtered tests once the run ends.
        filtered_tests: Test cases excluded by the filters.
        filtered_assemblies: Assemblies excluded by the filters.
        failed_assemblies: Paths of assemblies that raised during the run.
        failure_infos: Failed tests, for the end-of-run summary.
    """

    def __init__(
        self,
        executor: TestExecutor,
        filters: FilterCollection | None = None,
        emitter: ResultsEmitter | None = None,
        on_info: Callable[[str], None] | None = None,
        on_error: Callable[[str], None] | None = None,
        on_trace: Callable[[str], None] | None = None,
        assembly_timeout: float | None = None,
    ):
        """Initialize the coordinator.

        Args:
            executor: Discovers and executes test cases.
            filters: Filters to apply. None or empty runs everything.
            emitter: Builds the results tree.
            on_info: Sink for status lines. Defaults to the module logger.
            on_error: Sink for error lines. Defaults to the module logger.
            on_trace: Sink for per-filter trace lines. Defaults to debug logging.
            assembly_timeout: Seconds one assembly may take. None = no limit.
        """
        self.executor = executor
        self.filters = filters if filters is not None else FilterCollection()
        self.emitter = emitter or ResultsEmitter()
        self.on_info = on_info or logger.info
        self.on_error = on_error or logger.error
        self.on_trace = on_trace or logger.debug
        self.assembly_timeout = assembly_timeout or None

        self._lock = threading.Lock()
        self._assembly_nodes: list[ResultNode] = []
        self._results: ResultsTree | None = None
        self.summary = ExecutionSummary()
        self.total_tests = 0
        self.filtered_tests = 0
        self.filtered_assemblies = 0
        self.failed_assemblies: list[str] = []
        self.failure_infos: list[FailureInfo] = []

    @property
    def passed_tests(self) -> int:
        return self.summary.passed

    @property
    def failed_tests(self) -> int:
        return self.summary.failed

    @property
    def skipped_tests(self) -> int:
        return self.summary.skipped

    def reset(self) -> None:
        """Clear all state from a previous run."""
        with self._lock:
            self._assembly_nodes = []
            self._results = None
            self.summary.reset()
            self.total_tests = 0
            self.filtered_tests = 0
            self.filtered_assemblies = 0
            self.failed_assemblies = []
            self.failure_infos = []

    def run(self, assemblies: Iterable[TestAssemblyInfo]) -> ResultsTree:
        """Run every assembly and return the results tree.

        Failures inside one assembly are logged and never abort the run.
        """
        self.reset()
        self.on_info("xrun test runner")

        for assembly in assemblies:
            if self.filters.is_excluded_assembly(assembly, self.on_trace):
                self.on_info(f"Excluded: '{assembly.full_path}' due to filter")
                with self._lock:
                    self.filtered_assemblies += 1
                continue

            self.on_info(f"Running tests for {assembly.name}")
            started_at = datetime.now()
            try:
                staged = self._run_with_timeout(assembly)
                node = self.emitter.build_assembly(assembly, staged.results, started_at)
            except Exception as e:
                error = e
                if not isinstance(error, AssemblyExecutionError):
                    error = AssemblyExecutionError(str(assembly.full_path), e)
                self.on_error(f"{error}\n{_format_cause(error.cause)}")
                with self._lock:
                    self.failed_assemblies.append(str(assembly.full_path))
                    self.summary.errors += 1
                continue

            self._commit(staged, node)
            self.on_info(f"{assembly.name}: {staged.summary.summary()}")

        self.log_failure_summary()
        with self._lock:
            # Total includes the tests the filters excluded
            self.total_tests += self.filtered_tests
            self._results = self.emitter.build_tree(self._assembly_nodes)
        return self._results

    def consume_results(self) -> ResultsTree:
        """Hand over the results tree of the last run, exactly once.

        Raises:
            RuntimeError: If called before run() or called twice.
        """
        with self._lock:
            if self._results is None:
                raise RuntimeError("No results available; call run() first")
            results, self._results = self._results, None
            self.failure_infos = []
        return results

    def log_failure_summary(self) -> None:
        """Log every failed test and failed assembly of the run."""
        if not self.failure_infos and not self.failed_assemblies:
            return

        if self.failure_infos:
            self.on_error(f"Failed tests ({len(self.failure_infos)}):")
            for info in self.failure_infos:
                self.on_error(f"  - {info}")

        if self.failed_assemblies:
            self.on_error(f"Failed assemblies ({len(self.failed_assemblies)}):")
            for path in self.failed_assemblies:
                self.on_error(f"  - {path}")

    def _run_with_timeout(self, assembly: TestAssemblyInfo) -> AssemblyRun:
        if self.assembly_timeout is None:
            return self._run_assembly(assembly)

        stop = threading.Event()
        outcome: dict[str, Any] = {}

        def target() -> None:
            try:
                outcome["run"] = self._run_assembly(assembly, stop)
            except BaseException as e:
                outcome["error"] = e

        # Daemon, so a hung test never keeps the interpreter alive
        worker = threading.Thread(target=target, name=f"xrun-{assembly.name}", daemon=True)
        worker.start()
        worker.join(self.assembly_timeout)

        if worker.is_alive():
            stop.set()
            raise AssemblyExecutionError(
                str(assembly.full_path),
                TimeoutError(f"timed out after {self.assembly_timeout}s"),
            )
        if "error" in outcome:
            raise outcome["error"]
        return outcome["run"]

    def _run_assembly(
        self, assembly: TestAssemblyInfo, stop: threading.Event | None = None
    ) -> AssemblyRun:
        staged = AssemblyRun(assembly)
        try:
            for test_case in self.executor.discover(assembly):
                if stop is not None and stop.is_set():
                    break
                if self.filters.is_excluded(test_case, self.on_trace):
                    staged.filtered += 1
                    continue
                staged.add(self.executor.execute(assembly, test_case))
        except Exception as e:
            raise AssemblyExecutionError(str(assembly.full_path), e) from e
        return staged

    def _commit(self, staged: AssemblyRun, node: ResultNode) -> None:
        with self._lock:
            self._assembly_nodes.append(node)
            self.summary.merge(staged.summary)
            self.total_tests += staged.summary.total
            self.filtered_tests += staged.filtered
            for result in staged.results:
                if result.failed:
                    self.failure_infos.append(FailureInfo(
                        assembly_name=staged.assembly.name,
                        test_name=result.test_case.display_name,
                        message=result.message,
                    ))


def _format_cause(cause: BaseException) -> str:
    return "".join(traceback.format_exception(type(cause), cause, cause.__traceback__)).rstrip()
