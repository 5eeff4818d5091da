"""Test assemblies, test cases and the execution collaborator.

This module provides:
- Test case / assembly / result models
- The TestExecutor protocol the run coordinator drives
- A module-based executor with trait and skip decorators
"""

from .executor import (
    ModuleTestExecutor,
    SkipTest,
    TestExecutor,
    load_assembly,
    skip,
    trait,
)
from .models import (
    AssemblyRun,
    CaseResult,
    ExecutionSummary,
    FailureInfo,
    TestAssemblyInfo,
    TestCase,
    TestOutcome,
)

__all__ = [
    # Models
    "TestCase",
    "TestAssemblyInfo",
    "TestOutcome",
    "CaseResult",
    "ExecutionSummary",
    "FailureInfo",
    "AssemblyRun",
    # Execution
    "TestExecutor",
    "ModuleTestExecutor",
    "SkipTest",
    "load_assembly",
    "skip",
    "trait",
]
