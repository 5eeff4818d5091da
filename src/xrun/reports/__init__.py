"""Results tree and report writers.

This module provides:
- The neutral, immutable results tree
- The emitter that builds it from executed test cases
- Writers for the native xunit dialect and the NUnit v2/v3 dialects
"""

from .emitter import ResultsEmitter, default_environment
from .tree import ResultNode, ResultsTree
from .writers import (
    DEFAULT_RESULTS_FILE,
    TRANSFORMS,
    IdGenerator,
    ResultJargon,
    ResultsWriter,
    transform_nunit_v2,
    transform_nunit_v3,
)

__all__ = [
    # Tree
    "ResultNode",
    "ResultsTree",
    # Emitter
    "ResultsEmitter",
    "default_environment",
    # Writers
    "DEFAULT_RESULTS_FILE",
    "TRANSFORMS",
    "IdGenerator",
    "ResultJargon",
    "ResultsWriter",
    "transform_nunit_v2",
    "transform_nunit_v3",
]
