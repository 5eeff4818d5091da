"""Report writers: serialize a results tree in a requested dialect.

The native dialect is the tree itself serialized as xUnit-style XML. The
NUnit dialects are produced by transform functions registered in
``TRANSFORMS``. A failing transform is logged and the write becomes a
no-op; nothing is written until the whole document has been built, so
previously written output is never clobbered by a broken transform.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TextIO

from ..utils.errors import ReportTransformError
from .tree import ResultNode, ResultsTree

logger = logging.getLogger(__name__)

DEFAULT_RESULTS_FILE = "TestResults.xUnit.xml"
XML_DECLARATION = '<?xml version="1.0" encoding="utf-8"?>\n'


class ResultJargon(str, Enum):
    """Report dialects."""

    XUNIT = "xunit"
    NUNIT_V2 = "nunit-v2"
    NUNIT_V3 = "nunit-v3"
    MISSING = "missing"  # Unspecified, written as native xunit

    @classmethod
    def parse(cls, value: str | ResultJargon | None) -> ResultJargon:
        """Parse a jargon name, tolerating common spellings.

        Unknown or empty names map to MISSING.
        """
        if isinstance(value, ResultJargon):
            return value
        if not value:
            return cls.MISSING
        key = value.strip().lower().replace("_", "-")
        aliases = {
            "xunit": cls.XUNIT,
            "nunit": cls.NUNIT_V2,
            "nunit2": cls.NUNIT_V2,
            "nunitv2": cls.NUNIT_V2,
            "nunit-v2": cls.NUNIT_V2,
            "nunit3": cls.NUNIT_V3,
            "nunitv3": cls.NUNIT_V3,
            "nunit-v3": cls.NUNIT_V3,
        }
        return aliases.get(key, cls.MISSING)


class IdGenerator:
    """Incrementing ids for dialects that require one on every node."""

    def __init__(self, seed: int = 1000):
        self._seed = seed

    def next_id(self) -> str:
        value = self._seed
        self._seed += 1
        return str(value)


# =============================================================================
# NUnit v2
# =============================================================================

NUNIT_V2_RESULTS = {"Pass": "Success", "Fail": "Failure", "Skip": "Ignored"}


def _v2_outcome(failed: int) -> dict[str, str]:
    return {
        "executed": "True",
        "result": "Failure" if failed else "Success",
        "success": "False" if failed else "True",
        "asserts": "0",
    }


def _v2_test_case(test: ResultNode) -> ET.Element:
    result = test.get("result", "Pass")
    element = ET.Element("test-case", {
        "name": test.get("name", ""),
        "executed": "False" if result == "Skip" else "True",
        "result": NUNIT_V2_RESULTS.get(result, "Inconclusive"),
        "success": "True" if result == "Pass" else "False",
        "time": test.get("time", "0"),
        "asserts": "0",
    })

    traits = test.find("traits")
    if traits is not None:
        categories = ET.SubElement(element, "categories")
        for t in traits.find_all("trait"):
            ET.SubElement(categories, "category", {"name": t.get("value") or t.get("name", "")})

    failure = test.find("failure")
    if failure is not None:
        node = ET.SubElement(element, "failure")
        ET.SubElement(node, "message").text = failure.child_text("message")
        ET.SubElement(node, "stack-trace").text = failure.child_text("stack-trace")

    reason = test.find("reason")
    if reason is not None:
        node = ET.SubElement(element, "reason")
        ET.SubElement(node, "message").text = reason.text or ""

    return element


def transform_nunit_v2(tree: ResultsTree) -> ET.Element:
    """Transform the results tree into an NUnit 2 ``test-results`` document."""
    counts = tree.counts()
    now = datetime.now()
    root = ET.Element("test-results", {
        "name": "Test results",
        "total": str(counts["total"]),
        "errors": "0",
        "failures": str(counts["failed"]),
        "not-run": str(counts["skipped"]),
        "inconclusive": "0",
        "ignored": str(counts["skipped"]),
        "skipped": "0",
        "invalid": "0",
        "date": now.strftime("%Y-%m-%d"),
        "time": now.strftime("%H:%M:%S"),
    })

    assemblies = tree.assemblies
    environment = assemblies[0].get("environment", "") if assemblies else ""
    ET.SubElement(root, "environment", {"platform": environment})

    for assembly in assemblies:
        suite = ET.SubElement(root, "test-suite", {
            "type": "Assembly",
            "name": assembly.get("name", ""),
            "time": assembly.get("time", "0"),
            **_v2_outcome(assembly.get_int("failed")),
        })
        results = ET.SubElement(suite, "results")
        for collection in assembly.find_all("collection"):
            fixture = ET.SubElement(results, "test-suite", {
                "type": "TestFixture",
                "name": collection.get("name", ""),
                "time": collection.get("time", "0"),
                **_v2_outcome(collection.get_int("failed")),
            })
            cases = ET.SubElement(fixture, "results")
            for test in collection.find_all("test"):
                cases.append(_v2_test_case(test))

    return root


# =============================================================================
# NUnit v3
# =============================================================================

NUNIT_V3_RESULTS = {"Pass": "Passed", "Fail": "Failed", "Skip": "Skipped"}


def _v3_counts(node: ResultNode) -> dict[str, str]:
    failed = node.get_int("failed")
    return {
        "testcasecount": node.get("total", "0"),
        "result": "Failed" if failed else "Passed",
        "total": node.get("total", "0"),
        "passed": node.get("passed", "0"),
        "failed": node.get("failed", "0"),
        "inconclusive": "0",
        "skipped": node.get("skipped", "0"),
        "asserts": "0",
        "duration": node.get("time", "0"),
    }


def _v3_test_case(test: ResultNode, ids: IdGenerator) -> ET.Element:
    class_name = test.get("type", "")
    element = ET.Element("test-case", {
        "id": ids.next_id(),
        "name": test.get("method") or test.get("name", ""),
        "fullname": test.get("name", ""),
        "methodname": test.get("method", ""),
        "classname": class_name,
        "runstate": "Runnable",
        "result": NUNIT_V3_RESULTS.get(test.get("result", "Pass"), "Inconclusive"),
        "duration": test.get("time", "0"),
        "asserts": "0",
    })

    traits = test.find("traits")
    if traits is not None:
        properties = ET.SubElement(element, "properties")
        for t in traits.find_all("trait"):
            ET.SubElement(properties, "property", {"name": t.get("name", ""), "value": t.get("value", "")})

    failure = test.find("failure")
    if failure is not None:
        node = ET.SubElement(element, "failure")
        ET.SubElement(node, "message").text = failure.child_text("message")
        ET.SubElement(node, "stack-trace").text = failure.child_text("stack-trace")

    reason = test.find("reason")
    if reason is not None:
        node = ET.SubElement(element, "reason")
        ET.SubElement(node, "message").text = reason.text or ""

    return element


def transform_nunit_v3(tree: ResultsTree) -> ET.Element:
    """Transform the results tree into an NUnit 3 ``test-run`` document."""
    ids = IdGenerator()
    counts = tree.counts()
    root = ET.Element("test-run", {
        "id": "2",
        "testcasecount": str(counts["total"]),
        "result": "Failed" if counts["failed"] else "Passed",
        "total": str(counts["total"]),
        "passed": str(counts["passed"]),
        "failed": str(counts["failed"]),
        "inconclusive": "0",
        "skipped": str(counts["skipped"]),
        "asserts": "0",
        "start-time": tree.root.get("timestamp", ""),
    })

    for assembly in tree.assemblies:
        path = assembly.get("name", "")
        suite = ET.SubElement(root, "test-suite", {
            "type": "Assembly",
            "id": ids.next_id(),
            "name": Path(path).name,
            "fullname": path,
            "runstate": "Runnable",
            **_v3_counts(assembly),
        })
        ET.SubElement(suite, "environment", {"platform": assembly.get("environment", "")})
        for collection in assembly.find_all("collection"):
            tests = collection.find_all("test")
            class_name = tests[0].get("type", "") if tests else ""
            fixture = ET.SubElement(suite, "test-suite", {
                "type": "TestFixture",
                "id": ids.next_id(),
                "name": class_name.rsplit(".", 1)[-1] or collection.get("name", ""),
                "fullname": class_name or collection.get("name", ""),
                "classname": class_name,
                "runstate": "Runnable",
                **_v3_counts(collection),
            })
            for test in tests:
                fixture.append(_v3_test_case(test, ids))

    return root


TRANSFORMS: dict[ResultJargon, Callable[[ResultsTree], ET.Element]] = {
    ResultJargon.NUNIT_V2: transform_nunit_v2,
    ResultJargon.NUNIT_V3: transform_nunit_v3,
}


# =============================================================================
# Writer
# =============================================================================


class ResultsWriter:
    """Writes a results tree to a file or stream in a given dialect."""

    def __init__(
        self,
        transforms: dict[ResultJargon, Callable[[ResultsTree], ET.Element]] | None = None,
        on_error: Callable[[str], None] | None = None,
    ):
        self.transforms = TRANSFORMS if transforms is None else transforms
        self.on_error = on_error or logger.error

    def render(self, tree: ResultsTree, jargon: ResultJargon | str | None) -> str:
        """Build the full document text.

        Raises:
            ReportTransformError: If the dialect cannot be produced.
        """
        jargon = ResultJargon.parse(jargon)
        if jargon in (ResultJargon.XUNIT, ResultJargon.MISSING):
            element = tree.to_element()
        else:
            transform = self.transforms.get(jargon)
            if transform is None:
                raise ReportTransformError(jargon.value, "no transform registered")
            try:
                element = transform(tree)
            except ReportTransformError:
                raise
            except Exception as e:
                raise ReportTransformError(jargon.value, str(e)) from e

        ET.indent(element)
        return XML_DECLARATION + ET.tostring(element, encoding="unicode")

    def write(
        self,
        tree: ResultsTree,
        jargon: ResultJargon | str | None,
        path: str | Path,
    ) -> Path | None:
        """Write the report to ``path``.

        Returns:
            The path written, or None if the transform failed.
        """
        try:
            document = self.render(tree, jargon)
        except ReportTransformError as e:
            self.on_error(str(e))
            return None

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(document + "\n", encoding="utf-8")
        logger.info(f"Results written to {path}")
        return path

    def write_to(
        self,
        tree: ResultsTree,
        jargon: ResultJargon | str | None,
        stream: TextIO,
    ) -> bool:
        """Write the report to an open text stream. Returns success."""
        try:
            document = self.render(tree, jargon)
        except ReportTransformError as e:
            self.on_error(str(e))
            return False

        stream.write(document + "\n")
        return True
