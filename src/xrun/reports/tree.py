"""Neutral, immutable results tree.

The tree mirrors ``assemblies > assembly > collection > test``. Nodes are
frozen once built; report writers read them and produce their own
documents.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any


ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;?]*[A-Za-z]")
INVALID_XML_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


def xml_safe(text: str) -> str:
    """Drop terminal colour codes and replace characters XML 1.0 cannot hold."""
    return INVALID_XML_CHARS.sub("?", ANSI_ESCAPE.sub("", text))


def _freeze(attributes: Mapping[str, Any] | None) -> Mapping[str, str]:
    if not attributes:
        return MappingProxyType({})
    return MappingProxyType(
        {k: xml_safe(str(v)) for k, v in attributes.items() if v is not None}
    )


@dataclass(frozen=True)
class ResultNode:
    """One node of the results tree."""

    tag: str
    attributes: Mapping[str, str] = field(default_factory=dict)
    children: tuple[ResultNode, ...] = ()
    text: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", _freeze(self.attributes))
        object.__setattr__(self, "children", tuple(self.children))
        if self.text is not None:
            object.__setattr__(self, "text", xml_safe(self.text))

    def get(self, name: str, default: str | None = None) -> str | None:
        """Attribute value or default."""
        return self.attributes.get(name, default)

    def get_int(self, name: str) -> int:
        return int(self.attributes.get(name, "0") or 0)

    def get_float(self, name: str) -> float:
        return float(self.attributes.get(name, "0") or 0)

    def find(self, tag: str) -> ResultNode | None:
        """First direct child with ``tag``."""
        for child in self.children:
            if child.tag == tag:
                return child
        return None

    def child_text(self, tag: str) -> str:
        """Text of the first child with ``tag``, empty if missing."""
        child = self.find(tag)
        if child is None:
            return ""
        return child.text or ""

    def find_all(self, tag: str) -> list[ResultNode]:
        """All direct children with ``tag``."""
        return [child for child in self.children if child.tag == tag]

    def iter(self, tag: str | None = None) -> Iterator[ResultNode]:
        """Depth-first walk over this node and its descendants."""
        if tag is None or self.tag == tag:
            yield self
        for child in self.children:
            yield from child.iter(tag)

    def to_element(self) -> ET.Element:
        """Convert to an ElementTree element."""
        element = ET.Element(self.tag, dict(self.attributes))
        if self.text is not None:
            element.text = self.text
        for child in self.children:
            element.append(child.to_element())
        return element


@dataclass(frozen=True)
class ResultsTree:
    """Results of one run, rooted at an ``assemblies`` node."""

    root: ResultNode

    @property
    def assemblies(self) -> list[ResultNode]:
        return self.root.find_all("assembly")

    def counts(self) -> dict[str, int]:
        """Read totals back from the assembly nodes."""
        totals = {"total": 0, "passed": 0, "failed": 0, "skipped": 0}
        for assembly in self.assemblies:
            for key in totals:
                totals[key] += assembly.get_int(key)
        return totals

    def to_element(self) -> ET.Element:
        return self.root.to_element()

    def to_xml(self) -> str:
        """Serialize the native document."""
        element = self.to_element()
        ET.indent(element)
        return ET.tostring(element, encoding="unicode")
