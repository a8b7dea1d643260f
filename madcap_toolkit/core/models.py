from __future__ import annotations

"""Shared data structures used across the MadCap Toolkit core.

The document tree is a strictly-owned recursive structure: every
:class:`Element` owns its ``children`` list and passes move nodes between
lists instead of sharing them.  Nothing in here performs I/O so the objects
can be reused in any context (unit-tests, CLI, batch runners, etc.).
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

__all__ = [
    "VOID_ELEMENTS",
    "Element",
    "Text",
    "Comment",
    "Node",
    "OutputFormat",
    "ProcessingContext",
    "VariableSet",
    "ExtractedVariable",
    "NormalizedDocument",
    "serialize",
    "node_to_dict",
]

VOID_ELEMENTS = frozenset(
    {
        "br", "hr", "img", "input", "meta", "link", "area",
        "base", "col", "embed", "source", "track", "wbr",
    }
)

# Elements whose text content is written verbatim.
_RAW_TEXT_ELEMENTS = frozenset({"script", "style"})


# ---------------------------------------------------------------------------
# Node union
# ---------------------------------------------------------------------------


@dataclass(eq=False)
class Text:
    content: str = ""


@dataclass(eq=False)
class Comment:
    content: str = ""


@dataclass(eq=False)
class Element:
    """Element node.

    ``tag`` keeps the spelling found in the source (``MadCap:xref``) while
    every lookup helper below matches tag and attribute names
    case-insensitively.
    """

    tag: str
    attributes: Dict[str, str] = field(default_factory=dict)
    children: List["Node"] = field(default_factory=list)

    @property
    def name(self) -> str:
        """Lower-cased tag used for all classification."""
        return self.tag.lower()

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------
    def _attr_key(self, name: str) -> Optional[str]:
        if name in self.attributes:
            return name
        lowered = name.lower()
        for key in self.attributes:
            if key.lower() == lowered:
                return key
        return None

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        key = self._attr_key(name)
        if key is None:
            return default
        return self.attributes[key]

    def set(self, name: str, value: str) -> None:
        key = self._attr_key(name)
        self.attributes[key if key is not None else name] = value

    def has(self, name: str) -> bool:
        return self._attr_key(name) is not None

    def remove(self, name: str) -> Optional[str]:
        key = self._attr_key(name)
        if key is None:
            return None
        return self.attributes.pop(key)

    def classes(self) -> List[str]:
        return (self.get("class") or "").split()

    def has_class(self, *names: str) -> bool:
        wanted = {n.lower() for n in names}
        return any(c.lower() in wanted for c in self.classes())

    # ------------------------------------------------------------------
    # Tree helpers
    # ------------------------------------------------------------------
    def append(self, node: "Node") -> None:
        self.children.append(node)

    def element_children(self) -> List["Element"]:
        return [c for c in self.children if isinstance(c, Element)]

    def iter(self, tag: Optional[str] = None) -> Iterator["Element"]:
        """Yield this element and every descendant element in document order."""
        if tag is None or self.name == tag:
            yield self
        for child in self.children:
            if isinstance(child, Element):
                yield from child.iter(tag)

    def find(self, tag: str) -> Optional["Element"]:
        """Return the first descendant (excluding self) named *tag*."""
        for child in self.children:
            if isinstance(child, Element):
                for el in child.iter(tag):
                    return el
        return None

    def text_content(self) -> str:
        parts: List[str] = []
        _collect_text(self, parts)
        return "".join(parts)

    def __repr__(self) -> str:
        return f"Element({self.tag!r}, {len(self.attributes)} attrs, {len(self.children)} children)"


Node = Union[Element, Text, Comment]


def _collect_text(node: Node, parts: List[str]) -> None:
    if isinstance(node, Text):
        parts.append(node.content)
    elif isinstance(node, Element):
        for child in node.children:
            _collect_text(child, parts)


# ---------------------------------------------------------------------------
# Serialisation
# ---------------------------------------------------------------------------


def _escape_text(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _escape_attr(value: str) -> str:
    return _escape_text(value).replace('"', "&quot;")


def serialize(node: Node) -> str:
    """Serialise *node* as XHTML-compatible markup (void elements as ``<br />``)."""
    parts: List[str] = []
    _serialize_into(node, parts, raw=False)
    return "".join(parts)


def _serialize_into(node: Node, parts: List[str], raw: bool) -> None:
    if isinstance(node, Text):
        parts.append(node.content if raw else _escape_text(node.content))
        return
    if isinstance(node, Comment):
        parts.append(f"<!--{node.content}-->")
        return

    attrs = "".join(f' {k}="{_escape_attr(v)}"' for k, v in node.attributes.items())
    if node.name in VOID_ELEMENTS and not node.children:
        parts.append(f"<{node.tag}{attrs} />")
        return
    parts.append(f"<{node.tag}{attrs}>")
    child_raw = node.name in _RAW_TEXT_ELEMENTS
    for child in node.children:
        _serialize_into(child, parts, child_raw)
    parts.append(f"</{node.tag}>")


def node_to_dict(node: Node) -> Dict[str, Any]:
    """Return an ordered JSON-ready mapping mirroring the Node union."""
    if isinstance(node, Text):
        return {"type": "text", "content": node.content}
    if isinstance(node, Comment):
        return {"type": "comment", "content": node.content}
    return {
        "type": "element",
        "tag": node.tag,
        "attributes": dict(node.attributes),
        "children": [node_to_dict(c) for c in node.children],
    }


# ---------------------------------------------------------------------------
# Run configuration and results
# ---------------------------------------------------------------------------


class OutputFormat(str, Enum):
    """Target format the normalised tree will be handed to."""

    ASCIIDOC = "asciidoc"
    WRITERSIDE_MARKDOWN = "writerside-markdown"
    ZENDESK = "zendesk"


@dataclass
class ProcessingContext:
    """Per-run options.

    Attributes
    ----------
    extract_variables
        Emit ``{kebab-name}`` references and record the definitions instead of
        inlining resolved variable text.
    preserve_variables
        Leave MadCap variable elements untouched for a later stage.
    output_format
        Target emitter; format-specific normalisation is only applied for the
        formats that need it.
    input_path
        Path of the source document, required for snippet and variable
        resolution.
    """

    extract_variables: bool = False
    preserve_variables: bool = False
    output_format: Optional[OutputFormat] = None
    input_path: Optional[Path] = None


@dataclass
class VariableSet:
    """Variables defined by one ``.flvar`` file, keyed ``Namespace.Key``."""

    source_path: Path
    variables: Dict[str, str] = field(default_factory=dict)

    @property
    def namespace(self) -> str:
        return self.source_path.stem


@dataclass(frozen=True)
class ExtractedVariable:
    name: str
    value: str


@dataclass
class NormalizedDocument:
    """Result of one pipeline run: the normalised tree plus diagnostics."""

    root: Element
    warnings: List[str] = field(default_factory=list)
    extracted_variables: List[ExtractedVariable] = field(default_factory=list)
    input_path: Optional[Path] = None

    @property
    def body(self) -> Optional[Element]:
        if self.root.name == "body":
            return self.root
        return self.root.find("body")

    def to_html(self) -> str:
        return serialize(self.root)

    def body_html(self) -> str:
        """Return the inner markup of ``<body>`` (the whole tree when absent)."""
        body = self.body
        if body is None:
            return self.to_html()
        return "".join(serialize(child) for child in body.children)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "input_path": str(self.input_path) if self.input_path else None,
            "warnings": list(self.warnings),
            "extracted_variables": [
                {"name": v.name, "value": v.value} for v in self.extracted_variables
            ],
            "root": node_to_dict(self.root),
        }

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=indent)
