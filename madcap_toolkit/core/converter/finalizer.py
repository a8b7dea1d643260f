from __future__ import annotations

"""Final clean-up and compliance pass.

Runs strictly last, after every structural decision has been taken:

1. structure repairs (blocks inside inline elements, nested paragraphs,
   bare table rows, bare body text);
2. pruning of empty paragraphs, list items, divs, headings and lists;
3. text normalisation (mojibake, extended entities, typographic
   punctuation, whitespace runs);
4. URL decoding of ``img/@src`` and ``a/@href``;
5. compliance (void elements, attribute names, boolean attributes,
   ``img/@alt``, duplicate classes);
6. format-specific inline flattening for AsciiDoc output;
7. removal of insignificant whitespace between blocks.

:func:`check_invariants` verifies the structural guarantees of the finished
tree.
"""

import logging
import re
from typing import List, Optional
from urllib.parse import unquote

from madcap_toolkit.core.converter.helpers import (
    BLOCK_TAGS,
    HEADING_TAGS,
    INLINE_TAGS,
    LIST_TAGS,
    has_meaningful_content,
    is_whitespace,
)
from madcap_toolkit.core.models import VOID_ELEMENTS, Comment, Element, Node, OutputFormat, Text
from madcap_toolkit.core.utils import collapse_whitespace

__all__ = [
    "StructuralFinalizer",
    "normalize_text",
    "decode_url",
    "check_invariants",
    "BOOLEAN_ATTRIBUTES",
]

logger = logging.getLogger(__name__)

BOOLEAN_ATTRIBUTES = ("checked", "disabled", "readonly", "selected", "multiple")

_PRESERVE_TEXT_TAGS = frozenset({"pre", "code", "script", "style", "textarea"})
_STRUCTURAL_CONTAINERS = frozenset({"html", "body", "ol", "ul", "dl", "table", "thead", "tbody", "tfoot", "tr"})
_PRUNABLE = frozenset({"p", "li", "div"}) | HEADING_TAGS
_INLINE_WRAPPABLE_BLOCKS = frozenset({"p", "div", "blockquote", "dt", "dd"}) | HEADING_TAGS
_LIST_CHILD_TAGS = frozenset({"li", "script", "template"})
_DEFINITION_CHILD_TAGS = frozenset({"dt", "dd", "script", "template"})

# Windows-1252 decoded as UTF-8; longest sequences first.
_MOJIBAKE = (
    ("â€™", "'"),
    ("â€˜", "'"),
    ("â€œ", '"'),
    ("â€\u009d", '"'),
    ("â€“", "-"),
    ("â€”", "--"),
    ("â€¦", "..."),
    ("â€¢", "*"),
    ("â„¢", "™"),
    ("Â®", "®"),
    ("Â©", "©"),
    ("Â°", "°"),
    ("\u00c2\u00a0", " "),
    ("Ã©", "é"),
    ("Ã¨", "è"),
    ("Ã¡", "á"),
    ("Ã³", "ó"),
    ("Ã±", "ñ"),
)

_ENTITY_TEXT_RE = re.compile(r"&(nbsp|zwj|zwnj|ensp|emsp|thinsp|shy|lrm|rlm);", re.IGNORECASE)
_ENTITY_TEXT = {
    "nbsp": " ", "ensp": " ", "emsp": " ", "thinsp": " ",
    "zwj": "", "zwnj": "", "shy": "", "lrm": "", "rlm": "",
}

_CHARACTER_MAP = str.maketrans({
    "\u2018": "'", "\u2019": "'", "\u201a": "'", "\u201b": "'", "\u2032": "'",
    "\u201c": '"', "\u201d": '"', "\u201e": '"', "\u201f": '"', "\u2033": '"',
    "\u2012": "-", "\u2013": "-", "\u2014": "--", "\u2015": "--", "\u2026": "...",
    "\u00a0": " ", "\u2000": " ", "\u2001": " ", "\u2002": " ", "\u2003": " ",
    "\u2004": " ", "\u2005": " ", "\u2006": " ", "\u2007": " ", "\u2008": " ",
    "\u2009": " ", "\u200a": " ", "\u202f": " ", "\u205f": " ", "\u3000": " ",
    "\u2028": " ", "\u2029": " ",
    "\u200b": "", "\u200c": "", "\u200d": "", "\u200e": "", "\u200f": "",
    "\u2060": "", "\ufeff": "", "\u00ad": "",
})

_PERCENT_ESCAPE_RE = re.compile(r"%[0-9A-Fa-f]{2}")

_ASCIIDOC_MARKS = {"b": "*", "strong": "*", "i": "_", "em": "_", "code": "`"}


def normalize_text(text: str) -> str:
    """Apply mojibake repair, entity decoding and punctuation folding to *text*."""
    for broken, fixed in _MOJIBAKE:
        if broken in text:
            text = text.replace(broken, fixed)
    text = _ENTITY_TEXT_RE.sub(lambda m: _ENTITY_TEXT[m.group(1).lower()], text)
    return collapse_whitespace(text.translate(_CHARACTER_MAP))


def decode_url(value: str) -> str:
    """Percent-decode *value* until it no longer changes."""
    for _ in range(5):
        if not _PERCENT_ESCAPE_RE.search(value):
            break
        decoded = unquote(value)
        if decoded == value:
            break
        value = decoded
    return value


class StructuralFinalizer:
    """Last pass over the tree; see the module docstring for the steps."""

    def __init__(self, output_format: Optional[OutputFormat] = None) -> None:
        self._output_format = output_format
        self.pruned = 0

    def apply(self, root: Element) -> None:
        self._repair_structure(root)
        self._prune_empty(root)
        self._normalize_text(root, preserve=root.name in _PRESERVE_TEXT_TAGS)
        self._comply(root)
        if self._output_format == OutputFormat.ASCIIDOC:
            self._flatten_inline_formatting(root)
        self._drop_insignificant_whitespace(root)
        if self.pruned:
            logger.debug("Finalizer pruned %d empty element(s)", self.pruned)

    # ------------------------------------------------------------------
    # 1. Structure repairs
    # ------------------------------------------------------------------
    def _repair_structure(self, element: Element) -> None:
        for child in element.element_children():
            self._repair_structure(child)

        children: List[Node] = []
        for child in element.children:
            if isinstance(child, Element) and _has_block_child(child):
                if child.name in INLINE_TAGS:
                    children.extend(_split_around_blocks(child, wrap_blocks=True))
                    continue
                if child.name == "p":
                    children.extend(_split_around_blocks(child, wrap_blocks=False))
                    continue
            children.append(child)

        if element.name == "p":
            for child in children:
                if isinstance(child, Element) and child.name == "p":
                    child.tag = "span"
        elif element.name == "table":
            children = _wrap_runs(children, lambda n: isinstance(n, Element) and n.name == "tr", "tbody")
        elif element.name == "body":
            children = _wrap_runs(children, _is_inline_content, "p", require_text=True)
        element.children = children

    # ------------------------------------------------------------------
    # 2. Empty node pruning
    # ------------------------------------------------------------------
    def _prune_empty(self, element: Element) -> None:
        kept: List[Node] = []
        for child in element.children:
            if isinstance(child, Element):
                self._prune_empty(child)
                if self._is_prunable(child):
                    self.pruned += 1
                    continue
            kept.append(child)
        element.children = kept

    @staticmethod
    def _is_prunable(element: Element) -> bool:
        if element.name in LIST_TAGS:
            if any(isinstance(c, Element) for c in element.children):
                return False
        elif element.name not in _PRUNABLE:
            return False
        if element.has("id") or element.has("data-title"):
            return False
        return not has_meaningful_content(element)

    # ------------------------------------------------------------------
    # 3. Text normalisation
    # ------------------------------------------------------------------
    def _normalize_text(self, element: Element, preserve: bool) -> None:
        element.children = _merge_text(element.children)
        if element.name == "pre" and element.children and isinstance(element.children[0], Text):
            # The HTML parser drops a newline directly after <pre>.
            element.children[0] = Text(element.children[0].content.lstrip("\n"))
        for idx, child in enumerate(element.children):
            if isinstance(child, Text):
                if not preserve:
                    element.children[idx] = Text(normalize_text(child.content))
            elif isinstance(child, Element):
                self._normalize_text(child, preserve or child.name in _PRESERVE_TEXT_TAGS)

    # ------------------------------------------------------------------
    # 4/5. URL decoding and compliance
    # ------------------------------------------------------------------
    def _comply(self, element: Element) -> None:
        children: List[Node] = []
        for child in element.children:
            children.append(child)
            if isinstance(child, Element):
                self._comply(child)
                if child.name in VOID_ELEMENTS and child.children:
                    children.extend(child.children)
                    child.children = []
        element.children = children
        _comply_attributes(element)

    # ------------------------------------------------------------------
    # 6. Format specific
    # ------------------------------------------------------------------
    def _flatten_inline_formatting(self, element: Element) -> None:
        if element.name == "pre":
            return
        children: List[Node] = []
        for child in element.children:
            if isinstance(child, Element):
                self._flatten_inline_formatting(child)
                mark = _ASCIIDOC_MARKS.get(child.name)
                text = child.text_content()
                if mark and text.strip() and all(isinstance(c, Text) for c in child.children):
                    children.append(Text(f"{mark}{text}{mark}"))
                    continue
            children.append(child)
        element.children = _merge_text(children)

    # ------------------------------------------------------------------
    # 7. Insignificant whitespace
    # ------------------------------------------------------------------
    def _drop_insignificant_whitespace(self, element: Element) -> None:
        children = element.children
        structural = element.name in _STRUCTURAL_CONTAINERS
        kept: List[Node] = []
        for idx, child in enumerate(children):
            if is_whitespace(child):
                if structural or not child.content:
                    continue
                before = children[idx - 1] if idx > 0 else None
                after = children[idx + 1] if idx + 1 < len(children) else None
                if _is_block(before) or _is_block(after):
                    continue
                if before is None and after is None and element.name in BLOCK_TAGS:
                    continue
            kept.append(child)
        element.children = kept
        for child in element.element_children():
            self._drop_insignificant_whitespace(child)


# ---------------------------------------------------------------------------
# Invariants
# ---------------------------------------------------------------------------


def check_invariants(root: Element) -> List[str]:
    """Return a description of every structural invariant violation under *root*."""
    violations: List[str] = []
    for element in root.iter():
        name = element.name
        if name in VOID_ELEMENTS and element.children:
            violations.append(f"void element <{element.tag}> has children")
        if name in LIST_TAGS:
            allowed = _LIST_CHILD_TAGS
        elif name == "dl":
            allowed = _DEFINITION_CHILD_TAGS
        else:
            continue
        for child in element.children:
            if isinstance(child, Element) and child.name not in allowed:
                violations.append(f"<{element.tag}> has <{child.tag}> child")
            elif isinstance(child, Text) and child.content.strip():
                violations.append(f"<{element.tag}> has bare text {child.content.strip()[:20]!r}")
    return violations


# ---------------------------------------------------------------------------
# Module helpers
# ---------------------------------------------------------------------------


def _is_block(node: Optional[Node]) -> bool:
    return isinstance(node, Element) and (node.name in BLOCK_TAGS or node.name in _STRUCTURAL_CONTAINERS)


def _is_inline_content(node: Node) -> bool:
    if isinstance(node, Text):
        return True
    return isinstance(node, Element) and (node.name in INLINE_TAGS or node.name in ("img", "br"))


def _has_block_child(element: Element) -> bool:
    return any(isinstance(c, Element) and c.name in BLOCK_TAGS for c in element.children)


def _split_around_blocks(container: Element, wrap_blocks: bool) -> List[Node]:
    """Lift block children out of *container*, re-wrapping the surrounding runs.

    With *wrap_blocks* the content of each lifted paragraph-like block is
    wrapped in a copy of *container* so links and emphasis survive.
    """
    result: List[Node] = []
    run: List[Node] = []
    first_copy = True

    def clone(children: List[Node]) -> Element:
        nonlocal first_copy
        attributes = dict(container.attributes)
        if not first_copy:
            attributes.pop("id", None)
        first_copy = False
        return Element(container.tag, attributes, children)

    def flush() -> None:
        if any(not is_whitespace(n) for n in run):
            result.append(clone(list(run)))
        elif run:
            result.extend(run)
        run.clear()

    for child in container.children:
        if isinstance(child, Element) and child.name in BLOCK_TAGS:
            flush()
            if wrap_blocks and child.name in _INLINE_WRAPPABLE_BLOCKS and child.children:
                child.children = [clone(child.children)]
            result.append(child)
        else:
            run.append(child)
    flush()
    return result


def _wrap_runs(children: List[Node], predicate, tag: str, require_text: bool = False) -> List[Node]:
    """Wrap maximal runs of nodes matching *predicate* in a new *tag* element."""
    result: List[Node] = []
    run: List[Node] = []

    def flush() -> None:
        if not run:
            return
        if require_text and not any(isinstance(n, Text) and n.content.strip() for n in run):
            result.extend(run)
        else:
            result.append(Element(tag, children=list(run)))
        run.clear()

    for child in children:
        if predicate(child) or (run and isinstance(child, Comment)):
            run.append(child)
        else:
            flush()
            result.append(child)
    flush()
    return result


def _comply_attributes(element: Element) -> None:
    attributes = {}
    for key, value in element.attributes.items():
        lowered = key.lower()
        if lowered in attributes:
            continue
        if lowered in ("src", "href") and element.name in ("img", "a"):
            value = decode_url(value)
        attributes[lowered] = value

    for name in BOOLEAN_ATTRIBUTES:
        if name in attributes:
            attributes[name] = name

    if "class" in attributes:
        tokens = list(dict.fromkeys(attributes["class"].split()))
        if tokens:
            attributes["class"] = " ".join(tokens)
        else:
            del attributes["class"]

    if element.name == "img" and "alt" not in attributes:
        attributes["alt"] = attributes.get("title", "")
    element.attributes = attributes


def _merge_text(children: List[Node]) -> List[Node]:
    merged: List[Node] = []
    for child in children:
        if isinstance(child, Text) and merged and isinstance(merged[-1], Text):
            merged[-1] = Text(merged[-1].content + child.content)
        else:
            merged.append(child)
    return merged
