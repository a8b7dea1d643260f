from __future__ import annotations

"""Helper utilities shared by the rewrite passes.

Small, side-effect-free functions for classifying elements and walking
children lists.  None of them mutate the tree.
"""

from typing import Iterable, List, Optional

from madcap_toolkit.core.models import Comment, Element, Node, Text

__all__ = [
    "LIST_TAGS",
    "HEADING_TAGS",
    "INLINE_TAGS",
    "BLOCK_TAGS",
    "MEDIA_TAGS",
    "FORM_CONTROL_TAGS",
    "is_whitespace",
    "is_list",
    "is_heading",
    "next_significant_index",
    "own_text",
    "has_descendant",
    "has_meaningful_content",
    "count_items",
]

LIST_TAGS = frozenset({"ol", "ul"})
HEADING_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})

INLINE_TAGS = frozenset(
    {
        "a", "abbr", "b", "bdi", "bdo", "cite", "code", "data", "dfn", "em",
        "font", "i", "kbd", "label", "mark", "q", "s", "samp", "small",
        "span", "strike", "strong", "sub", "sup", "time", "tt", "u", "var",
    }
)

BLOCK_TAGS = frozenset(
    {
        "address", "article", "aside", "blockquote", "dd", "details", "div",
        "dl", "dt", "fieldset", "figcaption", "figure", "footer", "form",
        "h1", "h2", "h3", "h4", "h5", "h6", "header", "hr", "li", "main",
        "nav", "ol", "p", "pre", "section", "table", "ul",
    }
)

MEDIA_TAGS = frozenset({"img", "video", "audio", "iframe", "object", "embed", "svg", "canvas"})
FORM_CONTROL_TAGS = frozenset({"input", "select", "textarea", "button"})


def is_whitespace(node: Node) -> bool:
    """True for text nodes holding nothing but whitespace."""
    return isinstance(node, Text) and not node.content.strip()


def is_list(node: Optional[Node]) -> bool:
    return isinstance(node, Element) and node.name in LIST_TAGS


def is_heading(node: Optional[Node]) -> bool:
    return isinstance(node, Element) and node.name in HEADING_TAGS


def next_significant_index(children: List[Node], start: int) -> Optional[int]:
    """Index of the first node at or after *start* that is not whitespace text."""
    for idx in range(start, len(children)):
        if not is_whitespace(children[idx]):
            return idx
    return None


def own_text(element: Element, skip: Iterable[str] = LIST_TAGS) -> str:
    """Text content of *element* ignoring descendants named in *skip*."""
    skipped = frozenset(skip)
    parts: List[str] = []

    def _walk(node: Node) -> None:
        if isinstance(node, Text):
            parts.append(node.content)
        elif isinstance(node, Element) and node.name not in skipped:
            for child in node.children:
                _walk(child)

    for child in element.children:
        _walk(child)
    return "".join(parts)


def has_descendant(element: Element, tags: Iterable[str]) -> bool:
    wanted = frozenset(tags)
    return any(el is not element and el.name in wanted for el in element.iter())


def has_meaningful_content(element: Element) -> bool:
    """True when *element* carries text, media, form controls, comments,
    anchors or an unresolved variable reference."""
    if element.text_content().strip():
        return True
    for node in _walk_nodes(element):
        if isinstance(node, Comment):
            return True
        if isinstance(node, Element):
            if node.name == "madcap:variable" or node.has("data-mc-variable"):
                return True
            if node.name in MEDIA_TAGS or node.name in FORM_CONTROL_TAGS:
                return True
            if node.name == "a" and (node.has("id") or node.has("name")):
                return True
    return False


def count_items(element: Element) -> int:
    """Number of ``li`` descendants of *element*."""
    return sum(1 for el in element.iter("li") if el is not element)


def _walk_nodes(element: Element):
    for child in element.children:
        yield child
        if isinstance(child, Element):
            yield from _walk_nodes(child)
