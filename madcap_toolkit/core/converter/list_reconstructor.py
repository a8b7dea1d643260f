from __future__ import annotations

"""Repair list nesting in MadCap exports.

Flare frequently writes sub-lists as *siblings* of the item they belong to::

    <ol>
      <li>Step 2</li>
      <ol style="list-style-type: lower-alpha;"><li>a</li></ol>
    </ol>

and scatters paragraphs between list items.  The reconstructor works in
three stages:

1. preparation - orphan ``li`` runs get a list, sequentially numbered
   paragraphs become an ``ol`` and ``dl`` children become ``dt``/``dd``;
2. sibling absorption - a list following another list is nested into the
   last item that introduces it (trailing ``:``, keyword, style hierarchy)
   and continuation paragraphs after a list join its last item;
3. orphan repair - every non-``li`` child of a list is moved into the
   previous item or wrapped in a new one.

Every list is then marked with the configured processed marker; marked lists
never absorb siblings again, which keeps re-runs stable.
"""

import logging
import re
from typing import List, Optional, Tuple

from madcap_toolkit.core.converter.helpers import (
    LIST_TAGS,
    count_items,
    has_meaningful_content,
    is_list,
    next_significant_index,
    own_text,
)
from madcap_toolkit.core.models import Comment, Element, Node, Text
from madcap_toolkit.core.rules import ListHeuristics
from madcap_toolkit.core.utils import parse_inline_style

__all__ = ["ListReconstructor", "list_style"]

logger = logging.getLogger(__name__)

_TYPE_ATTRIBUTE_STYLES = {
    "a": "lower-alpha",
    "A": "upper-alpha",
    "i": "lower-roman",
    "I": "upper-roman",
    "1": "decimal",
}
_STYLE_ALIASES = {"lower-latin": "lower-alpha", "upper-latin": "upper-alpha"}
_NUMBERED_PARAGRAPH_RE = re.compile(r"^\s*(\d+)\.\s+")


def list_style(element: Element) -> str:
    """Return the list-style-type of *element* (``""`` for the default)."""
    style = parse_inline_style(element.get("style")).get("list-style-type", "")
    if not style:
        style = _TYPE_ATTRIBUTE_STYLES.get((element.get("type") or "").strip(), "")
    return _STYLE_ALIASES.get(style, style)


class ListReconstructor:
    """Heuristic list nesting repair driven by :class:`ListHeuristics`."""

    def __init__(self, heuristics: ListHeuristics) -> None:
        self._rules = heuristics
        self._marker = heuristics.processed_marker
        self.nested_lists = 0
        self.attached_paragraphs = 0
        self.wrapped_orphans = 0

    def apply(self, root: Element) -> None:
        self._prepare(root)
        self._absorb(root)
        self._repair(root)
        for element in root.iter():
            if element.name in LIST_TAGS:
                element.set(self._marker, "true")
        if self.nested_lists or self.attached_paragraphs or self.wrapped_orphans:
            logger.debug(
                "Lists: %d sub-list(s) nested, %d paragraph(s) attached, %d orphan(s) wrapped",
                self.nested_lists, self.attached_paragraphs, self.wrapped_orphans,
            )

    # ------------------------------------------------------------------
    # Heuristics
    # ------------------------------------------------------------------
    def should_nest(self, item: Element, parent_list: Element, candidate: Element) -> bool:
        """Decide whether *candidate* belongs inside *item* of *parent_list*."""
        candidate_style = list_style(candidate)
        parent_style = list_style(parent_list)

        if candidate_style == "lower-alpha" and parent_style not in ("lower-alpha", "lower-roman"):
            return True
        if candidate_style == "lower-roman" and parent_style == "lower-alpha":
            return True
        if candidate_style == "upper-alpha" and parent_style not in ("lower-alpha", "upper-alpha", "lower-roman"):
            return True

        if any(c.lower() in self._rules.nesting_classes for c in candidate.classes()):
            return True

        return self._rules.introduces_list(own_text(item))

    def is_trailing_continuation(self, element: Element) -> bool:
        if element.name not in ("p", "blockquote"):
            return False
        return self._rules.is_continuation(
            element.text_content(),
            element.classes(),
            parse_inline_style(element.get("style")),
        )

    # ------------------------------------------------------------------
    # Stage 1: preparation
    # ------------------------------------------------------------------
    def _prepare(self, element: Element) -> None:
        for child in element.element_children():
            self._prepare(child)
        if element.name == "dl":
            element.children = self._normalize_definition_list(element.children)
        elif element.name not in LIST_TAGS:
            element.children = self._adopt_orphan_items(element.children)
            element.children = self._convert_numbered_paragraphs(element.children)

    def _adopt_orphan_items(self, children: List[Node]) -> List[Node]:
        result: List[Node] = []
        for child in children:
            if isinstance(child, Element) and child.name == "li":
                idx = len(result) - 1
                while idx >= 0 and isinstance(result[idx], Text) and not result[idx].content.strip():
                    idx -= 1
                previous = result[idx] if idx >= 0 else None
                if is_list(previous):
                    del result[idx + 1:]
                    previous.children.append(child)
                else:
                    result.append(Element("ul", children=[child]))
                    self.wrapped_orphans += 1
                continue
            result.append(child)
        return result

    def _convert_numbered_paragraphs(self, children: List[Node]) -> List[Node]:
        result: List[Node] = []
        i = 0
        while i < len(children):
            run, end = self._numbered_run(children, i)
            if len(run) < 2:
                result.append(children[i])
                i += 1
                continue
            first_number = _leading_number(run[0]) or 1
            ol = Element("ol")
            if first_number != 1:
                ol.set("start", str(first_number))
            for paragraph in run:
                _strip_leading_number(paragraph)
                ol.children.append(Element("li", children=paragraph.children))
            result.append(ol)
            i = end
        return result

    @staticmethod
    def _numbered_run(children: List[Node], start: int) -> Tuple[List[Element], int]:
        run: List[Element] = []
        expected: Optional[int] = None
        end = start
        idx: Optional[int] = start
        while idx is not None and idx < len(children):
            node = children[idx]
            if not (isinstance(node, Element) and node.name == "p"):
                break
            if run and not has_meaningful_content(node):
                # Empty paragraphs between steps are pruned later anyway.
                idx = next_significant_index(children, idx + 1)
                continue
            number = _leading_number(node)
            if number is None or (expected is not None and number != expected):
                break
            run.append(node)
            expected = number + 1
            end = idx + 1
            idx = next_significant_index(children, idx + 1)
        return run, end

    @staticmethod
    def _normalize_definition_list(children: List[Node]) -> List[Node]:
        result: List[Node] = []
        expect_term = True
        for child in children:
            if isinstance(child, Text):
                if child.content.strip():
                    result.append(Element("dd", children=[child]))
                    expect_term = True
                continue
            if isinstance(child, Comment):
                result.append(child)
                continue
            if child.name in ("dt", "dd"):
                result.append(child)
                expect_term = child.name == "dd"
                continue
            tag = "dt" if expect_term else "dd"
            if child.name in ("p", "span"):
                child.tag = tag
                result.append(child)
            else:
                result.append(Element(tag, children=[child]))
            expect_term = tag == "dd"
        return result

    # ------------------------------------------------------------------
    # Stage 2: sibling absorption
    # ------------------------------------------------------------------
    def _absorb(self, element: Element) -> None:
        # Bottom-up: nodes moved into an item at this level are not revisited.
        for child in element.element_children():
            self._absorb(child)
        if element.name not in LIST_TAGS:
            children = element.children
            at_body_level = element.name == "body"
            i = 0
            while i < len(children):
                child = children[i]
                if is_list(child) and not child.has(self._marker):
                    self._absorb_following(children, i, at_body_level)
                i += 1

    def _absorb_following(self, children: List[Node], index: int, at_body_level: bool) -> None:
        host = children[index]
        while True:
            j = next_significant_index(children, index + 1)
            if j is None:
                return
            candidate = children[j]
            if not isinstance(candidate, Element):
                return

            if candidate.name in LIST_TAGS:
                target = self._nesting_target(host, candidate, at_body_level)
                if target is None:
                    return
                del children[index + 1:j + 1]
                target.children.append(candidate)
                self.nested_lists += 1
                continue

            if self.is_trailing_continuation(candidate):
                chain = _last_item_chain(host)
                if not chain:
                    return
                del children[index + 1:j + 1]
                chain[0][0].children.append(candidate)
                self.attached_paragraphs += 1
                continue
            return

    def _nesting_target(self, host: Element, candidate: Element, at_body_level: bool) -> Optional[Element]:
        if at_body_level and count_items(candidate) >= self._rules.large_list_item_threshold:
            return None
        for item, parent_list in reversed(_last_item_chain(host)):
            if self.should_nest(item, parent_list, candidate):
                return item
        return None

    # ------------------------------------------------------------------
    # Stage 3: orphan repair
    # ------------------------------------------------------------------
    def _repair(self, element: Element) -> None:
        for child in element.element_children():
            self._repair(child)
        if element.name in LIST_TAGS:
            element.children = self._repair_list_children(element.children)

    def _repair_list_children(self, children: List[Node]) -> List[Node]:
        result: List[Node] = []
        current: Optional[Element] = None
        leading_comments: List[Node] = []

        for child in children:
            if isinstance(child, Comment):
                if current is not None:
                    current.children.append(child)
                else:
                    leading_comments.append(child)
                continue
            if isinstance(child, Text):
                if not child.content.strip():
                    continue
                text = child.content
            elif child.name == "li":
                current = child
                current.children[:0] = leading_comments
                leading_comments = []
                result.append(child)
                continue
            elif child.name in ("script", "template"):
                result.append(child)
                continue
            elif child.name in LIST_TAGS:
                text = ""
            elif not has_meaningful_content(child):
                continue
            else:
                text = child.text_content()

            if current is not None and not self._rules.looks_like_action(text):
                current.children.append(child)
            else:
                current = Element("li", children=[*leading_comments, child])
                leading_comments = []
                result.append(current)
                self.wrapped_orphans += 1
        # No item to hold them.
        result.extend(leading_comments)
        return result


# ---------------------------------------------------------------------------
# Module helpers
# ---------------------------------------------------------------------------


def _last_item_chain(host: Element) -> List[Tuple[Element, Element]]:
    """``(last li, its list)`` pairs from *host* down through trailing sub-lists."""
    chain: List[Tuple[Element, Element]] = []
    current: Optional[Element] = host
    while current is not None and current.name in LIST_TAGS:
        items = [c for c in current.element_children() if c.name == "li"]
        if not items:
            break
        last = items[-1]
        chain.append((last, current))
        trailing = last.element_children()
        current = trailing[-1] if trailing and is_list(trailing[-1]) else None
    return chain


def _leading_number(paragraph: Element) -> Optional[int]:
    for child in paragraph.children:
        if isinstance(child, Text):
            if not child.content.strip():
                continue
            match = _NUMBERED_PARAGRAPH_RE.match(child.content)
            return int(match.group(1)) if match else None
        return None
    return None


def _strip_leading_number(paragraph: Element) -> None:
    for idx, child in enumerate(paragraph.children):
        if isinstance(child, Text) and child.content.strip():
            paragraph.children[idx] = Text(_NUMBERED_PARAGRAPH_RE.sub("", child.content, count=1))
            return
