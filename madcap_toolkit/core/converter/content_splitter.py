from __future__ import annotations

"""Split paragraphs mixing running text with block-level images.

Flare authors drop full-size screenshots into the middle of instruction
sentences.  Such a paragraph is re-emitted as a sequence of siblings where
each node is either text (with any inline icons), a single block image, or a
single-item bullet list for ``* text`` fragments.
"""

import logging
from typing import List, Optional

from madcap_toolkit.core.models import Element, Node, Text
from madcap_toolkit.core.rules import ImageRules

__all__ = ["ContentSplitter"]

logger = logging.getLogger(__name__)


class ContentSplitter:
    """Separates block images from paragraph text."""

    def __init__(self, rules: ImageRules, list_marker: Optional[str] = None) -> None:
        self._rules = rules
        self._list_marker = list_marker
        self.split_count = 0

    def is_inline_image(self, img: Element) -> bool:
        return self._rules.is_inline(
            img.get("src") or "",
            img.classes(),
            img.get("width"),
            img.get("height"),
        )

    def apply(self, root: Element) -> None:
        root.children = self._process_children(root.children)
        if self.split_count:
            logger.debug("Split %d mixed paragraph(s)", self.split_count)

    def _process_children(self, children: List[Node]) -> List[Node]:
        result: List[Node] = []
        for child in children:
            if not isinstance(child, Element):
                result.append(child)
                continue
            child.children = self._process_children(child.children)
            if child.name == "p" and self._needs_split(child):
                result.extend(self._split(child))
                self.split_count += 1
            else:
                result.append(child)
        return result

    def _needs_split(self, paragraph: Element) -> bool:
        images = [el for el in paragraph.iter("img")]
        if not images or all(self.is_inline_image(img) for img in images):
            return False
        return any(isinstance(c, Text) and c.content.strip() for c in paragraph.children)

    def _split(self, paragraph: Element) -> List[Node]:
        """Return the replacement nodes for a mixed *paragraph*."""
        output: List[Node] = []
        current: Optional[Element] = None
        text_attributes = {"class": paragraph.get("class")} if paragraph.get("class") else {}

        def flush() -> None:
            nonlocal current
            if current is not None and any(
                not isinstance(n, Text) or n.content.strip() for n in current.children
            ):
                output.append(current)
            current = None

        for child in paragraph.children:
            if isinstance(child, Text):
                if not child.content.strip():
                    if current is not None:
                        current.children.append(child)
                    continue
                bullet = self._rules.bullet.match(child.content) if self._rules.bullet else None
                if bullet is not None:
                    flush()
                    item = Element("li", children=[Text(bullet.group(1).strip())])
                    bullet_list = Element("ul", children=[item])
                    if self._list_marker:
                        bullet_list.set(self._list_marker, "true")
                    output.append(bullet_list)
                    continue
                if current is None:
                    current = Element("p", dict(text_attributes))
                current.children.append(child)
                continue

            if isinstance(child, Element) and child.name == "img" and not self.is_inline_image(child):
                flush()
                output.append(Element("p", children=[child]))
                continue

            if current is None:
                current = Element("p", dict(text_attributes))
            current.children.append(child)

        flush()
        # The id stays on the first fragment only.
        if paragraph.get("id") and output and isinstance(output[0], Element):
            output[0].set("id", paragraph.get("id"))
        return output
