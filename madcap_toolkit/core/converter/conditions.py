from __future__ import annotations

"""Removal of conditionally excluded content.

Elements whose ``madcap:conditions`` / ``data-mc-conditions`` values match
the skip taxonomy are replaced by a comment recording the condition value,
so nothing is dropped silently.  The filter must run before MadCap elements
are transformed so resolved snippets cannot bring excluded content back.
"""

import logging
import re
from typing import List, Optional

from madcap_toolkit.core.models import Comment, Element, Node
from madcap_toolkit.core.rules import ConditionTaxonomy

__all__ = [
    "CONDITION_ATTRIBUTES",
    "ConditionFilter",
    "condition_value",
    "removal_comment",
    "should_skip_document",
]

logger = logging.getLogger(__name__)

CONDITION_ATTRIBUTES = ("madcap:conditions", "data-mc-conditions")

_RAW_CONDITION_RE = re.compile(
    r"(?:madcap:conditions|data-mc-conditions)\s*=\s*([\"'])(.*?)\1",
    re.IGNORECASE | re.DOTALL,
)


def condition_value(element: Element) -> str:
    """Both condition attributes of *element* joined by a space."""
    values = [element.get(attr) for attr in CONDITION_ATTRIBUTES]
    return " ".join(v.strip() for v in values if v and v.strip())


def removal_comment(value: str) -> Comment:
    # "--" may not appear inside an HTML comment.
    safe = value.replace("--", "- -")
    return Comment(f" Removed content with MadCap conditions: {safe} ")


def should_skip_document(raw_html: str, taxonomy: ConditionTaxonomy) -> bool:
    """Cheap raw-text check: does any condition attribute match the taxonomy?

    Used by batch runners to skip a whole file without parsing it.
    """
    for match in _RAW_CONDITION_RE.finditer(raw_html or ""):
        if taxonomy.should_skip(match.group(2)):
            return True
    return False


class ConditionFilter:
    """Replace excluded elements by audit comments."""

    def __init__(self, taxonomy: ConditionTaxonomy) -> None:
        self._taxonomy = taxonomy
        self.removed: List[str] = []

    def apply(self, root: Element) -> int:
        """Filter the descendants of *root* in place; return the removal count."""
        before = len(self.removed)
        root.children = self._filter(root.children)
        count = len(self.removed) - before
        if count:
            logger.debug("Condition filter removed %d element(s)", count)
        return count

    def _filter(self, children: List[Node]) -> List[Node]:
        result: List[Node] = []
        for child in children:
            if isinstance(child, Element):
                replacement = self._check(child)
                if replacement is not None:
                    result.append(replacement)
                    continue
                child.children = self._filter(child.children)
            result.append(child)
        return result

    def _check(self, element: Element) -> Optional[Comment]:
        value = condition_value(element)
        if not value:
            return None
        family = self._taxonomy.classify(value)
        if family is None:
            return None
        logger.debug("Removing <%s> with conditions %r (%s)", element.tag, value, family)
        self.removed.append(value)
        return removal_comment(value)
