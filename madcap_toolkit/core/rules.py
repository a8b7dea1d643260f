from __future__ import annotations

"""Compiled pattern tables driving the heuristic passes.

The raw tables live in the packaged YAML files (see
:class:`~madcap_toolkit.config.ConfigManager`).  This module turns them into
immutable objects with small classification methods so every classifier can
be tested on its own and extended by editing configuration only.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Pattern, Sequence, Tuple

from madcap_toolkit.config import ConfigManager

__all__ = [
    "PatternRule",
    "PatternTable",
    "ConditionTaxonomy",
    "ListHeuristics",
    "ImageRules",
    "PipelineRules",
]

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Generic ordered pattern table
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PatternRule:
    name: str
    pattern: Pattern[str]


class PatternTable:
    """Ordered list of compiled patterns; the first match wins."""

    def __init__(self, rules: Sequence[PatternRule] = ()) -> None:
        self._rules: Tuple[PatternRule, ...] = tuple(rules)

    @classmethod
    def from_patterns(cls, patterns: Iterable[str], flags: int = re.IGNORECASE) -> "PatternTable":
        """Build a table whose rule names are the pattern sources."""
        return cls.from_entries(({"family": p, "pattern": p} for p in patterns or ()), flags)

    @classmethod
    def from_entries(cls, entries: Iterable[Dict[str, Any]], flags: int = re.IGNORECASE) -> "PatternTable":
        rules: List[PatternRule] = []
        for entry in entries or ():
            source = str(entry.get("pattern", ""))
            name = str(entry.get("family") or source)
            if not source:
                continue
            try:
                rules.append(PatternRule(name, re.compile(source, flags)))
            except re.error as exc:
                logger.error("Ignoring invalid pattern %r (%s): %s", source, name, exc)
        return cls(rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[PatternRule]:
        return iter(self._rules)

    def first_match(self, text: str) -> Optional[PatternRule]:
        for rule in self._rules:
            if rule.pattern.search(text):
                return rule
        return None

    def matches(self, text: str) -> bool:
        return self.first_match(text) is not None


def _compile_optional(source: Optional[str]) -> Optional[Pattern[str]]:
    if not source:
        return None
    try:
        return re.compile(source)
    except re.error as exc:
        logger.error("Ignoring invalid pattern %r: %s", source, exc)
        return None


# ---------------------------------------------------------------------------
# Condition taxonomy
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ConditionTaxonomy:
    """Skip-worthy condition families."""

    table: PatternTable = field(default_factory=PatternTable)

    @classmethod
    def from_config(cls, data: Dict[str, Any]) -> "ConditionTaxonomy":
        return cls(PatternTable.from_entries(data.get("skip_patterns", [])))

    def classify(self, conditions: str) -> Optional[str]:
        """Return the family name matching *conditions*, if any."""
        rule = self.table.first_match(conditions)
        return rule.name if rule else None

    def should_skip(self, conditions: str) -> bool:
        return bool(conditions) and self.table.matches(conditions)


# ---------------------------------------------------------------------------
# List heuristics
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ListHeuristics:
    large_list_item_threshold: int = 5
    short_fragment_max_length: int = 50
    introductory_suffixes: Tuple[str, ...] = (":", ";")
    introductory: PatternTable = field(default_factory=PatternTable)
    nesting_classes: frozenset = frozenset()
    actions: PatternTable = field(default_factory=PatternTable)
    explanatory: PatternTable = field(default_factory=PatternTable)
    continuation: PatternTable = field(default_factory=PatternTable)
    continuation_classes: frozenset = frozenset()
    indentation_style_properties: Tuple[str, ...] = ()
    processed_marker: str = "data-list-normalized"

    @classmethod
    def from_config(cls, data: Dict[str, Any]) -> "ListHeuristics":
        return cls(
            large_list_item_threshold=int(data.get("large_list_item_threshold", 5)),
            short_fragment_max_length=int(data.get("short_fragment_max_length", 50)),
            introductory_suffixes=tuple(data.get("introductory_suffixes", (":", ";"))),
            introductory=PatternTable.from_patterns(data.get("introductory_patterns", [])),
            nesting_classes=frozenset(c.lower() for c in data.get("nesting_classes", [])),
            actions=PatternTable.from_patterns(data.get("action_patterns", [])),
            explanatory=PatternTable.from_patterns(data.get("explanatory_patterns", [])),
            continuation=PatternTable.from_patterns(data.get("continuation_patterns", [])),
            continuation_classes=frozenset(c.lower() for c in data.get("continuation_classes", [])),
            indentation_style_properties=tuple(
                p.lower() for p in data.get("indentation_style_properties", [])
            ),
            processed_marker=str(data.get("processed_marker", "data-list-normalized")),
        )

    def introduces_list(self, text: str) -> bool:
        """True when item *text* announces the list that follows it."""
        stripped = text.strip()
        if not stripped:
            return False
        if stripped.endswith(self.introductory_suffixes):
            return True
        return self.introductory.matches(stripped.lower())

    def looks_like_action(self, text: str) -> bool:
        return self.actions.matches(text.strip().lower())

    def is_explanatory(self, text: str) -> bool:
        return self.explanatory.matches(text.strip().lower())

    def is_short_fragment(self, text: str) -> bool:
        stripped = text.strip()
        return (
            0 < len(stripped) < self.short_fragment_max_length
            and not re.search(r"[.!?]$", stripped)
        )

    def is_continuation(self, text: str, classes: Iterable[str] = (), style: Dict[str, str] | None = None) -> bool:
        """True when content reads as belonging to the preceding list item."""
        stripped = text.strip()
        if not stripped:
            return False
        if re.match(r"^\d+[.)]\s", stripped):
            return False
        if self.continuation.matches(stripped):
            return True
        if any(c.lower() in self.continuation_classes for c in classes):
            return True
        if style and any(prop in style for prop in self.indentation_style_properties):
            return True
        return self.is_explanatory(stripped) or self.is_short_fragment(stripped)


# ---------------------------------------------------------------------------
# Image classification
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ImageRules:
    inline_class_markers: Tuple[str, ...] = ()
    screenshot_path: Optional[Pattern[str]] = None
    screenshot_name_markers: Tuple[str, ...] = ()
    ui_icon_path: Optional[Pattern[str]] = None
    max_inline_dimension: int = 32
    bullet: Optional[Pattern[str]] = None

    @classmethod
    def from_config(cls, data: Dict[str, Any]) -> "ImageRules":
        return cls(
            inline_class_markers=tuple(data.get("inline_class_markers", [])),
            screenshot_path=_compile_optional(data.get("screenshot_path_pattern")),
            screenshot_name_markers=tuple(data.get("screenshot_name_markers", [])),
            ui_icon_path=_compile_optional(data.get("ui_icon_path_pattern")),
            max_inline_dimension=int(data.get("max_inline_dimension", 32)),
            bullet=_compile_optional(data.get("bullet_pattern")),
        )

    def is_inline(self, src: str, classes: Iterable[str], width: Optional[str], height: Optional[str]) -> bool:
        """Classify an image as inline (kept with text) or block (own paragraph)."""
        if any(marker in cls for cls in classes for marker in self.inline_class_markers):
            return True
        if self.screenshot_path is not None and self.screenshot_path.search(src):
            return False
        if any(marker in src for marker in self.screenshot_name_markers):
            return False
        if self.ui_icon_path is not None and self.ui_icon_path.search(src):
            return True
        w, h = _dimension(width), _dimension(height)
        if w is not None and h is not None:
            return w <= self.max_inline_dimension and h <= self.max_inline_dimension
        return False


def _dimension(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    match = re.match(r"\s*(\d+)", value)
    return int(match.group(1)) if match else None


# ---------------------------------------------------------------------------
# Bundle
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PipelineRules:
    conditions: ConditionTaxonomy = field(default_factory=ConditionTaxonomy)
    lists: ListHeuristics = field(default_factory=ListHeuristics)
    images: ImageRules = field(default_factory=ImageRules)

    @classmethod
    def from_config(cls, config: Optional[ConfigManager] = None) -> "PipelineRules":
        config = config or ConfigManager()
        return cls(
            conditions=ConditionTaxonomy.from_config(config.get_condition_taxonomy()),
            lists=ListHeuristics.from_config(config.get_list_heuristics()),
            images=ImageRules.from_config(config.get_image_classification()),
        )
