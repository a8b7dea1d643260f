from __future__ import annotations

"""Rewrite MadCap-specific elements into portable DOM shapes.

A single post-order traversal classifies every element and replaces it with
zero or more nodes:

* ``MadCap:snippetBlock`` / ``MadCap:snippetText`` - inlined by the
  :class:`~madcap_toolkit.core.resolvers.SnippetResolver`.
* ``MadCap:dropDown`` - ``div.madcap-dropdown`` with the hotspot text in
  ``data-title``.
* ``MadCap:xref`` and relative ``<a>`` links - ``.htm`` targets become
  ``.html``.
* ``MadCap:variable`` and ``[data-mc-variable]`` - resolved text, an
  extracted ``{kebab-name}`` reference, or left untouched.
* ``ol[madcap:continue]`` - numbering continued through ``start``.
* ``.mc-note`` / ``.mc-warning`` / ``.mc-heading-N`` / ``.mc-procedure`` -
  re-tagged to ``blockquote``/``hN``/``ol``.

Every ``madcap:*`` attribute is dropped on the way out.
"""

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional

from madcap_toolkit.core.context import ConversionRun, PipelineContext
from madcap_toolkit.core.converter.conditions import ConditionFilter
from madcap_toolkit.core.converter.helpers import INLINE_TAGS
from madcap_toolkit.core.models import Element, ExtractedVariable, Node, Text, serialize
from madcap_toolkit.core.resolvers.snippet_resolver import SnippetResolver
from madcap_toolkit.core.utils import collapse_whitespace, to_kebab_case

__all__ = [
    "MadCapElementTransformer",
    "rewrite_htm_link",
    "variable_name",
    "looks_resolved",
    "DROPDOWN_CLASS",
]

logger = logging.getLogger(__name__)

DROPDOWN_CLASS = "madcap-dropdown collapsible-block"
DEFAULT_DROPDOWN_TITLE = "More Information"

_DROPDOWN_PARTS = frozenset({"madcap:dropdownhead", "madcap:dropdownbody", "madcap:dropdownhotspot"})
_HTM_LINK_RE = re.compile(r"\.htm(?=#|$)", re.IGNORECASE)
_ABSOLUTE_URL_RE = re.compile(r"^(?:[a-z][a-z0-9+.\-]*:|//)", re.IGNORECASE)
_REFERENCE_TEXT_RE = re.compile(r"^(?:\{.*\}|\[%=.*%\])$", re.DOTALL)
_HEADING_CLASS_RE = re.compile(r"^mc-heading(?:-?(\d+))?$", re.IGNORECASE)

# Block containers eligible for semantic re-tagging.
_RETAGGABLE = frozenset({"p", "div", "section", "aside", "blockquote"})
_NOTE_CLASSES = ("mc-note", "note")
_WARNING_CLASSES = ("mc-warning", "warning", "attention")


# ---------------------------------------------------------------------------
# Standalone helpers
# ---------------------------------------------------------------------------


def rewrite_htm_link(href: str) -> str:
    """Rewrite a relative ``.htm[#frag]`` target to ``.html[#frag]``."""
    if not href or _ABSOLUTE_URL_RE.match(href):
        return href
    return _HTM_LINK_RE.sub(".html", href)


def is_madcap_attribute(name: str) -> bool:
    lowered = name.lower()
    return lowered.startswith("madcap:") or lowered == "xmlns:madcap"


def strip_madcap_attributes(element: Element) -> None:
    for key in [k for k in element.attributes if is_madcap_attribute(k)]:
        del element.attributes[key]


def is_variable(element: Element) -> bool:
    name = element.name
    if name == "madcap:variable" or element.has("data-mc-variable"):
        return True
    lowered = [c.lower() for c in element.classes()]
    if any(c == "mc-variable" or c.startswith("mc-variable.") for c in lowered):
        return True
    return element.has("name") and ("variable" in name or any("variable" in c for c in lowered))


def variable_name(element: Element) -> Optional[str]:
    """Return the variable reference carried by *element*.

    Checked in order: ``name``, ``data-mc-variable``, then a class of the form
    ``mc-variable.Ns.Key`` or the pair ``mc-variable Ns.Key``.
    """
    for attr in ("name", "data-mc-variable"):
        value = element.get(attr)
        if value and value.strip():
            return value.strip()

    classes = element.classes()
    for cls in classes:
        if cls.lower().startswith("mc-variable."):
            return cls[len("mc-variable."):]
    if any(c.lower() == "mc-variable" for c in classes):
        for cls in classes:
            if "." in cls and cls.lower() != "mc-variable":
                return cls
    return None


def looks_resolved(text: str) -> bool:
    """True when variable element text is already a literal value."""
    text = text.strip()
    return bool(text) and "." not in text and not _REFERENCE_TEXT_RE.match(text)


# ---------------------------------------------------------------------------
# Transformer
# ---------------------------------------------------------------------------


class MadCapElementTransformer:
    """Post-order rewrite of MadCap constructs for one document or snippet."""

    def __init__(self, context: PipelineContext, run: ConversionRun,
                 document_path: Optional[Path] = None) -> None:
        self._context = context
        self._run = run
        self._document_path = document_path
        self._snippets = SnippetResolver(context)
        # Running item count of the last ordered list seen at each depth.
        self._list_counts: Dict[int, int] = {}

    def apply(self, root: Element) -> None:
        root.children = self._transform_children(root.children, 1)
        strip_madcap_attributes(root)

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------
    def _transform_children(self, children: List[Node], depth: int,
                            keep_dropdown_parts: bool = False) -> List[Node]:
        result: List[Node] = []
        for child in children:
            if isinstance(child, Element):
                result.extend(self._transform(child, depth, keep_dropdown_parts))
            else:
                result.append(child)
        return result

    def _transform(self, element: Element, depth: int, keep_dropdown_parts: bool) -> List[Node]:
        name = element.name

        if name == "madcap:snippetblock":
            return self._snippets.resolve_block(element, self._run, self._document_path, self._process_snippet_body)
        if name == "madcap:snippettext":
            return self._snippets.resolve_text(element, self._run, self._process_snippet_body)
        if is_variable(element):
            return self._variable(element)

        element.children = self._transform_children(
            element.children, depth + 1, keep_dropdown_parts=(name == "madcap:dropdown")
        )

        if name == "madcap:dropdown":
            return [self._dropdown(element)]
        if name in _DROPDOWN_PARTS:
            if keep_dropdown_parts:
                return [element]
            return element.children
        if name == "madcap:xref" or name == "a":
            return self._xref(element)
        if name.startswith("madcap:"):
            # Index keywords, conditional text, toggler targets...: keep content only.
            logger.debug("Unwrapping <%s>", element.tag)
            return element.children

        if name == "ol":
            self._continue_list(element, depth)
        self._apply_semantic_class(element)
        strip_madcap_attributes(element)
        return [element]

    def _process_snippet_body(self, body: Element, snippet_path: Path) -> None:
        ConditionFilter(self._context.rules.conditions).apply(body)
        MadCapElementTransformer(self._context, self._run, snippet_path).apply(body)

    # ------------------------------------------------------------------
    # Dropdowns
    # ------------------------------------------------------------------
    def _dropdown(self, element: Element) -> Element:
        head = body = None
        for child in element.element_children():
            if child.name in ("madcap:dropdownhead", "madcap:dropdownhotspot") and head is None:
                head = child
            elif child.name == "madcap:dropdownbody" and body is None:
                body = child

        title = collapse_whitespace(head.text_content()).strip() if head is not None else ""
        if body is not None:
            content = body.children
        else:
            self._run.warn("Dropdown without a dropDownBody; keeping its remaining content")
            content = [c for c in element.children if c is not head]

        attributes = {
            k: v for k, v in element.attributes.items()
            if not is_madcap_attribute(k) and k.lower() != "class"
        }
        attributes["class"] = DROPDOWN_CLASS
        attributes["data-title"] = title or DEFAULT_DROPDOWN_TITLE
        return Element("div", attributes, content)

    # ------------------------------------------------------------------
    # Cross-references
    # ------------------------------------------------------------------
    def _xref(self, element: Element) -> List[Node]:
        href = (element.get("href") or "").strip()
        is_madcap = element.name == "madcap:xref"

        if not href:
            if is_madcap:
                return element.children
            strip_madcap_attributes(element)
            return [element]

        new_href = rewrite_htm_link(href)
        attributes = {k: v for k, v in element.attributes.items() if not is_madcap_attribute(k)}
        for key in list(attributes):
            if key.lower() == "href":
                attributes[key] = new_href

        children = element.children
        if is_madcap and not element.text_content().strip() and not element.element_children():
            children = [Text(f"See {new_href}")]
        return [Element("a", attributes, children)]

    # ------------------------------------------------------------------
    # Variables
    # ------------------------------------------------------------------
    def _variable(self, element: Element) -> List[Node]:
        if self._run.options.preserve_variables:
            return [element]

        name = variable_name(element)
        if not name:
            markup = serialize(element)[:50]
            self._run.warn(f"Variable element without a name: {markup}")
            return [Text(f"{{Variable: {markup}...}}")]

        text = collapse_whitespace(element.text_content()).strip()
        store = self._context.variable_store
        root = self._run.project.root if self._run.project else None

        if self._run.options.extract_variables:
            reference = to_kebab_case(name)
            value = store.resolve(name, root)
            if value is None and looks_resolved(text):
                value = text
            if value is None:
                self._run.warn(f"Unresolved variable {name}; emitting {{{reference}}} without a definition")
            else:
                self._run.record_variable(ExtractedVariable(reference, value))
            return [Text(f"{{{reference}}}")]

        if looks_resolved(text):
            return [Text(text)]
        value = store.resolve(name, root)
        if value is None:
            self._run.warn(f"Unresolved variable {name}")
            return [Text(f"{{{name}}}")]
        return [Text(value)]

    # ------------------------------------------------------------------
    # Lists and semantic classes
    # ------------------------------------------------------------------
    def _continue_list(self, element: Element, depth: int) -> None:
        items = sum(1 for c in element.element_children() if c.name == "li")
        continues = (element.get("madcap:continue") or "").strip().lower() == "true"
        if continues:
            start = self._list_counts.get(depth, 0) + 1
            element.set("start", str(start))
        else:
            start = _int_or(element.get("start"), 1)
        self._list_counts[depth] = start - 1 + items

    @staticmethod
    def _apply_semantic_class(element: Element) -> None:
        if element.name in INLINE_TAGS:
            return
        classes = [c.lower() for c in element.classes()]
        if not classes:
            return

        if element.name in _RETAGGABLE:
            if any(c in _WARNING_CLASSES for c in classes):
                element.tag = "blockquote"
                element.set("class", "warning")
                return
            if any(c in _NOTE_CLASSES for c in classes):
                element.tag = "blockquote"
                element.set("class", "note")
                return
            for cls in classes:
                match = _HEADING_CLASS_RE.match(cls)
                if match:
                    level = min(int(match.group(1) or 2), 6)
                    element.tag = f"h{max(level, 1)}"
                    return

        if "mc-procedure" in classes and element.name in ("div", "ul"):
            element.tag = "ol"


def _int_or(value: Optional[str], default: int) -> int:
    try:
        return int((value or "").strip())
    except ValueError:
        return default
