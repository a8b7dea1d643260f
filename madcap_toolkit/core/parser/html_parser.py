from __future__ import annotations

"""Lenient HTML parsing for MadCap Flare topics and snippets.

Flare writes XHTML with a ``MadCap:`` element vocabulary.  libxml2's HTML
parser (through :mod:`lxml.html`) copes with the broken markup but lower-cases
tag names and ignores the self-closing syntax on non-void elements, so the raw
text is pre-cleaned and the original spelling of namespaced tags is restored
while converting to the toolkit's own node tree.
"""

import logging
import re
from pathlib import Path
from typing import Dict, Optional, Union

from lxml import etree as ET
from lxml import html as lxml_html

from madcap_toolkit.core.exceptions import DocumentParseError
from madcap_toolkit.core.models import VOID_ELEMENTS, Comment, Element, Text

__all__ = ["clean_raw_html", "parse_html", "body_of"]

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Raw text clean-up
# ---------------------------------------------------------------------------

_XML_DECLARATION_RE = re.compile(r"<\?xml[^>]*\?>", re.IGNORECASE)
_BLOCK_STRIP_RES = [
    re.compile(r"<head\b[^>]*>.*?</head\s*>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<style\b[^>]*>.*?</style\s*>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<script\b[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL),
]
_TAG_STRIP_RE = re.compile(r"<(?:link|meta)\b[^>]*>", re.IGNORECASE)
_SELF_CLOSING_RE = re.compile(r"<([A-Za-z][\w:.\-]*)(\s[^<>]*?)?\s*/>")
_TAG_NAME_RE = re.compile(r"</?\s*([A-Za-z][\w.\-]*:[\w.\-]+)")


def _expand_self_closing(match: "re.Match[str]") -> str:
    tag = match.group(1)
    attrs = match.group(2) or ""
    if tag.lower() in VOID_ELEMENTS:
        return f"<{tag}{attrs} />"
    return f"<{tag}{attrs}></{tag}>"


def clean_raw_html(raw: str) -> str:
    """Remove head/style/script noise and expand self-closing elements.

    ``<MadCap:variable name="X"/>`` would otherwise swallow every following
    sibling as its children.
    """
    text = _XML_DECLARATION_RE.sub("", raw)
    for pattern in _BLOCK_STRIP_RES:
        text = pattern.sub("", text)
    text = _TAG_STRIP_RE.sub("", text)
    return _SELF_CLOSING_RE.sub(_expand_self_closing, text)


def _tag_spellings(raw: str) -> Dict[str, str]:
    """Map lower-cased namespaced tag names to their first spelling in *raw*."""
    spellings: Dict[str, str] = {}
    for match in _TAG_NAME_RE.finditer(raw):
        original = match.group(1)
        spellings.setdefault(original.lower(), original)
    return spellings


# ---------------------------------------------------------------------------
# lxml -> node tree
# ---------------------------------------------------------------------------


def _convert(el: ET._Element, spellings: Dict[str, str]) -> Element:
    node = Element(tag=spellings.get(el.tag, el.tag), attributes=dict(el.attrib))
    if el.text:
        node.children.append(Text(el.text))
    for child in el:
        if child.tag is ET.Comment:
            node.children.append(Comment(child.text or ""))
        elif isinstance(child.tag, str):
            node.children.append(_convert(child, spellings))
        # Processing instructions and entity nodes carry no content.
        if child.tail:
            node.children.append(Text(child.tail))
    return node


def body_of(root: Element) -> Element:
    """Return the ``body`` element of *root*, creating one when missing."""
    if root.name == "body":
        return root
    body = root.find("body")
    if body is not None:
        return body
    body = Element("body", children=root.children)
    root.children = [body]
    return body


def parse_html(raw: str, input_path: Optional[Union[str, Path]] = None) -> Element:
    """Parse *raw* into an ``html`` element holding a single ``body``.

    Parameters
    ----------
    raw
        Document markup as text.
    input_path
        Only used to label errors.

    Raises
    ------
    DocumentParseError
        If the markup cannot be parsed even in recovery mode.
    """
    if raw is None:
        raise DocumentParseError("No document content supplied", input_path)

    cleaned = clean_raw_html(raw)
    if not cleaned.strip():
        logger.debug("Empty document: %s", input_path or "<string>")
        return Element("html", children=[Element("body")])

    parser = lxml_html.HTMLParser(recover=True, remove_comments=False, remove_pis=True)
    try:
        doc = lxml_html.document_fromstring(cleaned, parser=parser)
    except (ET.ParserError, ET.XMLSyntaxError, ValueError) as exc:
        raise DocumentParseError(f"Could not parse document: {exc}", input_path, exc) from exc

    root = _convert(doc, _tag_spellings(cleaned))
    root.children = [c for c in root.children if not (isinstance(c, Element) and c.name == "head")]
    if root.name != "html":
        root = Element("html", children=[root])
    body_of(root)
    return root
