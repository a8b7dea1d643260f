from __future__ import annotations

"""Inline MadCap snippets into the host document.

``MadCap:snippetBlock`` pulls the body of another file in as sibling block
content; ``MadCap:snippetText`` pulls it in as inline text.  Snippet bodies
are run through the same semantic passes as the host (conditions, MadCap
elements, nested snippets) before being cached and spliced.

Resolution never raises: a missing file, an unreadable file or a circular
reference produces a labelled placeholder and a warning.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Callable, List, Optional
from urllib.parse import unquote

from madcap_toolkit.core.exceptions import CircularSnippetError, DocumentParseError, SnippetError
from madcap_toolkit.core.models import Element, Node, Text
from madcap_toolkit.core.parser.html_parser import body_of, parse_html
from madcap_toolkit.core.project import ProjectPaths
from madcap_toolkit.core.utils import normalize_path

if TYPE_CHECKING:
    from madcap_toolkit.core.context import ConversionRun, PipelineContext

__all__ = ["SnippetResolver", "text_snippet_path", "PLACEHOLDER_CLASS"]

logger = logging.getLogger(__name__)

PLACEHOLDER_CLASS = "snippet-placeholder"

# Runs the semantic passes over a snippet body, given the snippet's own path.
BodyProcessor = Callable[[Element, Path], None]


def text_snippet_path(src: str, project: ProjectPaths) -> Path:
    """Resolve a ``MadCap:snippetText`` src against the project snippet folder.

    Sources are written relative to wherever the author was, so leading
    ``../`` segments are dropped and both ``Resources/Snippets/X`` and
    ``Snippets/X`` spellings land in ``Content/Resources/Snippets``.
    """
    clean = unquote(src).replace("\\", "/").strip()
    while clean.startswith(("../", "./")):
        clean = clean[3:] if clean.startswith("../") else clean[2:]
    clean = clean.lstrip("/")
    if clean.startswith("Resources/Snippets/"):
        return project.content_dir / clean
    if clean.startswith("Snippets/"):
        clean = clean[len("Snippets/"):]
    return project.snippets_dir / clean


class SnippetResolver:
    """Loads, processes, caches and splices snippet content."""

    def __init__(self, context: "PipelineContext") -> None:
        self._file_cache = context.file_cache
        self._cache = context.snippet_cache

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def resolve_block(self, element: Element, run: "ConversionRun",
                      document_path: Optional[Path], process: BodyProcessor) -> List[Node]:
        """Return the nodes replacing a ``MadCap:snippetBlock`` element."""
        src = (element.get("src") or "").strip()
        try:
            if not src:
                raise SnippetError("Snippet block has no src attribute", src, document_path)
            if document_path is None:
                raise SnippetError(f"Cannot resolve snippet {src} without a document path", src)
            path = normalize_path(document_path.parent / unquote(src))
            return self._load(path, src, run, process)
        except SnippetError as exc:
            run.warn(str(exc))
            return [self.block_placeholder(element, src)]

    def resolve_text(self, element: Element, run: "ConversionRun", process: BodyProcessor) -> List[Node]:
        """Return the inline nodes replacing a ``MadCap:snippetText`` element."""
        src = (element.get("src") or "").strip()
        try:
            if not src:
                raise SnippetError("Snippet text has no src attribute", src, run.input_path)
            if run.project is None:
                raise SnippetError(f"Cannot resolve snippet {src} without a project", src)
            path = normalize_path(text_snippet_path(src, run.project))
            return _inline_nodes(self._load(path, src, run, process))
        except SnippetError as exc:
            run.warn(str(exc))
            return [self.text_placeholder(src)]

    # ------------------------------------------------------------------
    # Placeholders
    # ------------------------------------------------------------------
    @staticmethod
    def block_placeholder(element: Element, src: str) -> Element:
        label = Element("p", children=[
            Element("strong", children=[Text("Content:")]),
            Text(" Snippet from "),
            Element("code", children=[Text(src or "(unknown)")]),
        ])
        return Element("div", {"class": PLACEHOLDER_CLASS}, [label, *element.children])

    @staticmethod
    def text_placeholder(src: str) -> Element:
        return Element("span", {"class": PLACEHOLDER_CLASS}, [Text(f"[Snippet: {src or '(unknown)'}]")])

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def _load(self, path: Path, src: str, run: "ConversionRun", process: BodyProcessor) -> List[Node]:
        if path in run.loading:
            run.circular_references += 1
            raise CircularSnippetError(f"Circular snippet reference: {src} ({path})", src, run.input_path)

        variant = run.variable_mode
        cached = self._cache.get(path, variant)
        if cached is not None:
            for variable in cached.variables:
                run.record_variable(variable)
            logger.debug("Snippet cache hit: %s", path)
            return list(cached.nodes)

        try:
            raw = self._file_cache.read_text(path)
        except OSError as exc:
            raise SnippetError(f"Snippet not found: {src} ({path})", src, run.input_path, exc) from exc
        try:
            body = body_of(parse_html(raw, path))
        except DocumentParseError as exc:
            raise SnippetError(f"Could not parse snippet {src}: {exc}", src, path, exc) from exc

        cycles_before = run.circular_references
        run.loading.add(path)
        run.open_variable_scope()
        try:
            process(body, path)
        finally:
            run.loading.discard(path)
            variables = run.close_variable_scope()

        nodes = _trim_edges(body.children)
        # Bodies holding a cycle placeholder depend on the caller chain.
        if run.circular_references == cycles_before:
            self._cache.put(path, variant, nodes, variables)
        logger.debug("Resolved snippet %s (%d node(s))", path, len(nodes))
        return nodes


def _trim_edges(nodes: List[Node]) -> List[Node]:
    """Drop whitespace-only text at both ends of *nodes*."""
    start, end = 0, len(nodes)
    while start < end and isinstance(nodes[start], Text) and not nodes[start].content.strip():
        start += 1
    while end > start and isinstance(nodes[end - 1], Text) and not nodes[end - 1].content.strip():
        end -= 1
    return nodes[start:end]


def _inline_nodes(nodes: List[Node]) -> List[Node]:
    """Flatten paragraph/div wrappers so snippet content can sit inline."""
    result: List[Node] = []
    for node in nodes:
        if isinstance(node, Text) and not node.content.strip():
            continue
        if isinstance(node, Element) and node.name in ("p", "div"):
            parts = list(node.children)
        else:
            parts = [node]
        if not parts:
            continue
        if result:
            result.append(Text(" "))
        result.extend(parts)

    if result and isinstance(result[0], Text):
        result[0] = Text(result[0].content.lstrip())
    if result and isinstance(result[-1], Text):
        result[-1] = Text(result[-1].content.rstrip())
    return [n for n in result if not (isinstance(n, Text) and not n.content)]
