from __future__ import annotations

"""High-level preprocessing service for MadCap Flare documents.

Entry-point for any front-end (CLI, batch runner, API) that needs to turn a
raw Flare topic into a normalised DOM tree.  The service wires the passes
together in their fixed order:

project paths -> variable sets -> parse -> condition filter -> MadCap
elements -> list reconstruction -> content splitting -> finalizer ->
invariant check.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from madcap_toolkit.core.context import ConversionRun, PipelineContext
from madcap_toolkit.core.converter.conditions import ConditionFilter
from madcap_toolkit.core.converter.conditions import should_skip_document as _raw_should_skip
from madcap_toolkit.core.converter.content_splitter import ContentSplitter
from madcap_toolkit.core.converter.finalizer import StructuralFinalizer, check_invariants
from madcap_toolkit.core.converter.list_reconstructor import ListReconstructor
from madcap_toolkit.core.converter.madcap_elements import MadCapElementTransformer
from madcap_toolkit.core.exceptions import PipelineInvariantError
from madcap_toolkit.core.models import Element, ExtractedVariable, NormalizedDocument, ProcessingContext
from madcap_toolkit.core.parser.html_parser import parse_html
from madcap_toolkit.core.project import resolve_project_paths
from madcap_toolkit.core.utils import normalize_path

logger = logging.getLogger(__name__)

__all__ = ["PreprocessingService", "preprocess", "should_skip_document"]


class PreprocessingService:
    """Business-logic façade over the normalisation passes."""

    def __init__(self, context: Optional[PipelineContext] = None) -> None:
        # Shared caches and rules; one context may serve a whole batch.
        self.context = context or PipelineContext()
        self.logger = logger
        self._last_variables: List[ExtractedVariable] = []

    # ---------------------------------------------------------------------
    # PUBLIC API
    # ---------------------------------------------------------------------
    def preprocess(
        self,
        raw_html: str,
        input_path: Optional[Union[str, Path]] = None,
        options: Optional[ProcessingContext] = None,
    ) -> NormalizedDocument:
        """Normalise one Flare topic.

        Args:
            raw_html: Document markup as text.
            input_path: Location of the document; enables snippet and variable
                resolution.  ``options.input_path`` takes precedence.
            options: Per-run options; defaults to resolving variables inline.

        Returns:
            NormalizedDocument with the tree, warnings and extracted variables.

        Raises:
            DocumentParseError: If the markup cannot be parsed at all.
            PipelineInvariantError: If the finished tree violates a structural
                invariant.
        """
        options, path = self._resolve_options(options, input_path)
        self.logger.debug("Preprocessing %s", path or "<string>")
        root = parse_html(raw_html, path)
        return self.normalize_tree(root, path, options=options)

    def normalize_tree(
        self,
        root: Element,
        input_path: Optional[Union[str, Path]] = None,
        options: Optional[ProcessingContext] = None,
    ) -> NormalizedDocument:
        """Run every pass after parsing on an already built *root*.

        *root* is modified in place and returned on the result.
        """
        options, path = self._resolve_options(options, input_path)
        run = ConversionRun(options=options, input_path=path)

        if path is not None:
            run.loading.add(path)
            run.project = resolve_project_paths(path)
            self.context.variable_store.load_variable_sets(run.project.root, run.warnings)

        rules = self.context.rules
        condition_filter = ConditionFilter(rules.conditions)
        condition_filter.apply(root)

        MadCapElementTransformer(self.context, run, path).apply(root)
        ListReconstructor(rules.lists).apply(root)
        ContentSplitter(rules.images, rules.lists.processed_marker).apply(root)
        StructuralFinalizer(options.output_format).apply(root)

        violations = check_invariants(root)
        if violations:
            self.logger.error("Invariant check failed for %s: %s", path or "<string>", violations)
            raise PipelineInvariantError(violations, path)

        self._last_variables = list(run.extracted.values())
        self.logger.info(
            "Preprocessed %s (%d condition removal(s), %d warning(s))",
            path.name if path else "<string>",
            len(condition_filter.removed),
            len(run.warnings),
        )
        return NormalizedDocument(
            root=root,
            warnings=run.warnings,
            extracted_variables=list(self._last_variables),
            input_path=path,
        )

    def should_skip_document(self, raw_html: str) -> bool:
        """Return True when *raw_html* carries a skip-family condition anywhere."""
        return _raw_should_skip(raw_html, self.context.rules.conditions)

    def get_extracted_variables(self) -> List[ExtractedVariable]:
        """Variables recorded by the most recent run (extraction mode only)."""
        return list(self._last_variables)

    # ---------------------------------------------------------------------
    # Internal helpers
    # ---------------------------------------------------------------------
    @staticmethod
    def _resolve_options(
        options: Optional[ProcessingContext],
        input_path: Optional[Union[str, Path]],
    ) -> tuple:
        options = options or ProcessingContext()
        raw_path = options.input_path or input_path
        path = normalize_path(raw_path) if raw_path else None
        return options, path


# -------------------------------------------------------------------------
# Module-level convenience wrappers
# -------------------------------------------------------------------------


def preprocess(
    raw_html: str,
    input_path: Optional[Union[str, Path]] = None,
    options: Optional[ProcessingContext] = None,
    context: Optional[PipelineContext] = None,
) -> NormalizedDocument:
    """One-shot :meth:`PreprocessingService.preprocess` with its own context."""
    return PreprocessingService(context).preprocess(raw_html, input_path, options)


def should_skip_document(raw_html: str, context: Optional[PipelineContext] = None) -> bool:
    return PreprocessingService(context).should_skip_document(raw_html)
