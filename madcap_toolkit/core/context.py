from __future__ import annotations

"""Long-lived pipeline context and per-call run state.

:class:`PipelineContext` is built once per batch and owns every cache the
passes share (file contents, variable sets, resolved snippets) together with
the compiled heuristic rules.  :class:`ConversionRun` holds what belongs to a
single top-level ``preprocess`` call: options, warnings, extracted variables
and the set of snippet files currently being loaded.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set

from madcap_toolkit.core.cache import DEFAULT_FILE_CACHE_SIZE, FileContentCache, SnippetCache
from madcap_toolkit.core.models import ExtractedVariable, ProcessingContext
from madcap_toolkit.core.project import ProjectPaths
from madcap_toolkit.core.rules import PipelineRules
from madcap_toolkit.core.resolvers.variable_store import VariableStore

logger = logging.getLogger(__name__)

__all__ = ["PipelineContext", "ConversionRun"]


class PipelineContext:
    """Shared state for a batch of ``preprocess`` calls.

    Safe to share between threads processing different documents: the caches
    it owns are read-mostly and populated insert-if-absent.
    """

    def __init__(
        self,
        rules: Optional[PipelineRules] = None,
        file_cache_size: int = DEFAULT_FILE_CACHE_SIZE,
    ) -> None:
        """Initialize the context.

        Args:
            rules: Compiled heuristics; loaded from configuration when omitted.
            file_cache_size: LRU bound of the file content cache.
        """
        self.rules = rules or PipelineRules.from_config()
        self.file_cache = FileContentCache(file_cache_size)
        self.variable_store = VariableStore(self.file_cache)
        self.snippet_cache = SnippetCache()
        logger.debug("PipelineContext initialized (file cache bound %d)", file_cache_size)

    def clear_caches(self) -> None:
        """Drop cached files and snippets; loaded variable sets are kept."""
        self.file_cache.clear()
        self.snippet_cache.clear()


@dataclass
class ConversionRun:
    """Mutable state of one top-level ``preprocess`` call."""

    options: ProcessingContext
    input_path: Optional[Path] = None
    project: Optional[ProjectPaths] = None
    warnings: List[str] = field(default_factory=list)
    extracted: Dict[str, ExtractedVariable] = field(default_factory=dict)
    loading: Set[Path] = field(default_factory=set)
    circular_references: int = 0
    _variable_scopes: List[List[ExtractedVariable]] = field(default_factory=list)

    @property
    def variable_mode(self) -> str:
        if self.options.preserve_variables:
            return "preserve"
        if self.options.extract_variables:
            return "extract"
        return "resolve"

    def warn(self, message: str) -> None:
        logger.warning("%s%s", f"{self.input_path}: " if self.input_path else "", message)
        self.warnings.append(message)

    def record_variable(self, variable: ExtractedVariable) -> None:
        self.extracted[variable.name] = variable
        for scope in self._variable_scopes:
            scope.append(variable)

    def open_variable_scope(self) -> None:
        """Start collecting variables recorded while a snippet is resolved."""
        self._variable_scopes.append([])

    def close_variable_scope(self) -> List[ExtractedVariable]:
        return self._variable_scopes.pop()
