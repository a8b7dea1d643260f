"""Top-level package for the MadCap Flare normalisation toolkit.

Front-ends (CLI, batch runners, converters to other formats) should only
depend on the public API exposed here rather than importing internal modules
directly.
"""

from .core.context import PipelineContext
from .core.exceptions import (
    CircularSnippetError,
    DocumentParseError,
    MadCapToolkitError,
    PipelineInvariantError,
    SnippetError,
    VariableSetError,
)
from .core.models import ExtractedVariable, NormalizedDocument, OutputFormat, ProcessingContext
from .core.services import PreprocessingService, preprocess, should_skip_document

__version__ = "1.0.0"

__all__: list[str] = [
    "preprocess",
    "should_skip_document",
    "PreprocessingService",
    "PipelineContext",
    "ProcessingContext",
    "OutputFormat",
    "NormalizedDocument",
    "ExtractedVariable",
    "MadCapToolkitError",
    "DocumentParseError",
    "VariableSetError",
    "SnippetError",
    "CircularSnippetError",
    "PipelineInvariantError",
]
