from __future__ import annotations

"""Exception classes for the normalisation pipeline.

Only :class:`DocumentParseError` and :class:`PipelineInvariantError` ever
leave :func:`~madcap_toolkit.core.services.preprocessing_service.preprocess`.
Everything else is raised and caught inside the pipeline where a single
construct degrades to a placeholder and a warning.
"""

from pathlib import Path
from typing import List, Optional, Union

__all__ = [
    "MadCapToolkitError",
    "DocumentParseError",
    "VariableSetError",
    "SnippetError",
    "CircularSnippetError",
    "PipelineInvariantError",
]


class MadCapToolkitError(Exception):
    """Base exception for all toolkit errors.

    Carries the path of the file being processed (when known) and the
    underlying exception so batch callers can report both.
    """

    def __init__(self, message: str, input_path: Optional[Union[str, Path]] = None,
                 cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.input_path = Path(input_path) if input_path is not None else None
        self.cause = cause

    def __str__(self) -> str:
        if self.input_path is not None:
            return f"[{self.input_path}] {super().__str__()}"
        return super().__str__()


class DocumentParseError(MadCapToolkitError):
    """Raised when a document cannot be parsed even leniently."""
    pass


class VariableSetError(MadCapToolkitError):
    """Raised when a ``.flvar`` file is unreadable or not XML."""
    pass


class SnippetError(MadCapToolkitError):
    """Raised when a snippet cannot be located, read or parsed."""

    def __init__(self, message: str, src: str, input_path: Optional[Union[str, Path]] = None,
                 cause: Optional[Exception] = None) -> None:
        super().__init__(message, input_path, cause)
        self.src = src


class CircularSnippetError(SnippetError):
    """Raised when a snippet is already being loaded higher up the chain."""
    pass


class PipelineInvariantError(MadCapToolkitError):
    """Raised when the finished tree violates a structural invariant.

    This signals a bug in one of the passes rather than bad input.
    """

    def __init__(self, violations: List[str], input_path: Optional[Union[str, Path]] = None) -> None:
        self.violations = list(violations)
        summary = "; ".join(self.violations[:5])
        if len(self.violations) > 5:
            summary += f" (+{len(self.violations) - 5} more)"
        super().__init__(f"Normalised tree violates invariants: {summary}", input_path)
