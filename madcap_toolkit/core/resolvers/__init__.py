"""Resolution of project-level MadCap resources (variable sets, snippets)."""

from .variable_store import VariableStore
from .snippet_resolver import SnippetResolver, text_snippet_path

__all__ = [
    "VariableStore",
    "SnippetResolver",
    "text_snippet_path",
]
