from __future__ import annotations

"""Tree rewrite passes.

Each pass takes the ``html`` root produced by the parser and rewrites it in
place.  They run in a fixed order:

1. conditions: remove excluded content, leaving audit comments
2. madcap_elements: snippets, variables, dropdowns, cross-references
3. list_reconstructor: nest sibling sub-lists, attach continuations
4. content_splitter: separate block images from paragraph text
5. finalizer: structure repairs, pruning, text and compliance clean-up

Key modules:
- helpers: Shared element classification utilities
"""

from .conditions import ConditionFilter, should_skip_document  # noqa: F401
from .content_splitter import ContentSplitter  # noqa: F401
from .finalizer import StructuralFinalizer, check_invariants  # noqa: F401
from .list_reconstructor import ListReconstructor  # noqa: F401
from .madcap_elements import MadCapElementTransformer  # noqa: F401

__all__: list[str] = [
    "ConditionFilter",
    "should_skip_document",
    "MadCapElementTransformer",
    "ListReconstructor",
    "ContentSplitter",
    "StructuralFinalizer",
    "check_invariants",
]
