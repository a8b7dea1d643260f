from __future__ import annotations

"""High-level orchestration services.

Services are instantiated directly; a :class:`PipelineContext` may be passed
in to share caches across a batch.
"""

from .preprocessing_service import PreprocessingService, preprocess, should_skip_document  # noqa: F401

__all__: list[str] = [
    "PreprocessingService",
    "preprocess",
    "should_skip_document",
]
