from __future__ import annotations

"""Shared read-mostly caches used across a batch run.

Both caches are safe for concurrent readers.  Population is
insert-if-absent under a short lock; two threads racing on the same miss may
both do the work and the second result, equal to the first, is discarded.
"""

import logging
import threading
from collections import OrderedDict
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from madcap_toolkit.core.models import ExtractedVariable, Node
from madcap_toolkit.core.utils import normalize_path

__all__ = ["FileContentCache", "SnippetCache", "CachedSnippet", "DEFAULT_FILE_CACHE_SIZE"]

logger = logging.getLogger(__name__)

DEFAULT_FILE_CACHE_SIZE = 500


class FileContentCache:
    """LRU cache of file bytes keyed by path and modification time."""

    def __init__(self, max_entries: int = DEFAULT_FILE_CACHE_SIZE) -> None:
        self._max_entries = max(1, max_entries)
        self._entries: "OrderedDict[Path, Tuple[int, bytes]]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def read_bytes(self, path: Path) -> bytes:
        """Return the content of *path*, re-reading only when its mtime changed.

        Raises
        ------
        OSError
            If the file does not exist or cannot be read.
        """
        key = normalize_path(path)
        mtime = key.stat().st_mtime_ns

        with self._lock:
            cached = self._entries.get(key)
            if cached is not None and cached[0] == mtime:
                self._entries.move_to_end(key)
                self.hits += 1
                return cached[1]

        data = key.read_bytes()

        with self._lock:
            self.misses += 1
            self._entries[key] = (mtime, data)
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("File cache evicted %s", evicted)
        return data

    def read_text(self, path: Path) -> str:
        return self.read_bytes(path).decode("utf-8-sig", errors="replace")

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


@dataclass(frozen=True)
class CachedSnippet:
    nodes: Tuple[Node, ...]
    variables: Tuple[ExtractedVariable, ...] = ()


class SnippetCache:
    """Resolved snippet bodies keyed by ``(path, variant)``.

    *variant* encodes the variable mode the body was resolved with.  Stored
    nodes are never handed out directly: :meth:`get` returns a deep copy so
    every splice owns its nodes.
    """

    def __init__(self) -> None:
        self._entries: Dict[Tuple[Path, str], CachedSnippet] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, path: Path, variant: str) -> Optional[CachedSnippet]:
        entry = self._entries.get((normalize_path(path), variant))
        if entry is None:
            return None
        return CachedSnippet(tuple(deepcopy(list(entry.nodes))), entry.variables)

    def put(self, path: Path, variant: str, nodes: List[Node],
            variables: List[ExtractedVariable] = ()) -> None:
        key = (normalize_path(path), variant)
        entry = CachedSnippet(tuple(deepcopy(nodes)), tuple(variables))
        with self._lock:
            self._entries.setdefault(key, entry)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
