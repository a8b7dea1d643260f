from __future__ import annotations

"""Project variable sets and variable reference resolution.

Variable sets are loaded lazily per project root and kept for the lifetime
of the store.  A root is reloaded only when the list of ``.flvar`` files or
one of their modification times changes, so a long batch run never re-reads
an unchanged file.
"""

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from madcap_toolkit.core.cache import FileContentCache
from madcap_toolkit.core.exceptions import VariableSetError
from madcap_toolkit.core.models import VariableSet
from madcap_toolkit.core.parser.flvar_parser import parse_flvar
from madcap_toolkit.core.project import ProjectPaths
from madcap_toolkit.core.utils import normalize_path

__all__ = ["VariableStore"]

logger = logging.getLogger(__name__)

_Signature = Tuple[Tuple[str, int], ...]


@dataclass
class _VariableIndex:
    """Merged lookup tables for a sequence of variable sets (last write wins)."""

    sets: List[VariableSet] = field(default_factory=list)
    qualified: Dict[str, str] = field(default_factory=dict)
    bare: Dict[str, str] = field(default_factory=dict)

    def add(self, variable_set: VariableSet) -> None:
        self.sets.append(variable_set)
        for name, value in variable_set.variables.items():
            self.qualified[name] = value
            self.bare[name.rsplit(".", 1)[-1]] = value


@dataclass
class _LoadedRoot:
    signature: _Signature
    index: _VariableIndex


class VariableStore:
    """Loads ``.flvar`` files and resolves dotted variable references.

    Lookup order for :meth:`resolve`:

    1. the full ``Namespace.Key`` reference;
    2. the last dot segment as a bare name across every consulted set;
    3. ``None`` - callers choose the fallback placeholder.

    Variables added with :meth:`register` are consulted before file-based
    sets.
    """

    def __init__(self, file_cache: Optional[FileContentCache] = None) -> None:
        self._file_cache = file_cache or FileContentCache()
        self._roots: Dict[Path, _LoadedRoot] = {}
        self._manual = _VariableIndex()
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def load_variable_sets(self, root: Union[str, Path],
                           warnings: Optional[List[str]] = None) -> List[VariableSet]:
        """Return the variable sets of the project at *root*, loading on demand.

        Files are read in name order so later files override earlier ones.
        Unreadable or invalid files are reported through *warnings* and
        skipped.
        """
        key = normalize_path(root)
        directory = ProjectPaths(key).variable_sets_dir
        files = self._variable_files(directory)
        signature = self._signature(files)

        loaded = self._roots.get(key)
        if loaded is not None and loaded.signature == signature:
            return list(loaded.index.sets)

        index = _VariableIndex()
        for path in files:
            try:
                data = self._file_cache.read_bytes(path)
                variable_set = parse_flvar(data, path)
            except OSError as exc:
                self._report(f"Could not read variable set {path}: {exc}", warnings)
                continue
            except VariableSetError as exc:
                self._report(str(exc), warnings)
                continue
            index.add(variable_set)
            logger.debug("Loaded %d variables from %s", len(variable_set.variables), path)

        with self._lock:
            self._roots[key] = _LoadedRoot(signature, index)
        if files:
            logger.info("Variable sets for %s: %d file(s), %d variable(s)",
                        key, len(index.sets), len(index.qualified))
        return list(index.sets)

    @staticmethod
    def _variable_files(directory: Path) -> List[Path]:
        if not directory.is_dir():
            return []
        return sorted(
            p for p in directory.glob("*.flvar")
            if p.is_file() and not p.name.startswith(".")
        )

    @staticmethod
    def _signature(files: List[Path]) -> _Signature:
        signature = []
        for path in files:
            try:
                signature.append((str(path), path.stat().st_mtime_ns))
            except OSError:
                signature.append((str(path), -1))
        return tuple(signature)

    @staticmethod
    def _report(message: str, warnings: Optional[List[str]]) -> None:
        logger.warning(message)
        if warnings is not None:
            warnings.append(message)

    # ------------------------------------------------------------------
    # Programmatic registration
    # ------------------------------------------------------------------
    def add_variable_set(self, variable_set: VariableSet) -> None:
        """Make an in-memory variable set available to every lookup."""
        with self._lock:
            self._manual.add(variable_set)

    def register(self, name: str, value: str) -> None:
        """Register a single variable; *name* may be qualified or bare."""
        self.add_variable_set(VariableSet(source_path=Path("<registered>"), variables={name: value}))

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------
    def _indexes(self, root: Optional[Union[str, Path]]) -> List[_VariableIndex]:
        indexes = [self._manual]
        if root is not None:
            loaded = self._roots.get(normalize_path(root))
            if loaded is not None:
                indexes.append(loaded.index)
        else:
            # Most recently loaded project first.
            indexes.extend(loaded.index for loaded in reversed(list(self._roots.values())))
        return indexes

    def resolve(self, name: str, root: Optional[Union[str, Path]] = None) -> Optional[str]:
        """Resolve a variable reference.

        Args:
            name: Reference such as ``General.ProductName`` or ``ProductName``.
            root: Project root to consult.  When omitted every loaded project
                is consulted, most recently loaded first.

        Returns:
            The variable value, or ``None`` when nothing matches.
        """
        name = (name or "").strip()
        if not name:
            return None
        indexes = self._indexes(root)

        for index in indexes:
            value = index.qualified.get(name)
            if value is not None:
                return value

        bare = name.rsplit(".", 1)[-1]
        for index in indexes:
            value = index.bare.get(bare)
            if value is not None:
                return value
        return None

    def variable_sets(self, root: Optional[Union[str, Path]] = None) -> List[VariableSet]:
        sets: List[VariableSet] = []
        for index in self._indexes(root):
            sets.extend(index.sets)
        return sets
