from __future__ import annotations

"""Locate the MadCap project a topic belongs to.

Flare projects keep topics and snippets under ``Content/`` and variable sets
under ``Project/VariableSets/``.  Resolution never fails: when no project
layout can be found the document's own directory is used.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from madcap_toolkit.core.utils import normalize_path

__all__ = ["ProjectPaths", "resolve_project_paths"]

logger = logging.getLogger(__name__)

CONTENT_DIR_NAME = "Content"


@dataclass(frozen=True)
class ProjectPaths:
    root: Path

    @property
    def content_dir(self) -> Path:
        return self.root / CONTENT_DIR_NAME

    @property
    def snippets_dir(self) -> Path:
        return self.content_dir / "Resources" / "Snippets"

    @property
    def variable_sets_dir(self) -> Path:
        return self.root / "Project" / "VariableSets"


def resolve_project_paths(input_path: Union[str, Path]) -> ProjectPaths:
    """Return the best-effort project layout for *input_path*.

    1. Walk up from the file's directory until a directory containing a
       ``Content`` sub-directory is found.
    2. Otherwise cut the path at its ``/Content/`` segment.
    3. Otherwise use the file's own directory.
    """
    path = normalize_path(input_path)
    start = path.parent

    for candidate in (start, *start.parents):
        if (candidate / CONTENT_DIR_NAME).is_dir():
            return ProjectPaths(root=candidate)

    marker = f"/{CONTENT_DIR_NAME}/"
    as_posix = path.as_posix()
    if marker in as_posix:
        root = Path(as_posix.split(marker, 1)[0] or "/")
        logger.debug("Project root for %s inferred from path text: %s", path, root)
        return ProjectPaths(root=root)

    logger.debug("No project layout found for %s, using %s", path, start)
    return ProjectPaths(root=start)
