from __future__ import annotations

"""Simple reusable helper functions.

These helpers are side-effect-free and contain no disk I/O; they can be used
across all layers of the toolkit.
"""

import os
import re
from pathlib import Path
from typing import Dict, Union

__all__ = [
    "to_kebab_case",
    "collapse_whitespace",
    "parse_inline_style",
    "normalize_path",
]

_WHITESPACE_RE = re.compile(r"[ \t\r\n\f]+")


def to_kebab_case(name: str) -> str:
    """Return the attribute-reference form of a MadCap variable name.

    Camel-case humps become dashes and every non ``[a-z0-9-]`` character is
    replaced, so dotted namespaces flatten naturally.

    Examples:
        >>> to_kebab_case("General.ProductName")
        'general-product-name'
        >>> to_kebab_case("Company_URL")
        'company-u-r-l'
    """
    text = re.sub(r"([A-Z])", r"-\1", name).lower()
    text = re.sub(r"[^a-z0-9-]", "-", text)
    text = re.sub(r"-+", "-", text)
    return text.strip("-")


def collapse_whitespace(text: str) -> str:
    """Collapse runs of HTML whitespace into a single space (no trimming)."""
    return _WHITESPACE_RE.sub(" ", text)


def parse_inline_style(style: str | None) -> Dict[str, str]:
    """Parse a ``style`` attribute into a lower-cased property mapping."""
    result: Dict[str, str] = {}
    if not style:
        return result
    for declaration in style.split(";"):
        if ":" not in declaration:
            continue
        prop, value = declaration.split(":", 1)
        prop = prop.strip().lower()
        if prop:
            result[prop] = value.strip().lower()
    return result


def normalize_path(path: Union[str, Path]) -> Path:
    """Return an absolute, normalised path usable as a cache key."""
    return Path(os.path.normpath(os.path.abspath(os.fspath(path))))
