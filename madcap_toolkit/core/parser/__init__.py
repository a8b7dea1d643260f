from __future__ import annotations

"""Markup parsers.

Provides lenient HTML parsing of Flare topics into the toolkit node tree and
reading of ``.flvar`` variable set files.
"""

from .html_parser import body_of, clean_raw_html, parse_html  # noqa: F401
from .flvar_parser import parse_flvar  # noqa: F401

__all__: list[str] = [
    "parse_html",
    "clean_raw_html",
    "body_of",
    "parse_flvar",
]
