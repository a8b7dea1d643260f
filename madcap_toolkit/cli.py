from __future__ import annotations

"""Command-line front-end: ``madcap-normalize``.

Normalises one Flare topic and prints (or writes) the resulting XHTML or
its JSON form.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from madcap_toolkit.core.exceptions import MadCapToolkitError
from madcap_toolkit.core.models import OutputFormat, ProcessingContext
from madcap_toolkit.core.services import PreprocessingService
from madcap_toolkit.logging_config import setup_logging

__all__ = ["main", "build_parser"]

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NOT_SKIPPED = 1
EXIT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="madcap-normalize",
        description="Normalise a MadCap Flare topic into clean XHTML",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Resolve snippets and variables, print the normalised XHTML
  %(prog)s Content/Topics/Install.htm

  # Emit {variable} references and the extracted definitions as JSON
  %(prog)s Content/Topics/Install.htm --extract-variables --json -o install.json

  # Exit 0 when the topic carries a skip condition (deprecated, print-only...)
  %(prog)s Content/Topics/Old.htm --check-skip
        """,
    )
    parser.add_argument("input", type=Path, help="Flare topic (.htm/.html) to normalise")
    parser.add_argument("-o", "--output", type=Path, help="Write the result here instead of stdout")

    variables = parser.add_mutually_exclusive_group()
    variables.add_argument(
        "--extract-variables",
        action="store_true",
        help="Replace variables by {kebab-name} references and report their values",
    )
    variables.add_argument(
        "--preserve-variables",
        action="store_true",
        help="Leave MadCap variable elements untouched",
    )

    parser.add_argument(
        "--format",
        choices=[f.value for f in OutputFormat],
        help="Target format; enables format-specific normalisation",
    )
    parser.add_argument("--json", action="store_true", help="Emit the document as JSON")
    parser.add_argument(
        "--check-skip",
        action="store_true",
        help="Only report whether the topic would be skipped (exit 0) or not (exit 1)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug output on the console")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point; returns the process exit status."""
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else None)

    try:
        raw_html = args.input.read_text(encoding="utf-8-sig", errors="replace")
    except OSError as exc:
        logger.error("Could not read %s: %s", args.input, exc)
        return EXIT_ERROR

    service = PreprocessingService()
    if args.check_skip:
        skip = service.should_skip_document(raw_html)
        logger.info("%s: %s", args.input, "skip" if skip else "keep")
        return EXIT_OK if skip else EXIT_NOT_SKIPPED

    options = ProcessingContext(
        extract_variables=args.extract_variables,
        preserve_variables=args.preserve_variables,
        output_format=OutputFormat(args.format) if args.format else None,
        input_path=args.input,
    )
    try:
        document = service.preprocess(raw_html, options=options)
    except MadCapToolkitError as exc:
        logger.error("%s", exc)
        return EXIT_ERROR

    result = document.to_json(indent=2) if args.json else document.to_html()
    if args.output:
        try:
            args.output.write_text(result + "\n", encoding="utf-8")
        except OSError as exc:
            logger.error("Could not write %s: %s", args.output, exc)
            return EXIT_ERROR
        logger.info("Wrote %s", args.output)
    else:
        sys.stdout.write(result + "\n")

    if document.warnings:
        logger.info("%d warning(s) for %s", len(document.warnings), args.input)
    return EXIT_OK
