"""Explain an accommodation resolution from a JSON input file.

Resolves the input against the built-in tool catalog and prints the
provenance report: which rule decided each tool and what it overrode.

Usage:
    python scripts/explain_resolution.py INPUT.json [--format md|json] [--tool TOOL_ID]
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from pydantic import ValidationError

from src.catalog.builtins import register_builtins
from src.catalog.registry import ToolCatalog
from src.config.settings import get_settings
from src.infra.logging import setup_logging
from src.resolution.inputs import parse_resolution_input
from src.resolution.provenance import explain_tool, format_provenance_json, format_provenance_markdown
from src.resolution.resolver import PrecedenceResolver


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Explain an accommodation resolution")
    parser.add_argument("input", type=Path, help="JSON resolution input")
    parser.add_argument(
        "--format",
        choices=("md", "json"),
        default="md",
        help="Report format (default: md)",
    )
    parser.add_argument("--tool", default=None, help="Explain a single tool only")
    args = parser.parse_args(argv)

    settings = get_settings()
    # stdout carries the report
    setup_logging(
        json_output=settings.logging.json_output,
        log_level=settings.logging.level,
        file=sys.stderr,
        cache_loggers=False,
    )

    try:
        payload = json.loads(args.input.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        print(f"error: cannot read {args.input}: {exc}", file=sys.stderr)
        return 1
    if not isinstance(payload, dict):
        print("error: input must be a JSON object", file=sys.stderr)
        return 1

    try:
        context = parse_resolution_input(payload).to_context()
    except ValidationError as exc:
        print(f"error: invalid resolution input:\n{exc}", file=sys.stderr)
        return 1

    catalog = ToolCatalog()
    register_builtins(catalog)
    result = PrecedenceResolver.from_settings(catalog, settings.resolver).resolve(context)

    if args.tool:
        explanation = explain_tool(result.provenance, args.tool)
        if explanation is None:
            print(f"error: no decision recorded for '{args.tool}'", file=sys.stderr)
            return 1
        print(explanation)
        return 0

    if args.format == "json":
        print(format_provenance_json(result.provenance))
    else:
        print(format_provenance_markdown(result.provenance), end="")
    return 0


if __name__ == "__main__":
    sys.exit(main())
