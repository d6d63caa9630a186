"""
Command-line interface for tmplgen.

Usage:
  tmplgen --data data.json [-d NAME=VALUE]... [-i] TEMPLATE[=OUTPUT]...
"""

import argparse
from typing import List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import load_config
from .exceptions import TmplGenError, UsageError
from .formatters import ExternalFormatter, select_formatter
from .generator import GenerationResult, run
from .jsonc import load_data
from .logging_config import configure_logging, get_logger
from .paths import parse_paths
from .templates import bind, parse_variables

logger = get_logger(__name__)

# Diagnostics and summaries go to stderr; stdout stays clean
console = Console(stderr=True)


def create_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="tmplgen",
        description="Render templates against a JSON data document",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tmplgen --data types.json numeric.gen.go.tmpl
  tmplgen --data types.json -d Pkg=compute kernels.tmpl=kernels_gen.go
  tmplgen --data https://example.com/types.json -i models.py.tmpl
        """.strip(),
    )

    parser.add_argument(
        "paths",
        nargs="*",
        metavar="TEMPLATE[=OUTPUT]",
        help="Template file; output defaults to the name without the template extension",
    )

    parser.add_argument(
        "--data",
        metavar="PATH|URL",
        help="Input JSON data (// and /* */ comments allowed)",
    )

    parser.add_argument(
        "-d",
        dest="define",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Named variable available to templates as D.NAME (repeatable)",
    )

    parser.add_argument(
        "-i",
        dest="external",
        action="store_true",
        default=None,
        help="Format source outputs with external tools (goimports, ruff)",
    )

    parser.add_argument("--config", metavar="FILE", help="JSON configuration file")

    parser.add_argument(
        "--ext",
        metavar="EXT",
        help="Template file extension (default: .tmpl)",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show debug logging and a summary of generated files",
    )

    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    return parser


def _build_overrides(args: argparse.Namespace) -> dict:
    """Collect config overrides given on the command line."""
    overrides = {}

    variables = parse_variables(args.define)
    if variables:
        overrides["variables"] = variables

    if args.external is not None:
        overrides["use_external"] = args.external

    if args.ext:
        overrides["template_ext"] = args.ext

    return overrides


def _print_summary(results: List[GenerationResult]) -> None:
    table = Table(
        title="📊 Generated Files",
        box=box.SIMPLE,
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Template", style="bold")
    table.add_column("Output", style="green")
    table.add_column("Bytes", justify="right")
    table.add_column("Formatted")

    for result in results:
        table.add_row(
            result.spec.input_path,
            result.spec.output_path,
            str(result.size),
            "yes" if result.formatted else "no",
        )

    console.print()
    console.print(table)


def generate(args: argparse.Namespace) -> List[GenerationResult]:
    """
    Run a generation from parsed arguments.

    Raises:
        TmplGenError: On any usage, data, template or formatting failure
    """
    config = load_config(args.config, _build_overrides(args))

    if not args.data:
        raise UsageError("data option is required")

    specs = parse_paths(args.paths, config.template_ext)

    formatter = select_formatter(config.use_external, config.external_commands)
    if isinstance(formatter, ExternalFormatter):
        kinds = {spec.source_kind for spec in specs if spec.source_kind is not None}
        formatter.check_available(kinds)

    data = bind(load_data(args.data), config.variables)
    return run(data, specs, formatter)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    CLI entry point.

    Returns:
        Exit code (0 for success, 1 for any error)
    """
    parser = create_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        results = generate(args)
    except TmplGenError as e:
        logger.debug("Generation failed", exc_info=True)
        console.print(f"[red]✗ Error:[/red] {escape(str(e))}", soft_wrap=True)
        return 1

    if args.verbose:
        _print_summary(results)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
