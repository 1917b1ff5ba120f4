"""Main CLI entry point for the xml-indexer command-line tool.

Provides parse summaries, ranked search and multi-format export for XML and
AUTOSAR XML documents.
"""

import argparse
import csv
import io
import json
import sys
import time
from collections import Counter
from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from xml_stream_indexer import __version__
from xml_stream_indexer.api import StreamParserEngine
from xml_stream_indexer.query import FilterType, TreeFilter
from xml_stream_indexer.shared import (
    ConfigError,
    ExportError,
    ExportOptions,
    IndexerConfig,
    ParseOptions,
    ParserState,
    ParseStatus,
    configure_logging,
    get_logger,
)
from xml_stream_indexer.shared.config import MIB

XML_SUFFIXES = (".xml", ".arxml")

logger = get_logger(__name__, component="cli")


class CLIConfig:
    """Configuration management for CLI operations."""

    def __init__(self) -> None:
        self.indexer_config = IndexerConfig.default()
        self.parse_options = ParseOptions()
        self.max_workers: Optional[int] = None  # Use system default
        self.output_format = "json"
        self.verbose = False
        self.quiet = False

    @classmethod
    def from_file(cls, config_path: Path) -> "CLIConfig":
        """Load CLI configuration from a JSON file.

        Recognized keys: ``preset``, ``indexer`` (IndexerConfig dictionary),
        ``parse_options``, ``max_workers`` and ``output_format``.
        """
        config = cls()
        if not config_path.exists():
            return config
        try:
            with config_path.open(encoding="utf-8") as f:
                data = json.load(f)

            if "indexer" in data:
                config.indexer_config = IndexerConfig.from_dict(data["indexer"])
            elif data.get("preset") == "arxml":
                config.indexer_config = IndexerConfig.arxml()

            if "parse_options" in data:
                config.parse_options = ParseOptions.from_dict(data["parse_options"])

            config.max_workers = data.get("max_workers", config.max_workers)
            config.output_format = data.get("output_format", config.output_format)

        except (OSError, ValueError, TypeError, ConfigError) as e:
            print(f"Warning: Could not load config file: {e}", file=sys.stderr)

        return config


class ProgressTracker:
    """Progress bar for a running parse, drawn on stderr."""

    def __init__(self, description: str = "Parsing", enabled: bool = True) -> None:
        self.description = description
        self.enabled = enabled
        self.percentage = 0.0
        self.start_time = time.time()
        self.last_update = 0.0

    def __call__(self, state: ParserState) -> None:
        self.update_to(state.progress)

    def update_to(self, percentage: float) -> None:
        """Record progress and redraw at most every 0.2 seconds or on completion."""
        self.percentage = percentage
        current_time = time.time()
        if current_time - self.last_update >= 0.2 or percentage >= 100.0:
            self._display_progress()
            self.last_update = current_time

    def _display_progress(self) -> None:
        if not self.enabled:
            return
        elapsed = time.time() - self.start_time
        progress_bar = "=" * int(self.percentage // 2)
        progress_bar += " " * (50 - len(progress_bar))
        print(f"\r{self.description}: [{progress_bar}] "
              f"{self.percentage:.1f}% ({elapsed:.1f}s)",
              end="", file=sys.stderr)
        if self.percentage >= 100.0:
            print(file=sys.stderr)


def summarize_engine(engine: StreamParserEngine, path: Path) -> Dict[str, Any]:
    """Build the summary dictionary of a finished parse."""
    state = engine.get_state()
    metrics = engine.get_metrics()
    elements = engine.get_elements() if state.status == ParseStatus.COMPLETE else []
    return {
        "file": str(path),
        "success": state.status == ParseStatus.COMPLETE,
        "status": state.status.value,
        "element_count": len(elements),
        "types": dict(Counter(element.type for element in elements).most_common()),
        "error_count": state.error_count,
        "warning_count": state.warning_count,
        "errors": [error.to_dict() for error in state.errors],
        "warnings": [warning.to_dict() for warning in state.warnings],
        "metrics": metrics.to_dict(),
    }


def summarize_file(
    path: str,
    config_data: Dict[str, Any],
    options_data: Dict[str, Any]
) -> Dict[str, Any]:
    """Parse one file and summarize it; runs inside batch worker processes."""
    config = IndexerConfig.from_dict(config_data).override(dispatch__enable_worker=False)
    engine = StreamParserEngine(config)
    engine.parse_file(Path(path), ParseOptions.from_dict(options_data))
    return summarize_engine(engine, Path(path))


class IndexerProcessor:
    """Core processing logic for CLI operations."""

    def __init__(self, config: CLIConfig) -> None:
        self.config = config

    def parse(self, file_path: Path, show_progress: bool = False) -> StreamParserEngine:
        """Parse a single file with an optional progress bar."""
        engine = StreamParserEngine(self.config.indexer_config)
        tracker = ProgressTracker(f"Parsing {file_path.name}",
                                  enabled=show_progress and not self.config.quiet)
        engine.parse_file(file_path, self.config.parse_options, on_progress=tracker)
        return engine

    def find_xml_files(self, path: Path, recursive: bool = True) -> Iterator[Path]:
        """Find XML and AUTOSAR XML files under a path."""
        if path.is_file():
            yield path
            return
        pattern = "**/*" if recursive else "*"
        for candidate in sorted(path.glob(pattern)):
            if candidate.is_file() and candidate.suffix.lower() in XML_SUFFIXES:
                yield candidate

    def batch_process(self, paths: List[Path], recursive: bool = True) -> List[Dict[str, Any]]:
        """Parse many files, in parallel worker processes when there are several."""
        files = [f for path in paths for f in self.find_xml_files(path, recursive)]
        if not files:
            return []

        if len(files) == 1 or self.config.max_workers == 1:
            return [
                summarize_engine(self.parse(f, show_progress=len(files) == 1), f)
                for f in files
            ]

        config_data = self.config.indexer_config.to_dict()
        options_data = self.config.parse_options.to_dict()
        results: Dict[str, Dict[str, Any]] = {}
        with ProcessPoolExecutor(max_workers=self.config.max_workers) as executor:
            futures = {
                executor.submit(summarize_file, str(f), config_data, options_data): f
                for f in files
            }
            tracker = ProgressTracker("Parsing files", enabled=not self.config.quiet)
            for done, future in enumerate(as_completed(futures), start=1):
                file_path = futures[future]
                try:
                    results[str(file_path)] = future.result()
                except Exception as e:
                    logger.error("Batch parse failed", extra={"file": str(file_path)})
                    results[str(file_path)] = {
                        "file": str(file_path), "success": False,
                        "status": "error", "error_count": 1,
                        "errors": [{"type": "syntax", "message": str(e)}],
                    }
                tracker.update_to(done * 100.0 / len(files))
        return [results[str(f)] for f in files]


def _add_parse_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config", "-c",
        type=Path,
        help="Configuration file path"
    )
    parser.add_argument(
        "--preset",
        choices=["generic", "arxml"],
        help="Classification preset (default: generic)"
    )
    parser.add_argument(
        "--types",
        nargs="+",
        metavar="TYPE",
        help="Keep only elements of these types"
    )
    parser.add_argument(
        "--packages",
        nargs="+",
        metavar="NAME",
        help="Keep only elements below these packages"
    )
    parser.add_argument(
        "--memory-limit",
        type=int,
        metavar="MIB",
        help="Stop parsing once the element estimate exceeds this many MiB"
    )
    parser.add_argument("--max-depth", type=int, help="Maximum retained depth")
    parser.add_argument("--max-elements", type=int, help="Maximum retained elements")
    parser.add_argument(
        "--no-schema",
        action="store_true",
        help="Skip schema validation"
    )
    parser.add_argument(
        "--no-references",
        action="store_true",
        help="Do not extract reference descriptors"
    )


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="xml-indexer",
        description="Streaming XML/ARXML parser with search and export"
    )

    parser.add_argument("--version", action="version", version=__version__)

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Parse command
    parse_parser = subparsers.add_parser("parse", help="Parse files and summarize them")
    parse_parser.add_argument(
        "paths",
        nargs="+",
        type=Path,
        help="Files or directories to parse"
    )
    parse_parser.add_argument(
        "--recursive", "-r",
        action="store_true",
        help="Recursively process directories"
    )
    parse_parser.add_argument(
        "--format", "-f",
        choices=["json", "csv", "text"],
        default="json",
        help="Output format (default: json)"
    )
    parse_parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Output file (default: stdout)"
    )
    parse_parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Number of parallel workers for several files"
    )
    _add_parse_options(parse_parser)

    # Search command
    search_parser = subparsers.add_parser("search", help="Search elements of a file")
    search_parser.add_argument("path", type=Path, help="File to parse")
    search_parser.add_argument("query", help="Search text")
    search_parser.add_argument(
        "--limit", "-n",
        type=int,
        default=20,
        help="Maximum number of results (default: 20)"
    )
    search_parser.add_argument(
        "--format", "-f",
        choices=["json", "text"],
        default="text",
        help="Output format"
    )
    _add_parse_options(search_parser)

    # Export command
    export_parser = subparsers.add_parser("export", help="Export elements of a file")
    export_parser.add_argument("path", type=Path, help="File to parse")
    export_parser.add_argument(
        "--format", "-f",
        choices=["json", "csv", "xml", "arxml"],
        default="xml",
        help="Export format (default: xml)"
    )
    export_parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Output file (default: stdout)"
    )
    export_parser.add_argument(
        "--ids",
        nargs="+",
        help="Export only these element ids (default: all elements)"
    )
    export_parser.add_argument(
        "--filter-type",
        help="Export only elements of this type"
    )
    export_parser.add_argument(
        "--include-metadata",
        action="store_true",
        help="Include metadata columns/fields"
    )
    export_parser.add_argument(
        "--include-references",
        action="store_true",
        help="Include reference descriptors (json)"
    )
    export_parser.add_argument(
        "--compact",
        action="store_true",
        help="Disable pretty printing"
    )
    export_parser.add_argument(
        "--validate-output",
        action="store_true",
        help="Re-read the produced payload and fail if it does not parse"
    )
    _add_parse_options(export_parser)

    # Global options
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Quiet output"
    )

    return parser


def load_config(args: argparse.Namespace) -> CLIConfig:
    """Combine the configuration file with command-line overrides."""
    config = CLIConfig()
    if args.config and args.config.exists():
        config = CLIConfig.from_file(args.config)

    if args.preset == "arxml":
        config.indexer_config = IndexerConfig.arxml()
    elif args.preset == "generic":
        config.indexer_config = IndexerConfig.default()

    overrides: Dict[str, Any] = {}
    if args.types:
        overrides["element_types"] = args.types
    if args.packages:
        overrides["packages"] = args.packages
    if args.memory_limit is not None:
        overrides["memory_limit"] = args.memory_limit * MIB
    if args.max_depth is not None:
        overrides["max_depth"] = args.max_depth
    if args.max_elements is not None:
        overrides["max_elements"] = args.max_elements
    if args.no_schema:
        overrides["validate_schema"] = False
    if args.no_references:
        overrides["enable_references"] = False
    if overrides:
        values = config.parse_options.to_dict()
        values.update(overrides)
        config.parse_options = ParseOptions.from_dict(values)

    config.verbose = args.verbose
    config.quiet = args.quiet
    return config


def format_results(results: List[Dict[str, Any]], format_type: str) -> str:
    """Format parse summaries for output."""
    if format_type == "csv":
        if not results:
            return ""
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(["file", "success", "status", "element_count",
                         "error_count", "warning_count", "parse_time_ms"])
        for result in results:
            metrics = result.get("metrics", {})
            writer.writerow([
                result.get("file", ""),
                result.get("success", False),
                result.get("status", ""),
                result.get("element_count", 0),
                result.get("error_count", 0),
                result.get("warning_count", 0),
                f"{metrics.get('parseTime', 0.0):.2f}",
            ])
        return buffer.getvalue().rstrip("\n")

    elif format_type == "text":
        lines = []
        for result in results:
            status = "OK" if result.get("success") else "FAILED"
            lines.append(f"{status} {result.get('file', '')}")
            lines.append(
                f"   {result.get('element_count', 0)} elements, "
                f"{result.get('error_count', 0)} errors, "
                f"{result.get('warning_count', 0)} warnings"
            )
            for type_label, count in list(result.get("types", {}).items())[:5]:
                lines.append(f"   {type_label}: {count}")
            errors = result.get("errors", [])
            for error in errors[:3]:
                lines.append(f"   Error: {error.get('message', '')}")
            if len(errors) > 3:
                lines.append(f"   ... and {len(errors) - 3} more errors")
            for warning in result.get("warnings", [])[:3]:
                lines.append(f"   Warning: {warning.get('message', '')}")
            lines.append("")
        return "\n".join(lines)

    else:
        return json.dumps(results, indent=2)


def _write_output(text: str, output: Optional[Path]) -> bool:
    if output is None:
        print(text)
        return True
    try:
        output.write_text(text, encoding="utf-8")
    except OSError as e:
        print(f"Error writing output: {e}", file=sys.stderr)
        return False
    print(f"Results written to {output}", file=sys.stderr)
    return True


def _parse_single(args: argparse.Namespace) -> Optional[StreamParserEngine]:
    config = load_config(args)
    engine = IndexerProcessor(config).parse(args.path, show_progress=not args.quiet)
    state = engine.get_state()
    if state.status != ParseStatus.COMPLETE:
        for error in state.errors:
            print(f"Error: {error.message}", file=sys.stderr)
        return None
    return engine


def cmd_parse(args: argparse.Namespace) -> int:
    """Handle parse command."""
    config = load_config(args)
    if args.workers:
        config.max_workers = args.workers
    config.output_format = args.format

    processor = IndexerProcessor(config)
    results = processor.batch_process(args.paths, args.recursive)

    if not _write_output(format_results(results, args.format), args.output):
        return 1
    if not results:
        return 1
    successful = sum(1 for r in results if r.get("success", False))
    return 0 if successful == len(results) else 1


def cmd_search(args: argparse.Namespace) -> int:
    """Handle search command."""
    engine = _parse_single(args)
    if engine is None:
        return 1

    results = engine.search_elements(args.query)[:max(0, args.limit)]
    if args.format == "json":
        print(json.dumps([result.to_dict() for result in results], indent=2))
    else:
        for result in results:
            element = result.element
            print(f"{result.score:>4}  {element.name}  [{element.type}]  "
                  f"{element.path}  (line {element.metadata.line_number})")
        if not results:
            print(f"No elements match '{args.query}'", file=sys.stderr)
    return 0


def cmd_export(args: argparse.Namespace) -> int:
    """Handle export command."""
    engine = _parse_single(args)
    if engine is None:
        return 1

    elements = engine.get_elements()
    if args.filter_type:
        elements = engine.filter_elements(
            elements, [TreeFilter(FilterType.ELEMENT_TYPE, args.filter_type)]
        )
    element_ids = args.ids or [element.id for element in elements]

    options = ExportOptions(
        format=args.format,
        include_metadata=args.include_metadata,
        include_references=args.include_references,
        pretty_print=not args.compact,
        validate_output=args.validate_output,
    )
    try:
        payload = engine.export_elements(element_ids, options)
    except ExportError as e:
        print(f"Export failed: {e}", file=sys.stderr)
        return 1

    if args.output is None:
        sys.stdout.write(payload.text())
        sys.stdout.write("\n")
        return 0
    try:
        args.output.write_bytes(payload.data)
    except OSError as e:
        print(f"Error writing output: {e}", file=sys.stderr)
        return 1
    print(f"Exported {payload.element_count} elements to {args.output}", file=sys.stderr)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    # Set up logging verbosity
    if args.verbose:
        configure_logging("DEBUG")
    elif args.quiet:
        configure_logging("ERROR")
    else:
        configure_logging("WARNING")

    # Route to appropriate command handler
    try:
        if args.command == "parse":
            return cmd_parse(args)
        elif args.command == "search":
            return cmd_search(args)
        elif args.command == "export":
            return cmd_export(args)
        else:
            print(f"Unknown command: {args.command}", file=sys.stderr)
            return 1

    except KeyboardInterrupt:
        print("\nOperation interrupted by user", file=sys.stderr)
        return 130  # Standard exit code for SIGINT


if __name__ == "__main__":
    sys.exit(main())
