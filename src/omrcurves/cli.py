"""
Command-line interface for omr-curves.

Provides commands for running the pipeline and writing a default config.
"""

import argparse
import sys

from omrcurves.config import load_config, save_default_config
from omrcurves.tracer import configure_tracer, get_tracer


def main(argv=None):
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="omr-curves: extract arcs, segments and hairpins from music page scans",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Run the full pipeline")
    run_parser.add_argument(
        "--inputs", "-i",
        nargs="+",
        required=True,
        help="Input page images",
    )
    run_parser.add_argument(
        "--out", "-o",
        required=True,
        help="Output directory",
    )
    run_parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to YAML configuration file",
    )
    run_parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug artifact generation",
    )
    run_parser.add_argument(
        "--trace",
        action="store_true",
        help="Enable runtime tracing",
    )
    run_parser.add_argument(
        "--trace-level",
        default="INFO",
        choices=["ERROR", "WARN", "INFO", "DEBUG"],
        help="Trace log level",
    )
    run_parser.add_argument(
        "--trace-file",
        default=None,
        help="Path to write trace logs",
    )
    run_parser.add_argument(
        "--trace-json",
        action="store_true",
        help="Enable JSON trace output",
    )

    init_parser = subparsers.add_parser("init-config", help="Create default config file")
    init_parser.add_argument(
        "--out", "-o",
        default="omrcurves_config.yaml",
        help="Output path for config file",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "run":
        return handle_run(args)
    elif args.command == "init-config":
        return handle_init_config(args)

    return 0


def handle_run(args):
    """Handle the run command."""
    config = load_config(args.config)

    # Command-line switches win over the tracing section of the config file
    settings = config.tracing
    configure_tracer(
        enabled=args.trace or settings.enabled,
        level=args.trace_level if args.trace else settings.level,
        file_path=args.trace_file or settings.file_path,
        json_output=args.trace_json or settings.json_output,
    )

    tracer = get_tracer()

    try:
        from omrcurves.pipeline import run_pipeline

        with tracer.span("cli_run", module="cli"):
            reports = run_pipeline(
                input_paths=args.inputs,
                out_dir=args.out,
                config=config,
                debug=args.debug or config.debug.enabled,
            )
    except (FileNotFoundError, ValueError) as e:
        tracer.event(f"Pipeline failed: {str(e)}", level="ERROR")
        print(f"\nError: {str(e)}", file=sys.stderr)
        return 1

    print("\nPipeline completed successfully.")
    print(f"  Pages processed: {len(reports)}")
    for report in reports:
        print(f"  {report.page_id}: {len(report.arcs)} arcs, "
              f"{len(report.segments)} segments, {len(report.wedges)} wedges")
    print(f"\nReport saved to: {args.out}/report.json")

    return 0


def handle_init_config(args):
    """Handle the init-config command."""
    save_default_config(args.out)
    print(f"Default configuration saved to: {args.out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
