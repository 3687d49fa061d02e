"""CLI entrypoints for tsgen commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import load_config
from .errors import TsGenError
from .logging import configure_logging
from .metadata.schema import SchemaMetadataProvider
from .orchestrator import Generator
from .sinks import LoggingSink, RecordingSink


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tsgen",
        description="Generate TypeScript sources from a type model, keeping hand-written regions.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate TypeScript files for the types listed in a model document.",
    )
    _add_verbose_option(generate_parser, suppress_default=True)
    generate_parser.add_argument(
        "model",
        nargs="?",
        default=None,
        help="Path to the YAML model document (defaults to `model` in .tsgen.yml).",
    )
    generate_parser.add_argument(
        "--config",
        default=".",
        help="Path to .tsgen.yml or the directory containing it (defaults to current directory).",
    )
    generate_parser.add_argument(
        "--output",
        default=None,
        help="Override the output directory from the config file.",
    )
    generate_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Render files without writing them.",
    )
    generate_parser.add_argument(
        "--log-file",
        default=None,
        help="Also write detailed logs to this file.",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for tsgen commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    log_file = Path(args.log_file) if getattr(args, "log_file", None) else None
    configure_logging(verbose=bool(args.verbose), log_file=log_file)

    if args.command == "generate":
        try:
            config = load_config(Path(args.config))
            model = Path(args.model) if args.model else config.model
            if model is None:
                parser.exit(1, "No model document given. Pass MODEL or set `model` in .tsgen.yml.\n")
            if args.output:
                config.options.output_dir = Path(args.output).expanduser().resolve()
            provider = SchemaMetadataProvider.from_file(model)
            generator = Generator(provider, config.options)
            if args.dry_run:
                generator.unsubscribe_default_sink()
                generator.subscribe(RecordingSink())
            generator.subscribe(LoggingSink())
            result = generator.generate(provider.generation_spec())
        except TsGenError as exc:
            parser.exit(1, f"tsgen generate failed: {exc}\nRun with --verbose for more details.\n")

        prefix = "Would generate" if args.dry_run else "Generated"
        for path in result.all_files:
            print(f"{prefix} {path}")
        if result.method_count:
            print(f"{result.method_count} service method(s)")
        if result.errors:
            for key, message in sorted(result.errors.items()):
                print(f"error: {key}: {message}", file=sys.stderr)
            parser.exit(1, f"{len(result.errors)} type(s) failed to generate\n")
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


if __name__ == "__main__":
    main(sys.argv[1:])
