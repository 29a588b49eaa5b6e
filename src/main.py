"""Command-line entry point for playing Inkspire adventures."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
from pathlib import Path
from typing import Sequence

from inkspire import (
    CONTROL_NAMESPACE,
    AdventureEngine,
    EngineSettings,
    EvaluationError,
    ParseError,
    TraversalError,
    TraversalOutcome,
    format_diagnostic,
)
from inkspire.loader import DEFAULT_ADVENTURE, bundled_source

logger = logging.getLogger("inkspire.cli")


def _read_line() -> str:
    return input()


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Play an Inkspire adventure")
    parser.add_argument(
        "adventure_file",
        nargs="?",
        type=Path,
        help="Path to an adventure JSON file. Defaults to the bundled demo.",
    )
    parser.add_argument(
        "--adventure",
        type=str,
        help="Name of the loaded adventure to play (default: the one loaded first).",
    )
    parser.add_argument(
        "--adventure-dir",
        type=Path,
        help=(
            "Directory searched for required adventures. "
            "Defaults to INKSPIRE_ADVENTURE_DIR or the adventure file's directory."
        ),
    )
    parser.add_argument(
        "--history-capacity",
        type=int,
        help="Number of scenes remembered for going back (default: 16).",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Verbosity of diagnostic logging written to stderr.",
    )
    parser.add_argument(
        "--dump",
        action="store_true",
        help="Print the linked adventures as JSON instead of playing.",
    )
    return parser.parse_args(argv)


def _settings_from_args(args: argparse.Namespace) -> EngineSettings:
    settings = EngineSettings.from_env()
    overrides = {}
    if args.adventure_dir is not None:
        overrides["adventure_dir"] = args.adventure_dir
    if args.history_capacity is not None:
        overrides["history_capacity"] = args.history_capacity
    return dataclasses.replace(settings, **overrides) if overrides else settings


def main(argv: Sequence[str] | None = None) -> None:
    """Load, link and play an adventure on the console."""

    args = _parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = _settings_from_args(args)
    except ValueError as exc:
        print(f"Invalid configuration: {exc}")
        raise SystemExit(2) from exc

    engine = AdventureEngine(_read_line, print, settings=settings)
    try:
        if args.adventure_file is not None:
            adventure = engine.load_file(args.adventure_file)
        else:
            adventure = engine.load_mapping(
                bundled_source(DEFAULT_ADVENTURE), source=bundled_source
            )
        engine.link()
    except ParseError as exc:
        print(format_diagnostic(exc))
        raise SystemExit(2) from exc
    except EvaluationError as exc:
        print(f"Failed to initialise adventure variables: {exc}")
        raise SystemExit(2) from exc
    except OSError as exc:
        print(f"Failed to load adventure '{args.adventure_file}': {exc}")
        raise SystemExit(2) from exc

    if args.dump:
        payload = [
            loaded.to_payload()
            for name, loaded in engine.adventures.items()
            if name != CONTROL_NAMESPACE
        ]
        print(json.dumps(payload, indent=2))
        return

    adventure_name = args.adventure or adventure.name
    logger.info("Starting adventure %s", adventure_name)
    try:
        outcome = engine.run(adventure_name)
    except (EOFError, KeyboardInterrupt):
        print()
        print("Adventure ended")
        return
    except (EvaluationError, TraversalError) as exc:
        print(f"The adventure cannot continue: {exc}")
        raise SystemExit(1) from exc

    if outcome is TraversalOutcome.NOT_FOUND:
        raise SystemExit(2)
    print("Adventure ended")
    if outcome is TraversalOutcome.EXITED:
        raise SystemExit(0)


if __name__ == "__main__":
    main()
