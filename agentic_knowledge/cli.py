"""CLI entrypoints for agentic-knowledge commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List

from .config import PRESETS, preset_docset
from .errors import KnowledgeError
from .logging import configure_logging
from .sync import DocsetOutcome, DocsetStatus, DocsetSynchronizer, OutcomeStatus


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS if suppress_default else False,
        help="Increase log verbosity for troubleshooting.",
    )


def _add_force_option(parser: argparse.ArgumentParser, help_text: str) -> None:
    parser.add_argument("--force", action="store_true", help=help_text)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agentic-knowledge",
        description="Download, filter and keep documentation docsets in sync.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to .knowledge/config.yaml (defaults to searching upwards from cwd).",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write logs to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    create_parser = subparsers.add_parser(
        "create", help="Add a new docset to the configuration from a preset."
    )
    _add_verbose_option(create_parser, suppress_default=True)
    create_parser.add_argument("--preset", required=True, choices=PRESETS, help="Preset type.")
    create_parser.add_argument("--id", dest="docset_id", required=True, help="Unique docset ID.")
    create_parser.add_argument("--name", required=True, help="Human-readable docset name.")
    create_parser.add_argument("--description", default=None, help="Docset description.")
    create_parser.add_argument("--url", default=None, help="Git repository URL (git-repo preset).")
    create_parser.add_argument("--path", default=None, help="Local folder path (local-folder preset).")
    create_parser.add_argument("--branch", default="main", help="Git branch (default: main).")

    init_parser = subparsers.add_parser(
        "init", help="Download or link the sources of a docset."
    )
    _add_verbose_option(init_parser, suppress_default=True)
    init_parser.add_argument("docset", help="Identifier of the docset to initialize.")
    _add_force_option(init_parser, "Clear and reinitialize an existing docset.")

    refresh_parser = subparsers.add_parser(
        "refresh", help="Re-fetch docsets whose upstream content changed."
    )
    _add_verbose_option(refresh_parser, suppress_default=True)
    refresh_parser.add_argument(
        "docset",
        nargs="?",
        default=None,
        help="Identifier of the docset to refresh (defaults to all docsets).",
    )
    _add_force_option(refresh_parser, "Refresh even when upstream content is unchanged.")

    status_parser = subparsers.add_parser(
        "status", help="Show initialization state of every docset."
    )
    _add_verbose_option(status_parser, suppress_default=True)

    discover_parser = subparsers.add_parser(
        "discover",
        help="Write compact path patterns of a docset's loaded files back to config.",
    )
    _add_verbose_option(discover_parser, suppress_default=True)
    discover_parser.add_argument("docset", help="Identifier of the docset to inspect.")

    instructions_parser = subparsers.add_parser(
        "instructions", help="Print search instructions for a docset."
    )
    _add_verbose_option(instructions_parser, suppress_default=True)
    instructions_parser.add_argument("docset", help="Identifier of the docset to search.")
    instructions_parser.add_argument("keywords", nargs="+", help="Keywords to search for.")
    instructions_parser.add_argument(
        "--generalized",
        default="",
        help="Broader keywords to fall back to when the exact ones find nothing.",
    )

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP status/refresh service.")
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for agentic-knowledge commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    if args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port, config_path=args.config)
        return

    synchronizer = DocsetSynchronizer(args.config)

    try:
        if args.command == "create":
            _create_docset(synchronizer, args)
        elif args.command == "init":
            outcome = synchronizer.init_docset(args.docset, force=bool(args.force))
            _print_outcome(outcome)
            if not outcome.ok:
                parser.exit(1, _failure_hint("init"))
        elif args.command == "refresh":
            if args.docset:
                outcomes = [synchronizer.refresh_docset(args.docset, force=bool(args.force))]
            else:
                outcomes = synchronizer.refresh_all(force=bool(args.force))
            for outcome in outcomes:
                _print_outcome(outcome)
            if any(not outcome.ok for outcome in outcomes):
                parser.exit(1, _failure_hint("refresh"))
        elif args.command == "status":
            _print_status(synchronizer.status(), verbose=bool(args.verbose))
        elif args.command == "discover":
            patterns = synchronizer.discover_paths(args.docset)
            print(f"Updated paths for {args.docset}:")
            for pattern in patterns:
                print(f"  - {pattern}")
        elif args.command == "instructions":
            print(
                synchronizer.search_instructions(
                    args.docset,
                    " ".join(args.keywords),
                    generalized_keywords=args.generalized,
                )
            )
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")
    except KnowledgeError as exc:
        parser.exit(
            1,
            f"agentic-knowledge {args.command} failed: {exc.message}\n"
            "Run with --verbose for more details.\n",
        )


def _create_docset(synchronizer: DocsetSynchronizer, args: argparse.Namespace) -> None:
    manager = synchronizer.config_manager
    docset = preset_docset(
        args.preset,
        docset_id=args.docset_id,
        name=args.name,
        project_root=manager.load().project_root,
        description=args.description,
        url=args.url,
        path=args.path,
        branch=args.branch,
    )
    manager.add_docset(docset)
    print(f"Created docset '{docset.id}'")
    print(f"  Config saved to: {manager.config_path}")


def _print_outcome(outcome: DocsetOutcome) -> None:
    if outcome.status in (OutcomeStatus.SKIPPED, OutcomeStatus.NOT_INITIALIZED):
        print(f"{outcome.docset_id}: {outcome.message}")
        return
    print(f"{outcome.docset_id}: {outcome.status.value} ({outcome.total_files} files)")
    for source in outcome.sources:
        line = f"  [{source.index}] {source.kind} {source.locator}: {source.status.value}"
        if source.error:
            line += f" - {source.error}"
        print(line)
    if outcome.message and outcome.status is OutcomeStatus.FAILED:
        print(f"  {outcome.message}")


def _print_status(statuses: List[DocsetStatus], *, verbose: bool) -> None:
    if not statuses:
        print("No docsets configured.")
        return
    for status in statuses:
        if status.error:
            print(f"{status.docset_id}: error - {status.error}")
            continue
        if not status.initialized or status.metadata is None:
            print(f"{status.docset_id}: not initialized")
            continue
        metadata = status.metadata
        summary = f"{status.docset_id}: {metadata.total_files} files, last activity {metadata.last_activity}"
        if status.missing_sources:
            summary += f", {status.missing_sources} source(s) missing metadata"
        print(summary)
        if verbose:
            print(f"  path: {status.local_path}")
            for index, source in enumerate(status.sources):
                if source is None:
                    print(f"  [{index}] no metadata")
                else:
                    print(
                        f"  [{index}] {source.source_type} {source.source_url}: "
                        f"{source.files_count} files, downloaded {source.downloaded_at}"
                    )


def _failure_hint(command: str) -> str:
    return f"agentic-knowledge {command} finished with failures. Run with --verbose for more details.\n"


if __name__ == "__main__":
    main(sys.argv[1:])
