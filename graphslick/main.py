#!/usr/bin/env python3
"""graphslick/main.py: command-line front end.

Usage examples
--------------
    # Show the combined graph of a definition file as DOT
    python -m graphslick show f1.bbgroup --cfg cfg.json

    # Flat view as JSON, highlighting the groups whose name matches "loop"
    python -m graphslick show f1.bbgroup --cfg cfg.json --mode flat \\
        --format json --highlight loop

    # Render through Graphviz (needs the "viz" extra)
    python -m graphslick show f1.bbgroup --cfg cfg.json --render f1.svg

    # Reconcile a definition file with the flowchart and write it back
    python -m graphslick sanitize f1.bbgroup --cfg cfg.json -o f1.fixed.bbgroup

    # Merge combined-view nodes 0 and 3
    python -m graphslick combine f1.bbgroup --cfg cfg.json --nodes 0 3 -o out.bbgroup

    # Find groups by name or id, list the group chooser
    python -m graphslick find f1.bbgroup --cfg cfg.json loop
    python -m graphslick list f1.bbgroup --cfg cfg.json

Exit codes
----------
    0   Success.
    1   User-facing error (bad definition file, unknown function or node,
        empty flowchart, too few groups to combine).
    2   Infrastructure failure (missing file or dependency, internal error).
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence, TextIO

from termcolor import colored

from graphslick import __version__
from graphslick.errors import GraphSlickError
from graphslick.flowchart import JsonCfgProvider
from graphslick.options import GraphSlickOptions, ViewMode
from graphslick.panel import format_lines
from graphslick.sanitizer import ActionKind, SanitizeReport
from graphslick.session import GraphSlickSession

_log = logging.getLogger("graphslick")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INFRA: int = 2


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``graphslick`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("graphslick")
    root.setLevel(level)
    root.addHandler(handler)


def _open_output(dest: Optional[str]) -> TextIO:
    """*dest* ``None`` or ``"-"`` → ``sys.stdout``; otherwise open the path
    for writing (creating parent directories as needed)."""
    if dest is None or dest == "-":
        return sys.stdout
    p = Path(dest).expanduser().resolve()
    p.parent.mkdir(parents=True, exist_ok=True)
    return open(p, "w", encoding="utf-8")


def _write(dest: Optional[str], text: str) -> None:
    stream = _open_output(dest)
    try:
        stream.write(text)
        if not text.endswith("\n"):
            stream.write("\n")
    finally:
        if stream is not sys.stdout:
            stream.close()


def _error(message: str) -> None:
    print(f"{colored('error', 'red', attrs=['bold'])}: {message}", file=sys.stderr)


def _print_report(report: SanitizeReport) -> None:
    styles = {
        ActionKind.DROPPED: "yellow",
        ActionKind.SPLIT: "cyan",
        ActionKind.SYNTHESIZED: "green",
    }
    for action in report:
        tag = colored(action.kind.value, styles[action.kind], attrs=["bold"])
        print(f"{tag}: [{action.sg_id}] {action.message}", file=sys.stderr)


def _open_session(args: argparse.Namespace) -> GraphSlickSession:
    options = GraphSlickOptions.load(args.options) if args.options else GraphSlickOptions()
    for w in options.validate():
        _log.warning("Option problem: %s", w)
    if getattr(args, "mode", None):
        options.start_view_mode = ViewMode.from_string(args.mode)
    if getattr(args, "node_ids", False):
        options.append_node_id = True
    session = GraphSlickSession(JsonCfgProvider(args.cfg), options)
    report = session.load_file(args.definitions)
    if report and not args.quiet:
        _print_report(report)
    return session


# ===========================================================================
# Sub-commands
# ===========================================================================

def cmd_show(args: argparse.Namespace) -> int:
    with _open_session(args) as session:
        view = session.view
        if args.highlight:
            if view.find_and_highlight(args.highlight) is None:
                _log.warning("No group matches %r", args.highlight)
        graph = view.render()
        title = session.flowchart.title

        if args.render:
            target = Path(args.render)
            dot = graph.to_graphviz(title)
            dot.format = target.suffix.lstrip(".") or "svg"
            dot.render(target.with_suffix(""), cleanup=True)
            _log.info("Rendered %s", target)
            return EXIT_OK

        if args.format == "json":
            _write(args.output, json.dumps(graph.to_dict(), indent=2))
        else:
            _write(args.output, graph.to_dot(title))
    return EXIT_OK


def cmd_sanitize(args: argparse.Namespace) -> int:
    with _open_session(args) as session:
        report = session.last_report
        if not args.quiet:
            print(report.summary() if report else "clean", file=sys.stderr)
        _write(args.output, session.gm.dumps())
    return EXIT_OK


def cmd_combine(args: argparse.Namespace) -> int:
    args.mode = ViewMode.COMBINED.value
    with _open_session(args) as session:
        new_group = session.view.combine_request(args.nodes)
        sg = session.gm.find_node_location(new_group.nodes[0].nid).sg
        if not args.quiet:
            print(
                f"combined {len(args.nodes)} node(s) into "
                f"{colored(str(session.view.get_ng_id(new_group)), 'green')} of [{sg.id}]",
                file=sys.stderr,
            )
        _write(args.output, session.gm.dumps())
    return EXIT_OK


def cmd_find(args: argparse.Namespace) -> int:
    with _open_session(args) as session:
        view = session.view
        node_id = view.find_and_highlight(args.pattern)
        if node_id is None:
            _error(f"no group matches {args.pattern!r}")
            return EXIT_ERROR
        lines = []
        for sg in session.gm.find_supergroups(args.pattern):
            ids = [view.get_ng_id(ng) for ng in sg.groups]
            lines.append(f"{sg.id}\t{sg.get_display_name()}\t{ids}")
        lines.append(f"jump: {node_id}")
        _write(args.output, "\n".join(lines))
    return EXIT_OK


def cmd_list(args: argparse.Namespace) -> int:
    with _open_session(args) as session:
        _write(args.output, format_lines(session.lines))
    return EXIT_OK


# ===========================================================================
# Argument parser
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="graphslick",
        description="Group the basic blocks of a function and show the grouped graph.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v INFO, -vv DEBUG).",
    )

    subparsers = parser.add_subparsers(title="commands", dest="command")

    def _add_common_args(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "definitions",
            metavar="BBGROUP",
            help="Group definition file.",
        )
        p.add_argument(
            "--cfg",
            required=True,
            metavar="JSON",
            help="Flowchart export of the function(s).",
        )
        p.add_argument(
            "--options",
            default=None,
            metavar="FILE",
            help="JSON options file.",
        )
        p.add_argument(
            "-o", "--output",
            default=None,
            metavar="FILE",
            help='Output file ("-" or omit for stdout).',
        )
        p.add_argument(
            "-q", "--quiet",
            action="store_true",
            help="Do not print sanitizer findings.",
        )

    # --- show --------------------------------------------------------------
    p_show = subparsers.add_parser("show", help="Print the flat or combined graph.")
    _add_common_args(p_show)
    p_show.add_argument(
        "-m", "--mode",
        choices=[m.value for m in ViewMode],
        default=None,
        help="View mode (default: from options, combined).",
    )
    p_show.add_argument(
        "-f", "--format",
        choices=["dot", "json"],
        default="dot",
        help="Output format (default: dot).",
    )
    p_show.add_argument(
        "--highlight",
        metavar="PATTERN",
        default=None,
        help="Highlight the groups whose name or id contains PATTERN.",
    )
    p_show.add_argument(
        "--node-ids",
        action="store_true",
        help="Append node ids to the node text.",
    )
    p_show.add_argument(
        "--render",
        metavar="FILE",
        default=None,
        help="Render with Graphviz to FILE (format from the extension).",
    )
    p_show.set_defaults(func=cmd_show)

    # --- sanitize ----------------------------------------------------------
    p_sanitize = subparsers.add_parser(
        "sanitize", help="Reconcile a definition file with the flowchart.",
    )
    _add_common_args(p_sanitize)
    p_sanitize.set_defaults(func=cmd_sanitize)

    # --- combine -----------------------------------------------------------
    p_combine = subparsers.add_parser(
        "combine", help="Merge combined-view nodes into one group.",
    )
    _add_common_args(p_combine)
    p_combine.add_argument(
        "--nodes",
        type=int,
        nargs="+",
        required=True,
        metavar="ID",
        help="Combined-view node ids to merge.",
    )
    p_combine.set_defaults(func=cmd_combine)

    # --- find --------------------------------------------------------------
    p_find = subparsers.add_parser("find", help="Find groups by name or id.")
    _add_common_args(p_find)
    p_find.add_argument("pattern", metavar="PATTERN", help="Case-insensitive text.")
    p_find.add_argument(
        "-m", "--mode",
        choices=[m.value for m in ViewMode],
        default=None,
        help="View mode the reported node ids refer to.",
    )
    p_find.set_defaults(func=cmd_find)

    # --- list --------------------------------------------------------------
    p_list = subparsers.add_parser("list", help="Print the group chooser.")
    _add_common_args(p_list)
    p_list.set_defaults(func=cmd_list)

    return parser


# ===========================================================================
# Main entry point
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the GraphSlick CLI and return the exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help(sys.stderr)
        return EXIT_INFRA

    try:
        return args.func(args)
    except GraphSlickError as exc:
        _error(str(exc))
        return EXIT_ERROR if exc.code.recoverable else EXIT_INFRA
    except ImportError as exc:
        _error(f"missing dependency: {exc.name or exc}")
        return EXIT_INFRA
    except (OSError, ValueError) as exc:
        _error(str(exc))
        return EXIT_INFRA
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130
    except Exception as exc:
        _log.error("Unhandled exception: %s", exc, exc_info=True)
        return EXIT_INFRA


if __name__ == "__main__":
    raise SystemExit(main())
