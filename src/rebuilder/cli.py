from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from rebuilder import __version__
from rebuilder.corpus import (
    DEFAULT_REPOS,
    CorpusUnavailable,
    PackageNotFound,
    open_corpus,
)
from rebuilder.export import write_dot
from rebuilder.index import build_reverse_index
from rebuilder.traverse import expand_closure, render_report

logger = logging.getLogger(__name__)

DEFAULT_DBPATH = "/var/lib/pacman/"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rebuilder",
        description="List the packages that need a rebuild when the given packages change",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "pkgnames",
        nargs="+",
        metavar="PKGNAME",
        help="Packages whose reverse dependencies should be rebuilt",
    )
    parser.add_argument(
        "--dbpath",
        default=DEFAULT_DBPATH,
        help=f"Path to the pacman database (default: {DEFAULT_DBPATH})",
    )
    parser.add_argument(
        "--repo",
        action="append",
        metavar="NAME",
        help=(
            "Sync repository to read, in lookup order (repeatable). "
            f"Default: {' '.join(DEFAULT_REPOS)}"
        ),
    )
    parser.add_argument(
        "--dotfile",
        "-d",
        metavar="FILE",
        help="Write the rebuild graph to FILE in Graphviz dot format",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose/debug logging to stderr",
    )
    return parser


def run(args: argparse.Namespace) -> dict:
    """Orchestrate the pipeline: index -> validate -> expand -> report."""
    repos = args.repo or list(DEFAULT_REPOS)
    corpus = open_corpus(Path(args.dbpath), repos)

    reverse_deps = build_reverse_index(corpus)
    corpus.validate(args.pkgnames)

    graph = expand_closure(args.pkgnames, reverse_deps)
    return {
        "graph": graph,
        "lines": render_report(graph, args.pkgnames),
    }


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(name)s: %(message)s",
    )

    try:
        result = run(args)
    except (CorpusUnavailable, PackageNotFound, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    for line in result["lines"]:
        print(line)

    if args.dotfile:
        try:
            write_dot(result["graph"], Path(args.dotfile))
        except OSError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)


if __name__ == "__main__":
    main()
