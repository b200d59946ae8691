"""
refgraph CLI - citation graph around a paper or an author.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from .core.config import RefgraphConfig
from .core.models import BuildProgress, Graph
from .core.resilience import RefgraphError, setup_logging
from .export.formats import GraphExporter
from .pipeline.orchestrator import GraphBuilder
from .providers.openalex import OpenAlexProvider

logger = logging.getLogger("refgraph.cli")


def print_progress(progress: BuildProgress):
    """one progress line on stderr, overwritten in place."""
    sys.stderr.write(f"\r[{progress.percent:3d}%] {progress.message[:70]:<70}")
    sys.stderr.flush()


def write_graph(graph: Graph, out: Optional[str], fmt: str):
    exporter = GraphExporter()
    if not out:
        json.dump(exporter.to_json(graph), sys.stdout, indent=2)
        sys.stdout.write("\n")
        return

    Path(out).parent.mkdir(parents=True, exist_ok=True)
    if fmt == "graphml":
        exporter.to_graphml(graph, out)
    elif fmt == "gexf":
        exporter.to_gexf(graph, out)
    else:
        exporter.to_json(graph, out)


def print_summary(graph: Graph):
    meta = graph.metadata
    print(f"\n{'='*60}", file=sys.stderr)
    if meta.graph_type == "author":
        print(f"AUTHOR: {meta.author_name} ({meta.author_id})", file=sys.stderr)
    else:
        print(f"SOURCE: {meta.source_id} ({meta.source_year})", file=sys.stderr)
        print(f"  root seeds:   {meta.total_root_seeds}", file=sys.stderr)
        print(f"  branch seeds: {meta.total_branch_seeds}", file=sys.stderr)
        print(f"  roots:        {meta.n_roots}", file=sys.stderr)
        print(f"  branches:     {meta.n_branches}", file=sys.stderr)
    print(f"  nodes:        {len(graph.nodes)}", file=sys.stderr)
    print(f"  edges:        {meta.edges_in_graph}", file=sys.stderr)
    print(f"  api calls:    {meta.api_calls}", file=sys.stderr)
    print(f"  time:         {meta.build_time_seconds}s", file=sys.stderr)
    print(f"{'='*60}", file=sys.stderr)


async def run(args: argparse.Namespace, config: RefgraphConfig) -> int:
    on_progress = None if args.quiet else print_progress

    async with OpenAlexProvider(config.provider) as provider:
        builder = GraphBuilder(provider, config)

        if args.command == "hydrate":
            metadata = await builder.hydrate(args.ids)
            json.dump({pid: m.to_dict() for pid, m in metadata.items()}, sys.stdout, indent=2)
            sys.stdout.write("\n")
            missing = len(set(args.ids)) - len(metadata)
            if missing > 0:
                logger.warning(f"[cli] {missing} ids could not be hydrated")
            return 0

        try:
            if args.command == "author":
                graph = await builder.build_author(
                    args.author_id, max_works=args.max_works, on_progress=on_progress
                )
            else:
                graph = await builder.build(
                    args.source,
                    n_roots=args.roots,
                    n_branches=args.branches,
                    on_progress=on_progress
                )
        except RefgraphError as e:
            if on_progress:
                sys.stderr.write("\n")
            logger.error(f"[cli] {e}")
            return 1

    if on_progress:
        sys.stderr.write("\n")
    write_graph(graph, args.out, args.format)
    if not args.quiet:
        print_summary(graph)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="refgraph",
        description="Citation graph builder around a seed paper or author.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
examples:
  refgraph build 10.1038/s41586-021-03819-2
  refgraph build W2741809807 --roots 10 --branches 10 -o graph.json
  refgraph build https://openalex.org/W2741809807 -o graph.graphml -f graphml
  refgraph author A5023888391 --max-works 50
  refgraph hydrate W2741809807 W2100837269
        """
    )

    # misc
    parser.add_argument(
        "--email",
        type=str,
        help="email for the openalex polite pool"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="no progress or summary output"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="verbose/debug output"
    )
    parser.add_argument(
        "--minimal",
        action="store_true",
        help="small graphs with few requests (10 roots, 10 branches, 50 branch seeds)"
    )
    parser.add_argument(
        "--log-file",
        type=str,
        help="also write logs to this file"
    )

    sub = parser.add_subparsers(dest="command", required=True)

    build = sub.add_parser("build", help="graph around a paper")
    build.add_argument("source", help="openalex id, openalex url or DOI")
    build.add_argument("--roots", type=int, default=None, help="top roots to keep (default: 25)")
    build.add_argument("--branches", type=int, default=None, help="top branches to keep (default: 25)")

    author = sub.add_parser("author", help="graph of an author's works")
    author.add_argument("author_id", help="openalex author id or url")
    author.add_argument("--max-works", type=int, default=None, help="max works (default: 100)")

    for p in (build, author):
        p.add_argument("--out", "-o", type=str, help="output file (default: JSON on stdout)")
        p.add_argument(
            "--format", "-f",
            type=str,
            default="json",
            choices=["json", "graphml", "gexf"],
            help="export format (default: json)"
        )

    hydrate = sub.add_parser("hydrate", help="display metadata for node ids")
    hydrate.add_argument("ids", nargs="+", help="openalex work ids")

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    log_level = logging.WARNING if args.quiet else (logging.DEBUG if args.verbose else logging.INFO)
    setup_logging(level=log_level, log_file=args.log_file)

    config = RefgraphConfig.from_env(RefgraphConfig.minimal() if args.minimal else None)
    if args.email:
        config.provider.email = args.email
        config.provider.user_agent = f"refgraph/0.1 (mailto:{args.email})"

    return asyncio.run(run(args, config))


if __name__ == "__main__":
    sys.exit(main())
