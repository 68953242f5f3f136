"""CLI entry point for notesearch."""

import argparse
import logging
import signal
import sys
import threading
import time
from dataclasses import replace
from pathlib import Path

from notesearch.api import NoteSearch
from notesearch.config import SearchConfig
from notesearch.exceptions import IndexCorruptionError, NoteSearchError

logger = logging.getLogger(__name__)


def format_bytes(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.0f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def open_index(args: argparse.Namespace, embeddings: bool = False) -> NoteSearch:
    config = SearchConfig.from_env()
    if not embeddings:
        config = replace(config, embeddings_enabled=False)
    return NoteSearch(args.memory_path, db_path=args.db_path, config=config)


def cmd_index(args: argparse.Namespace) -> None:
    """Index all memory files."""
    notes = open_index(args, embeddings=args.embeddings)
    print(f"Indexing memory files from: {notes.root}")
    print(f"Database: {notes.db_path}")

    if args.reindex:
        result = notes.reindex_all(embeddings=args.embeddings)
        print(f"\nReindexed {result.indexed} files (full rebuild).")
    else:
        result = notes.index(embeddings=args.embeddings)
        print(
            f"\nIndexed: {result.indexed}, Skipped (unchanged): {result.skipped}, "
            f"Removed: {result.removed}"
        )
    if result.embedded is not None:
        print(f"Embedded: {result.embedded} chunks")

    stats = notes.get_stats()
    print(f"Total: {stats.total_chunks} chunks from {stats.total_files} files.")


def cmd_search(args: argparse.Namespace) -> None:
    """Search memory and print ranked snippets."""
    query = " ".join(args.query)
    notes = open_index(args, embeddings=args.hybrid)

    if notes.get_stats().total_chunks == 0:
        print("Index is empty, building index first...\n")
        notes.index()

    start = time.perf_counter()
    if args.hybrid:
        hybrid = notes.hybrid_search(query, max_results=args.limit, source=args.source)
        results, mode = hybrid.results, hybrid.mode
    else:
        results, mode = notes.search(query, max_results=args.limit, source=args.source), "bm25"
    elapsed_ms = (time.perf_counter() - start) * 1000

    print(f'## Results for: "{query}" ({mode})\n')
    if not results:
        print("No results found.\n")

    for i, r in enumerate(results, 1):
        print(f"{i}. [{r.score:.2f}] {r.path} (lines {r.start_line}-{r.end_line})")
        preview = [line for line in r.snippet.split("\n") if line.strip()][:3]
        for line in preview:
            if len(line) > 100:
                line = line[:100] + "..."
            print(f"   > {line}")
        print()

    stats = notes.get_stats()
    print(
        f"Found {len(results)} results in {elapsed_ms:.0f}ms. "
        f"Index: {stats.total_chunks} chunks from {stats.total_files} files."
    )


def cmd_get(args: argparse.Namespace) -> None:
    """Print indexed content of one file."""
    notes = open_index(args)
    content = notes.get_chunk(args.path, args.from_line, args.lines)
    if content is None:
        logger.error(f"No content found for: {args.path}")
        logger.error("Has the file been indexed? Run: notesearch index")
        sys.exit(1)
    print(content)


def cmd_status(args: argparse.Namespace) -> None:
    """Show index statistics."""
    notes = open_index(args)
    stats = notes.get_stats()

    print("## Search Index\n")
    print(f"- Files indexed: {stats.total_files}")
    print(f"- Memory chunks: {stats.memory_chunks}")
    print(f"- Session chunks: {stats.session_chunks}")
    print(f"- Total chunks: {stats.total_chunks}")
    print(f"- Embedded chunks: {stats.vector_chunks}")
    print(f"- Database size: {format_bytes(stats.db_size_bytes)}")
    print(f"- Last indexed: {stats.last_indexed}")

    if args.verify:
        notes.verify()
        print("- Integrity: ok")


def cmd_watch(args: argparse.Namespace) -> None:
    """Watch the memory folder and re-index on change."""
    notes = open_index(args)

    print("Building initial index...")
    result = notes.index()
    print(f"Indexed {result.indexed} files ({result.skipped} unchanged).\n")

    stop = threading.Event()
    signal.signal(signal.SIGTERM, lambda *_: stop.set())

    watcher = notes.watch()
    try:
        while not stop.wait(1.0):
            pass
    except KeyboardInterrupt:
        pass
    finally:
        print("\nShutting down watcher...")
        watcher.close()


def cmd_log(args: argparse.Namespace) -> None:
    """Log a session entry and index it."""
    notes = open_index(args)
    session_id = args.session_id or f"cli-{int(time.time() * 1000)}"
    file_path = notes.log_session(session_id, " ".join(args.message), role=args.role)
    print(f"Logged to: {file_path}")
    print("Session entry indexed.")


def cmd_embed(args: argparse.Namespace) -> None:
    """Generate embeddings for chunks that lack them."""
    notes = open_index(args, embeddings=True)
    if not notes.embedder.available():
        logger.error("Embeddings unavailable. Install with: pip install 'notesearch[embeddings]'")
        sys.exit(1)
    count = notes.generate_embeddings()
    print(f"Embedded {count} chunks.")


def cmd_serve(args: argparse.Namespace) -> None:
    """Start MCP server for the notes index."""
    # Import here to avoid loading MCP unless needed
    from typing import Literal, cast

    from notesearch.server import create_mcp_server

    notes = open_index(args, embeddings=True)
    logger.info(f"Serving {notes.root} via {args.transport}")
    mcp = create_mcp_server(notes)
    mcp.run(transport=cast(Literal["stdio", "sse", "streamable-http"], args.transport))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="notesearch",
        description="notesearch - BM25 and hybrid search for markdown memory files",
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--memory-path",
        type=Path,
        default=Path.cwd(),
        help="Notes folder to index (default: current directory)",
    )
    common.add_argument(
        "--db-path",
        type=Path,
        default=None,
        help="Index file (default: <memory-path>/.search.db)",
    )
    common.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # index command
    index_parser = subparsers.add_parser("index", parents=[common], help="Index all memory files")
    index_parser.add_argument("--reindex", action="store_true", help="Drop and rebuild the index")
    index_parser.add_argument(
        "--embeddings", action="store_true", help="Also generate vector embeddings"
    )
    index_parser.set_defaults(func=cmd_index)

    # search command
    search_parser = subparsers.add_parser("search", parents=[common], help="Search memory")
    search_parser.add_argument("query", nargs="+", help="Free text query")
    search_parser.add_argument("--limit", type=int, default=10, help="Maximum results")
    search_parser.add_argument(
        "--source",
        choices=["memory", "sessions", "all"],
        default="all",
        help="Restrict to one partition (default: all)",
    )
    search_parser.add_argument(
        "--hybrid", action="store_true", help="Blend in vector similarity when available"
    )
    search_parser.set_defaults(func=cmd_search)

    # get command
    get_parser = subparsers.add_parser(
        "get", parents=[common], help="Get content from an indexed file"
    )
    get_parser.add_argument("path", help="Path relative to the memory folder")
    get_parser.add_argument("--from", dest="from_line", type=int, default=None)
    get_parser.add_argument("--lines", type=int, default=None)
    get_parser.set_defaults(func=cmd_get)

    # status command
    status_parser = subparsers.add_parser("status", parents=[common], help="Show index statistics")
    status_parser.add_argument(
        "--verify", action="store_true", help="Also check index integrity"
    )
    status_parser.set_defaults(func=cmd_status)

    # watch command
    watch_parser = subparsers.add_parser(
        "watch", parents=[common], help="Watch memory folder and auto-reindex"
    )
    watch_parser.set_defaults(func=cmd_watch)

    # log command
    log_parser = subparsers.add_parser("log", parents=[common], help="Log a session entry")
    log_parser.add_argument("message", nargs="+")
    log_parser.add_argument("--session-id", default=None)
    log_parser.add_argument("--role", default="user")
    log_parser.set_defaults(func=cmd_log)

    # embed command
    embed_parser = subparsers.add_parser(
        "embed", parents=[common], help="Generate missing embeddings"
    )
    embed_parser.set_defaults(func=cmd_embed)

    # serve command
    serve_parser = subparsers.add_parser(
        "serve", parents=[common], help="Start MCP server for the index"
    )
    serve_parser.add_argument(
        "--transport",
        choices=["stdio", "sse"],
        default="stdio",
        help="Transport protocol (default: stdio)",
    )
    serve_parser.set_defaults(func=cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
    )

    try:
        args.func(args)
    except IndexCorruptionError as e:
        logger.error(str(e))
        logger.error("Run: notesearch index --reindex")
        sys.exit(2)
    except NoteSearchError as e:
        logger.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
