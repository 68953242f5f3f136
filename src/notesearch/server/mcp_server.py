"""FastMCP server implementation for notesearch."""

from typing import Optional

from mcp.server.fastmcp import FastMCP

from notesearch.api import NoteSearch
from notesearch.models import SearchResult

SNIPPET_PREVIEW_CHARS = 300


def format_results(results: list[SearchResult], query: str, mode: str) -> str:
    """Render ranked results as compact text for a model's context."""
    if not results:
        return f"No results found for: {query}"

    lines = [f"Results for: {query} ({mode})", ""]
    for i, r in enumerate(results, 1):
        text = r.snippet[:SNIPPET_PREVIEW_CHARS].replace("\n", " ")
        if len(r.snippet) > SNIPPET_PREVIEW_CHARS:
            text += "..."
        lines.append(f"{i}. [{r.score:.3f}] {r.path}:{r.start_line}-{r.end_line} ({r.source})")
        lines.append(f"   {text}")
        lines.append("")
    return "\n".join(lines)


def create_mcp_server(notes: NoteSearch) -> FastMCP:
    """Create an MCP server for one notes folder.

    Args:
        notes: Index to serve; it is kept current by the caller

    Returns:
        Configured FastMCP server instance
    """
    mcp = FastMCP(
        name="notesearch",
    )

    @mcp.tool()
    def search(query: str, limit: int = 8, source: str = "all", hybrid: bool = True) -> str:
        """Search memory notes and session transcripts.

        Keyword (BM25) ranking, blended with semantic similarity when
        embeddings are available.

        Args:
            query: Words to look for
            limit: Maximum number of results to return (default: 8)
            source: "memory", "sessions" or "all"
            hybrid: Blend in vector similarity when possible

        Returns:
            Ranked passages with file path and line span
        """
        if source not in ("memory", "sessions", "all"):
            return f"Error: unknown source '{source}'"
        if hybrid:
            result = notes.hybrid_search(query, max_results=limit, source=source)
            return format_results(result.results, query, result.mode)
        return format_results(notes.search(query, max_results=limit, source=source), query, "bm25")

    @mcp.tool()
    def get(path: str, from_line: Optional[int] = None, lines: Optional[int] = None) -> str:
        """Read indexed content of a memory file.

        Args:
            path: File path as shown in search results
            from_line: First line of the window (optional)
            lines: Window length (default 20 when from_line is given)

        Returns:
            File content covering the window
        """
        content = notes.get_chunk(path, from_line, lines)
        if content is None:
            return f"Error: No indexed content for: {path}"
        return content

    @mcp.tool()
    def status() -> str:
        """Report index size and freshness."""
        stats = notes.get_stats()
        return (
            f"Files: {stats.total_files}\n"
            f"Chunks: {stats.total_chunks} "
            f"(memory {stats.memory_chunks}, sessions {stats.session_chunks})\n"
            f"Embedded chunks: {stats.vector_chunks}\n"
            f"Last indexed: {stats.last_indexed}"
        )

    return mcp
