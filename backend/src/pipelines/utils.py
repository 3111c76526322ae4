from models.chunk import ChunkRecord


def make_snippet(text: str, max_chars: int) -> str:
    """Truncated display prefix of a chunk, whitespace collapsed."""
    snippet = text[:max_chars] + "..." if len(text) > max_chars else text
    return " ".join(snippet.split())


def format_citation(chunk: ChunkRecord) -> str:
    """Attribution label, e.g. ``HB::MUTCD::p12::Table 6C-2``."""
    page = f"p{chunk.page_number}" if chunk.page_number else "p?"
    label = chunk.section_or_figure or "unknown"
    prefix = "HB" if chunk.folder_type == "handbook" else "EX"
    return f"{prefix}::{chunk.doc_name}::{page}::{label}"
