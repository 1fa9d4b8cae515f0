"""Document ingestion helpers: paragraph-preserving chunking for retrieval."""

from paperlens.services.ingestion.chunker import TextChunker

__all__ = ["TextChunker"]
