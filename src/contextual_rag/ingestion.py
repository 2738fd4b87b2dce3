"""
Ingestion
---------
Purpose: Rebuild the vector store from a directory of text files.

Steps:
    1. clear the store
    2. read every file in the directory as one Document
    3. split documents into sentence segments
    4. attach extended context to every segment
    5. embed the segment texts and store (embedding, segment) pairs
"""

from pathlib import Path
from typing import Dict, List, Optional, Union
from dataclasses import dataclass, field
import logging

from .chunker import (
    FILE_KEY,
    ContextWindowConfig,
    Document,
    SegmentWithContext,
    SentenceSplitter,
    SplitterConfig,
    TextSegment,
    add_extended_context,
)

logger = logging.getLogger(__name__)


@dataclass
class IngestionResult:
    documents: List[Document]
    segments: List[SegmentWithContext]
    stats: Dict[str, int] = field(default_factory=dict)


def read_documents(documents_path: Union[str, Path], encoding: str = "utf-8") -> List[Document]:
    """
    Read every regular file directly under a directory (non-recursive).

    Args:
        documents_path: Directory containing plain-text documents
        encoding: Text encoding of the files

    Returns:
        One Document per file, sorted by file name, with the file name
        stored under the "file" metadata key

    Raises:
        FileNotFoundError: If the directory does not exist
        NotADirectoryError: If the path is not a directory
        OSError, UnicodeDecodeError: If a file cannot be read
    """
    path = Path(documents_path)
    if not path.exists():
        raise FileNotFoundError(f"Documents directory not found: {path}")
    if not path.is_dir():
        raise NotADirectoryError(f"Not a directory: {path}")

    documents = []
    for file_path in sorted(path.iterdir(), key=lambda p: p.name):
        if not file_path.is_file() or file_path.name.startswith("."):
            continue
        try:
            text = file_path.read_text(encoding=encoding)
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to read {file_path}: {e}")
            raise
        documents.append(Document(text=text, metadata={FILE_KEY: file_path.name}))

    logger.info(f"Read {len(documents)} documents from {path}")
    return documents


def build_segments(
    documents: List[Document],
    splitter: SentenceSplitter,
    context_config: ContextWindowConfig
) -> List[SegmentWithContext]:
    """Split documents and attach extended context within the configured scope."""
    per_document = [splitter.split(d) for d in documents]

    if context_config.scope == "document":
        segments: List[SegmentWithContext] = []
        for doc_segments in per_document:
            segments.extend(
                add_extended_context(doc_segments, context_config.before, context_config.after)
            )
        return segments

    flat: List[TextSegment] = [s for doc_segments in per_document for s in doc_segments]
    return add_extended_context(flat, context_config.before, context_config.after)


def ingest(
    documents_path: Union[str, Path],
    store,
    embeddings,
    splitter_config: Optional[SplitterConfig] = None,
    context_config: Optional[ContextWindowConfig] = None,
    splitter: Optional[SentenceSplitter] = None
) -> IngestionResult:
    """
    Replace the store contents with the documents found in documents_path.

    Args:
        documents_path: Directory of plain-text files
        store: Vector store (clear, add_all)
        embeddings: Embedding client (embed_batch)
        splitter_config: Segment size / overlap settings
        context_config: Extended context window settings
        splitter: Prebuilt splitter, overrides splitter_config

    Returns:
        IngestionResult with documents, segments and counts

    Note: The store is cleared before the documents are read, so a failed
          run leaves it empty.
    """
    splitter_config = splitter_config or SplitterConfig()
    context_config = context_config or ContextWindowConfig()
    splitter = splitter or SentenceSplitter.from_config(splitter_config)

    store.clear()

    documents = read_documents(documents_path)

    segments_with_context = build_segments(documents, splitter, context_config)
    segments = [s.segment for s in segments_with_context]
    logger.info(f"✓ Segments created: {len(segments)}")

    embedded = 0
    if segments:
        vectors = embeddings.embed_batch([s.text for s in segments])
        if len(vectors) != len(segments):
            raise ValueError(
                f"Embedder returned {len(vectors)} embeddings for {len(segments)} segments"
            )
        store.add_all(vectors, segments)
        embedded = len(vectors)
    else:
        logger.warning("No segments created. Documents may be empty.")

    stats = {
        "documents": len(documents),
        "segments": len(segments),
        "embedded": embedded,
    }
    logger.info(f"Documents ingested successfully: {stats}")
    return IngestionResult(documents=documents, segments=segments_with_context, stats=stats)
