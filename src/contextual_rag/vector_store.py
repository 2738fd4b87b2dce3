"""
Vector Store Module
===================

Purpose: Store segment embeddings and retrieve the nearest ones

Two implementations share the same small interface used by ingestion
and retrieval:

  • clear()                          drop every stored entry
  • add_all(embeddings, segments)    index-aligned bulk insert
  • query(embedding, limit)          ranked RetrievalResult list, best first
  • size()                           number of stored entries

ChromaVectorStore persists to disk; SimpleVectorStore keeps everything
in memory and is handy for tests and small corpora.
"""

from typing import List, Sequence
from dataclasses import dataclass
import logging
import os
import uuid

import chromadb
import numpy as np

from .chunker import TextSegment
from .embeddings import cosine_similarity

logger = logging.getLogger(__name__)


@dataclass
class RetrievalResult:
    """A single retrieved segment with its similarity score."""
    segment: TextSegment
    score: float


def _check_aligned(embeddings: Sequence, segments: Sequence) -> None:
    if len(embeddings) != len(segments):
        raise ValueError(
            f"Got {len(embeddings)} embeddings for {len(segments)} segments"
        )


class ChromaVectorStore:
    """
    Vector store using Chroma (persistent, free, production-ready).

    Segment text is stored as the Chroma document and the segment metadata
    (including extended_content) as the Chroma metadata, so a query gives
    back complete segments.
    """

    def __init__(self, persist_directory: str = ".chromadb", collection_name: str = "contextual_rag"):
        """
        Initialize Chroma vector store.

        Args:
            persist_directory: Where to store vectors on disk
            collection_name: Name of the collection (namespace)

        Example:
            >>> store = ChromaVectorStore(persist_directory="./data/vectors")
        """
        self.persist_directory = persist_directory
        self.collection_name = collection_name

        os.makedirs(persist_directory, exist_ok=True)

        try:
            self.client = chromadb.PersistentClient(path=persist_directory)

            self.collection = self.client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"}
            )

            logger.info(
                f"✓ Initialized Chroma vector store at {persist_directory} "
                f"(collection: {collection_name})"
            )
        except Exception as e:
            logger.error(f"Failed to initialize Chroma: {e}")
            raise

    def add_all(
        self,
        embeddings: List[List[float]],
        segments: List[TextSegment]
    ) -> None:
        """
        Add segments with their embeddings to the store.

        Args:
            embeddings: One vector per segment
            segments: Segments to store (same order as embeddings)
        """
        _check_aligned(embeddings, segments)
        if not segments:
            return

        ids = [uuid.uuid4().hex for _ in segments]
        try:
            self.collection.add(
                ids=ids,
                documents=[s.text for s in segments],
                embeddings=[list(map(float, e)) for e in embeddings],
                metadatas=[dict(s.metadata) for s in segments]
            )
            logger.debug(f"Added {len(ids)} segments")
        except Exception as e:
            logger.error(f"Failed to add {len(ids)} segments: {e}")
            raise

    def query(
        self,
        embedding: List[float],
        limit: int = 3
    ) -> List[RetrievalResult]:
        """
        Find the segments most similar to an embedding.

        Args:
            embedding: Query vector
            limit: Maximum number of results

        Returns:
            List of RetrievalResult objects, highest similarity first
        """
        try:
            count = self.collection.count()
            if count == 0 or limit <= 0:
                logger.warning("Vector store is empty")
                return []

            results = self.collection.query(
                query_embeddings=[list(map(float, embedding))],
                n_results=min(limit, count),
                include=["documents", "metadatas", "distances"]
            )

            if not results["ids"] or not results["ids"][0]:
                logger.debug("No results found for query")
                return []

            retrieval_results = []
            for i in range(len(results["ids"][0])):
                # cosine space: distance = 1 - similarity
                similarity = 1 - results["distances"][0][i]
                segment = TextSegment(
                    text=results["documents"][0][i],
                    metadata=dict(results["metadatas"][0][i] or {})
                )
                retrieval_results.append(RetrievalResult(segment=segment, score=similarity))

            logger.debug(f"Retrieved {len(retrieval_results)} segments")
            return retrieval_results

        except Exception as e:
            logger.error(f"Retrieval failed: {e}")
            raise

    def size(self) -> int:
        """Return number of segments in store."""
        return self.collection.count()

    def clear(self) -> None:
        """Clear all vectors from store."""
        try:
            all_data = self.collection.get()
            if all_data["ids"]:
                self.collection.delete(ids=all_data["ids"])
            logger.info("Cleared vector store")
        except Exception as e:
            logger.error(f"Failed to clear store: {e}")
            raise


class SimpleVectorStore:
    """
    In-memory vector store with exact cosine search.

    Entries with equal scores keep their insertion order.
    """

    def __init__(self):
        self._embeddings: List[np.ndarray] = []
        self._segments: List[TextSegment] = []

    def add_all(self, embeddings: List[List[float]], segments: List[TextSegment]) -> None:
        _check_aligned(embeddings, segments)
        for embedding, segment in zip(embeddings, segments):
            self._embeddings.append(np.asarray(embedding, dtype=float))
            self._segments.append(segment)
        logger.debug(f"Added {len(segments)} segments ({self.size()} total)")

    def query(self, embedding: List[float], limit: int = 3) -> List[RetrievalResult]:
        if not self._segments or limit <= 0:
            return []

        scores = [cosine_similarity(embedding, e) for e in self._embeddings]
        # sorted() is stable, so ties stay in insertion order
        ranked = sorted(range(len(scores)), key=lambda i: -scores[i])[:limit]
        return [
            RetrievalResult(segment=self._segments[i], score=scores[i])
            for i in ranked
        ]

    def size(self) -> int:
        return len(self._segments)

    def clear(self) -> None:
        self._embeddings.clear()
        self._segments.clear()
        logger.info("Cleared vector store")
