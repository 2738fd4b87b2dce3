"""
Contextual Retriever
--------------------
Purpose: Retrieve the nearest segments for a query and hand the generation
step their extended context instead of the short segment text.
"""

from typing import Dict, List, Optional
from dataclasses import dataclass, field
import logging

from .chunker import EXTENDED_CONTENT_KEY, FILE_KEY, TextSegment
from .query_transformer import CompressingQueryTransformer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Content:
    """
    A retrieved segment as seen by the generation step.

    text is the extended context when one was stored; original_text is
    always the segment text that was embedded at ingestion time.
    """
    text: str
    original_text: str
    metadata: Dict[str, str] = field(default_factory=dict)
    score: float = 0.0

    @property
    def file(self) -> Optional[str]:
        return self.metadata.get(FILE_KEY)


def to_extended_content(segment: TextSegment, score: float = 0.0) -> Content:
    """
    Swap a segment's text for its extended_content.

    The extended_content key is removed from the returned metadata. A
    segment stored without one keeps its own text.
    """
    metadata = dict(segment.metadata)
    extended = metadata.pop(EXTENDED_CONTENT_KEY, None)

    if extended is None:
        logger.debug(
            f"No {EXTENDED_CONTENT_KEY} for segment of "
            f"{metadata.get(FILE_KEY, '<unknown>')}, keeping segment text"
        )
        extended = segment.text

    return Content(
        text=extended,
        original_text=segment.text,
        metadata=metadata,
        score=score
    )


class ContextualRetriever:
    """Embedding-store retriever with context substitution."""

    def __init__(
        self,
        store,
        embeddings,
        query_transformer: Optional[CompressingQueryTransformer] = None,
        max_results: int = 3
    ):
        """
        Args:
            store: Vector store with query(embedding, limit)
            embeddings: Embedding client with embed(text)
            query_transformer: Optional query rewriting stage
            max_results: Maximum number of contents returned per query
        """
        if max_results <= 0:
            raise ValueError("max_results must be positive")

        self.store = store
        self.embeddings = embeddings
        self.query_transformer = query_transformer
        self.max_results = max_results

    def retrieve(self, query: str, chat_history: Optional[List[Dict[str, str]]] = None) -> List[Content]:
        """
        Retrieve contents for a query.

        Args:
            query: User query text
            chat_history: Previous messages, used by the query transformer

        Returns:
            At most max_results contents, in store rank order
        """
        if not query or not query.strip():
            logger.warning("Empty query provided")
            return []

        if self.query_transformer is not None:
            query = self.query_transformer.transform(query, chat_history)

        query_embedding = self.embeddings.embed(query)
        results = self.store.query(query_embedding, limit=self.max_results)

        contents = [
            to_extended_content(r.segment, r.score)
            for r in results[:self.max_results]
        ]
        logger.debug(f"Retrieved {len(contents)} contents")
        return contents
