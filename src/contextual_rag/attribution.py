"""
Source Attribution
------------------
Purpose: Append the files a response is based on, decided by embedding
similarity between the response and each retrieved segment.

Citation format: "<response> (Sources: a.txt, b.txt)"
"""

from typing import Iterable, Iterator, List
from dataclasses import dataclass
import logging

from .embeddings import cosine_similarity
from .retriever import Content

logger = logging.getLogger(__name__)

DEFAULT_SIMILARITY_THRESHOLD = 0.85


@dataclass
class SourceEmbedding:
    segment_text: str
    file: str
    embedding: List[float]


def format_sources(files: List[str]) -> str:
    """Citation suffix for a non-empty list of file names."""
    return " (Sources: " + ", ".join(files) + ")"


class SourceAttributor:
    """
    Adds a "(Sources: ...)" suffix to buffered or streamed responses.

    A retrieved segment counts as a source when the cosine similarity
    between its original text and the response is strictly greater than
    similarity_threshold. Each file is cited once, in first-seen order.
    """

    def __init__(self, embeddings, similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD):
        """
        Args:
            embeddings: Embedding client with embed(text)
            similarity_threshold: Exclusive lower bound for a source to be cited
        """
        self.embeddings = embeddings
        self.similarity_threshold = similarity_threshold

    def find_sources(self, response: str, contents: List[Content]) -> List[str]:
        """
        Return the de-duplicated file names whose segments match the response.

        Args:
            response: The complete response text
            contents: Contents retrieved for the question

        Returns:
            File names in first-seen order (empty for a blank response or
            no contents)
        """
        if not response or not response.strip() or not contents:
            return []

        response_embedding = self.embeddings.embed(response)
        sources = [
            SourceEmbedding(
                segment_text=c.original_text,
                file=c.file,
                embedding=self.embeddings.embed(c.original_text)
            )
            for c in contents
        ]

        files: List[str] = []
        seen = set()
        for source in sources:
            similarity = cosine_similarity(response_embedding, source.embedding)
            if similarity > self.similarity_threshold:
                logger.debug(f"Similarity: {similarity:.4f} : {source.segment_text[:80]}")
                if source.file is None:
                    logger.warning("Matching segment has no file metadata, not cited")
                elif source.file not in seen:
                    seen.add(source.file)
                    files.append(source.file)
            else:
                logger.debug(f"Similarity too low: {similarity:.4f} : {source.segment_text[:80]}")

        return files

    def augment_complete(self, response: str, contents: List[Content]) -> str:
        """Return the buffered response with its citation suffix, if any."""
        if not contents:
            return response

        files = self.find_sources(response, contents)
        if not files:
            return response
        return response + format_sources(files)

    def augment_streamed(self, chunks: Iterable[str], contents: List[Content]) -> Iterator[str]:
        """
        Forward a streamed response and finish it with the citation suffix.

        Every upstream chunk is yielded unchanged as soon as it arrives. Once
        the upstream is exhausted, one extra chunk holding the suffix is
        yielded if at least one source qualifies. Closing this generator
        early never produces the suffix.
        """
        parts = []
        for chunk in chunks:
            parts.append(chunk)
            yield chunk

        files = self.find_sources("".join(parts), contents)
        if files:
            yield format_sources(files)
