"""
Chunker module
--------------
Purpose: Split documents into sentence-based segments and attach an
extended context (the neighbouring segments) to each of them.
"""

from typing import Callable, Dict, List, Optional
from dataclasses import dataclass, field
import logging

import nltk
from nltk.tokenize import sent_tokenize

logger = logging.getLogger(__name__)

FILE_KEY = "file"
INDEX_KEY = "index"
EXTENDED_CONTENT_KEY = "extended_content"


@dataclass(frozen=True)
class Document:
    text: str
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class TextSegment:
    text: str
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SegmentWithContext:
    """A segment (already carrying its extended_content) and that context."""
    segment: TextSegment
    context: str


@dataclass
class SplitterConfig:
    max_segment_size: int = 200
    max_overlap: int = 20
    language: str = "english"


@dataclass
class ContextWindowConfig:
    """
    How many neighbouring segments make up an extended context.

    scope="batch" indexes segments over the whole ingestion run, so a window
    may reach into the previous or next document. scope="document" restarts
    the window at every document boundary.
    """
    before: int = 2
    after: int = 2
    scope: str = "batch"

    def __post_init__(self):
        if self.before < 0 or self.after < 0:
            raise ValueError("Context window sizes must be >= 0")
        if self.scope not in ("batch", "document"):
            raise ValueError(f"Unknown context scope: {self.scope}")


def ensure_punkt() -> None:
    """Download the NLTK Punkt sentence model if it is not installed yet."""
    try:
        nltk.data.find("tokenizers/punkt_tab")
    except LookupError:
        logger.info("NLTK punkt_tab not found. Downloading...")
        nltk.download("punkt_tab", quiet=True)


class SentenceSplitter:
    """
    Sentence-aware document splitter.

    Segments are made of whole sentences and never exceed max_segment_size
    characters. When a sentence does not fit, the current segment is closed
    and the next one is seeded with trailing sentences of the previous
    segment (at most max_overlap characters).
    """

    def __init__(
        self,
        max_segment_size: int = 200,
        max_overlap: int = 20,
        language: str = "english",
        sentence_tokenizer: Optional[Callable[[str], List[str]]] = None
    ):
        """
        Args:
            max_segment_size: Maximum segment length in characters
            max_overlap: Maximum overlap with the previous segment in characters
            language: Punkt model language used for sentence detection
            sentence_tokenizer: Optional replacement for NLTK sent_tokenize
        """
        if max_segment_size <= 0:
            raise ValueError("max_segment_size must be positive")
        if max_overlap < 0:
            raise ValueError("max_overlap must be >= 0")

        self.max_segment_size = max_segment_size
        self.max_overlap = max_overlap
        self.language = language

        if sentence_tokenizer is None:
            ensure_punkt()
            self._tokenize = lambda text: sent_tokenize(text, language=self.language)
        else:
            self._tokenize = sentence_tokenizer

    @classmethod
    def from_config(cls, config: SplitterConfig) -> "SentenceSplitter":
        return cls(config.max_segment_size, config.max_overlap, config.language)

    def split(self, document: Document) -> List[TextSegment]:
        """
        Split a single document into segments.

        Args:
            document: Document to split

        Returns:
            Ordered segments; each one inherits the document metadata and
            records its position under the "index" key.
        """
        if not document.text or not document.text.strip():
            return []

        parts = []
        for sentence in self._tokenize(document.text):
            sentence = sentence.strip()
            if not sentence:
                continue
            if len(sentence) > self.max_segment_size:
                parts.extend(self._split_oversized(sentence))
            else:
                parts.append(sentence)

        texts = []
        current: List[str] = []
        for part in parts:
            if current and _joined_length(current + [part]) > self.max_segment_size:
                texts.append(" ".join(current))
                current = self._overlap(current, part)
            current.append(part)

        if current:
            texts.append(" ".join(current))

        segments = []
        for i, text in enumerate(texts):
            metadata = dict(document.metadata)
            metadata[INDEX_KEY] = str(i)
            segments.append(TextSegment(text=text, metadata=metadata))

        logger.debug(
            f"Split {document.metadata.get(FILE_KEY, '<unnamed>')} "
            f"into {len(segments)} segments"
        )
        return segments

    def split_all(self, documents: List[Document]) -> List[TextSegment]:
        """Split several documents into one flat, ordered list of segments."""
        segments = []
        for document in documents:
            segments.extend(self.split(document))
        return segments

    def _overlap(self, previous: List[str], next_part: str) -> List[str]:
        # Longest run of trailing sentences within max_overlap that still
        # leaves room for the sentence that opens the new segment.
        seed: List[str] = []
        for sentence in reversed(previous):
            candidate = [sentence] + seed
            if _joined_length(candidate) > self.max_overlap:
                break
            seed = candidate

        if seed and _joined_length(seed + [next_part]) <= self.max_segment_size:
            return seed
        return []

    def _split_oversized(self, sentence: str) -> List[str]:
        pieces = []
        current = ""
        for word in sentence.split():
            while len(word) > self.max_segment_size:
                if current:
                    pieces.append(current)
                    current = ""
                pieces.append(word[:self.max_segment_size])
                word = word[self.max_segment_size:]
            if not word:
                continue
            if current and len(current) + 1 + len(word) > self.max_segment_size:
                pieces.append(current)
                current = word
            else:
                current = f"{current} {word}" if current else word
        if current:
            pieces.append(current)
        return pieces


def _joined_length(parts: List[str]) -> int:
    return sum(len(p) for p in parts) + max(len(parts) - 1, 0)


def add_extended_context(
    segments: List[TextSegment],
    before: int = 2,
    after: int = 2
) -> List[SegmentWithContext]:
    """
    Compute the extended context of every segment.

    The extended context of segment i is the space-joined text of segments
    max(0, i - before) .. min(N - 1, i + after).

    Args:
        segments: Ordered segments
        before: Number of preceding segments to include
        after: Number of following segments to include

    Returns:
        One SegmentWithContext per input segment, in the same order. The
        returned segments carry the context under "extended_content".

    Example:
        >>> segs = [TextSegment("A."), TextSegment("B."), TextSegment("C.")]
        >>> add_extended_context(segs, 1, 1)[0].context
        'A. B.'
    """
    n = len(segments)
    results = []

    for i, segment in enumerate(segments):
        start = max(0, i - before)
        end = min(n - 1, i + after)
        context = " ".join(segments[j].text for j in range(start, end + 1))

        metadata = dict(segment.metadata)
        metadata[EXTENDED_CONTENT_KEY] = context
        results.append(
            SegmentWithContext(
                segment=TextSegment(text=segment.text, metadata=metadata),
                context=context
            )
        )

    return results
