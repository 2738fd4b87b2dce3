"""
Contextual RAG Package
======================

Retrieval-Augmented Generation with extended-context segments and
similarity-based source attribution
"""

from .chunker import (
    Document,
    TextSegment,
    SentenceSplitter,
    SplitterConfig,
    ContextWindowConfig,
    add_extended_context,
    FILE_KEY,
    EXTENDED_CONTENT_KEY,
)
from .embeddings import OllamaEmbeddingClient, SentenceTransformerEmbeddingClient, cosine_similarity
from .vector_store import ChromaVectorStore, SimpleVectorStore, RetrievalResult
from .llm import GroqLLMClient, build_context_string, build_prompt
from .query_transformer import CompressingQueryTransformer
from .retriever import Content, ContextualRetriever
from .attribution import SourceAttributor, format_sources
from .ingestion import IngestionResult, ingest, read_documents
from .pipeline import RAGPipeline, RAGConfig

__all__ = [
    # Segmentation
    "Document",
    "TextSegment",
    "SentenceSplitter",
    "SplitterConfig",
    "ContextWindowConfig",
    "add_extended_context",
    "FILE_KEY",
    "EXTENDED_CONTENT_KEY",
    # Embeddings
    "OllamaEmbeddingClient",
    "SentenceTransformerEmbeddingClient",
    "cosine_similarity",
    # Vector Store
    "ChromaVectorStore",
    "SimpleVectorStore",
    "RetrievalResult",
    # LLM
    "GroqLLMClient",
    "build_context_string",
    "build_prompt",
    # Retrieval
    "CompressingQueryTransformer",
    "Content",
    "ContextualRetriever",
    # Attribution
    "SourceAttributor",
    "format_sources",
    # Ingestion
    "IngestionResult",
    "ingest",
    "read_documents",
    # Pipeline
    "RAGPipeline",
    "RAGConfig",
]

__version__ = "0.1.0"
