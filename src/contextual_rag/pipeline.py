"""
RAG Pipeline
------------
Purpose: Wire ingestion, contextual retrieval, generation and source
attribution into one object whose lifecycle is owned by the caller.
"""

from typing import Any, Dict, Iterator, List, Optional
from dataclasses import dataclass
import logging
import os
from dotenv import load_dotenv

from .attribution import DEFAULT_SIMILARITY_THRESHOLD, SourceAttributor
from .chunker import ContextWindowConfig, SplitterConfig
from .ingestion import IngestionResult, ingest
from .llm import GroqLLMClient, build_context_string
from .query_transformer import CompressingQueryTransformer
from .retriever import ContextualRetriever
from .vector_store import ChromaVectorStore

logger = logging.getLogger(__name__)


ENV_PATHS = [
    os.path.join(os.path.dirname(__file__), '../..', '.env'),
    os.path.join(os.path.dirname(__file__), '.env'),
]


def load_env():
    """Load environment variables from project root .env file."""
    for env_path in ENV_PATHS:
        if os.path.exists(env_path):
            load_dotenv(env_path)
            logger.debug(f"Loaded .env from: {env_path}")
            return env_path

    logger.warning("No .env file found")
    return None


def get_embeddings_client(backend: str = None):
    """
    Get embeddings client for a backend name.

    Environment Variables:
        EMBEDDING_BACKEND: "ollama" or "sentence-transformers" (default)
        OLLAMA_BASE_URL: URL for Ollama (default: http://localhost:11434)

    Returns:
        Embeddings client instance
    """
    backend = (backend or os.getenv("EMBEDDING_BACKEND", "sentence-transformers")).lower()

    if backend == "ollama":
        logger.info("Using Ollama embeddings")
        from .embeddings import OllamaEmbeddingClient
        base_url = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
        return OllamaEmbeddingClient(
            base_url=base_url,
            model="nomic-embed-text"
        )
    else:
        logger.info("Using Sentence-Transformers embeddings (local)")
        from .embeddings import SentenceTransformerEmbeddingClient
        return SentenceTransformerEmbeddingClient()


@dataclass
class RAGConfig:
    """Configuration for RAG pipeline."""
    documents_path: str = None  # RAG_LOCATION env var if None
    max_segment_size: int = 200
    max_overlap: int = 20
    language: str = "english"
    context_before: int = 2
    context_after: int = 2
    context_scope: str = "batch"
    max_results: int = 3
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    embedding_backend: str = None  # EMBEDDING_BACKEND env var if None
    groq_api_key: str = None
    persist_directory: str = None  # CHROMA_PERSIST_DIR env var if None

    def __post_init__(self):
        """Fill unset fields from the environment (.env included)."""
        load_env()
        if self.documents_path is None:
            self.documents_path = os.getenv("RAG_LOCATION", "documents")
        if self.embedding_backend is None:
            self.embedding_backend = os.getenv("EMBEDDING_BACKEND", "sentence-transformers")
        if self.persist_directory is None:
            self.persist_directory = os.getenv("CHROMA_PERSIST_DIR", ".chromadb")

    @property
    def splitter_config(self) -> SplitterConfig:
        return SplitterConfig(
            max_segment_size=self.max_segment_size,
            max_overlap=self.max_overlap,
            language=self.language
        )

    @property
    def context_config(self) -> ContextWindowConfig:
        return ContextWindowConfig(
            before=self.context_before,
            after=self.context_after,
            scope=self.context_scope
        )


class RAGPipeline:
    """
    End-to-end contextual RAG pipeline.

    Workflow:
        1. Construct: create (or accept) the components
        2. initialize(): rebuild the index from config.documents_path
        3. query() / query_stream(): retrieve, answer, cite sources
    """
    def __init__(
        self,
        config: RAGConfig = None,
        embeddings=None,
        llm=None,
        vector_store=None
    ):
        """
        Initialize RAG pipeline with all components.

        Args:
            config: RAGConfig object with settings
            embeddings: Optional embeddings client (for dependency injection)
            llm: Optional LLM client (for dependency injection)
            vector_store: Optional vector store (for dependency injection)
        """
        self.config = config or RAGConfig()
        logger.info("Initializing RAG Pipeline...")

        if embeddings:
            self.embeddings = embeddings
            logger.info("✓ Using provided embeddings client")
        else:
            try:
                self.embeddings = get_embeddings_client(self.config.embedding_backend)
                logger.info("✓ Embeddings client ready")
            except Exception as e:
                logger.error(f"Failed to initialize embeddings: {e}")
                raise

        if llm:
            self.llm = llm
            logger.info("✓ Using provided LLM client")
        else:
            try:
                api_key = self.config.groq_api_key or os.getenv("GROQ_API_KEY")
                if not api_key:
                    raise ValueError(
                        "GROQ_API_KEY not provided. Pass it in RAGConfig or set GROQ_API_KEY environment variable."
                    )
                self.llm = GroqLLMClient(api_key=api_key)
                logger.info("✓ LLM client ready")
            except Exception as e:
                logger.error(f"Failed to initialize LLM: {e}")
                raise

        if vector_store is not None:
            self.vector_store = vector_store
        else:
            self.vector_store = ChromaVectorStore(persist_directory=self.config.persist_directory)
        logger.info("✓ Vector store ready")

        self.retriever = ContextualRetriever(
            store=self.vector_store,
            embeddings=self.embeddings,
            query_transformer=CompressingQueryTransformer(self.llm),
            max_results=self.config.max_results
        )
        self.attributor = SourceAttributor(
            self.embeddings,
            similarity_threshold=self.config.similarity_threshold
        )
        self.last_ingestion: Optional[IngestionResult] = None

        logger.info("✓ RAG Pipeline initialized")

    def initialize(self) -> Dict[str, int]:
        """
        (Re)build the index from config.documents_path.

        Clears the store first; do not serve queries while this runs.

        Returns:
            Ingestion counts
        """
        logger.info(f"Ingesting documents from: {self.config.documents_path}")
        self.last_ingestion = ingest(
            self.config.documents_path,
            self.vector_store,
            self.embeddings,
            splitter_config=self.config.splitter_config,
            context_config=self.config.context_config
        )
        return self.last_ingestion.stats

    def query(
        self,
        query: str,
        chat_history: Optional[List[Dict[str, str]]] = None,
        return_sources: bool = True
    ) -> Dict[str, Any]:
        """
        Query the RAG system: retrieve relevant segments and generate a cited answer.

        Args:
            query: User's question
            chat_history: Previous messages used to compress the query
            return_sources: Include retrieved segment details in the result

        Returns:
            Dictionary with 'query', 'answer', 'sources', etc.
        """
        logger.info(f"Querying: {query}")

        contents = self.retriever.retrieve(query, chat_history)
        logger.debug(f"  → Retrieved {len(contents)} contents")

        context = build_context_string(contents)
        try:
            answer = self.llm.query(context=context, query=query)
        except Exception as e:
            logger.error(f"LLM query failed: {e}")
            raise

        answer = self.attributor.augment_complete(answer, contents)

        sources = [
            {
                "file": c.file,
                "similarity": round(c.score, 3),
                "preview": c.original_text[:100] + "..." if len(c.original_text) > 100 else c.original_text
            }
            for c in contents
        ] if return_sources else []

        result = {
            "query": query,
            "answer": answer,
            "sources": sources,
            "chunks_used": len(contents),
            "status": "success" if contents else "no_results"
        }

        logger.info(f"Query complete: {result['status']}")
        return result

    def query_stream(
        self,
        query: str,
        chat_history: Optional[List[Dict[str, str]]] = None
    ) -> Iterator[str]:
        """
        Stream the answer for a query, followed by its citation suffix.

        Retrieval happens before the first chunk is produced.
        """
        logger.info(f"Streaming query: {query}")
        contents = self.retriever.retrieve(query, chat_history)
        context = build_context_string(contents)
        return self.attributor.augment_streamed(
            self.llm.query_stream(context=context, query=query),
            contents
        )

    def get_stats(self) -> Dict[str, Any]:
        """Get pipeline statistics."""
        return {
            "total_chunks": self.vector_store.size(),
            "documents": self.last_ingestion.stats["documents"] if self.last_ingestion else 0,
            "config": {
                "documents_path": str(self.config.documents_path),
                "max_segment_size": self.config.max_segment_size,
                "max_overlap": self.config.max_overlap,
                "context_before": self.config.context_before,
                "context_after": self.config.context_after,
                "context_scope": self.config.context_scope,
                "max_results": self.config.max_results,
                "similarity_threshold": self.config.similarity_threshold
            }
        }
