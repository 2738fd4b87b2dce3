from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse, StreamingResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
import logging
import time
from typing import Dict, List, Optional
from datetime import datetime

from src.contextual_rag import RAGPipeline, RAGConfig

# ==================== Setup ====================

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Contextual RAG",
    description="Contextual RAG with extended-context retrieval and source attribution",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global pipeline instance
pipeline: Optional[RAGPipeline] = None


# ==================== Pydantic Models ====================

class QueryRequest(BaseModel):
    """Request body for query endpoints."""
    query: str
    chat_history: List[Dict[str, str]] = []


class QueryResponse(BaseModel):
    """Response for query."""
    query: str
    answer: str
    sources: List[dict]
    chunks_used: int
    response_time: float
    status: str


class IngestResponse(BaseModel):
    """Response for ingestion."""
    documents: int
    segments: int
    embedded: int
    timestamp: str


class HealthResponse(BaseModel):
    """Response for health check."""
    status: str
    embedding_backend: str
    vector_store: dict
    timestamp: str


class StatsResponse(BaseModel):
    """Response for stats."""
    total_chunks: int
    documents: int
    config: dict
    timestamp: str


def require_pipeline() -> RAGPipeline:
    if not pipeline:
        raise HTTPException(status_code=503, detail="Pipeline not initialized")
    return pipeline


def validate_query(request: QueryRequest) -> None:
    if not request.query.strip():
        raise HTTPException(status_code=400, detail="Query must not be empty")


# ==================== Startup/Shutdown ====================

@app.on_event("startup")
async def startup_event():
    """Build the pipeline and index the documents once."""
    global pipeline

    logger.info("=" * 60)
    logger.info("Starting Contextual RAG API")
    logger.info("=" * 60)

    try:
        config = RAGConfig()
        pipeline = RAGPipeline(config=config)
        stats = pipeline.initialize()

        logger.info(f"✓ Pipeline initialized ({stats['segments']} segments)")
        logger.info(f"✓ Embedding backend: {config.embedding_backend}")
    except Exception as e:
        logger.error(f"Failed to initialize pipeline: {e}")
        raise


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown."""
    logger.info("Shutting down Contextual RAG API")


# ==================== Health & Status ====================

@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Check system health."""
    current = require_pipeline()

    try:
        chunks = current.vector_store.size()
        return HealthResponse(
            status="healthy" if chunks > 0 else "empty",
            embedding_backend=current.config.embedding_backend,
            vector_store={"status": "✓", "chunks": chunks},
            timestamp=datetime.now().isoformat()
        )
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/stats", response_model=StatsResponse)
async def get_stats():
    """Get pipeline statistics."""
    current = require_pipeline()

    try:
        stats = current.get_stats()
        return StatsResponse(
            total_chunks=stats['total_chunks'],
            documents=stats['documents'],
            config=stats['config'],
            timestamp=datetime.now().isoformat()
        )
    except Exception as e:
        logger.error(f"Stats retrieval failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))


# ==================== Ingestion ====================

@app.post("/ingest", response_model=IngestResponse)
async def reingest():
    """
    Rebuild the index from the configured documents directory.

    WARNING: queries served while this runs may see an empty index.
    """
    current = require_pipeline()

    try:
        stats = current.initialize()
        return IngestResponse(
            documents=stats['documents'],
            segments=stats['segments'],
            embedded=stats['embedded'],
            timestamp=datetime.now().isoformat()
        )
    except (FileNotFoundError, NotADirectoryError) as e:
        logger.error(f"Ingestion failed: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Ingestion failed: {e}")
        raise HTTPException(status_code=500, detail=f"Ingestion failed: {str(e)}")


# ==================== Query Endpoints ====================

@app.post("/query", response_model=QueryResponse)
async def query(request: QueryRequest):
    """
    Answer a question; the answer ends with "(Sources: ...)" when the
    retrieved documents back it.

    Example:
        curl -X POST "http://localhost:8000/query" \
          -H "Content-Type: application/json" \
          -d '{"query": "Why is the sky blue?"}'
    """
    current = require_pipeline()
    validate_query(request)

    try:
        start_time = time.time()
        result = current.query(request.query, chat_history=request.chat_history)
        response_time = time.time() - start_time

        return QueryResponse(
            query=result['query'],
            answer=result['answer'],
            sources=result['sources'],
            chunks_used=result['chunks_used'],
            response_time=round(response_time, 3),
            status=result['status']
        )
    except Exception as e:
        logger.error(f"Query failed: {e}")
        raise HTTPException(status_code=500, detail=f"Query failed: {str(e)}")


@app.post("/query/stream")
async def query_stream(request: QueryRequest):
    """Stream the answer as plain text, citation suffix last."""
    current = require_pipeline()
    validate_query(request)

    try:
        chunks = current.query_stream(request.query, chat_history=request.chat_history)
    except Exception as e:
        logger.error(f"Streaming query failed: {e}")
        raise HTTPException(status_code=500, detail=f"Query failed: {str(e)}")

    return StreamingResponse(chunks, media_type="text/plain")


# ==================== Document Management ====================

@app.post("/reset")
async def reset_system():
    """
    Clear all segments and embeddings.

    Returns:
        Reset confirmation
    """
    current = require_pipeline()

    try:
        logger.warning("RESET: Clearing all segments and embeddings")
        current.vector_store.clear()
        logger.info("✓ System reset complete")

        return {
            "status": "success",
            "message": "All segments and embeddings cleared",
            "chunks_remaining": current.vector_store.size(),
            "timestamp": datetime.now().isoformat()
        }
    except Exception as e:
        logger.error(f"Reset failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))


# ==================== Error Handlers ====================

@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc):
    """Handle HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.detail,
            "status": "error",
            "timestamp": datetime.now().isoformat()
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc):
    """Handle general exceptions."""
    logger.error(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "status": "error",
            "timestamp": datetime.now().isoformat()
        }
    )


@app.get("/")
async def root():
    """API info."""
    return {
        "name": "Contextual RAG",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "embedding_backend": pipeline.config.embedding_backend if pipeline else "initializing",
        "timestamp": datetime.now().isoformat()
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
