"""
LLM Module
----------
Purpose: Query Groq LLM (buffered or streamed) and build RAG prompts
"""
from groq import Groq
from typing import Iterator, List
import os
import logging

logger = logging.getLogger(__name__)


class GroqLLMClient:
    """
    Client for querying Groq LLM
    Requires: Groq API key
    Model: llama-3.1-8b-instant -> check available models using client.models.list()
    """
    def __init__(
        self,
        api_key: str = None,
        model_name: str = "llama-3.1-8b-instant",
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ):
        """
        Initialize Groq LLM client
        Args:
            api_key (str): Groq API key (falls back to GROQ_API_KEY)
            model_name (str): Groq model name
            max_tokens (int): Maximum number of tokens to generate
            temperature (float): 0-1, higher for more varied answers
        """
        self.api_key = api_key or os.getenv("GROQ_API_KEY")

        if not self.api_key:
            raise ValueError("GROQ_API_KEY not found in environment variables")

        self.client = Groq(api_key=self.api_key)
        self.model_name = model_name
        self.max_tokens = max_tokens
        self.temperature = temperature

        logger.info(f"Groq LLM client initialized with model: {self.model_name}")

    def complete(self, prompt: str) -> str:
        """
        Send a single-turn prompt and return the whole answer.

        Raises:
            RuntimeError: If Groq API fails
        """
        try:
            response = self.client.chat.completions.create(
                model=self.model_name,
                messages=[
                    {"role": "user", "content": prompt}
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
            answer = response.choices[0].message.content or ""
            logger.debug(f"Groq API response: {answer}")
            return answer
        except Exception as e:
            logger.error(f"Groq query failed: {e}")
            raise RuntimeError(f"LLM query failed: {e}")

    def complete_streaming(self, prompt: str) -> Iterator[str]:
        """
        Send a single-turn prompt and yield the answer as it is generated.

        Yields:
            Non-empty text deltas, in order

        Raises:
            RuntimeError: If Groq API fails
        """
        try:
            stream = self.client.chat.completions.create(
                model=self.model_name,
                messages=[
                    {"role": "user", "content": prompt}
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                stream=True,
            )
            for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        except Exception as e:
            logger.error(f"Groq streaming query failed: {e}")
            raise RuntimeError(f"LLM streaming query failed: {e}")

    def query(self, context: str, query: str) -> str:
        """
        Query the Groq LLM with retrieved context
        Args:
            context (str): Retrieved context (may be empty)
            query: User's question

        Returns:
            LLM's answer as string
        """
        logger.debug(f"Querying Groq with {len(context)} chars context")
        return self.complete(build_prompt(context, query))

    def query_stream(self, context: str, query: str) -> Iterator[str]:
        """Streaming counterpart of query()."""
        logger.debug(f"Streaming Groq answer with {len(context)} chars context")
        return self.complete_streaming(build_prompt(context, query))


def build_prompt(context: str, question: str) -> str:
    """
    Build the final prompt for LLM
    Args:
        context (str): Retrieved segments, already formatted
        question (str): Question to ask
    Returns:
        str: Prompt for LLM
    """
    if not context.strip():
        return (
            "You are a helpful assistant. No reference documents were found "
            "for this question; answer it briefly and say that no sources "
            "were available.\n\n"
            f"Question: {question}\n\n"
            "Answer:"
        )

    return (
        "You are a helpful assistant. Answer the question based ONLY on the provided context.\n"
        "If the context doesn't contain enough information to answer, say so explicitly.\n"
        "Do not make up information.\n\n"
        f"Context:\n{context}\n\n"
        f"Question: {question}\n\n"
        "Answer:"
    )


def build_context_string(
    contents: List,
    include_scores: bool = True
) -> str:
    """
    Build a context string from retrieved contents
    Args:
        contents: List of Content objects (extended text already substituted)
        include_scores: Whether to include scores in the context string
    Returns:
        Context string
    """
    context_parts = []

    for i, content in enumerate(contents, 1):
        if include_scores:
            part = f"[Chunk {i} - Relevance: {content.score:.1%}]\n{content.text}"
        else:
            part = f"[Chunk {i}]\n{content.text}"

        context_parts.append(part)

    return "\n\n".join(context_parts)
