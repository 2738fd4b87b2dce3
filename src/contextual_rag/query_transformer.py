"""
Query Transformer
-----------------
Purpose: Compress a follow-up question and the conversation so far into a
single standalone query before it is embedded for retrieval.
"""
from typing import Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

COMPRESSION_PROMPT = """Read and understand the conversation between the User and the AI.
Then analyze the new query from the User. Identify all relevant details, terms and context
from both the conversation and the new query, and reformulate the query into a clear,
concise and self-contained form suitable for information retrieval.

Conversation:
{conversation}

User query: {query}

Reply with the reformulated query only, without any prefix or explanation."""


def format_conversation(chat_history: List[Dict[str, str]]) -> str:
    lines = []
    for message in chat_history:
        role = message.get("role", "user")
        speaker = "User" if role == "user" else "AI"
        lines.append(f"{speaker}: {message.get('content', '')}")
    return "\n".join(lines)


class CompressingQueryTransformer:
    """
    Rewrites a query with the help of the generation model.

    Without conversation history there is nothing to compress and the query
    is used as-is.
    """

    def __init__(self, llm):
        """
        Args:
            llm: Any client with complete(prompt) -> str
        """
        self.llm = llm

    def transform(self, query: str, chat_history: Optional[List[Dict[str, str]]] = None) -> str:
        if not chat_history:
            return query

        prompt = COMPRESSION_PROMPT.format(
            conversation=format_conversation(chat_history),
            query=query
        )
        compressed = (self.llm.complete(prompt) or "").strip()

        if not compressed:
            logger.warning("Query compression returned nothing, using original query")
            return query

        logger.debug(f"Compressed query: {query!r} -> {compressed!r}")
        return compressed
