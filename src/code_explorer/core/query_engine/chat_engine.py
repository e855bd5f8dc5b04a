"""Chat Engine: answers questions about a session's code.

Retrieves the most relevant chunks of the session, formats them as
fenced code with their file paths, and asks the chat LLM to answer from
that context only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from code_explorer.core.query_engine.dense_retriever import CodeSearch
from code_explorer.core.types import RetrievalResult

if TYPE_CHECKING:
    from code_explorer.core.settings import Settings
    from code_explorer.libs.llm.base_llm import BaseLLM

logger = logging.getLogger(__name__)

CHAT_SYSTEM_PROMPT = (
    "You are an AI assistant that answers questions about codebases. "
    "Use the provided context to answer the user's question. "
    "If the answer is not in the context, state that you don't have enough information."
)

NO_CONTEXT_ANSWER = (
    "I could not find relevant information in the provided codebase to answer your question."
)

_HISTORY_ROLES = frozenset({"user", "assistant"})


@dataclass
class ChatAnswer:
    """Answer plus the chunks it was grounded on."""

    answer: str
    sources: List[RetrievalResult] = field(default_factory=list)
    has_context: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "answer": self.answer,
            "has_context": self.has_context,
            "sources": [
                {
                    "file_path": source.file_path,
                    "start_line": source.metadata.get("start_line"),
                    "end_line": source.metadata.get("end_line"),
                    "score": round(source.score, 4),
                }
                for source in self.sources
            ],
        }


def format_context(results: List[RetrievalResult]) -> str:
    """Render retrieved chunks as ``File: path`` headers with fenced code."""
    return "\n\n".join(
        f"File: {result.file_path}\n```\n{result.text}\n```\n" for result in results
    )


class CodeChat:
    """Retrieval-augmented chat over one session.

    Args:
        search: Retriever used to find context chunks.
        llm: Chat LLM.
        default_top_k: Number of context chunks when the caller gives none.
    """

    def __init__(self, search: CodeSearch, llm: BaseLLM, default_top_k: int = 3) -> None:
        self.search = search
        self.llm = llm
        self.default_top_k = default_top_k

    def build_messages(
        self,
        message: str,
        context: str,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> List[Dict[str, str]]:
        messages = [{"role": "system", "content": CHAT_SYSTEM_PROMPT}]
        for turn in history or []:
            if turn.get("role") in _HISTORY_ROLES and isinstance(turn.get("content"), str):
                messages.append({"role": turn["role"], "content": turn["content"]})
        messages.append({"role": "user", "content": f"Context:\n{context}\n\nQuestion: {message}"})
        return messages

    def ask(
        self,
        session_id: str,
        message: str,
        history: Optional[List[Dict[str, str]]] = None,
        top_k: Optional[int] = None,
        trace: Optional[Any] = None,
    ) -> ChatAnswer:
        """Answer *message* from the code of *session_id*.

        Args:
            session_id: Session to search.
            message: User question.
            history: Earlier ``{"role", "content"}`` turns; other roles are ignored.
            top_k: Number of context chunks.
            trace: Optional TraceContext.

        Raises:
            ValueError: If the message or session id is empty.
            RuntimeError: If retrieval or the LLM call fails.
        """
        if not isinstance(message, str) or not message.strip():
            raise ValueError("Message cannot be empty")

        results = self.search.search(
            session_id,
            message,
            top_k=top_k or self.default_top_k,
            trace=trace,
        )
        if not results:
            logger.info("No context found for session %s; returning fixed answer", session_id)
            return ChatAnswer(answer=NO_CONTEXT_ANSWER, has_context=False)

        messages = self.build_messages(message, format_context(results), history)
        answer = self.llm.chat(messages)
        if trace is not None:
            trace.record_stage("chat", {"context_chunks": len(results), "history_turns": len(history or [])})
        return ChatAnswer(answer=answer, sources=results)


def create_code_chat(
    settings: Settings,
    search: Optional[CodeSearch] = None,
    llm: Optional[BaseLLM] = None,
) -> CodeChat:
    """Factory function to create a CodeChat from settings."""
    if search is None:
        from code_explorer.core.query_engine.dense_retriever import create_code_search
        search = create_code_search(settings)
    if llm is None:
        from code_explorer.libs.llm.llm_factory import LLMFactory
        llm = LLMFactory.create(settings)
    return CodeChat(search, llm, default_top_k=int(settings.retrieval.get("chat_top_k", 3)))
