"""Chunk annotator: explanation, purpose and complexity per chunk.

With ``annotation.use_llm`` enabled each chunk is sent to the chat model in
JSON mode. A provider error or an unusable answer gives that chunk the
fixed fallback annotation; ingestion never fails because of annotation.
Without an LLM, annotations are derived from the chunk's structure.
"""

from __future__ import annotations

import json
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional

from code_explorer.core.settings import Settings, resolve_path
from code_explorer.core.trace.trace_context import TraceContext
from code_explorer.core.types import COMPLEXITY_LEVELS, CodeChunk
from code_explorer.ingestion.chunking.code_analysis import assess_complexity
from code_explorer.ingestion.transform.base_transform import BaseTransform
from code_explorer.libs.llm.base_llm import BaseLLM
from code_explorer.libs.llm.llm_factory import LLMFactory
from code_explorer.observability.logger import get_logger

logger = get_logger(__name__)

FALLBACK_EXPLANATION = "Could not generate AI explanation."
FALLBACK_PURPOSE = "Could not determine AI purpose."
FALLBACK_COMPLEXITY = "moderate"

DEFAULT_MAX_WORKERS = 4

_DEFAULT_PROMPT = (
    "You are reviewing one chunk of a codebase. Reply with a JSON object only, "
    'with keys "explanation", "purpose" and "complexity" '
    '(one of "simple", "moderate", "complex").'
)

_PURPOSE_BY_TYPE = {
    "component": "Renders part of the user interface.",
    "api": "Handles requests for an API endpoint.",
    "config": "Configures how the project is built or run.",
    "style": "Defines presentation styles.",
    "test": "Verifies the behaviour of other code.",
    "utility": "Provides reusable logic for other modules.",
}

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.MULTILINE)


def parse_annotation(raw: str) -> Dict[str, str]:
    """Parse a model reply into an annotation dict.

    Raises:
        ValueError: If the reply is not a JSON object with a non-empty
            explanation.
    """
    cleaned = _CODE_FENCE.sub("", raw.strip()).strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ValueError(f"Annotation is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ValueError("Annotation JSON must be an object")

    explanation = str(data.get("explanation") or "").strip()
    if not explanation:
        raise ValueError("Annotation is missing 'explanation'")
    complexity = str(data.get("complexity") or "").strip().lower()
    return {
        "explanation": explanation,
        "purpose": str(data.get("purpose") or "").strip() or FALLBACK_PURPOSE,
        "complexity": complexity if complexity in COMPLEXITY_LEVELS else FALLBACK_COMPLEXITY,
    }


class ChunkAnnotator(BaseTransform):
    """Fill ``explanation``, ``purpose`` and ``complexity`` on each chunk.

    Args:
        settings: Application settings; reads the ``annotation`` section.
        llm: Optional pre-built LLM. When omitted and ``annotation.use_llm``
            is true, one is created in JSON mode from settings.
    """

    def __init__(self, settings: Settings, llm: Optional[BaseLLM] = None) -> None:
        self.settings = settings
        config = settings.annotation
        self.use_llm = bool(config.get("use_llm", False)) or llm is not None
        self.max_workers = int(config.get("max_workers", DEFAULT_MAX_WORKERS))
        self.llm: Optional[BaseLLM] = llm

        if self.use_llm and self.llm is None:
            try:
                self.llm = LLMFactory.create(
                    settings,
                    model=config.get("model"),
                    temperature=config.get("temperature", 0.7),
                    max_tokens=config.get("max_tokens", 500),
                    json_mode=True,
                )
            except (ValueError, RuntimeError) as e:
                logger.error("Failed to initialize annotation LLM, using rule-based annotation: %s", e)
                self.use_llm = False

        self.prompt = self._load_prompt()

    def _load_prompt(self) -> str:
        prompt_path = resolve_path("config/prompts/chunk_annotation.txt")
        if prompt_path.exists():
            return prompt_path.read_text(encoding="utf-8").strip()
        return _DEFAULT_PROMPT

    def _messages(self, chunk: CodeChunk) -> List[Dict[str, str]]:
        user = (
            f"File: {chunk.file_path} (lines {chunk.start_line}-{chunk.end_line})\n"
            f"Chunk type: {chunk.chunk_type}\n\n"
            f"```{chunk.language}\n{chunk.text}\n```"
        )
        return [
            {"role": "system", "content": self.prompt},
            {"role": "user", "content": user},
        ]

    def _annotate_with_llm(self, chunk: CodeChunk) -> None:
        try:
            annotation = parse_annotation(self.llm.chat(self._messages(chunk)))
        except Exception as e:
            logger.warning("LLM annotation failed for %s: %s", chunk.id, e)
            chunk.explanation = FALLBACK_EXPLANATION
            chunk.purpose = FALLBACK_PURPOSE
            chunk.complexity = FALLBACK_COMPLEXITY
            chunk.annotated_by = "fallback"
            return
        chunk.explanation = annotation["explanation"]
        chunk.purpose = annotation["purpose"]
        chunk.complexity = annotation["complexity"]
        chunk.annotated_by = "llm"

    @staticmethod
    def annotate_with_rules(chunk: CodeChunk) -> None:
        subject = f"`{chunk.symbol_name}`" if chunk.symbol_name else "code"
        chunk.explanation = (
            f"{chunk.chunk_type.capitalize()} {subject} in {chunk.file_name}, "
            f"lines {chunk.start_line}-{chunk.end_line}."
        )
        chunk.purpose = _PURPOSE_BY_TYPE.get(chunk.chunk_type, _PURPOSE_BY_TYPE["utility"])
        chunk.complexity = assess_complexity(chunk.text)
        chunk.annotated_by = "rule"

    def transform(
        self,
        chunks: List[CodeChunk],
        trace: Optional[TraceContext] = None,
    ) -> List[CodeChunk]:
        if not chunks:
            return chunks

        if self.use_llm and self.llm is not None:
            with ThreadPoolExecutor(max_workers=max(1, min(self.max_workers, len(chunks)))) as executor:
                list(executor.map(self._annotate_with_llm, chunks))
        else:
            for chunk in chunks:
                self.annotate_with_rules(chunk)

        counts: Dict[str, Any] = {"llm": 0, "rule": 0, "fallback": 0}
        for chunk in chunks:
            counts[chunk.annotated_by] = counts.get(chunk.annotated_by, 0) + 1
        logger.info(
            "Annotated %d chunks (llm=%d, rule=%d, fallback=%d)",
            len(chunks), counts["llm"], counts["rule"], counts["fallback"],
        )
        if trace is not None:
            trace.record_stage("annotate", {"method": "llm" if self.use_llm else "rule", **counts})
        return chunks
