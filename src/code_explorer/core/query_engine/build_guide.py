"""Build Guide generator: an ordered, explained walkthrough of a session.

Chunks are ordered so that a file comes after the session files it
imports; ties go to more important files, then to chunk type (config,
utility, api, component, style, test), then to path. Each step is
explained by the LLM in the context of the whole project. Steps run in
concurrent batches with a pause between batches to stay under the chat
API's rate limit.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterator, List, Optional, Tuple

from code_explorer.core.query_engine.dependency_graph import (
    CHUNK_TYPE_RANK,
    IMPORTANCE_RANK,
    build_dependency_graph,
    order_files,
)
from code_explorer.core.query_engine.project_context import ProjectAnalyst, build_project_context
from code_explorer.core.query_engine.session_reader import fetch_session_chunks, group_by_file
from code_explorer.core.types import BuildGuide, BuildStep, CodeChunk

if TYPE_CHECKING:
    from code_explorer.core.settings import Settings
    from code_explorer.libs.llm.base_llm import BaseLLM
    from code_explorer.libs.vector_store.base_vector_store import BaseVectorStore

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5
DEFAULT_BATCH_DELAY_SECONDS = 1.0
DEFAULT_MAX_STEPS = 200


def simple_explanation(content: str, file_name: str, file_extension: str) -> str:
    """Rule-based step explanation used when the LLM is unavailable."""
    if not content.strip():
        return f"Empty file: {file_name}"

    line_count = sum(1 for line in content.split("\n") if line.strip())
    if "function " in content or "const " in content or "let " in content:
        code_type = "JavaScript/TypeScript functions and variables"
    elif "class " in content and "def " in content:
        code_type = "Python class definitions"
    elif "def " in content:
        code_type = "Python functions"
    elif "import " in content or "from " in content:
        code_type = "import statements"
    elif "export " in content:
        code_type = "export definitions"
    else:
        code_type = "code"
    return f"File: {file_name} ({file_extension.upper()}) - Contains {line_count} lines of {code_type}"


def order_chunks(chunks: List[CodeChunk]) -> List[CodeChunk]:
    """Order chunks for teaching: dependencies first, then by rank, then by line."""
    by_file = group_by_file(chunks)
    rank: Dict[str, Tuple[int, int, str]] = {}
    for file_path, file_chunks in by_file.items():
        importance = min(IMPORTANCE_RANK.get(c.importance, len(IMPORTANCE_RANK)) for c in file_chunks)
        type_rank = CHUNK_TYPE_RANK.get(file_chunks[0].chunk_type, len(CHUNK_TYPE_RANK))
        rank[file_path] = (importance, type_rank, file_path)

    ordered: List[CodeChunk] = []
    for file_path in order_files(build_dependency_graph(chunks), rank):
        ordered.extend(sorted(by_file[file_path], key=lambda c: (c.start_line, c.chunk_index)))
    return ordered


class BuildGuideGenerator:
    """Generate a build guide for a session.

    Args:
        vector_store: Store holding the session's chunks.
        llm: Chat LLM; when None every step gets the rule-based explanation.
        batch_size: Steps explained concurrently.
        batch_delay_seconds: Pause between batches.
        max_steps: Cap on steps per guide.
        sleep: Sleep function, injectable for tests.
    """

    def __init__(
        self,
        vector_store: BaseVectorStore,
        llm: Optional[BaseLLM] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay_seconds: float = DEFAULT_BATCH_DELAY_SECONDS,
        max_steps: int = DEFAULT_MAX_STEPS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.vector_store = vector_store
        self.llm = llm
        self.analyst = ProjectAnalyst(llm) if llm is not None else None
        self.batch_size = batch_size
        self.batch_delay_seconds = batch_delay_seconds
        self.max_steps = max_steps
        self._sleep = sleep

    def _explain(self, step_number: int, chunk: CodeChunk, project_context: str) -> Tuple[BuildStep, Optional[str]]:
        extension = chunk.file_extension.lstrip(".")
        error: Optional[str] = None
        explained_by = "rule"
        explanation = ""

        if self.analyst is not None:
            try:
                explanation = self.analyst.explain_build_step(chunk, project_context)
                explained_by = "llm"
            except Exception as e:
                logger.warning("Build step %d (%s) fell back to rules: %s", step_number, chunk.file_path, e)
                error = f"Error explaining {chunk.file_path}: {e}"
        if not explanation:
            explanation = simple_explanation(chunk.text, chunk.file_name, extension)
            explained_by = "rule"

        step = BuildStep(
            step_number=step_number,
            chunk_id=chunk.id,
            file_path=chunk.file_path,
            file_name=chunk.file_name,
            file_extension=extension,
            chunk_type=chunk.chunk_type,
            start_line=chunk.start_line,
            end_line=chunk.end_line,
            content=chunk.text,
            explanation=explanation,
            explained_by=explained_by,
        )
        return step, error

    def stream(self, session_id: str) -> Iterator[Dict[str, Any]]:
        """Yield guide events as steps complete.

        Events, in order: one ``{"type": "total", "count"}``; per step an
        optional ``{"type": "error", "step_number", "message"}`` followed by
        ``{"type": "step", "step"}``; finally ``{"type": "complete", "total_steps"}``.

        Raises:
            ValueError: If *session_id* is empty.
            LookupError: If the session has no chunks.
        """
        chunks = fetch_session_chunks(self.vector_store, session_id)
        if not chunks:
            raise LookupError(f"No code indexed for session {session_id}")

        ordered = [chunk for chunk in order_chunks(chunks) if chunk.text.strip()]
        if len(ordered) > self.max_steps:
            logger.info("Build guide for %s capped at %d of %d steps", session_id, self.max_steps, len(ordered))
            ordered = ordered[:self.max_steps]

        project_context = build_project_context(chunks)
        yield {"type": "total", "count": len(ordered)}

        step_count = 0
        with ThreadPoolExecutor(max_workers=self.batch_size) as executor:
            for start in range(0, len(ordered), self.batch_size):
                if start > 0 and self.batch_delay_seconds:
                    self._sleep(self.batch_delay_seconds)

                batch = ordered[start:start + self.batch_size]
                futures = [
                    executor.submit(self._explain, start + offset + 1, chunk, project_context)
                    for offset, chunk in enumerate(batch)
                ]
                for future in futures:
                    step, error = future.result()
                    if error is not None:
                        yield {"type": "error", "step_number": step.step_number, "message": error}
                    step_count += 1
                    yield {"type": "step", "step": step.to_dict()}

        yield {"type": "complete", "total_steps": step_count}

    def generate(self, session_id: str, include_overview: bool = False) -> BuildGuide:
        """Collect ``stream`` into a ``BuildGuide``.

        Args:
            session_id: Session to walk through.
            include_overview: Also ask the LLM for a project overview.
        """
        guide = BuildGuide(session_id=session_id)
        for event in self.stream(session_id):
            if event["type"] == "step":
                guide.steps.append(BuildStep(**event["step"]))
            elif event["type"] == "error":
                guide.errors.append({"step_number": event["step_number"], "message": event["message"]})

        if include_overview and self.analyst is not None:
            chunks = fetch_session_chunks(self.vector_store, session_id)
            try:
                guide.project_overview = self.analyst.analyze_project_overview(chunks)
            except Exception as e:
                logger.warning("Project overview failed for %s: %s", session_id, e)
                guide.errors.append({"step_number": None, "message": f"Unable to generate AI explanation. Error: {e}"})
        return guide


def create_build_guide_generator(
    settings: Settings,
    vector_store: Optional[BaseVectorStore] = None,
    llm: Optional[BaseLLM] = None,
) -> BuildGuideGenerator:
    """Factory function to create a BuildGuideGenerator from settings."""
    if vector_store is None:
        from code_explorer.libs.vector_store.vector_store_factory import VectorStoreFactory
        vector_store = VectorStoreFactory.create(settings)
    if llm is None:
        from code_explorer.libs.llm.llm_factory import LLMFactory
        llm = LLMFactory.create(settings)

    config = settings.build_guide
    return BuildGuideGenerator(
        vector_store,
        llm,
        batch_size=int(config.get("batch_size", DEFAULT_BATCH_SIZE)),
        batch_delay_seconds=float(config.get("batch_delay_seconds", DEFAULT_BATCH_DELAY_SECONDS)),
        max_steps=int(config.get("max_steps", DEFAULT_MAX_STEPS)),
    )
