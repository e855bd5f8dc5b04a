"""Ingestion Pipeline orchestrator for code-explorer.

This module implements the pipeline that turns a local codebase into a
searchable session:
    1. Loading (path → CodeFile list)
    2. Chunking (CodeFile → CodeChunk, line ranges + deterministic ids)
    3. Annotation (explanation / purpose / complexity, LLM or rules)
    4. Embedding (batched, rate-limited)
    5. Storage (VectorStore upsert, session-scoped metadata)
    6. Indexing (optional index build + readiness poll)

Design Principles:
- Config-Driven: All components configured via settings.yaml
- Observable: Logs progress and stage completion
- Graceful Degradation: LLM and single-batch failures don't block the run
- Idempotent: re-ingesting identical content overwrites the same ids
"""

from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
import time

from code_explorer.core.settings import Settings, load_settings
from code_explorer.core.trace.trace_context import TraceContext
from code_explorer.observability.logger import get_logger

from code_explorer.libs.embedding.base_embedding import BaseEmbedding
from code_explorer.libs.embedding.embedding_factory import EmbeddingFactory
from code_explorer.libs.loader.code_loader import CodeLoader, new_session_id
from code_explorer.libs.vector_store.base_vector_store import BaseVectorStore
from code_explorer.libs.vector_store.vector_store_factory import VectorStoreFactory

from code_explorer.ingestion.chunking.code_chunker import CodeChunker
from code_explorer.ingestion.embedding.batch_processor import BatchProcessor
from code_explorer.ingestion.storage.vector_upserter import VectorUpserter
from code_explorer.ingestion.transform.chunk_annotator import ChunkAnnotator

logger = get_logger(__name__)

STAGES = ("load", "chunk", "annotate", "embed", "upsert", "index")

ProgressCallback = Callable[[str, int, int], None]


class IngestionResult:
    """Result of pipeline execution with detailed statistics.

    Attributes:
        success: Whether pipeline completed successfully
        path: Path that was ingested
        session_id: Session the chunks were stored under
        files: Relative paths of the files that were loaded
        chunk_count: Number of chunks generated
        vector_ids: Ids of the stored records
        failed_chunks: Chunks dropped because their embedding batch failed
        error: Error message if pipeline failed
        stages: Dict of stage names to their individual results
    """

    def __init__(
        self,
        success: bool,
        path: str,
        session_id: str,
        files: Optional[List[str]] = None,
        chunk_count: int = 0,
        vector_ids: Optional[List[str]] = None,
        failed_chunks: int = 0,
        error: Optional[str] = None,
        stages: Optional[Dict[str, Any]] = None,
    ):
        self.success = success
        self.path = path
        self.session_id = session_id
        self.files = files or []
        self.chunk_count = chunk_count
        self.vector_ids = vector_ids or []
        self.failed_chunks = failed_chunks
        self.error = error
        self.stages = stages or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "success": self.success,
            "path": self.path,
            "session_id": self.session_id,
            "file_count": len(self.files),
            "files": self.files,
            "chunk_count": self.chunk_count,
            "vector_ids_count": len(self.vector_ids),
            "failed_chunks": self.failed_chunks,
            "error": self.error,
            "stages": self.stages,
        }


class IngestionPipeline:
    """Main pipeline orchestrator for codebase ingestion.

    Every component can be injected; anything omitted is built from
    settings through the matching factory.

    Example:
        >>> from code_explorer.core.settings import load_settings
        >>> settings = load_settings("config/settings.yaml")
        >>> pipeline = IngestionPipeline(settings)
        >>> result = pipeline.run("path/to/repo")
        >>> print(result.session_id, result.chunk_count)
    """

    def __init__(
        self,
        settings: Settings,
        loader: Optional[CodeLoader] = None,
        chunker: Optional[CodeChunker] = None,
        annotator: Optional[ChunkAnnotator] = None,
        embedding: Optional[BaseEmbedding] = None,
        vector_store: Optional[BaseVectorStore] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings
        self._sleep = sleep

        logger.info("Initializing Ingestion Pipeline components...")

        self.loader = loader or CodeLoader.from_settings(settings)
        self.chunker = chunker or CodeChunker(settings)
        logger.info("  CodeChunker initialized (splitter=%s)", type(self.chunker.splitter).__name__)

        self.annotator = annotator or ChunkAnnotator(settings)
        logger.info("  ChunkAnnotator initialized (use_llm=%s)", self.annotator.use_llm)

        ingestion = settings.ingestion
        embedding = embedding or EmbeddingFactory.create(settings)
        self.batch_processor = BatchProcessor(
            embedding,
            batch_size=int(ingestion.get("batch_size", 16)),
            batch_delay_seconds=float(ingestion.get("batch_delay_seconds", 0.0)),
            sleep=sleep,
        )
        logger.info(
            "  BatchProcessor initialized (provider=%s, batch_size=%d)",
            settings.embedding.get("provider"), self.batch_processor.batch_size,
        )

        self.vector_store = vector_store or VectorStoreFactory.create(settings)
        self.vector_upserter = VectorUpserter(self.vector_store)
        logger.info("  VectorUpserter initialized (provider=%s)", settings.vector_store.get("provider"))

        store_config = settings.vector_store
        self.wait_until_ready = bool(store_config.get("wait_until_ready", True))
        self.ready_timeout = float(store_config.get("ready_timeout_seconds", 30.0))
        self.ready_poll_interval = float(store_config.get("ready_poll_interval_seconds", 1.0))

        logger.info("Pipeline initialization complete")

    def run(
        self,
        path: str,
        session_id: Optional[str] = None,
        trace: Optional[TraceContext] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> IngestionResult:
        """Execute the full ingestion pipeline on a file or directory.

        Args:
            path: File or directory to ingest
            session_id: Existing session to add to; a new one is generated when omitted
            trace: Optional trace context for observability
            on_progress: Optional ``(stage, current, total)`` callback, fired
                once per completed stage

        Returns:
            IngestionResult with success status and statistics
        """
        path = str(Path(path))
        session_id = session_id or new_session_id()
        stages: Dict[str, Any] = {}
        total = len(STAGES)

        def _progress(stage: str) -> None:
            if on_progress is not None:
                on_progress(stage, STAGES.index(stage) + 1, total)

        if trace is not None:
            trace.session_id = session_id

        logger.info("=" * 60)
        logger.info("Starting Ingestion Pipeline for: %s", path)
        logger.info("Session: %s", session_id)
        logger.info("=" * 60)

        files: List[str] = []
        try:
            # ─────────────────────────────────────────────────────────────
            # Stage 1: Loading
            # ─────────────────────────────────────────────────────────────
            logger.info("Stage 1: Loading")

            _t0 = time.monotonic()
            code_files = self.loader.load(path)
            _elapsed = (time.monotonic() - _t0) * 1000.0

            files = [code_file.path for code_file in code_files]
            skipped = len(getattr(self.loader, "skipped", []))
            if not code_files:
                raise ValueError(f"No supported source files found in {path}")

            logger.info("  Files loaded: %d (skipped: %d)", len(files), skipped)
            stages["load"] = {"file_count": len(files), "skipped_count": skipped}
            if trace is not None:
                trace.record_stage("load", dict(stages["load"]), elapsed_ms=_elapsed)
            _progress("load")

            # ─────────────────────────────────────────────────────────────
            # Stage 2: Chunking
            # ─────────────────────────────────────────────────────────────
            logger.info("Stage 2: Chunking")

            _t0 = time.monotonic()
            chunks = self.chunker.chunk_files(code_files, session_id, trace=trace)
            _elapsed = (time.monotonic() - _t0) * 1000.0

            if not chunks:
                raise ValueError(f"No chunks produced from {path}")

            avg_lines = sum(c.line_count for c in chunks) // len(chunks)
            logger.info("  Chunks generated: %d (avg %d lines)", len(chunks), avg_lines)
            stages["chunk"] = {"chunk_count": len(chunks), "avg_chunk_lines": avg_lines}
            if trace is not None:
                trace.record_stage("chunk", dict(stages["chunk"]), elapsed_ms=_elapsed)
            _progress("chunk")

            # ─────────────────────────────────────────────────────────────
            # Stage 3: Annotation
            # ─────────────────────────────────────────────────────────────
            logger.info("Stage 3: Annotation")

            _t0 = time.monotonic()
            chunks = self.annotator.transform(chunks, trace)
            _elapsed = (time.monotonic() - _t0) * 1000.0

            annotated: Dict[str, int] = {}
            for chunk in chunks:
                annotated[chunk.annotated_by] = annotated.get(chunk.annotated_by, 0) + 1
            stages["annotate"] = annotated
            if trace is not None:
                trace.record_stage("annotation", dict(annotated), elapsed_ms=_elapsed)
            _progress("annotate")

            # ─────────────────────────────────────────────────────────────
            # Stage 4: Embedding
            # ─────────────────────────────────────────────────────────────
            logger.info("Stage 4: Embedding")

            _t0 = time.monotonic()
            batch_result = self.batch_processor.process(chunks, trace)
            _elapsed = (time.monotonic() - _t0) * 1000.0

            if not batch_result.chunks:
                first_error = batch_result.errors[0]["error"] if batch_result.errors else "unknown error"
                raise RuntimeError(f"All embedding batches failed: {first_error}")

            dimension = len(batch_result.vectors[0])
            logger.info(
                "  Vectors: %d (dim=%d, failed chunks=%d)",
                len(batch_result.vectors), dimension, batch_result.failed_chunks,
            )
            stages["embed"] = {
                "vector_count": len(batch_result.vectors),
                "dimension": dimension,
                "batch_count": batch_result.batch_count,
                "failed_chunks": batch_result.failed_chunks,
            }
            if trace is not None:
                trace.record_stage("embed", dict(stages["embed"]), elapsed_ms=_elapsed)
            _progress("embed")

            # ─────────────────────────────────────────────────────────────
            # Stage 5: Storage
            # ─────────────────────────────────────────────────────────────
            logger.info("Stage 5: Storage")

            _t0 = time.monotonic()
            vector_ids = self.vector_upserter.upsert(batch_result.chunks, batch_result.vectors, trace)
            _elapsed = (time.monotonic() - _t0) * 1000.0

            logger.info("  Stored %d vectors", len(vector_ids))
            stages["upsert"] = {"vector_count": len(vector_ids)}
            if trace is not None:
                trace.record_stage("upsert", dict(stages["upsert"]), elapsed_ms=_elapsed)
            _progress("upsert")

            # ─────────────────────────────────────────────────────────────
            # Stage 6: Indexing
            # ─────────────────────────────────────────────────────────────
            logger.info("Stage 6: Indexing")

            _t0 = time.monotonic()
            self.vector_store.build_index(trace=trace)
            waited = 0.0
            if self.wait_until_ready:
                waited = self.vector_store.wait_until_ready(
                    timeout=self.ready_timeout,
                    poll_interval=self.ready_poll_interval,
                    sleep=self._sleep,
                )
            _elapsed = (time.monotonic() - _t0) * 1000.0

            stages["index"] = {"waited_for_ready": self.wait_until_ready, "wait_seconds": waited}
            if trace is not None:
                trace.record_stage("index", dict(stages["index"]), elapsed_ms=_elapsed)
            _progress("index")

            logger.info("=" * 60)
            logger.info("Pipeline completed successfully")
            logger.info("   Files: %d", len(files))
            logger.info("   Chunks: %d", len(chunks))
            logger.info("   Vectors: %d", len(vector_ids))
            logger.info("=" * 60)

            return IngestionResult(
                success=True,
                path=path,
                session_id=session_id,
                files=files,
                chunk_count=len(chunks),
                vector_ids=vector_ids,
                failed_chunks=batch_result.failed_chunks,
                stages=stages,
            )

        except Exception as e:
            logger.error("Pipeline failed: %s", e, exc_info=True)
            return IngestionResult(
                success=False,
                path=path,
                session_id=session_id,
                files=files,
                error=str(e),
                stages=stages,
            )


def run_pipeline(
    path: str,
    settings_path: Optional[str] = None,
    session_id: Optional[str] = None,
) -> IngestionResult:
    """Convenience function to run the pipeline.

    Args:
        path: File or directory to ingest
        settings_path: Path to settings.yaml
        session_id: Optional existing session id

    Returns:
        IngestionResult with execution details
    """
    settings = load_settings(settings_path)
    pipeline = IngestionPipeline(settings)
    return pipeline.run(path, session_id=session_id)
