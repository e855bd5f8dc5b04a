"""Batch Processor: embeds chunks in fixed-size batches.

Batches are sent one after another with a fixed pause in between to stay
under hosted-API rate limits. A batch that still fails after the
provider's own retries is recorded and dropped; the remaining batches
carry on, and the surviving chunks stay aligned with their vectors.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from code_explorer.core.types import CodeChunk
from code_explorer.libs.embedding.base_embedding import BaseEmbedding
from code_explorer.observability.logger import get_logger

logger = get_logger(__name__)


@dataclass
class BatchResult:
    """Result of batch processing operation.

    Attributes:
        chunks: Successfully embedded chunks, in input order.
        vectors: One vector per entry in ``chunks``.
        batch_count: Number of batches attempted.
        total_time: Wall-clock seconds, including pauses.
        successful_chunks: ``len(chunks)``.
        failed_chunks: Chunks dropped with a failed batch.
        errors: One entry per failed batch.
    """
    chunks: List[CodeChunk]
    vectors: List[List[float]]
    batch_count: int
    total_time: float
    successful_chunks: int
    failed_chunks: int
    errors: List[Dict[str, Any]] = field(default_factory=list)


class BatchProcessor:
    """Drive an embedding provider over chunks, batch by batch.

    Args:
        embedding: Embedding provider.
        batch_size: Chunks per request.
        batch_delay_seconds: Pause between consecutive batches.
        sleep: Sleep function, injectable for tests.
    """

    def __init__(
        self,
        embedding: BaseEmbedding,
        batch_size: int = 16,
        batch_delay_seconds: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        if batch_delay_seconds < 0:
            raise ValueError(f"batch_delay_seconds must be non-negative, got {batch_delay_seconds}")

        self.embedding = embedding
        self.batch_size = batch_size
        self.batch_delay_seconds = batch_delay_seconds
        self._sleep = sleep

    def process(
        self,
        chunks: List[CodeChunk],
        trace: Optional[Any] = None,
        progress: Optional[Callable[[int, int], None]] = None,
    ) -> BatchResult:
        """Embed *chunks*.

        Args:
            chunks: Chunks to embed.
            trace: Optional TraceContext.
            progress: Optional ``(batches_done, batch_count)`` callback.

        Raises:
            ValueError: If *chunks* is empty.
        """
        if not chunks:
            raise ValueError("Cannot process empty chunks list")

        start_time = time.monotonic()
        batches = self._create_batches(chunks)

        kept_chunks: List[CodeChunk] = []
        vectors: List[List[float]] = []
        errors: List[Dict[str, Any]] = []

        for batch_idx, batch in enumerate(batches):
            if batch_idx > 0 and self.batch_delay_seconds:
                self._sleep(self.batch_delay_seconds)

            try:
                batch_vectors = self.embedding.embed([chunk.text for chunk in batch], trace=trace)
                if len(batch_vectors) != len(batch):
                    raise RuntimeError(
                        f"embedding returned {len(batch_vectors)} vectors for {len(batch)} texts"
                    )
            except Exception as e:
                logger.warning("Embedding batch %d/%d failed: %s", batch_idx + 1, len(batches), e)
                errors.append({
                    "batch": batch_idx,
                    "error": str(e),
                    "chunk_ids": [chunk.id for chunk in batch],
                })
            else:
                kept_chunks.extend(batch)
                vectors.extend(batch_vectors)

            if progress is not None:
                progress(batch_idx + 1, len(batches))

        total_time = time.monotonic() - start_time
        failed = len(chunks) - len(kept_chunks)

        if trace is not None:
            trace.record_stage("batch_processing", {
                "total_chunks": len(chunks),
                "batch_count": len(batches),
                "batch_size": self.batch_size,
                "successful_chunks": len(kept_chunks),
                "failed_chunks": failed,
                "total_time_seconds": round(total_time, 3),
            })

        return BatchResult(
            chunks=kept_chunks,
            vectors=vectors,
            batch_count=len(batches),
            total_time=total_time,
            successful_chunks=len(kept_chunks),
            failed_chunks=failed,
            errors=errors,
        )

    def _create_batches(self, chunks: List[CodeChunk]) -> List[List[CodeChunk]]:
        return [chunks[i:i + self.batch_size] for i in range(0, len(chunks), self.batch_size)]
