"""Shared data types passed between the ingestion and query layers.

Chunks are persisted as flat metadata dictionaries because vector stores
only accept scalar metadata values. ``CodeChunk.to_metadata`` and
``CodeChunk.from_record`` are the two halves of that mapping.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import PurePosixPath
from typing import Any, Dict, List, Optional

CHUNK_TYPES = ("component", "api", "config", "utility", "style", "test")
IMPORTANCE_LEVELS = ("critical", "important", "supporting")
COMPLEXITY_LEVELS = ("simple", "moderate", "complex")

_LIST_SEPARATOR = ","


def _join(values: List[str]) -> str:
    return _LIST_SEPARATOR.join(v for v in values if v)


def _split(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v]
    return [part for part in str(value).split(_LIST_SEPARATOR) if part]


@dataclass
class CodeFile:
    """A source file accepted for ingestion.

    Attributes:
        path: Posix path relative to the ingested root.
        content: Decoded file text.
        language: Language key derived from the extension.
        size: Size of the encoded content in bytes.
    """

    path: str
    content: str
    language: str = "plaintext"
    size: int = 0

    def __post_init__(self) -> None:
        if not self.size:
            self.size = len(self.content.encode("utf-8"))

    @property
    def name(self) -> str:
        return PurePosixPath(self.path).name

    @property
    def extension(self) -> str:
        return PurePosixPath(self.path).suffix.lower()

    @property
    def line_count(self) -> int:
        return len(self.content.splitlines())


@dataclass
class CodeChunk:
    """A contiguous, size-bounded slice of a source file.

    ``start_line`` and ``end_line`` are 1-based and inclusive.
    """

    id: str
    session_id: str
    file_path: str
    text: str
    start_line: int
    end_line: int
    chunk_index: int = 0
    language: str = "plaintext"
    chunk_type: str = "utility"
    symbol_name: str = ""
    imports: List[str] = field(default_factory=list)
    exports: List[str] = field(default_factory=list)
    code_patterns: List[str] = field(default_factory=list)
    importance: str = "supporting"
    explanation: str = ""
    purpose: str = ""
    complexity: str = "moderate"
    annotated_by: str = ""

    @property
    def file_name(self) -> str:
        return PurePosixPath(self.file_path).name

    @property
    def file_extension(self) -> str:
        return PurePosixPath(self.file_path).suffix.lower()

    @property
    def line_count(self) -> int:
        return self.end_line - self.start_line + 1

    def to_metadata(self) -> Dict[str, Any]:
        """Flatten the chunk into scalar metadata for the vector store.

        The chunk text itself is stored separately as the record document.
        """
        return {
            "session_id": self.session_id,
            "file_path": self.file_path,
            "file_name": self.file_name,
            "file_extension": self.file_extension,
            "language": self.language,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "chunk_index": self.chunk_index,
            "chunk_type": self.chunk_type,
            "symbol_name": self.symbol_name,
            "imports": _join(self.imports),
            "exports": _join(self.exports),
            "code_patterns": _join(self.code_patterns),
            "importance": self.importance,
            "explanation": self.explanation,
            "purpose": self.purpose,
            "complexity": self.complexity,
            "annotated_by": self.annotated_by,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> CodeChunk:
        """Rebuild a chunk from a stored ``{id, text, metadata}`` record."""
        metadata = record.get("metadata") or {}
        return cls(
            id=str(record.get("id", "")),
            session_id=str(metadata.get("session_id", "")),
            file_path=str(metadata.get("file_path", "")),
            text=str(record.get("text") or ""),
            start_line=int(metadata.get("start_line", 1)),
            end_line=int(metadata.get("end_line", 1)),
            chunk_index=int(metadata.get("chunk_index", 0)),
            language=str(metadata.get("language") or "plaintext"),
            chunk_type=str(metadata.get("chunk_type") or "utility"),
            symbol_name=str(metadata.get("symbol_name") or ""),
            imports=_split(metadata.get("imports")),
            exports=_split(metadata.get("exports")),
            code_patterns=_split(metadata.get("code_patterns")),
            importance=str(metadata.get("importance") or "supporting"),
            explanation=str(metadata.get("explanation") or ""),
            purpose=str(metadata.get("purpose") or ""),
            complexity=str(metadata.get("complexity") or "moderate"),
            annotated_by=str(metadata.get("annotated_by") or ""),
        )


@dataclass
class RetrievalResult:
    """A single search hit.

    Attributes:
        chunk_id: Stored record id.
        score: Similarity, higher is more similar.
        text: Chunk source text.
        metadata: Flat chunk metadata as stored.
    """

    chunk_id: str
    score: float
    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def file_path(self) -> str:
        return str(self.metadata.get("file_path", ""))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chunk_id": self.chunk_id,
            "score": round(self.score, 4),
            "file_path": self.file_path,
            "start_line": self.metadata.get("start_line"),
            "end_line": self.metadata.get("end_line"),
            "text": self.text,
        }


@dataclass
class BuildStep:
    """One numbered step of a build guide."""

    step_number: int
    chunk_id: str
    file_path: str
    file_name: str
    file_extension: str
    chunk_type: str
    start_line: int
    end_line: int
    content: str
    explanation: str
    explained_by: str = "llm"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BuildGuide:
    """A generated, ordered walkthrough of a session's chunks."""

    session_id: str
    steps: List[BuildStep] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    project_overview: Optional[str] = None

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "total_steps": self.total_steps,
            "project_overview": self.project_overview,
            "steps": [step.to_dict() for step in self.steps],
            "errors": list(self.errors),
        }
