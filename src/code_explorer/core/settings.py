"""Settings loading and validation utilities."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

# src/code_explorer/core/settings.py -> repository root
REPO_ROOT = Path(__file__).resolve().parents[3]

DEFAULT_SETTINGS_PATH = "config/settings.yaml"


def resolve_path(path: str | Path) -> Path:
    """Resolve a repo-relative path independent of the current directory.

    Args:
        path: Absolute path, or a path relative to the repository root.

    Returns:
        Absolute path.
    """

    candidate = Path(path).expanduser()
    if candidate.is_absolute():
        return candidate
    return REPO_ROOT / candidate


@dataclass(slots=True)
class Settings:
    """Application settings structure.

    Attributes:
        llm: Chat LLM configuration dictionary.
        embedding: Embedding configuration dictionary.
        vector_store: Vector store configuration dictionary.
        splitter: Splitter strategy configuration dictionary.
        ingestion: Ingestion batching configuration dictionary.
        annotation: Chunk annotation configuration dictionary.
        retrieval: Retrieval configuration dictionary.
        build_guide: Build guide generation configuration dictionary.
        observability: Observability configuration dictionary.
        raw: Original full settings dictionary.
    """

    llm: dict[str, Any]
    embedding: dict[str, Any]
    vector_store: dict[str, Any]
    splitter: dict[str, Any]
    ingestion: dict[str, Any]
    annotation: dict[str, Any]
    retrieval: dict[str, Any]
    build_guide: dict[str, Any]
    observability: dict[str, Any]
    raw: dict[str, Any]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        """Build settings from an already-parsed mapping (no validation)."""

        return cls(
            llm=data.get("llm") or {},
            embedding=data.get("embedding") or {},
            vector_store=data.get("vector_store") or {},
            splitter=data.get("splitter") or {},
            ingestion=data.get("ingestion") or {},
            annotation=data.get("annotation") or {},
            retrieval=data.get("retrieval") or {},
            build_guide=data.get("build_guide") or {},
            observability=data.get("observability") or {},
            raw=data,
        )


def _require_path(data: dict[str, Any], dotted_path: str) -> None:
    current: Any = data
    for key in dotted_path.split("."):
        if not isinstance(current, dict) or key not in current or current[key] is None:
            raise ValueError(f"Missing required settings field: {dotted_path}")
        current = current[key]


def validate_settings(settings: Settings) -> None:
    """Validate required settings fields.

    Args:
        settings: Parsed settings object.

    Raises:
        ValueError: If any required field is missing or a numeric field is invalid.
    """

    required_paths = [
        "llm",
        "llm.provider",
        "embedding",
        "embedding.provider",
        "vector_store",
        "vector_store.provider",
        "splitter",
        "splitter.type",
    ]

    for path in required_paths:
        _require_path(settings.raw, path)

    for section, key in (
        ("ingestion", "batch_size"),
        ("build_guide", "batch_size"),
        ("splitter", "max_tokens"),
        ("splitter", "chunk_lines"),
    ):
        value = getattr(settings, section).get(key)
        if value is not None and (not isinstance(value, int) or value <= 0):
            raise ValueError(f"{section}.{key} must be a positive integer, got {value!r}")


def load_settings(path: str | Path | None = None) -> Settings:
    """Load YAML settings from a file and validate required fields.

    Args:
        path: Path to the YAML settings file. Defaults to
            ``config/settings.yaml`` under the repository root.

    Returns:
        Parsed and validated settings object.

    Raises:
        FileNotFoundError: If the path does not exist.
        ValueError: If YAML is invalid or required fields are missing.
    """

    settings_path = Path(path) if path is not None else resolve_path(DEFAULT_SETTINGS_PATH)
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as fp:
        try:
            parsed = yaml.safe_load(fp)
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in settings file {settings_path}: {exc}") from exc

    if not isinstance(parsed, dict):
        raise ValueError("Settings file must contain a YAML mapping at top level")

    settings = Settings.from_dict(parsed)
    validate_settings(settings)
    return settings
