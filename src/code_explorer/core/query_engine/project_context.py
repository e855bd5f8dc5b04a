"""Project-level context built from a session's chunks.

Derives the facts the summarize and build-guide modes put in front of the
LLM: detected tech stack, file extensions, directory layout and a few
representative code samples. ``ProjectAnalyst`` wraps the prompts that
use them.
"""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Dict, List

from code_explorer.core.types import CodeChunk

if TYPE_CHECKING:
    from code_explorer.libs.llm.base_llm import BaseLLM

MAX_LISTED_DIRECTORIES = 5
MAX_SAMPLES = 3
SAMPLE_CHARS = 500
NO_SAMPLES = "No representative code samples available."

_IMPORTANCE_RANK = {"critical": 3, "important": 2, "supporting": 1}


def _extension(chunk: CodeChunk) -> str:
    return chunk.file_extension.lstrip(".")


def unique_files(chunks: List[CodeChunk]) -> List[str]:
    return list(dict.fromkeys(chunk.file_path for chunk in chunks))


def file_extensions(chunks: List[CodeChunk]) -> List[str]:
    """Extensions without the dot, in first-seen order."""
    return list(dict.fromkeys(_extension(chunk) for chunk in chunks if _extension(chunk)))


def directory_structure(chunks: List[CodeChunk]) -> str:
    """First few directories in sorted order, with ``...`` when truncated."""
    directories = sorted({
        str(PurePosixPath(chunk.file_path).parent)
        for chunk in chunks
        if "/" in chunk.file_path
    })
    listed = ", ".join(directories[:MAX_LISTED_DIRECTORIES])
    if len(directories) > MAX_LISTED_DIRECTORIES:
        listed += "..."
    return listed or "a flat layout"


def detect_tech_stack(chunks: List[CodeChunk]) -> List[str]:
    """Name the frameworks and services the code appears to use, sorted."""
    stack = set()
    for chunk in chunks:
        content = chunk.text.lower()
        extension = _extension(chunk)
        path = chunk.file_path

        if "next" in content or "next.config" in path:
            stack.add("Next.js")
        if "react" in content or "usestate" in content or "useeffect" in content:
            stack.add("React")
        if extension in ("ts", "tsx"):
            stack.add("TypeScript")
        if "tailwind" in content or "@apply" in content:
            stack.add("Tailwind CSS")
        if "fastapi" in content or (extension == "py" and "api" in path):
            stack.add("FastAPI (Python)")
        elif extension == "py":
            stack.add("Python")
        if "milvus" in content or "zilliz" in content:
            stack.add("Zilliz/Milvus")
        if "novita.ai" in content or "novitaai" in content:
            stack.add("Novita.AI")
    return sorted(stack)


def representative_samples(chunks: List[CodeChunk]) -> str:
    """Up to three excerpts from critical or important chunks, one per chunk type."""
    candidates = [c for c in chunks if c.importance in ("critical", "important")]
    candidates.sort(key=lambda c: _IMPORTANCE_RANK.get(c.importance, 0), reverse=True)

    samples: List[str] = []
    seen_types = set()
    for chunk in candidates[:MAX_SAMPLES]:
        if chunk.chunk_type in seen_types:
            continue
        seen_types.add(chunk.chunk_type)
        samples.append(
            f"\n--- {chunk.file_name} ({chunk.file_path}) ---\n"
            f"```{_extension(chunk)}\n{chunk.text[:SAMPLE_CHARS]}...\n```"
        )
    return "\n".join(samples) if samples else NO_SAMPLES


def build_project_context(chunks: List[CodeChunk]) -> str:
    """One-sentence project description used as build-step context."""
    stack = detect_tech_stack(chunks) or ["general-purpose"]
    return (
        f"This is a {' + '.join(stack)} project with {len(unique_files(chunks))} files "
        f"including {', '.join(file_extensions(chunks))} files. "
        f"The structure suggests {directory_structure(chunks)}."
    )


def project_overview_prompt(chunks: List[CodeChunk]) -> str:
    return (
        "You are a senior software architect analyzing a codebase.\n\n"
        "Project Information:\n"
        f"- Total files: {len(unique_files(chunks))}\n"
        f"- File types: {', '.join(file_extensions(chunks))}\n"
        f"- Tech stack: {', '.join(detect_tech_stack(chunks)) or 'unknown'}\n"
        f"- Directory structure: {directory_structure(chunks)}\n\n"
        f"Sample code from key files:\n{representative_samples(chunks)}\n\n"
        "Based on this information, provide a comprehensive project overview that covers:\n"
        "1. What type of application this appears to be\n"
        "2. The main technologies and frameworks being used\n"
        "3. The primary purpose and key features\n"
        "4. The overall architecture pattern\n\n"
        "Keep your response focused and informative, suitable for a developer "
        "who needs to understand this project quickly."
    )


def build_step_prompt(chunk: CodeChunk, project_context: str) -> str:
    return (
        "You are a technical instructor explaining how to understand a codebase step by step.\n\n"
        f"Project Context: {project_context}\n\n"
        f"Current file: {chunk.file_name} ({chunk.file_path}, lines {chunk.start_line}-{chunk.end_line})\n"
        f"File type: {chunk.chunk_type}\n"
        f"Importance: {chunk.importance}\n\n"
        f"Code content:\n```{_extension(chunk)}\n{chunk.text}\n```\n\n"
        "Explain this code step in terms of:\n"
        "1. What this file does in the context of the overall project\n"
        "2. Why this step is important for understanding the system\n"
        "3. What someone should focus on when studying this code\n"
        "4. How it connects to other parts of the system\n\n"
        "Keep your explanation clear and educational, as if teaching a new team member."
    )


def conversation_messages(prompt: str, role: str) -> List[Dict[str, str]]:
    return [
        {
            "role": "system",
            "content": f"You are a {role} with deep expertise in software development and architecture.",
        },
        {"role": "user", "content": prompt},
    ]


class ProjectAnalyst:
    """Role-prompted LLM conversations about a project.

    Errors from the LLM propagate; callers decide on a fallback.
    """

    def __init__(self, llm: BaseLLM) -> None:
        self.llm = llm

    def _send(self, prompt: str, role: str) -> str:
        return self.llm.chat(conversation_messages(prompt, role)).strip()

    def analyze_project_overview(self, chunks: List[CodeChunk]) -> str:
        return self._send(project_overview_prompt(chunks), "project-analyst")

    def explain_build_step(self, chunk: CodeChunk, project_context: str) -> str:
        return self._send(build_step_prompt(chunk, project_context), "instructor")

