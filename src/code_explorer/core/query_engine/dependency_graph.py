"""File-level dependency graph from stored import specifiers.

Imports are resolved only against files of the same session; package
imports and anything that does not map to a stored file are ignored.
"""

from __future__ import annotations

import heapq
import posixpath
from typing import Dict, Iterable, List, Optional, Set

from code_explorer.core.types import CodeChunk

JS_RESOLVE_EXTENSIONS = (
    ".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs", ".vue", ".svelte", ".json", ".css", ".scss",
)

IMPORTANCE_RANK = {"critical": 0, "important": 1, "supporting": 2}
CHUNK_TYPE_RANK = {"config": 0, "utility": 1, "api": 2, "component": 3, "style": 4, "test": 5}


def _first_match(candidates: Iterable[str], known_files: Set[str]) -> Optional[str]:
    for candidate in candidates:
        if candidate in known_files:
            return candidate
    return None


def _js_candidates(base: str) -> List[str]:
    candidates = [base]
    candidates.extend(base + ext for ext in JS_RESOLVE_EXTENSIONS)
    candidates.extend(f"{base}/index{ext}" for ext in JS_RESOLVE_EXTENSIONS)
    return candidates


def _python_candidates(module_path: str) -> List[str]:
    if not module_path:
        return []
    return [f"{module_path}.py", f"{module_path}/__init__.py"]


def resolve_import(spec: str, from_path: str, known_files: Set[str], language: str = "") -> Optional[str]:
    """Map one import specifier to a stored file path, or None."""
    directory = posixpath.dirname(from_path)

    if language == "python":
        if spec.startswith("."):
            level = len(spec) - len(spec.lstrip("."))
            base = directory
            for _ in range(level - 1):
                base = posixpath.dirname(base)
            rest = spec[level:].replace(".", "/")
            module_path = posixpath.join(base, rest) if rest else base
            if not rest:
                return _first_match([posixpath.join(base, "__init__.py")], known_files)
            return _first_match(_python_candidates(module_path), known_files)

        module_path = spec.replace(".", "/")
        found = _first_match(
            _python_candidates(module_path) + _python_candidates(f"src/{module_path}"),
            known_files,
        )
        if found:
            return found
        suffixes = tuple("/" + c for c in _python_candidates(module_path))
        matches = sorted(f for f in known_files if f.endswith(suffixes))
        return matches[0] if len(matches) == 1 else None

    if spec.startswith("./") or spec.startswith("../"):
        base = posixpath.normpath(posixpath.join(directory, spec))
        if base.startswith(".."):
            return None
        return _first_match(_js_candidates(base), known_files)

    if spec.startswith("@/") or spec.startswith("~/"):
        rest = spec[2:]
        return _first_match(_js_candidates(rest) + _js_candidates(f"src/{rest}"), known_files)

    return None


def build_dependency_graph(chunks: List[CodeChunk]) -> Dict[str, Set[str]]:
    """Map each file to the set of session files it imports (self excluded)."""
    known_files = {chunk.file_path for chunk in chunks}
    graph: Dict[str, Set[str]] = {path: set() for path in sorted(known_files)}
    seen: Set[tuple] = set()
    for chunk in chunks:
        for spec in chunk.imports:
            key = (chunk.file_path, spec)
            if key in seen:
                continue
            seen.add(key)
            target = resolve_import(spec, chunk.file_path, known_files, chunk.language)
            if target and target != chunk.file_path:
                graph[chunk.file_path].add(target)
    return graph


def order_files(graph: Dict[str, Set[str]], rank: Dict[str, tuple]) -> List[str]:
    """Topological order, dependencies first.

    Among files whose dependencies are all placed, the lowest *rank* goes
    next. A cycle is broken by placing its lowest-ranked file.
    """
    remaining = {path: set(deps) & graph.keys() for path, deps in graph.items()}
    dependents: Dict[str, Set[str]] = {path: set() for path in graph}
    for path, deps in remaining.items():
        for dep in deps:
            dependents[dep].add(path)

    ready = [(rank[path], path) for path, deps in remaining.items() if not deps]
    heapq.heapify(ready)
    placed: Set[str] = set()
    ordered: List[str] = []

    while len(ordered) < len(graph):
        if not ready:
            stuck = min((rank[p], p) for p in graph if p not in placed)
            heapq.heappush(ready, stuck)
        _, path = heapq.heappop(ready)
        if path in placed:
            continue
        placed.add(path)
        ordered.append(path)
        for dependent in sorted(dependents[path]):
            pending = remaining[dependent]
            pending.discard(path)
            if not pending and dependent not in placed:
                heapq.heappush(ready, (rank[dependent], dependent))
    return ordered
