"""
Query Engine Module.

This package contains the session-scoped query modes:
- Search (embedding-based retrieval)
- Chat (retrieval-augmented answers)
- Summarize (file summaries and project overviews)
- Visualize (file dependency graph)
- Build guide (ordered, explained walkthrough)
"""

from code_explorer.core.query_engine.dense_retriever import (
    CodeSearch,
    create_code_search,
)
from code_explorer.core.query_engine.chat_engine import (
    ChatAnswer,
    CodeChat,
    create_code_chat,
)
from code_explorer.core.query_engine.summarizer import (
    CodeSummarizer,
    Summary,
    create_code_summarizer,
)
from code_explorer.core.query_engine.visualizer import (
    CodeVisualizer,
    create_code_visualizer,
)
from code_explorer.core.query_engine.build_guide import (
    BuildGuideGenerator,
    create_build_guide_generator,
)

__all__ = [
    "CodeSearch",
    "create_code_search",
    "ChatAnswer",
    "CodeChat",
    "create_code_chat",
    "CodeSummarizer",
    "Summary",
    "create_code_summarizer",
    "CodeVisualizer",
    "create_code_visualizer",
    "BuildGuideGenerator",
    "create_build_guide_generator",
]
