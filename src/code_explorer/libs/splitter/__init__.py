"""
Splitter Module.

This package contains text splitting strategies:
- Base splitter class and the TextSegment type
- Splitter factory
- Implementations: line windows, token windows, definition boundaries (ast)
"""

from code_explorer.libs.splitter.ast_splitter import AstSplitter
from code_explorer.libs.splitter.base_splitter import BaseSplitter, TextSegment, estimate_tokens
from code_explorer.libs.splitter.line_splitter import LineSplitter
from code_explorer.libs.splitter.splitter_factory import SplitterFactory
from code_explorer.libs.splitter.token_splitter import TokenSplitter

SplitterFactory.register("line", LineSplitter.from_settings)
SplitterFactory.register("token", TokenSplitter.from_settings)
SplitterFactory.register("ast", AstSplitter.from_settings)

__all__ = [
    "AstSplitter",
    "BaseSplitter",
    "LineSplitter",
    "SplitterFactory",
    "TextSegment",
    "TokenSplitter",
    "estimate_tokens",
]
