"""
Loader Module.

This package contains source loaders:
- Base loader class
- Local code tree loader (extension allow-list, ignore rules)
"""

from code_explorer.libs.loader.base_loader import BaseLoader
from code_explorer.libs.loader.code_loader import CodeLoader, new_session_id

__all__ = ["BaseLoader", "CodeLoader", "new_session_id"]
