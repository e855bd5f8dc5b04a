"""
Observability Layer.

Logging configuration and JSON Lines trace output.
"""

__all__ = []
