"""Hybrid retrieval and caching engine for document question answering."""

from docqa_retrieval.engine import RetrievalEngine

__version__ = "0.3.0"

__all__ = ["RetrievalEngine"]
