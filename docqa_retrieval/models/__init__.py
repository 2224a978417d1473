"""Data models for the retrieval engine."""
