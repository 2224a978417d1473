"""Services backing the retrieval engine."""
