"""Search and batching components."""
