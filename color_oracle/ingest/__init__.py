"""Feed retrieval and payload normalization."""
