"""Content extraction backends."""
