"""Infrastructure adapters for kagentctl."""
