"""Transport-agnostic API surface."""
