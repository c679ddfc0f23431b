"""Application services (use cases)."""
