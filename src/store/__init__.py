"""Local persistence: artifact cache and project manifest."""
