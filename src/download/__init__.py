"""Artifact transfer and cached retrieval."""
