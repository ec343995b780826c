"""Checks over installed artifacts."""
