"""Coordinates, reference parsing and version comparison."""
