"""Shared helpers: codec tables, container identification, video analysis."""
