"""Phases of a land operation, one module per phase."""
