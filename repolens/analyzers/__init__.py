"""Heuristic analyzers: tree scanning, classification, per-root extraction."""
