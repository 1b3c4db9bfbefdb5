"""Heuristic adjusters and advisory context built from past performances."""
