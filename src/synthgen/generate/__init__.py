"""Batch content generation: provider strategy, ids and templates."""
