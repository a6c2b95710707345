"""Loader façade, result models, error taxonomy and the file engine."""
