"""CSV deal import pipeline."""
