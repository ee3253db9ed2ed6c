"""Per-request media pipeline."""
