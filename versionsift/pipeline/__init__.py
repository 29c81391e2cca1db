"""Rule engine and scanning pipeline."""
