"""Storage backends for rewritten HTML and extracted assets."""
