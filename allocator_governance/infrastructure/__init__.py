"""Infrastructure layer: persistence and chain access."""
