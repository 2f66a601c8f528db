"""Restaurant operations dashboard backend."""
