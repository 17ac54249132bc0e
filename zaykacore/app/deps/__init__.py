"""FastAPI dependency helpers."""
