"""FastAPI host container for rackbridge applications."""
