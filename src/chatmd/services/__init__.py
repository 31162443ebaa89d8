"""Service layer helpers (settings and secret storage)."""
