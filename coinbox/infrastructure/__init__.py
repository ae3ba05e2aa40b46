"""Infrastructure adapters (database, remote wallet service)."""
