"""Document ingestion and classification workers."""
