"""Core configuration, database and worker plumbing."""
