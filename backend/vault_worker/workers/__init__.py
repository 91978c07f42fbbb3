"""Celery task entry points."""
