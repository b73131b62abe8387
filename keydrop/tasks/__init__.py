"""Celery driver for out-of-process cleanup."""
