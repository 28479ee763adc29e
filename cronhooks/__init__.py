"""Cron-scheduled webhook dispatcher."""

__version__ = "0.1.0"
