"""Sync a YML catalog feed into PostgreSQL tables."""

__version__ = "1.0.0"
