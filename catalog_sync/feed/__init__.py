"""Catalog feed loading and parsing."""

from .loader import FeedLoader
from .parser import parse_catalog

__all__ = ["FeedLoader", "parse_catalog"]
