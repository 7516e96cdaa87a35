"""Catalog entity models."""

from .catalog import Catalog, Category, Currency, Offer, OfferParam

__all__ = ["Catalog", "Category", "Currency", "Offer", "OfferParam"]
