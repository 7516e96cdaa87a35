"""Pydantic models for the entities carried by a YML catalog feed."""

from decimal import Decimal
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field


class Currency(BaseModel):
    """Currency with its exchange rate."""

    id: str = Field(..., description="Currency code, e.g. RUR")
    rate: Optional[Decimal] = Field(None, description="Exchange rate; None when the feed value is not a number")
    raw_rate: Optional[str] = Field(None, description="Rate attribute as found in the feed")

    model_config = {"frozen": True}

    def is_valid(self) -> bool:
        return bool(self.id) and self.rate is not None

    def to_row(self) -> Tuple[str, Optional[Decimal]]:
        return (self.id, self.rate)


class Category(BaseModel):
    """Catalog category, optionally nested under a parent."""

    id: int = Field(..., description="Category identifier")
    name: str = Field(..., description="Category name")
    parent_id: Optional[int] = Field(None, description="Parent category identifier")

    model_config = {"frozen": True}

    def to_row(self) -> Tuple[int, str, Optional[int]]:
        return (self.id, self.name, self.parent_id)


class OfferParam(BaseModel):
    """Named free-form offer attribute."""

    name: str
    value: str = ""

    model_config = {"frozen": True}


class Offer(BaseModel):
    """Sellable product offer."""

    id: int = Field(..., description="Offer identifier")
    available: bool = Field(False, description="Whether the offer is in stock")
    url: Optional[str] = None
    price: Optional[Decimal] = None
    currency_id: Optional[str] = None
    category_id: Optional[int] = None
    picture: Optional[str] = None
    name: Optional[str] = None
    vendor: Optional[str] = None
    vendor_code: Optional[str] = None
    description: Optional[str] = None
    count: Optional[int] = None
    params: List[OfferParam] = Field(default_factory=list)

    def to_row(self) -> tuple:
        """Values in the column order of the offers upsert statement."""
        return (
            self.id,
            self.available,
            self.url,
            self.price,
            self.currency_id,
            self.category_id,
            self.picture,
            self.name,
            self.vendor,
            self.vendor_code,
            self.description,
            self.count,
        )

    def param_rows(self) -> List[Tuple[int, str, str]]:
        return [(self.id, param.name, param.value) for param in self.params]


class Catalog(BaseModel):
    """Parsed contents of one feed."""

    currencies: List[Currency] = Field(default_factory=list)
    categories: List[Category] = Field(default_factory=list)
    offers: List[Offer] = Field(default_factory=list)
    skipped_offers: int = Field(0, description="Offers dropped for a missing or invalid id")

    def summary(self) -> dict:
        return {
            "currencies": len(self.currencies),
            "categories": len(self.categories),
            "offers": len(self.offers),
            "skipped_offers": self.skipped_offers,
        }
