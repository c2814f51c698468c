"""Domain models for cached products."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ProductRating:
    """Aggregated customer rating for a product."""

    rate: float
    count: int


@dataclass(frozen=True)
class ProductItem:
    """Represents a product in the catalogue."""

    id: int
    title: str
    price: float
    description: str
    category: str
    image: str
    rating: ProductRating


@dataclass(frozen=True)
class CachedSnapshot:
    """The single product collection held by a store, with its write time."""

    items: list[ProductItem]
    timestamp: datetime
