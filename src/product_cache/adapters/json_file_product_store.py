"""JSON file implementation of the product store."""

import asyncio
import os
import tempfile
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ValidationError

from product_cache.domain.errors import DeletionFailed, InsertionFailed, RetrievalFailed
from product_cache.domain.products import CachedSnapshot, ProductItem, ProductRating
from product_cache.services.cache_policy import as_utc
from product_cache.services.products import ProductStore


class _StoredRating(BaseModel):
    rate: float
    count: int


class _StoredProduct(BaseModel):
    id: int
    title: str
    price: float
    description: str
    category: str
    image: str
    rating: _StoredRating

    @classmethod
    def from_item(cls, item: ProductItem) -> "_StoredProduct":
        return cls(
            id=item.id,
            title=item.title,
            price=item.price,
            description=item.description,
            category=item.category,
            image=item.image,
            rating=_StoredRating(rate=item.rating.rate, count=item.rating.count),
        )

    def to_item(self) -> ProductItem:
        return ProductItem(
            id=self.id,
            title=self.title,
            price=self.price,
            description=self.description,
            category=self.category,
            image=self.image,
            rating=ProductRating(rate=self.rating.rate, count=self.rating.count),
        )


class _StoredCache(BaseModel):
    products: list[_StoredProduct]
    timestamp: datetime


@dataclass
class JsonFileProductStore(ProductStore):
    """Keeps the product snapshot in a single JSON document on disk."""

    store_path: Path
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    async def delete(self) -> None:
        """Remove the store file; an absent file counts as deleted."""
        await asyncio.to_thread(self._delete)

    async def insert(self, items: list[ProductItem], timestamp: datetime) -> None:
        """Overwrite the store file with a new snapshot."""
        await asyncio.to_thread(self._insert, items, timestamp)

    async def retrieve(self) -> CachedSnapshot | None:
        """Read the snapshot, returning None when no file exists."""
        return await asyncio.to_thread(self._retrieve)

    def _delete(self) -> None:
        with self._lock:
            try:
                self.store_path.unlink(missing_ok=True)
            except OSError as exc:
                raise DeletionFailed(f"Failed to delete {self.store_path}") from exc

    def _insert(self, items: list[ProductItem], timestamp: datetime) -> None:
        with self._lock:
            try:
                cache = _StoredCache(
                    products=[_StoredProduct.from_item(item) for item in items],
                    timestamp=timestamp,
                )
                self.store_path.parent.mkdir(parents=True, exist_ok=True)
                self._write_atomically(cache.model_dump_json())
            except (OSError, ValidationError) as exc:
                raise InsertionFailed(f"Failed to write {self.store_path}") from exc

    def _write_atomically(self, payload: str) -> None:
        # Stores may share a path, so every write gets its own temporary sibling.
        temporary_file = tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=self.store_path.parent,
            prefix=f".{self.store_path.name}.",
            suffix=".tmp",
            delete=False,
        )
        temporary_path = Path(temporary_file.name)
        try:
            with temporary_file:
                temporary_file.write(payload)
            os.replace(temporary_path, self.store_path)
        except OSError:
            temporary_path.unlink(missing_ok=True)
            raise

    def _retrieve(self) -> CachedSnapshot | None:
        with self._lock:
            try:
                raw = self.store_path.read_bytes()
            except FileNotFoundError:
                return None
            except OSError as exc:
                raise RetrievalFailed(f"Failed to read {self.store_path}") from exc
        try:
            cache = _StoredCache.model_validate_json(raw)
        except ValueError as exc:
            raise RetrievalFailed(
                f"Corrupted product cache at {self.store_path}"
            ) from exc
        return CachedSnapshot(
            items=[product.to_item() for product in cache.products],
            timestamp=as_utc(cache.timestamp),
        )
