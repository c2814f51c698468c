"""Supabase implementation of the product store."""

import asyncio
import threading
from dataclasses import dataclass, field
from datetime import datetime

from supabase import Client

from product_cache.domain.errors import DeletionFailed, InsertionFailed, RetrievalFailed
from product_cache.domain.products import CachedSnapshot, ProductItem, ProductRating
from product_cache.services.cache_policy import as_utc
from product_cache.services.products import ProductStore

_CACHES_TABLE = "product_caches"
_PRODUCTS_TABLE = "cached_products"


@dataclass
class SupabaseProductStore(ProductStore):
    """Supabase-backed store holding at most one cached snapshot."""

    client: Client
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    async def delete(self) -> None:
        """Delete every cached snapshot and its products."""
        await asyncio.to_thread(self._locked_delete)

    async def insert(self, items: list[ProductItem], timestamp: datetime) -> None:
        """Replace any existing snapshot with a new one."""
        await asyncio.to_thread(self._insert, items, timestamp)

    async def retrieve(self) -> CachedSnapshot | None:
        """Return the newest cached snapshot, if present."""
        return await asyncio.to_thread(self._retrieve)

    def _locked_delete(self) -> None:
        with self._lock:
            try:
                self._delete_all()
            except Exception as exc:
                raise DeletionFailed("Failed to delete cached products") from exc

    def _insert(self, items: list[ProductItem], timestamp: datetime) -> None:
        with self._lock:
            try:
                self._delete_all()
                response = (
                    self.client.table(_CACHES_TABLE)
                    .insert({"timestamp": timestamp.isoformat()})
                    .execute()
                )
                if not response.data:
                    raise RuntimeError("Failed to create product cache")
                cache_id = response.data[0]["id"]
                try:
                    self._insert_products(cache_id, items)
                except Exception:
                    self._delete_caches([cache_id])
                    raise
            except Exception as exc:
                raise InsertionFailed("Failed to insert cached products") from exc

    def _insert_products(self, cache_id: object, items: list[ProductItem]) -> None:
        if not items:
            return
        self.client.table(_PRODUCTS_TABLE).insert(
            [
                _product_row(cache_id, position, item)
                for position, item in enumerate(items)
            ]
        ).execute()

    def _retrieve(self) -> CachedSnapshot | None:
        with self._lock:
            try:
                cache_response = (
                    self.client.table(_CACHES_TABLE)
                    .select("id, timestamp")
                    .order("timestamp", desc=True)
                    .limit(1)
                    .execute()
                )
                if not cache_response.data:
                    return None
                cache_row = cache_response.data[0]
                products_response = (
                    self.client.table(_PRODUCTS_TABLE)
                    .select("*")
                    .eq("cache_id", cache_row["id"])
                    .order("position")
                    .execute()
                )
                return CachedSnapshot(
                    items=[_parse_product(row) for row in products_response.data or []],
                    timestamp=as_utc(
                        datetime.fromisoformat(str(cache_row["timestamp"]))
                    ),
                )
            except Exception as exc:
                raise RetrievalFailed("Failed to retrieve cached products") from exc

    def _delete_all(self) -> None:
        response = self.client.table(_CACHES_TABLE).select("id").execute()
        cache_ids = [row["id"] for row in response.data or []]
        if cache_ids:
            self._delete_caches(cache_ids)

    def _delete_caches(self, cache_ids: list[object]) -> None:
        self.client.table(_PRODUCTS_TABLE).delete().in_("cache_id", cache_ids).execute()
        self.client.table(_CACHES_TABLE).delete().in_("id", cache_ids).execute()


def _product_row(
    cache_id: object, position: int, item: ProductItem
) -> dict[str, object]:
    """Serialize a product into a cached_products row."""
    return {
        "cache_id": cache_id,
        "position": position,
        "product_id": item.id,
        "title": item.title,
        "price": item.price,
        "description": item.description,
        "category": item.category,
        "image": item.image,
        "rating_rate": item.rating.rate,
        "rating_count": item.rating.count,
    }


def _parse_product(row: dict[str, object]) -> ProductItem:
    """Parse a cached_products row into a domain model."""
    return ProductItem(
        id=int(row["product_id"]),
        title=str(row.get("title", "")),
        price=float(row.get("price", 0.0)),
        description=str(row.get("description", "")),
        category=str(row.get("category", "")),
        image=str(row.get("image", "")),
        rating=ProductRating(
            rate=float(row.get("rating_rate", 0.0)),
            count=int(row.get("rating_count", 0)),
        ),
    )
