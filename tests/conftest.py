"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

import pytest

from product_cache.config import Settings
from product_cache.domain.products import CachedSnapshot, ProductItem, ProductRating
from product_cache.services.clock import Clock
from product_cache.services.products import (
    LoadResult,
    LocalProductsLoader,
    ProductStore,
    SaveResult,
)

DELETE = "delete"
INSERT = "insert"
RETRIEVE = "retrieve"


@dataclass
class ProductStoreSpy(ProductStore):
    """Store that records calls and lets tests complete each one."""

    received_messages: list[tuple[object, ...]] = field(default_factory=list)
    deletions: list[asyncio.Future[None]] = field(default_factory=list)
    insertions: list[asyncio.Future[None]] = field(default_factory=list)
    retrievals: list[asyncio.Future[CachedSnapshot | None]] = field(
        default_factory=list
    )

    async def delete(self) -> None:
        self.received_messages.append((DELETE,))
        future = asyncio.get_running_loop().create_future()
        self.deletions.append(future)
        await future

    async def insert(self, items: list[ProductItem], timestamp: datetime) -> None:
        self.received_messages.append((INSERT, items, timestamp))
        future = asyncio.get_running_loop().create_future()
        self.insertions.append(future)
        await future

    async def retrieve(self) -> CachedSnapshot | None:
        self.received_messages.append((RETRIEVE,))
        future = asyncio.get_running_loop().create_future()
        self.retrievals.append(future)
        return await future

    def complete_deletion(self, error: Exception | None = None, index: int = 0) -> None:
        _resolve(self.deletions[index], None, error)

    def complete_insertion(
        self, error: Exception | None = None, index: int = 0
    ) -> None:
        _resolve(self.insertions[index], None, error)

    def complete_retrieval(
        self,
        snapshot: CachedSnapshot | None = None,
        error: Exception | None = None,
        index: int = 0,
    ) -> None:
        _resolve(self.retrievals[index], snapshot, error)


def _resolve(future: asyncio.Future, value: object, error: Exception | None) -> None:
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(value)


@dataclass
class FixedClock(Clock):
    """Clock that always returns the same instant."""

    current: datetime

    def now(self) -> datetime:
        return self.current


async def settle() -> None:
    """Let scheduled tasks run until they block on the store again."""
    for _ in range(5):
        await asyncio.sleep(0)


async def save_products(
    loader: LocalProductsLoader, items: list[ProductItem], timeout: float = 1.0
) -> SaveResult:
    future: asyncio.Future[SaveResult] = asyncio.get_running_loop().create_future()
    loader.save(items, future.set_result)
    return await asyncio.wait_for(future, timeout=timeout)


async def load_products(
    loader: LocalProductsLoader, timeout: float = 1.0
) -> LoadResult:
    future: asyncio.Future[LoadResult] = asyncio.get_running_loop().create_future()
    loader.load(future.set_result)
    return await asyncio.wait_for(future, timeout=timeout)


def unique_item(product_id: int = 1) -> ProductItem:
    return ProductItem(
        id=product_id,
        title=f"Product {product_id}",
        price=9.99 + product_id,
        description=f"Description for product {product_id}",
        category="electronics",
        image=f"https://example.com/products/{product_id}.png",
        rating=ProductRating(rate=4.5, count=120 + product_id),
    )


def unique_items() -> list[ProductItem]:
    return [unique_item(1), unique_item(2)]


def any_error() -> Exception:
    return RuntimeError("any error")


def fixed_now() -> datetime:
    return datetime(2025, 1, 8, 12, 0, tzinfo=UTC)


@pytest.fixture
def store() -> ProductStoreSpy:
    return ProductStoreSpy()


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "products.store"


@pytest.fixture
def settings(store_path: Path) -> Settings:
    return Settings(product_store_path=store_path)

