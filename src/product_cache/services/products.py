"""Local product cache coordination."""

import asyncio
import logging
import weakref
from collections.abc import Callable, Coroutine, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Protocol

from product_cache.domain.products import CachedSnapshot, ProductItem
from product_cache.domain.results import Failure, Result, Success
from product_cache.services import cache_policy
from product_cache.services.clock import Clock

_logger = logging.getLogger(__name__)

SaveResult = Result[None]
LoadResult = Result[list[ProductItem]]
SaveCompletion = Callable[[SaveResult], None]
LoadCompletion = Callable[[LoadResult], None]

# Event loops only keep weak references to tasks.
_pending_tasks: set[asyncio.Task[None]] = set()


class ProductStore(Protocol):
    """Persistence interface for the cached product snapshot."""

    async def delete(self) -> None:
        """Remove the cached snapshot, if any."""

    async def insert(self, items: list[ProductItem], timestamp: datetime) -> None:
        """Replace the cached snapshot with ``items`` written at ``timestamp``."""

    async def retrieve(self) -> CachedSnapshot | None:
        """Return the cached snapshot, or None when the store is empty."""


class ProductsLoader(Protocol):
    """Read interface for product sources."""

    def load(self, completion: LoadCompletion) -> asyncio.Task[None]:
        """Load products and deliver the result to ``completion``."""


@dataclass
class LocalProductsLoader(ProductsLoader):
    """Coordinates saving, loading and validating the local product cache.

    Every operation runs as an asyncio task on the running loop. The task only
    holds a weak reference to the loader: once the loader is released, pending
    store completions are dropped and no callback is delivered.
    """

    store: ProductStore
    clock: Clock
    max_age: timedelta = cache_policy.MAX_CACHE_AGE

    def save(
        self, items: Sequence[ProductItem], completion: SaveCompletion
    ) -> asyncio.Task[None]:
        """Replace the cached snapshot with ``items``."""
        return _schedule(_save(weakref.ref(self), self.store, list(items), completion))

    def load(self, completion: LoadCompletion) -> asyncio.Task[None]:
        """Deliver cached items, or an empty list when missing or expired."""
        return _schedule(_load(weakref.ref(self), self.store, completion))

    def validate_cache(self) -> asyncio.Task[None]:
        """Purge the cache when it is expired or cannot be read."""
        return _schedule(_validate(weakref.ref(self), self.store))

    def _is_valid(self, timestamp: datetime) -> bool:
        return cache_policy.validate(
            timestamp, against=self.clock.now(), max_age=self.max_age
        )


def _schedule(coroutine: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
    task = asyncio.get_running_loop().create_task(coroutine)
    _pending_tasks.add(task)
    task.add_done_callback(_pending_tasks.discard)
    return task


async def _save(
    loader_ref: "weakref.ref[LocalProductsLoader]",
    store: ProductStore,
    items: list[ProductItem],
    completion: SaveCompletion,
) -> None:
    try:
        await store.delete()
    except Exception as exc:
        if loader_ref() is None:
            _logger.debug("Dropping cache deletion result for a released loader")
            return
        completion(Failure(exc))
        return

    timestamp = _current_time(loader_ref)
    if timestamp is None:
        _logger.debug("Skipping cache insertion for a released loader")
        return

    result: SaveResult
    try:
        await store.insert(items, timestamp)
    except Exception as exc:
        result = Failure(exc)
    else:
        result = Success(None)
    if loader_ref() is None:
        _logger.debug("Dropping cache insertion result for a released loader")
        return
    completion(result)


async def _load(
    loader_ref: "weakref.ref[LocalProductsLoader]",
    store: ProductStore,
    completion: LoadCompletion,
) -> None:
    try:
        snapshot = await store.retrieve()
    except Exception as exc:
        if loader_ref() is not None:
            completion(Failure(exc))
        return

    loader = loader_ref()
    if loader is None:
        _logger.debug("Dropping cache retrieval result for a released loader")
        return
    if snapshot is not None and loader._is_valid(snapshot.timestamp):
        completion(Success(list(snapshot.items)))
    else:
        completion(Success([]))


async def _validate(
    loader_ref: "weakref.ref[LocalProductsLoader]", store: ProductStore
) -> None:
    try:
        snapshot = await store.retrieve()
    except Exception as exc:
        if loader_ref() is None:
            return
        _logger.warning("Purging product cache after retrieval failure: %s", exc)
        await _delete_quietly(store)
        return

    loader = loader_ref()
    if loader is None or snapshot is None:
        return
    expired = not loader._is_valid(snapshot.timestamp)
    del loader
    if expired:
        _logger.info("Purging expired product cache from %s", snapshot.timestamp)
        await _delete_quietly(store)


async def _delete_quietly(store: ProductStore) -> None:
    try:
        await store.delete()
    except Exception as exc:
        _logger.warning("Failed to purge product cache: %s", exc)


def _current_time(loader_ref: "weakref.ref[LocalProductsLoader]") -> datetime | None:
    loader = loader_ref()
    if loader is None:
        return None
    return loader.clock.now()
