"""Dependency container wiring for the application."""

from dataclasses import dataclass

from supabase import create_client

from product_cache.adapters.json_file_product_store import JsonFileProductStore
from product_cache.adapters.supabase_product_store import SupabaseProductStore
from product_cache.app_logging import configure_logging
from product_cache.config import Settings
from product_cache.services.clock import SystemClock
from product_cache.services.products import LocalProductsLoader, ProductStore


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    store: ProductStore
    products_loader: LocalProductsLoader


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    configure_logging()
    resolved_settings = settings or Settings()
    store = build_store(resolved_settings)
    products_loader = LocalProductsLoader(
        store=store,
        clock=SystemClock(),
        max_age=resolved_settings.cache_max_age,
    )
    return AppContainer(
        settings=resolved_settings,
        store=store,
        products_loader=products_loader,
    )


def build_store(settings: Settings) -> ProductStore:
    """Create the product store selected by settings."""
    if settings.product_store_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise ValueError(
                "Supabase store requires supabase_url and supabase_service_key"
            )
        client = create_client(settings.supabase_url, settings.supabase_service_key)
        return SupabaseProductStore(client)
    return JsonFileProductStore(settings.product_store_path)
