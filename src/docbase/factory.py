"""
Docbase - Adapter chain construction.

    database = open_database()            # from DOCBASE_* settings
    adapter = compose(
        MemoryDatabaseAdapter(),
        CachingDatabaseAdapter,
        SchemaEnforcingDatabaseAdapter,
    )                                     # cache -> schema -> memory
"""

import logging
from collections.abc import Callable

from supabase import create_client

from docbase.adapters.caching import CachingDatabaseAdapter
from docbase.adapters.cosmos import AzureCosmosDBAdapter, AzureCosmosDBCredentials
from docbase.adapters.memory import MemoryDatabaseAdapter
from docbase.adapters.schema_enforcing import SchemaEnforcingDatabaseAdapter
from docbase.adapters.search_engine_promoting import SearchEnginePromotingDatabaseAdapter
from docbase.adapters.supabase import SupabaseDatabaseAdapter
from docbase.config import DocbaseSettings, get_settings
from docbase.database.database import Database
from docbase.database.schema import load_schemas
from docbase.database_adapter.base import DatabaseAdapter

logger = logging.getLogger(__name__)

Layer = Callable[[DatabaseAdapter], DatabaseAdapter]


def compose(terminal: DatabaseAdapter, *layers: Layer) -> DatabaseAdapter:
    """
    Wrap a terminal adapter in decorator layers.

    The first layer listed ends up outermost: compose(t, a, b) == a(b(t)).
    """
    adapter = terminal
    for layer in reversed(layers):
        adapter = layer(adapter)
    return adapter


def create_backend(settings: DocbaseSettings) -> DatabaseAdapter:
    """Build the terminal adapter for the configured backend."""
    match settings.backend:
        case "memory":
            return MemoryDatabaseAdapter()
        case "supabase":
            if not settings.supabase_url or not settings.supabase_key:
                raise ValueError("Supabase backend needs DOCBASE_SUPABASE_URL and DOCBASE_SUPABASE_KEY")
            return SupabaseDatabaseAdapter(create_client(settings.supabase_url, settings.supabase_key))
        case "cosmos":
            if not settings.cosmos_service_id or not settings.cosmos_api_key:
                raise ValueError("Cosmos backend needs DOCBASE_COSMOS_SERVICE_ID and DOCBASE_COSMOS_API_KEY")
            return AzureCosmosDBAdapter(
                AzureCosmosDBCredentials(
                    service_id=settings.cosmos_service_id,
                    api_key=settings.cosmos_api_key,
                    key_type=settings.cosmos_key_type,
                )
            )
    raise ValueError(f"Unknown backend: {settings.backend}")


def create_adapter(
    settings: DocbaseSettings | None = None,
    backend: DatabaseAdapter | None = None,
) -> DatabaseAdapter:
    """
    Build the adapter chain described by settings.

    Args:
        settings: Defaults to the cached environment settings
        backend: Terminal adapter to use instead of the configured backend
    """
    settings = settings or get_settings()
    terminal = backend or create_backend(settings)

    layers: list[Layer] = []
    if settings.cache_enabled:
        layers.append(lambda inner: CachingDatabaseAdapter(inner, ttl=settings.cache_ttl_seconds))
    if settings.schema_file is not None:
        schemas = load_schemas(settings.schema_file)
        layers.append(lambda inner: SchemaEnforcingDatabaseAdapter(inner, schemas))
    if settings.promote_search:
        layers.append(SearchEnginePromotingDatabaseAdapter)

    adapter = compose(terminal, *layers)
    logger.info(f"Built adapter chain: {adapter!r}")
    return adapter


def open_database(
    settings: DocbaseSettings | None = None,
    backend: DatabaseAdapter | None = None,
) -> Database:
    """Build the adapter chain and return a Database bound to it."""
    settings = settings or get_settings()
    return Database(
        create_adapter(settings, backend),
        default_reach=settings.default_reach,
        chunk_size=settings.search_chunk_size,
    )
