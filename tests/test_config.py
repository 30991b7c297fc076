"""Tests for settings and adapter chain construction."""

import asyncio
import json

import pytest

from docbase.adapters import (
    AzureCosmosDBAdapter,
    CachingDatabaseAdapter,
    MemoryDatabaseAdapter,
    SchemaEnforcingDatabaseAdapter,
    SearchEnginePromotingDatabaseAdapter,
)
from docbase.config import DocbaseSettings, get_settings
from docbase.database import Reach
from docbase.errors import SchemaValidationError
from docbase.factory import compose, create_adapter, open_database


def make_settings(**overrides) -> DocbaseSettings:
    return DocbaseSettings(_env_file=None, **overrides)


class TestSettings:
    def test_defaults(self):
        settings = make_settings()
        assert settings.backend == "memory"
        assert settings.default_reach is None
        assert settings.cache_enabled is False
        assert settings.search_chunk_size == 100
        assert settings.cosmos_key_type == "master"

    def test_reads_prefixed_environment(self, monkeypatch):
        monkeypatch.setenv("DOCBASE_CACHE_ENABLED", "true")
        monkeypatch.setenv("DOCBASE_CACHE_TTL_SECONDS", "30")
        monkeypatch.setenv("DOCBASE_DEFAULT_REACH", "server")

        settings = get_settings()
        assert settings.cache_enabled is True
        assert settings.cache_ttl_seconds == 30
        assert settings.default_reach is Reach.SERVER

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_invalid_values_rejected(self):
        with pytest.raises(ValueError):
            make_settings(backend="oracle")
        with pytest.raises(ValueError):
            make_settings(search_chunk_size=0)


class TestCompose:
    def test_first_layer_is_outermost(self):
        terminal = MemoryDatabaseAdapter()
        adapter = compose(terminal, CachingDatabaseAdapter, SchemaEnforcingDatabaseAdapter)

        assert isinstance(adapter, CachingDatabaseAdapter)
        assert isinstance(adapter.inner, SchemaEnforcingDatabaseAdapter)
        assert adapter.inner.inner is terminal

    def test_no_layers_returns_terminal(self):
        terminal = MemoryDatabaseAdapter()
        assert compose(terminal) is terminal


class TestCreateAdapter:
    def test_memory_backend_without_layers(self):
        assert isinstance(create_adapter(make_settings()), MemoryDatabaseAdapter)

    def test_full_chain_order(self, tmp_path):
        schema_file = tmp_path / "schemas.json"
        schema_file.write_text(json.dumps({"recipes": {"properties": {"name": {"type": "string"}}}}))

        adapter = create_adapter(make_settings(
            cache_enabled=True,
            cache_ttl_seconds=60,
            schema_file=schema_file,
            promote_search=True,
        ))

        assert isinstance(adapter, CachingDatabaseAdapter)
        assert adapter.ttl == 60
        assert isinstance(adapter.inner, SchemaEnforcingDatabaseAdapter)
        assert isinstance(adapter.inner.inner, SearchEnginePromotingDatabaseAdapter)
        assert isinstance(adapter.inner.inner.inner, MemoryDatabaseAdapter)

    def test_schema_file_is_enforced(self, tmp_path):
        schema_file = tmp_path / "schemas.json"
        schema_file.write_text(json.dumps({"recipes": {"properties": {"name": {"type": "string"}}}}))
        database = open_database(make_settings(schema_file=schema_file))

        async def scenario():
            await database.collection("recipes").insert({"name": 42})

        with pytest.raises(SchemaValidationError):
            asyncio.run(scenario())

    def test_missing_supabase_credentials(self):
        with pytest.raises(ValueError, match="DOCBASE_SUPABASE_URL"):
            create_adapter(make_settings(backend="supabase"))

    def test_missing_cosmos_credentials(self):
        with pytest.raises(ValueError, match="DOCBASE_COSMOS_API_KEY"):
            create_adapter(make_settings(backend="cosmos", cosmos_service_id="acct"))

    def test_cosmos_backend(self):
        adapter = create_adapter(make_settings(
            backend="cosmos",
            cosmos_service_id="acct",
            cosmos_api_key="c2VjcmV0",
        ))
        assert isinstance(adapter, AzureCosmosDBAdapter)
        assert adapter.credentials.host == "https://acct.documents.azure.com"
        asyncio.run(adapter.close())

    def test_explicit_backend_overrides_settings(self):
        terminal = MemoryDatabaseAdapter()
        adapter = create_adapter(make_settings(backend="supabase"), backend=terminal)
        assert adapter is terminal

    def test_open_database_applies_defaults(self):
        database = open_database(make_settings(default_reach="local", search_chunk_size=7))
        assert database.default_reach is Reach.LOCAL
        assert database.chunk_size == 7
