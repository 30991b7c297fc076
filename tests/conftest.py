"""
Pytest configuration and fixtures for Docbase tests.

Async code is driven with asyncio.run() from plain test functions.
Backends are never contacted: Supabase is a MagicMock, Cosmos DB goes
through httpx.MockTransport.
"""

import os
from unittest.mock import MagicMock

import pytest

# Set test environment before importing docbase modules
os.environ["DOCBASE_BACKEND"] = "memory"
os.environ.pop("DOCBASE_DEFAULT_REACH", None)

from docbase.adapters.memory import MemoryDatabaseAdapter
from docbase.config import get_settings
from docbase.database import CollectionSchema, Database, FieldSchema


@pytest.fixture(autouse=True)
def fresh_settings():
    """Settings are cached; every test starts from the environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def memory_adapter():
    return MemoryDatabaseAdapter()


@pytest.fixture
def database(memory_adapter) -> Database:
    """Memory-backed database."""
    return memory_adapter.database()


@pytest.fixture
def recipe_schema() -> CollectionSchema:
    return CollectionSchema(
        properties={
            "name": FieldSchema(type="string", required=True, nullable=False, max_length=80),
            "servings": FieldSchema(type="int"),
            "tags": FieldSchema(type="list", items=FieldSchema(type="string")),
        },
    )


@pytest.fixture
def mock_supabase():
    """Mock Supabase client for unit tests."""
    mock_client = MagicMock()

    # Every builder call returns the same builder
    mock_table = MagicMock()
    for method in (
        "select", "insert", "upsert", "update", "delete",
        "eq", "neq", "gt", "gte", "lt", "lte", "is_", "ilike", "or_", "filter",
        "contains", "order", "range", "offset", "limit",
    ):
        getattr(mock_table, method).return_value = mock_table
    mock_table.not_ = mock_table
    mock_table.execute.return_value = MagicMock(data=[])

    mock_client.table.return_value = mock_table

    return mock_client


@pytest.fixture
def sample_recipes():
    """Sample recipes for testing."""
    return [
        {"name": "Pancakes", "cuisine": "american", "servings": 4, "tags": ["breakfast", "quick"]},
        {"name": "Pad Thai", "cuisine": "thai", "servings": 2, "tags": ["noodles"]},
        {"name": "Green Curry", "cuisine": "thai", "servings": 4, "tags": ["spicy"]},
        {"name": "Carbonara", "cuisine": "italian", "servings": 2, "tags": ["pasta", "quick"]},
        {"name": "Risotto", "cuisine": "italian", "servings": 3, "tags": ["rice"]},
    ]
