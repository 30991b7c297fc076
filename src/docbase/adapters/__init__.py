"""
Docbase - Adapters.

Terminal adapters (memory, supabase, cosmos) talk to a store; decorating
adapters (caching, schema enforcement, search promotion, read-only) wrap
one inner adapter.
"""

from docbase.adapters.caching import CachingDatabaseAdapter
from docbase.adapters.cosmos import AzureCosmosDBAdapter, AzureCosmosDBCredentials
from docbase.adapters.memory import MemoryDatabaseAdapter
from docbase.adapters.read_only import ReadOnlyDatabaseAdapter
from docbase.adapters.schema_enforcing import SchemaEnforcingDatabaseAdapter
from docbase.adapters.search_engine_promoting import SearchEnginePromotingDatabaseAdapter
from docbase.adapters.supabase import SupabaseDatabaseAdapter

__all__ = [
    "AzureCosmosDBAdapter",
    "AzureCosmosDBCredentials",
    "CachingDatabaseAdapter",
    "MemoryDatabaseAdapter",
    "ReadOnlyDatabaseAdapter",
    "SchemaEnforcingDatabaseAdapter",
    "SearchEnginePromotingDatabaseAdapter",
    "SupabaseDatabaseAdapter",
]
