"""
Tests for the decorating adapters: schema enforcement, search-engine
promotion and read-only access.
"""

import asyncio

import pytest

from docbase.adapters.memory import MemoryDatabaseAdapter
from docbase.adapters.read_only import ReadOnlyDatabaseAdapter
from docbase.adapters.schema_enforcing import SchemaEnforcingDatabaseAdapter
from docbase.adapters.search_engine_promoting import SearchEnginePromotingDatabaseAdapter
from docbase.database import CollectionSchema, FieldSchema, KeywordFilter, PropertySorter, Query, Reach, where
from docbase.errors import CapabilityError, SchemaValidationError


# =============================================================================
# Schema enforcement
# =============================================================================


class TestSchemaEnforcing:
    def test_valid_writes_pass_through(self, memory_adapter, recipe_schema):
        database = SchemaEnforcingDatabaseAdapter(memory_adapter, {"recipes": recipe_schema}).database()
        recipes = database.collection("recipes")

        async def scenario():
            document = await recipes.insert({"name": "Pad Thai", "servings": 2})
            await document.patch({"servings": 3})
            return await document.read()

        assert asyncio.run(scenario()).to_dict() == {"name": "Pad Thai", "servings": 3}

    def test_invalid_insert_rejected_before_backend(self, memory_adapter, recipe_schema):
        database = SchemaEnforcingDatabaseAdapter(memory_adapter, {"recipes": recipe_schema}).database()
        recipes = database.collection("recipes")

        async def scenario():
            with pytest.raises(SchemaValidationError) as exc_info:
                await recipes.document("r1").insert({"servings": "two"})
            return exc_info.value, await recipes.search()

        error, stored = asyncio.run(scenario())
        assert {i.path for i in error.issues} == {"name", "servings"}
        assert len(stored) == 0

    def test_patch_checked_field_by_field(self, memory_adapter, recipe_schema):
        database = SchemaEnforcingDatabaseAdapter(memory_adapter, {"recipes": recipe_schema}).database()
        document = database.collection("recipes").document("r1")

        async def scenario():
            await document.insert({"name": "Pad Thai"})
            with pytest.raises(SchemaValidationError):
                await document.patch({"tags": [1]})
            with pytest.raises(SchemaValidationError):
                # Replacing drops the required name
                await document.update({"servings": 2})

        asyncio.run(scenario())

    def test_partition_upsert_id_is_not_a_field(self, memory_adapter, recipe_schema):
        strict = recipe_schema.model_copy(update={"additional_properties": False})
        database = SchemaEnforcingDatabaseAdapter(memory_adapter, {"recipes": strict}).database()
        partition = database.collection("recipes").partition("alice")

        async def scenario():
            await partition.upsert({"id": "r1", "name": "Pad Thai"})
            return await partition.document("r1").read()

        assert asyncio.run(scenario()).to_dict() == {"name": "Pad Thai"}

    def test_batch_checked_before_anything_is_written(self, memory_adapter, recipe_schema):
        database = SchemaEnforcingDatabaseAdapter(memory_adapter, {"recipes": recipe_schema}).database()
        recipes = database.collection("recipes")

        async def scenario():
            with pytest.raises(SchemaValidationError):
                async with database.write_batch(atomic=False) as batch:
                    batch.insert(recipes.document("r1"), {"name": "Pad Thai"})
                    batch.insert(recipes.document("r2"), {"servings": "two"})
            return await recipes.search()

        assert len(asyncio.run(scenario())) == 0

    def test_unmanaged_collections_accept_anything(self, memory_adapter, recipe_schema):
        database = SchemaEnforcingDatabaseAdapter(memory_adapter, {"recipes": recipe_schema}).database()
        asyncio.run(database.collection("notes").insert({"anything": ["goes", 1, None]}))

    def test_falls_back_to_inner_schemas(self, recipe_schema):
        inner = MemoryDatabaseAdapter(schemas={"recipes": recipe_schema})
        database = SchemaEnforcingDatabaseAdapter(inner).database()

        with pytest.raises(SchemaValidationError):
            asyncio.run(database.collection("recipes").insert({"servings": 1}))

    def test_schema_read_overlays_local_schemas(self, recipe_schema):
        local = CollectionSchema(properties={"title": FieldSchema(type="string")})
        inner = MemoryDatabaseAdapter(schemas={"recipes": recipe_schema, "notes": recipe_schema})
        database = SchemaEnforcingDatabaseAdapter(inner, {"notes": local}).database()

        async def scenario():
            return await database.schemas(), await database.collection("notes").schema()

        schemas, notes = asyncio.run(scenario())
        assert schemas["recipes"] == recipe_schema
        assert schemas["notes"] == local
        assert notes == local


# =============================================================================
# Search promotion
# =============================================================================


class TestSearchPromotion:
    def test_scan_fallback_for_keyword_search(self, sample_recipes):
        store = MemoryDatabaseAdapter(full_text_search=False)
        database = SearchEnginePromotingDatabaseAdapter(store).database()
        recipes = database.collection("recipes")

        async def scenario():
            for recipe in sample_recipes:
                await recipes.insert(recipe)
            return await recipes.search(Query(filter=KeywordFilter("QUICK"), sorter=PropertySorter("name")))

        result = asyncio.run(scenario())
        assert [s["name"] for s in result] == ["Carbonara", "Pancakes"]

    def test_scan_fallback_applies_window(self):
        store = MemoryDatabaseAdapter(full_text_search=False)
        database = SearchEnginePromotingDatabaseAdapter(store).database()
        partition = database.collection("words").partition("p")

        async def scenario():
            for i in range(10):
                await partition.document(f"w{i}").insert({"text": f"item {i}", "n": i})
            return await partition.search(Query(filter=KeywordFilter("item"), sorter=PropertySorter("n"), skip=2, take=3))

        assert [s["n"] for s in asyncio.run(scenario())] == [2, 3, 4]

    def test_native_searches_are_forwarded(self):
        store = MemoryDatabaseAdapter(full_text_search=False)
        database = SearchEnginePromotingDatabaseAdapter(store).database()
        recipes = database.collection("recipes")

        async def scenario():
            await recipes.insert({"cuisine": "thai"})
            return await recipes.search(Query(filter=where(cuisine="thai")))

        assert len(asyncio.run(scenario())) == 1

    def test_engine_answers_searches_and_mirrors_writes(self):
        store = MemoryDatabaseAdapter(full_text_search=False)
        engine = MemoryDatabaseAdapter()
        database = SearchEnginePromotingDatabaseAdapter(store, engine).database()
        partition = database.collection("recipes").partition("alice")
        engine_view = engine.database().collection("recipes").partition("alice")

        async def scenario():
            document = await partition.insert({"name": "Pad Thai"})
            await partition.document("r2").upsert({"name": "Green Curry"})
            await document.patch({"servings": 2})
            found = await partition.search(Query(filter=KeywordFilter("curry")))
            mirrored = await engine_view.document(document.document_id).read()
            await document.delete()
            remaining = await engine_view.search()
            return found, mirrored, remaining

        found, mirrored, remaining = asyncio.run(scenario())
        assert [s["name"] for s in found] == ["Green Curry"]
        assert mirrored.to_dict() == {"name": "Pad Thai", "servings": 2}
        assert [s["name"] for s in remaining] == ["Green Curry"]

    def test_search_and_delete_removes_from_both(self):
        store = MemoryDatabaseAdapter()
        engine = MemoryDatabaseAdapter()
        database = SearchEnginePromotingDatabaseAdapter(store, engine).database()
        partition = database.collection("numbers").partition("p")

        async def scenario():
            for i in range(6):
                await partition.document(f"d{i}").insert({"n": i})
            count = await partition.search_and_delete(Query(filter=where(n=3)))
            in_store = await store.database().collection("numbers").partition("p").search()
            in_engine = await engine.database().collection("numbers").partition("p").search()
            return count, in_store, in_engine

        count, in_store, in_engine = asyncio.run(scenario())
        assert count == 1
        assert len(in_store) == len(in_engine) == 5

    def test_batch_writes_are_mirrored(self):
        store = MemoryDatabaseAdapter()
        engine = MemoryDatabaseAdapter()
        database = SearchEnginePromotingDatabaseAdapter(store, engine).database()
        partition = database.collection("recipes").partition("alice")
        engine_view = engine.database().collection("recipes").partition("alice")

        async def scenario():
            await partition.document("r1").insert({"name": "Pad Thai"})
            async with database.write_batch() as batch:
                batch.patch(partition.document("r1"), {"servings": 2})
                batch.upsert(partition.document("r2"), {"name": "Green Curry"})
                batch.delete(partition.document("r1"))
                batch.upsert(partition.document("r3"), {"name": "Ramen"})
            return await engine_view.search(Query(sorter=PropertySorter("name")))

        assert [s["name"] for s in asyncio.run(scenario())] == ["Green Curry", "Ramen"]

    def test_capabilities(self):
        store = MemoryDatabaseAdapter(full_text_search=False)
        engine = MemoryDatabaseAdapter(max_reach=Reach.SERVER)

        assert SearchEnginePromotingDatabaseAdapter(store).capabilities.full_text_search
        assert SearchEnginePromotingDatabaseAdapter(store, engine).capabilities.max_reach is Reach.SERVER


# =============================================================================
# Read-only
# =============================================================================


class TestReadOnly:
    def test_reads_pass_writes_fail(self, memory_adapter):
        async def seed():
            await memory_adapter.database().collection("recipes").document("r1").insert({"name": "x"})

        asyncio.run(seed())
        database = ReadOnlyDatabaseAdapter(memory_adapter).database()
        recipes = database.collection("recipes")
        document = recipes.document("r1")

        assert asyncio.run(document.read())["name"] == "x"
        assert len(asyncio.run(recipes.search())) == 1

        for write in (
            document.insert({"name": "y"}),
            document.upsert({"name": "y"}),
            document.update({"name": "y"}),
            document.patch({"name": "y"}),
            document.delete(),
            recipes.search_and_delete(),
        ):
            with pytest.raises(CapabilityError):
                asyncio.run(write)

    def test_batches_rejected(self, memory_adapter):
        database = ReadOnlyDatabaseAdapter(memory_adapter).database()
        batch = database.write_batch(atomic=False)
        batch.delete(database.collection("recipes").document("r1"))

        with pytest.raises(CapabilityError):
            asyncio.run(batch.commit())
