"""
Tests for request dispatch, the capability surface and ResultStream.
"""

import asyncio

import pytest

from docbase.adapters.memory import MemoryDatabaseAdapter
from docbase.database import Database, Query, Reach, ResultStream
from docbase.database_adapter import (
    DatabaseAdapter,
    DelegatingDatabaseAdapter,
    DocumentDeleteRequest,
    DocumentInsertRequest,
    DocumentReadRequest,
    DocumentSearchChunkedRequest,
    DocumentSearchRequest,
    DocumentUpsertRequest,
    SchemaReadRequest,
    delegate,
)
from docbase.errors import CapabilityError


class RecordingAdapter(DelegatingDatabaseAdapter):
    """Forwards everything and records the operations it saw."""

    def __init__(self, inner):
        super().__init__(inner)
        self.operations: list[str] = []

    async def perform_document_insert(self, request):
        self.operations.append(request.operation)
        await super().perform_document_insert(request)

    async def perform_document_read(self, request):
        self.operations.append(request.operation)
        async with request.delegate_to(self.inner) as stream:
            async for snapshot in stream:
                yield snapshot


class TestDispatch:
    def test_writes_return_awaitables_reads_return_streams(self, database):
        document = database.collection("c").partition("p").document("d")

        async def scenario():
            write = delegate(DocumentInsertRequest(collection=document.collection, document=document, data={"a": 1}), database.adapter)
            assert not isinstance(write, ResultStream)
            await write

            read = delegate(DocumentReadRequest(document=document), database.adapter)
            assert isinstance(read, ResultStream)
            snapshot = await read.first()
            assert snapshot["a"] == 1

        asyncio.run(scenario())

    def test_insert_request_takes_partition_from_document(self, database):
        document = database.collection("c").partition("p").document("d")
        request = DocumentInsertRequest(collection=document.collection, document=document, data={})
        assert request.partition == document.partition

    def test_insert_request_needs_a_target(self, database):
        with pytest.raises(ValueError):
            DocumentInsertRequest(collection=database.collection("c"), data={})

    def test_upsert_request_takes_address_from_id_field(self, database):
        partition = database.collection("c").partition("p")
        request = DocumentUpsertRequest(collection=partition.collection, partition=partition, data={"id": "d", "a": 1})
        assert request.document == partition.document("d")
        assert dict(request.data) == {"a": 1}

    def test_upsert_request_needs_an_id(self, database):
        partition = database.collection("c").partition("p")
        with pytest.raises(ValueError):
            DocumentUpsertRequest(collection=partition.collection, partition=partition, data={"id": 7})

    def test_chunk_size_must_be_positive(self, database):
        with pytest.raises(ValueError):
            DocumentSearchChunkedRequest(collection=database.collection("c"), chunk_size=0)


class TestCapabilitySurface:
    def test_unimplemented_operations_fail_with_capability_error(self):
        database = DatabaseAdapter().database()
        document = database.collection("c").partition("p").document("d")

        async def scenario():
            with pytest.raises(CapabilityError) as exc_info:
                await document.upsert({"a": 1})
            assert exc_info.value.operation == "upsert"

            with pytest.raises(CapabilityError):
                await document.delete()

        asyncio.run(scenario())
        with pytest.raises(CapabilityError):
            document.read_incrementally()

    def test_reach_above_capabilities_rejected(self):
        adapter = MemoryDatabaseAdapter(max_reach=Reach.SERVER)
        document = adapter.database().collection("c").partition("p").document("d")

        async def scenario():
            await document.upsert({"a": 1}, reach=Reach.SERVER)
            with pytest.raises(CapabilityError) as exc_info:
                await document.upsert({"a": 1}, reach=Reach.GLOBAL)
            assert exc_info.value.reach is Reach.GLOBAL

        asyncio.run(scenario())

    def test_default_reach_applies_when_unspecified(self):
        adapter = MemoryDatabaseAdapter(max_reach=Reach.LOCAL)
        database = Database(adapter, default_reach=Reach.GLOBAL)

        async def scenario():
            with pytest.raises(CapabilityError):
                await database.collection("c").document("d").read()
            assert await database.collection("c").document("d").read(reach=Reach.LOCAL) is None

        asyncio.run(scenario())

    def test_reach_parse(self):
        assert Reach.parse("server") is Reach.SERVER
        assert Reach.LOCAL < Reach.SERVER < Reach.GLOBAL
        with pytest.raises(ValueError):
            Reach.parse("planet")


class TestDelegation:
    def test_delegating_adapter_forwards_every_operation(self, memory_adapter):
        recording = RecordingAdapter(memory_adapter)
        database = recording.database()
        partition = database.collection("recipes").partition("alice")

        async def scenario():
            document = await partition.insert({"name": "Pad Thai"})
            await document.patch({"servings": 2})
            snapshot = await document.read()
            result = await partition.search()
            schemas = await database.schemas()
            count = await partition.search_and_delete(Query())
            return snapshot, result, schemas, count

        snapshot, result, schemas, count = asyncio.run(scenario())

        assert snapshot.to_dict() == {"name": "Pad Thai", "servings": 2}
        assert len(result) == 1
        assert schemas == {}
        assert count == 1
        assert recording.operations == ["insert", "read"]

    def test_write_batches_are_forwarded_whole(self, memory_adapter):
        database = DelegatingDatabaseAdapter(memory_adapter).database()
        recipes = database.collection("recipes")

        async def scenario():
            async with database.write_batch() as batch:
                batch.upsert(recipes.document("r1"), {"name": "Ramen"})
                batch.upsert(recipes.document("r2"), {"name": "Pho"})
            return await recipes.search()

        assert len(asyncio.run(scenario())) == 2

    def test_capabilities_come_from_inner(self):
        inner = MemoryDatabaseAdapter(full_text_search=False, max_reach=Reach.SERVER)
        outer = DelegatingDatabaseAdapter(inner)
        assert outer.capabilities == inner.capabilities
        assert not outer.capabilities.live_reads

    def test_close_reaches_the_terminal(self):
        closed = []

        class Terminal(MemoryDatabaseAdapter):
            async def close(self):
                closed.append(True)

        async def scenario():
            async with DelegatingDatabaseAdapter(Terminal()).database():
                pass

        asyncio.run(scenario())
        assert closed == [True]


class TestResultStream:
    def test_close_stops_the_producer(self):
        produced = []
        finalized = []

        async def producer():
            try:
                for i in range(100):
                    produced.append(i)
                    yield i
            finally:
                finalized.append(True)

        async def scenario():
            stream = ResultStream(producer())
            async with stream:
                async for item in stream:
                    if item == 2:
                        break
            assert stream.closed
            await stream.aclose()  # idempotent

        asyncio.run(scenario())
        assert produced == [0, 1, 2]
        assert finalized == [True]

    def test_first_and_last(self):
        async def numbers():
            for i in range(3):
                yield i

        async def nothing():
            return
            yield

        async def scenario():
            assert await ResultStream(numbers()).first() == 0
            assert await ResultStream(numbers()).last() == 2
            assert await ResultStream(numbers()).to_list() == [0, 1, 2]
            assert await ResultStream(nothing()).first() is None
            with pytest.raises(LookupError):
                await ResultStream(nothing()).last()

        asyncio.run(scenario())

    def test_search_request_stream_ends(self, database):
        async def scenario():
            stream = DocumentSearchRequest(collection=database.collection("c")).delegate_to(database.adapter)
            results = await stream.to_list()
            assert len(results) == 1
            assert stream.closed

        asyncio.run(scenario())

    def test_schema_read_stream(self, database):
        async def scenario():
            return await SchemaReadRequest().delegate_to(database.adapter).last()

        assert asyncio.run(scenario()) == {}

    def test_delete_request_collection(self, database):
        document = database.collection("c").document("d")
        assert DocumentDeleteRequest(document=document).collection == document.collection
