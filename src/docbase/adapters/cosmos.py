"""
Azure Cosmos DB adapter - REST terminal adapter.

Documents go through the Cosmos DB SQL REST API:
    POST   /dbs/{db}/colls/{collection}/docs            insert / upsert
    GET    /dbs/{db}/colls/{collection}/docs/{id}       read
    PUT    /dbs/{db}/colls/{collection}/docs/{id}       replace
    DELETE /dbs/{db}/colls/{collection}/docs/{id}       delete

Searches go to the integrated search index for the collection:
    GET    /dbs/{db}/indexes/{collection}/docs?search=...

Requests are signed with a master/resource key (HMAC-SHA256 over verb,
resource type, resource link and date).
"""

import base64
import hashlib
import hmac
import logging
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass, field
from email.utils import formatdate
from typing import Any
from urllib.parse import quote

import httpx

from docbase.database.document import Document
from docbase.database.query import Query, QueryResult
from docbase.database.reach import Reach
from docbase.database.schema import CollectionSchema
from docbase.database.snapshot import Snapshot
from docbase.database_adapter.base import AdapterCapabilities, DatabaseAdapter
from docbase.database_adapter.requests import (
    DocumentDeleteRequest,
    DocumentInsertRequest,
    DocumentReadRequest,
    DocumentSearchRequest,
    DocumentUpdateRequest,
    DocumentUpsertRequest,
    SchemaReadRequest,
)
from docbase.errors import BackendError, NotFoundError

logger = logging.getLogger(__name__)

API_VERSION = "2018-12-31"
PARTITION_KEY_FIELD = "partitionKey"

# Fields Cosmos DB adds to every stored document
SYSTEM_FIELDS = frozenset({"id", "_rid", "_self", "_etag", "_attachments", "_ts", PARTITION_KEY_FIELD})


@dataclass(frozen=True)
class AzureCosmosDBCredentials:
    """
    Account credentials.

    Attributes:
        service_id: Account name (host is {service_id}.documents.azure.com)
        api_key: Base64 master or resource key
        key_type: "master" or "resource"
        database_id: Database name, defaults to the account name
    """

    service_id: str
    api_key: str = field(repr=False)
    key_type: str = "master"
    database_id: str | None = None

    @property
    def host(self) -> str:
        return f"https://{self.service_id}.documents.azure.com"

    @property
    def database(self) -> str:
        return self.database_id or self.service_id


# =============================================================================
# Signing & Query Parameters
# =============================================================================


def auth_token(credentials: AzureCosmosDBCredentials, method: str, path: str, date: str) -> str:
    """
    Build the Authorization header value for one request.

    The resource link is the path without its leading slash. For paths
    with an odd number of segments (feeds like `.../docs`) the last segment
    is the resource type and the link stops at the parent.
    """
    segments = path.split("/")
    count = len(segments) - 1
    if count % 2 == 1:
        resource_type = segments[count]
        resource_link = path[1 : path.rfind("/")]
    else:
        resource_type = segments[count - 1]
        resource_link = path[1:]

    payload = f"{method.lower()}\n{resource_type.lower()}\n{resource_link}\n{date.lower()}\n\n"
    key = base64.b64decode(credentials.api_key)
    signature = base64.b64encode(hmac.new(key, payload.encode("utf-8"), hashlib.sha256).digest()).decode()
    return quote(f"type={credentials.key_type}&ver=1.0&sig={signature}", safe="")


def build_search_parameters(query: Query, partition_id: str | None = None) -> dict[str, str]:
    """
    Translate a Query into search index parameters.

    - filter  -> search (Lucene syntax), querytype=full, searchmode=all
    - sorter  -> orderby ("a,b desc")
    - skip    -> $skip, only when non-zero
    - take    -> $top, only when set
    - partition scope -> $filter on the partition key
    """
    params: dict[str, str] = {}
    if query.filter is not None:
        params["querytype"] = "full"
        params["search"] = str(query.filter)
        params["searchmode"] = "all"
    if query.sorter is not None:
        params["orderby"] = ",".join(
            s.name if s.ascending else f"{s.name} desc" for s in query.sorter.property_sorters()
        )
    if query.skip:
        params["$skip"] = str(query.skip)
    if query.take is not None:
        params["$top"] = str(query.take)
    if partition_id is not None:
        escaped = partition_id.replace("'", "''")
        params["$filter"] = f"{PARTITION_KEY_FIELD} eq '{escaped}'"
    return params


def _strip_system_fields(item: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in item.items() if k not in SYSTEM_FIELDS and not k.startswith("@search.")}


# =============================================================================
# Adapter
# =============================================================================


class AzureCosmosDBAdapter(DatabaseAdapter):
    """
    Terminal adapter for Azure Cosmos DB.

    Delete policy: deleting an absent document is a no-op.
    Patch is a read-merge-replace round trip.
    """

    capabilities = AdapterCapabilities(max_reach=Reach.GLOBAL, full_text_search=True)

    def __init__(
        self,
        credentials: AzureCosmosDBCredentials,
        http_client: httpx.AsyncClient | None = None,
        schemas: Mapping[str, CollectionSchema] | None = None,
    ):
        self.credentials = credentials
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=30.0)
        self._schemas = dict(schemas or {})

    async def _request(
        self,
        method: str,
        path: str,
        *,
        partition_id: str | None = None,
        params: Mapping[str, str] | None = None,
        json: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        """Sign and send one request; transport failures become BackendError."""
        full_path = f"/dbs/{self.credentials.database}{path}"
        url = f"{self.credentials.host}{full_path}"
        date = formatdate(usegmt=True)

        request_headers = {
            "Authorization": auth_token(self.credentials, method, full_path, date),
            "x-ms-date": date,
            "x-ms-version": API_VERSION,
            "Accept": "application/json",
        }
        if partition_id is not None:
            request_headers["x-ms-documentdb-partitionkey"] = f'["{partition_id}"]'
        request_headers.update(headers or {})

        logger.debug(f"{method} {url}")
        try:
            return await self.http_client.request(
                method, url, params=params, json=json, headers=request_headers
            )
        except httpx.HTTPError as e:
            raise BackendError(str(e), method=method, address=url) from e

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        raise BackendError(
            "Cosmos DB request failed",
            method=response.request.method,
            address=str(response.request.url),
            status=response.status_code,
        )

    @staticmethod
    def _body(document: Document, data: Mapping[str, Any]) -> dict[str, Any]:
        return {**data, "id": document.document_id, PARTITION_KEY_FIELD: document.partition_id}

    @staticmethod
    def _document_path(document: Document) -> str:
        return f"/colls/{document.collection_id}/docs/{document.document_id}"

    async def _get(self, document: Document) -> dict[str, Any] | None:
        response = await self._request("GET", self._document_path(document), partition_id=document.partition_id)
        if response.status_code == 404:
            return None
        self._raise_for_status(response)
        return _strip_system_fields(response.json())

    # =========================================================================
    # Writes
    # =========================================================================

    async def _create(self, document: Document, data: Mapping[str, Any], upsert: bool) -> None:
        response = await self._request(
            "POST",
            f"/colls/{document.collection_id}/docs",
            partition_id=document.partition_id,
            json=self._body(document, data),
            headers={"x-ms-documentdb-is-upsert": "True"} if upsert else None,
        )
        self._raise_for_status(response)

    async def perform_document_insert(self, request: DocumentInsertRequest) -> None:
        self.check_reach(request)
        document = request.document or request.partition.new_document()
        await self._create(document, request.data, upsert=False)
        if request.on_document is not None:
            request.on_document(document)

    async def perform_document_upsert(self, request: DocumentUpsertRequest) -> None:
        self.check_reach(request)
        await self._create(request.document, request.data, upsert=True)

    async def perform_document_update(self, request: DocumentUpdateRequest) -> None:
        self.check_reach(request)
        document = request.document
        data = dict(request.data)
        if request.is_patch:
            current = await self._get(document)
            if current is None:
                raise NotFoundError(str(document))
            data = {**current, **data}

        response = await self._request(
            "PUT",
            self._document_path(document),
            partition_id=document.partition_id,
            json=self._body(document, data),
        )
        if response.status_code == 404:
            raise NotFoundError(str(document))
        self._raise_for_status(response)

    async def perform_document_delete(self, request: DocumentDeleteRequest) -> None:
        self.check_reach(request)
        document = request.document
        response = await self._request("DELETE", self._document_path(document), partition_id=document.partition_id)
        if response.status_code == 404:
            return
        self._raise_for_status(response)

    # =========================================================================
    # Reads
    # =========================================================================

    async def perform_document_read(self, request: DocumentReadRequest) -> AsyncIterator[Snapshot]:
        self.check_reach(request)
        data = await self._get(request.document)
        if data is not None:
            yield Snapshot(document=request.document, data=data)

    async def perform_document_search(self, request: DocumentSearchRequest) -> AsyncIterator[QueryResult]:
        self.check_reach(request)
        collection = request.collection
        params = build_search_parameters(
            request.query,
            partition_id=request.partition.partition_id if request.partition else None,
        )
        response = await self._request("GET", f"/indexes/{collection.collection_id}/docs", params=params)
        self._raise_for_status(response)

        snapshots = []
        for item in response.json().get("value", []):
            if item.get(PARTITION_KEY_FIELD) is None or item.get("id") is None:
                raise BackendError(
                    "Search hit without 'id' or 'partitionKey'",
                    method=response.request.method,
                    address=str(response.request.url),
                )
            document = collection.partition(str(item[PARTITION_KEY_FIELD])).document(str(item["id"]))
            snapshots.append(Snapshot(document=document, data=_strip_system_fields(item)))
        yield QueryResult(collection=collection, query=request.query, snapshots=snapshots)

    async def perform_schema_read(self, request: SchemaReadRequest) -> AsyncIterator[Mapping[str, CollectionSchema]]:
        self.check_reach(request)
        if request.collection is None:
            yield dict(self._schemas)
            return
        collection_id = request.collection.collection_id
        schema = self._schemas.get(collection_id)
        yield {collection_id: schema} if schema is not None else {}

    async def close(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()

    def __repr__(self) -> str:
        return f"AzureCosmosDBAdapter(service_id={self.credentials.service_id!r})"
