import asyncio
import json
from typing import Any

import aiohttp
import structlog

from bulk_import.documents.base import DocumentStore, DocumentTransaction
from bulk_import.exceptions import AppError, TransactionError

logger = structlog.get_logger()

_USER_DOCUMENTS = '!(_type match "system.**")'


class SanityTransaction(DocumentTransaction):
    def __init__(self, store: "SanityDocumentStore") -> None:
        self._store = store
        self._mutations: list[dict] = []

    def create(self, document: dict) -> None:
        self._mutations.append({"create": document})

    async def commit(self) -> list[str]:
        if not self._mutations:
            return []
        try:
            body = await self._store.mutate(self._mutations)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.error(
                "sanity_commit_failed",
                documents=len(self._mutations),
                error=str(exc),
            )
            raise TransactionError(f"Sanity transaction commit failed: {exc}") from exc

        return [result["id"] for result in body.get("results", []) if "id" in result]


class SanityDocumentStore(DocumentStore):
    """Document store backed by the Sanity HTTP API."""

    def __init__(
        self,
        project_id: str,
        dataset: str,
        token: str,
        api_version: str,
        timeout_seconds: float = 60.0,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._dataset = dataset
        self._token = token
        self._base_url = f"https://{project_id}.api.sanity.io/v{api_version.lstrip('v')}"
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session = session
        self._owns_session = session is None

    @property
    def dataset(self) -> str:
        return self._dataset

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"Authorization": f"Bearer {self._token}"},
                timeout=self._timeout,
            )
            self._owns_session = True
        return self._session

    async def mutate(self, mutations: list[dict]) -> dict:
        url = f"{self._base_url}/data/mutate/{self._dataset}"
        async with self._get_session().post(
            url,
            params={"returnIds": "true", "visibility": "sync"},
            json={"mutations": mutations},
        ) as response:
            response.raise_for_status()
            body = await response.json()
        logger.debug("sanity_mutations_committed", count=len(mutations))
        return body

    async def fetch(self, query: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{self._base_url}/data/query/{self._dataset}"
        query_params = {"query": query}
        for key, value in (params or {}).items():
            query_params[f"${key}"] = json.dumps(value)

        try:
            async with self._get_session().get(url, params=query_params) as response:
                response.raise_for_status()
                body = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.error("sanity_query_failed", query=query, params=params, error=str(exc))
            raise AppError(f"Failed to execute Sanity query: {exc}", code="STORE_ERROR") from exc

        return body.get("result")

    def create_transaction(self) -> SanityTransaction:
        return SanityTransaction(self)

    async def get_document(self, doc_type: str, doc_id: str) -> dict | None:
        return await self.fetch(
            "*[_type == $type && _id == $id][0]", {"type": doc_type, "id": doc_id}
        )

    async def count_documents(self) -> int:
        return await self.fetch(f"count(*[{_USER_DOCUMENTS}])") or 0

    async def list_documents(self, start: int, end: int) -> list[dict]:
        return await self.fetch(
            f"*[{_USER_DOCUMENTS}] | order(_type, _id) [{int(start)}...{int(end)}]"
        ) or []

    async def check_health(self) -> None:
        await self.fetch('*[_type == "system"][0]')

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
