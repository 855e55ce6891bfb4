import asyncio
import json
import sqlite3
from datetime import UTC, datetime
from uuid import uuid4

import aiosqlite
import structlog

from bulk_import.documents.base import DocumentStore, DocumentTransaction
from bulk_import.exceptions import TransactionError

logger = structlog.get_logger()


class SQLiteTransaction(DocumentTransaction):
    def __init__(self, store: "SQLiteDocumentStore") -> None:
        self._store = store
        self._documents: list[dict] = []

    def create(self, document: dict) -> None:
        self._documents.append(document)

    async def commit(self) -> list[str]:
        if not self._documents:
            return []
        return await self._store.insert_many(self._documents)


class SQLiteDocumentStore(DocumentStore):
    """Local document store, one JSON row per document."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db
        self._write_lock = asyncio.Lock()

    def create_transaction(self) -> SQLiteTransaction:
        return SQLiteTransaction(self)

    async def insert_many(self, documents: list[dict]) -> list[str]:
        now = datetime.now(UTC).isoformat()
        rows = []
        for document in documents:
            doc = {"_id": str(uuid4()), **document}
            rows.append((doc["_id"], doc["_type"], json.dumps(doc), now))

        # One commit per transaction; the lock keeps concurrent runs from
        # committing each other's half-written batches.
        async with self._write_lock:
            try:
                await self._db.executemany(
                    "INSERT INTO documents (id, type, data, created_at) VALUES (?, ?, ?, ?)",
                    rows,
                )
                await self._db.commit()
            except sqlite3.Error as exc:
                await self._db.rollback()
                logger.error("sqlite_commit_failed", documents=len(rows), error=str(exc))
                raise TransactionError(f"SQLite transaction commit failed: {exc}") from exc

        logger.debug("sqlite_documents_inserted", count=len(rows))
        return [row[0] for row in rows]

    async def get_document(self, doc_type: str, doc_id: str) -> dict | None:
        cursor = await self._db.execute(
            "SELECT data FROM documents WHERE type = ? AND id = ?",
            (doc_type, doc_id),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return json.loads(row["data"])

    async def count_documents(self) -> int:
        cursor = await self._db.execute("SELECT COUNT(*) AS total FROM documents")
        row = await cursor.fetchone()
        return row["total"] if row else 0

    async def list_documents(self, start: int, end: int) -> list[dict]:
        cursor = await self._db.execute(
            """
            SELECT data FROM documents
            ORDER BY type, id
            LIMIT ? OFFSET ?
            """,
            (max(end - start, 0), start),
        )
        rows = await cursor.fetchall()
        return [json.loads(row["data"]) for row in rows]
