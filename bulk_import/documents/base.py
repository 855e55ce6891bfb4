from abc import ABC, abstractmethod


class DocumentTransaction(ABC):
    """Stages documents and writes them to the store in one commit."""

    @abstractmethod
    def create(self, document: dict) -> None: ...

    @abstractmethod
    async def commit(self) -> list[str]:
        """Write every staged document; raise ``TransactionError`` on failure."""
        ...


class DocumentStore(ABC):
    @abstractmethod
    def create_transaction(self) -> DocumentTransaction: ...

    @abstractmethod
    async def get_document(self, doc_type: str, doc_id: str) -> dict | None: ...

    @abstractmethod
    async def count_documents(self) -> int: ...

    @abstractmethod
    async def list_documents(self, start: int, end: int) -> list[dict]:
        """Return documents ordered by type then id, sliced ``[start:end]``."""
        ...

    async def check_health(self) -> None:
        await self.count_documents()

    async def close(self) -> None:
        return None
