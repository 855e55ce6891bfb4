import gzip
import json
from pathlib import Path

import pytest

from bulk_import.backups.service import BackupService
from bulk_import.exceptions import AppError
from tests.fakes import FakeStore


class FailingListStore(FakeStore):
    async def list_documents(self, start, end):
        raise AppError("query timed out", code="STORE_ERROR")


async def seed(store, count):
    transaction = store.create_transaction()
    for i in range(count):
        transaction.create({"_type": "category", "title": f"Category {i}"})
    await transaction.commit()


async def test_backup_writes_every_document(tmp_path):
    store = FakeStore()
    await seed(store, 7)
    service = BackupService(store, tmp_path / "backups", "production", batch_size=3)

    result = await service.backup()

    path = Path(result.filename)
    assert path.name.startswith("backup-production-")
    assert path.name.endswith(".json.gz")
    assert result.document_count == 7
    with gzip.open(path, "rt", encoding="utf-8") as fh:
        documents = json.load(fh)
    assert sorted(doc["title"] for doc in documents) == sorted(f"Category {i}" for i in range(7))


async def test_backup_of_empty_store_is_an_empty_array(tmp_path):
    result = await BackupService(FakeStore(), tmp_path, "local").backup()

    with gzip.open(result.filename, "rt", encoding="utf-8") as fh:
        assert json.load(fh) == []


async def test_failed_backup_leaves_no_partial_file(tmp_path):
    store = FailingListStore()
    await seed(store, 2)

    with pytest.raises(AppError) as exc_info:
        await BackupService(store, tmp_path, "production").backup()

    assert exc_info.value.code == "BACKUP_ERROR"
    assert list(tmp_path.iterdir()) == []
