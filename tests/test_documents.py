import aiohttp
import pytest

from bulk_import.config import settings
from bulk_import.documents.factory import DocumentStoreFactory
from bulk_import.documents.sanity import SanityDocumentStore
from bulk_import.exceptions import AppError, ConfigError, TransactionError


class FakeResponse:
    def __init__(self, body, error=None):
        self._body = body
        self._error = error

    async def __aenter__(self):
        if self._error is not None:
            raise self._error
        return self

    async def __aexit__(self, *exc_info):
        return False

    def raise_for_status(self):
        return None

    async def json(self):
        return self._body


class FakeSession:
    closed = False

    def __init__(self, body=None, error=None):
        self.body = body or {}
        self.error = error
        self.requests = []

    def post(self, url, params=None, json=None):
        self.requests.append(("POST", url, params, json))
        return FakeResponse(self.body, self.error)

    def get(self, url, params=None):
        self.requests.append(("GET", url, params, None))
        return FakeResponse(self.body, self.error)


def make_store(session):
    return SanityDocumentStore("abc123", "production", "token", "2023-05-03", session=session)


async def test_commit_sends_one_mutation_request():
    session = FakeSession(body={"results": [{"id": "a"}, {"id": "b"}]})
    transaction = make_store(session).create_transaction()
    transaction.create({"_type": "category", "title": "Parks"})
    transaction.create({"_type": "category", "title": "Museums"})

    ids = await transaction.commit()

    assert ids == ["a", "b"]
    [(method, url, params, body)] = session.requests
    assert method == "POST"
    assert url == "https://abc123.api.sanity.io/v2023-05-03/data/mutate/production"
    assert params == {"returnIds": "true", "visibility": "sync"}
    assert body["mutations"][1] == {"create": {"_type": "category", "title": "Museums"}}


async def test_commit_network_failure_is_a_transaction_error():
    session = FakeSession(error=aiohttp.ClientConnectionError("connection reset"))
    transaction = make_store(session).create_transaction()
    transaction.create({"_type": "category", "title": "Parks"})

    with pytest.raises(TransactionError, match="connection reset"):
        await transaction.commit()


async def test_get_document_encodes_query_parameters():
    session = FakeSession(body={"result": {"_id": "cat-1"}})

    document = await make_store(session).get_document("category", "cat-1")

    assert document == {"_id": "cat-1"}
    [(_, url, params, _)] = session.requests
    assert url.endswith("/data/query/production")
    assert params["$type"] == '"category"'
    assert params["$id"] == '"cat-1"'


async def test_query_failure_is_a_store_error():
    session = FakeSession(error=aiohttp.ClientConnectionError("timeout"))

    with pytest.raises(AppError) as exc_info:
        await make_store(session).count_documents()

    assert exc_info.value.code == "STORE_ERROR"


def test_factory_requires_sanity_credentials(monkeypatch):
    monkeypatch.setattr(settings, "sanity_project_id", "")
    monkeypatch.setattr(settings, "sanity_token", "")

    with pytest.raises(ConfigError) as exc_info:
        DocumentStoreFactory.create("sanity")

    assert "BI_SANITY_PROJECT_ID" in exc_info.value.message
    assert "BI_SANITY_TOKEN" in exc_info.value.message


def test_factory_rejects_unknown_backend():
    with pytest.raises(ConfigError, match="Unknown document store backend"):
        DocumentStoreFactory.create("mongo")
