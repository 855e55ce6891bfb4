from datetime import UTC, datetime, timedelta

import jwt
import pytest
from fastapi.testclient import TestClient

from bulk_import.auth import issue_token
from bulk_import.config import settings
from bulk_import.dependencies import get_import_service
from bulk_import.importers.listing import ListingValidator
from bulk_import.importers.transform import DataTransformer
from bulk_import.imports.models import ImportType
from bulk_import.imports.service import ImportService
from bulk_import.main import app
from tests.fakes import FakeStore, PassThroughValidator, make_records

CATEGORIES_CSV = b"title,color\nParks,00ff00\nMuseums,#123456\nBad,\n"


@pytest.fixture
def validators():
    return {ImportType.category: PassThroughValidator(reject=lambda record: record["title"] == "Bad")}


@pytest.fixture
def service(make_orchestrator, checkpoints, validators):
    return ImportService(
        make_orchestrator(validators=validators, batch_size=1, checkpoint_interval=2),
        checkpoints,
        DataTransformer(),
        validators,
    )


@pytest.fixture
def client(service):
    app.dependency_overrides[get_import_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    token = issue_token("tester", datetime.now(UTC) + timedelta(minutes=5))
    return {"Authorization": f"Bearer {token}"}


def upload(content, filename="categories.csv"):
    return {"file": (filename, content, "text/csv")}


def test_login_returns_usable_token(client):
    response = client.post(
        "/api/v1/auth/login",
        json={"username": settings.auth_username, "password": settings.auth_password},
    )

    assert response.status_code == 200
    token = response.json()["access_token"]
    listing = client.get("/api/v1/checkpoints/category", headers={"Authorization": f"Bearer {token}"})
    assert listing.status_code == 200


def test_login_rejects_bad_password(client):
    response = client.post(
        "/api/v1/auth/login",
        json={"username": settings.auth_username, "password": "wrong"},
    )

    assert response.status_code == 401
    assert response.json()["error"] == "UNAUTHORIZED"


def test_requests_without_token_are_rejected(client):
    response = client.post("/api/v1/imports/category", files=upload(CATEGORIES_CSV))

    assert response.status_code in (401, 403)


@pytest.mark.parametrize(
    "claims",
    [
        {"sub": "tester", "scope": "reports"},
        {"sub": "tester", "scope": "imports", "exp": datetime.now(UTC) - timedelta(minutes=1)},
    ],
)
def test_tokens_without_import_access_are_rejected(client, claims):
    token = jwt.encode(claims, settings.jwt_secret, algorithm="HS256")

    response = client.get("/api/v1/checkpoints/category", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_import_with_continue_on_error(client, auth_headers):
    response = client.post(
        "/api/v1/imports/category",
        files=upload(CATEGORIES_CSV),
        params={"continue_on_error": "true"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 3
    assert body["success"] == 2
    assert body["failed"] == 1
    assert body["errors"][0]["batch"] == 2
    assert body["errors"][0]["items"] == [
        {"title": "Bad", "description": None, "color": None, "featuredListing": None}
    ]
    assert len(body["checkpoints"]) == 1


def test_aborted_import_reports_partial_result(client, auth_headers):
    response = client.post("/api/v1/imports/category", files=upload(CATEGORIES_CSV), headers=auth_headers)

    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "IMPORT_ABORTED"
    assert body["batch"] == 2
    assert body["result"]["success"] == 2


def test_malformed_upload_returns_row_details(client, auth_headers):
    response = client.post(
        "/api/v1/imports/category",
        files=upload(b"title,color\n,ff0000\n"),
        headers=auth_headers,
    )

    assert response.status_code == 422
    assert response.json()["details"] == [{"index": 0, "missing_fields": ["title"]}]


def test_unknown_import_type_is_rejected(client, auth_headers):
    response = client.post("/api/v1/imports/products", files=upload(CATEGORIES_CSV), headers=auth_headers)

    assert response.status_code == 422


def test_validate_reports_invalid_records(client, auth_headers, store):
    response = client.post(
        "/api/v1/imports/category/validate",
        files=upload(CATEGORIES_CSV),
        headers=auth_headers,
    )

    assert response.status_code == 200
    body = response.json()
    assert (body["total"], body["valid"], body["invalid"]) == (3, 2, 1)
    assert body["errors"] == [{"index": 2, "error": "title is required", "field": "title"}]
    assert store.commit_calls == 0


async def test_checkpoint_endpoints(client, auth_headers, checkpoints, clock):
    await checkpoints.save(ImportType.category, make_records(10), 4)
    clock.advance(days=10)
    newest = await checkpoints.save(ImportType.category, make_records(10), 8)

    listed = client.get("/api/v1/checkpoints/category", headers=auth_headers).json()
    latest = client.get("/api/v1/checkpoints/category/latest", headers=auth_headers).json()
    pruned = client.delete("/api/v1/checkpoints/category", params={"max_age": "7d"}, headers=auth_headers)

    assert [c["processed_count"] for c in listed] == [4, 8]
    assert latest["checkpoint_id"] == newest
    assert latest["remaining_count"] == 2
    assert pruned.status_code == 200
    assert len(pruned.json()["removed"]) == 1


def test_latest_checkpoint_missing_is_404(client, auth_headers):
    response = client.get("/api/v1/checkpoints/listing/latest", headers=auth_headers)

    assert response.status_code == 404


def test_prune_with_bad_duration_is_400(client, auth_headers):
    response = client.delete(
        "/api/v1/checkpoints/category",
        params={"max_age": "soon"},
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json()["error"] == "CONFIG_ERROR"


def test_validate_reports_non_string_fields(make_orchestrator, checkpoints, auth_headers):
    validators = {ImportType.listing: ListingValidator(FakeStore())}
    service = ImportService(make_orchestrator(validators=validators), checkpoints, DataTransformer(), validators)
    app.dependency_overrides[get_import_service] = lambda: service
    try:
        response = TestClient(app).post(
            "/api/v1/imports/listing/validate",
            files=upload(b'[{"title": 5, "email": "a@b.co"}, {"title": "Ok", "email": 12}]', "listings.json"),
            headers=auth_headers,
        )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 200
    body = response.json()
    assert body["invalid"] == 2
    assert [(e["index"], e["field"]) for e in body["errors"]] == [(0, "title"), (1, "email")]
