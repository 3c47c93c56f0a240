import asyncio
import itertools

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from app.main import app
from app.utils.auth_utils import create_access_token
from app.utils.b2_utils import get_asset_store, is_image
from app.utils.hash_utils import hash_password
from skillconnect.core.exceptions import ValidationError
from skillconnect.db.database import ensure_indexes, use_database
from skillconnect.models.user import Role
from skillconnect.service import user_service

PASSWORD = "correct-horse-9"
_counter = itertools.count(1)


class FakeAssetStore:
    """Records uploads instead of talking to Backblaze."""

    def __init__(self):
        self.uploads = []

    async def upload(self, file, folder, images_only=False):
        if images_only and not is_image(file):
            raise ValidationError(f"{file.filename or 'File'} must be an image")
        ref = f"{folder}/{file.filename}"
        self.uploads.append(ref)
        return ref

    async def upload_many(self, files, folder):
        return [await self.upload(f, folder) for f in files if f and f.filename]

    async def signed_url(self, file_name, ttl_seconds=3600):
        return f"https://files.example.test/{file_name}?Authorization=signed"


@pytest.fixture
def db():
    database = AsyncMongoMockClient()["skillconnect_test"]
    use_database(database)
    asyncio.run(ensure_indexes(database))
    return database


@pytest.fixture
def asset_store():
    store = FakeAssetStore()
    app.dependency_overrides[get_asset_store] = lambda: store
    yield store
    app.dependency_overrides.pop(get_asset_store, None)


@pytest.fixture
def client(db, asset_store):
    with TestClient(app) as test_client:
        yield test_client


def auth(user):
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def make_user(db):
    def _make(role=Role.COMMUNITY_MEMBER.value, **overrides):
        n = next(_counter)
        fields = {
            "username": f"user{n}",
            "first_name": "Test",
            "last_name": f"User{n}",
            "email": f"user{n}@example.com",
            "phone": f"0917000{n:04d}",
            "address": "Poblacion",
            "birthdate": "1990-01-01",
            "password": hash_password(PASSWORD),
            "role": role,
        }
        fields.update(overrides)
        return asyncio.run(user_service.create_user(db, fields))

    return _make


@pytest.fixture
def make_provider(make_user):
    def _make(**overrides):
        fields = {"verified": True, "skills": ["plumbing"]}
        fields.update(overrides)
        return make_user(role=Role.SERVICE_PROVIDER.value, **fields)

    return _make


@pytest.fixture
def make_admin(make_user):
    def _make(**overrides):
        return make_user(role=Role.ADMIN.value, **overrides)

    return _make


@pytest.fixture
def post_request(client):
    def _post(user, **overrides):
        payload = {
            "name": "Fix kitchen sink",
            "phone": "09170000000",
            "address": "Purok 1",
            "type_of_work": "Plumbing",
            "time": "09:00",
            "budget": 500,
        }
        payload.update(overrides)
        response = client.post("/api/v1/service-requests/", json=payload, headers=auth(user))
        assert response.status_code == 201, response.text
        return response.json()["request"]

    return _post
