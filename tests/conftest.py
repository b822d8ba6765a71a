"""
Shared fixtures.

Mongo is an in-memory mongomock client behind thin async wrappers that mimic
the parts of Motor the app uses; Redis is fakeredis.
"""
import asyncio
from collections import Counter

import fakeredis
import mongomock
import pytest
from httpx import ASGITransport, AsyncClient

from notesaid.auth import create_session_token
from notesaid.cache import RedisCache
from notesaid.config import Settings
from notesaid.database import MongoConnections
from notesaid.main import create_app

SUPER_ADMIN = "MinavKaria"
SECRET = "test-secret"


class FakeCursor:
    def __init__(self, cursor):
        self._cursor = cursor

    def sort(self, key_or_list, direction=None):
        self._cursor = self._cursor.sort(key_or_list, direction)
        return self

    def skip(self, n):
        self._cursor = self._cursor.skip(n)
        return self

    def limit(self, n):
        self._cursor = self._cursor.limit(n)
        return self

    async def to_list(self, length=None):
        return list(self._cursor)

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for doc in self._cursor:
            yield doc


class FakeCollection:
    def __init__(self, collection):
        self._collection = collection

    def find(self, *args, **kwargs):
        return FakeCursor(self._collection.find(*args, **kwargs))

    def aggregate(self, pipeline):
        return FakeCursor(iter(list(self._collection.aggregate(pipeline))))

    def __getattr__(self, name):
        attr = getattr(self._collection, name)
        if not callable(attr):
            return attr

        async def call(*args, **kwargs):
            return attr(*args, **kwargs)

        return call


class FakeDatabase:
    def __init__(self, client, db):
        self._client = client
        self._db = db
        self.name = db.name

    def __getitem__(self, name):
        return FakeCollection(self._db[name])

    async def command(self, command):
        self._client.pings[self.name] += 1
        if self._client.ping_delay:
            await asyncio.sleep(self._client.ping_delay)
        return {"ok": 1.0}

    async def list_collection_names(self):
        return self._db.list_collection_names()


class FakeMongoClient:
    def __init__(self, ping_delay=0.0):
        self._client = mongomock.MongoClient()
        self.ping_delay = ping_delay
        self.pings = Counter()
        self.closed = False

    def __getitem__(self, name):
        return FakeDatabase(self, self._client[name])

    def close(self):
        self.closed = True


@pytest.fixture
def settings():
    return Settings(auth_secret=SECRET, super_admin_username=SUPER_ADMIN, log_level="WARNING")


@pytest.fixture
def mongo_client():
    return FakeMongoClient()


@pytest.fixture
def connections(settings, mongo_client):
    return MongoConnections(settings.mongodb_uri, settings.connect_timeout, client=mongo_client)


@pytest.fixture
def redis_client():
    return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def cache(redis_client):
    return RedisCache(redis_client)


@pytest.fixture
async def notes_db(connections, settings):
    return await connections.connect(settings.notes_db)


@pytest.fixture
async def admin_db(connections, settings):
    return await connections.connect(settings.admin_db)


@pytest.fixture
async def leaderboard_db(connections, settings):
    return await connections.connect(settings.leaderboard_db)


@pytest.fixture
def app(settings, connections, cache):
    return create_app(settings=settings, connections=connections, cache=cache)


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.fixture
def auth_headers():
    def make(username=None, email=None, name=None):
        claims = {"email": email, "name": name, "githubUsername": username}
        token = create_session_token({k: v for k, v in claims.items() if v}, SECRET)
        return {"Authorization": f"Bearer {token}"}

    return make


@pytest.fixture
def super_admin_headers(auth_headers):
    return auth_headers(SUPER_ADMIN)
