import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from notesaid.errors import ServiceUnavailable

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "admin"


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class MongoConnections:
    """
    Per-database connection cache over a single Mongo client.

    A database handle is opened once per name and reused afterwards. Callers
    that ask for a name while its first open is still running await that same
    open instead of starting another one.
    """

    def __init__(self, uri: str, connect_timeout: float = 35.0, client: Any = None):
        self.uri = uri
        self.connect_timeout = connect_timeout
        self._client = client
        self._databases: Dict[str, AsyncIOMotorDatabase] = {}
        self._opening: Dict[str, asyncio.Future] = {}

    @property
    def client(self):
        if self._client is None:
            self._client = AsyncIOMotorClient(
                self.uri,
                serverSelectionTimeoutMS=30000,
                socketTimeoutMS=30000,
            )
        return self._client

    @property
    def open_databases(self) -> List[str]:
        return sorted(self._databases)

    async def connect(self, name: str = "") -> AsyncIOMotorDatabase:
        name = name or DEFAULT_DATABASE
        db = self._databases.get(name)
        if db is not None:
            return db

        opening = self._opening.get(name)
        if opening is None:
            opening = asyncio.ensure_future(self._open(name))
            self._opening[name] = opening
            opening.add_done_callback(lambda _: self._opening.pop(name, None))
        return await asyncio.shield(opening)

    async def _open(self, name: str) -> AsyncIOMotorDatabase:
        db = self.client[name]
        try:
            await asyncio.wait_for(db.command("ping"), timeout=self.connect_timeout)
        except asyncio.TimeoutError:
            logger.error("MongoDB connection timeout for database: %s", name)
            raise ServiceUnavailable(f"Connection timeout for database: {name}") from None
        except PyMongoError as e:
            logger.error("MongoDB connection error for database %s: %s", name, e)
            raise ServiceUnavailable(f"Database unavailable: {name}") from e
        self._databases[name] = db
        logger.info("MongoDB connected to database: %s", name)
        return db

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
        self._databases.clear()


async def ensure_indexes(connections: MongoConnections, notes_db: str, admin_db: str) -> None:
    notes = await connections.connect(notes_db)
    admin = await connections.connect(admin_db)
    await notes["subjects"].create_index("collectionKey", unique=True)
    await admin["edit_links"].create_index("linkId", unique=True)
    await admin["admin_permissions"].create_index("githubUsername", unique=True)
    await admin["change_requests"].create_index([("status", 1), ("submittedAt", -1)])
    await admin["quick_links"].create_index("subjectCollections")


def id_filter(filter_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Swap a string ``id`` key for its ``_id`` ObjectId."""
    f = dict(filter_dict)
    if "id" in f:
        raw = f.pop("id")
        # an unparseable id must match nothing
        f["_id"] = ObjectId(raw) if ObjectId.is_valid(raw) else None
    return f


def normalize(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not doc:
        return None
    d = {**doc}
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    return d
