"""
Subject content storage.

All subjects live in one ``subjects`` collection. Each document carries the
subject key in ``collectionKey`` and the free-form subject document (name,
color, modules, ...) in ``content``.
"""
import logging
import re
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from notesaid.database import utcnow
from notesaid.errors import BadRequest, Conflict, NotFound

logger = logging.getLogger(__name__)

COLLECTION = "subjects"

SUBJECT_KEY_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")

# fields managed by the store, never taken from client payloads
RESERVED_FIELDS = ("_id", "id", "__v")


def validate_subject_key(key: Optional[str]) -> str:
    if not key or not SUBJECT_KEY_RE.match(key):
        raise BadRequest("Subject must be 1-64 letters, digits, '-' or '_'")
    return key


def clean_content(content: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in content.items() if k not in RESERVED_FIELDS}


def initial_content(name: str, color: Optional[str] = None) -> Dict[str, Any]:
    return {
        "name": name,
        "color": color or "blue",
        "modules": {"1": {"notesLink": [], "topics": []}},
    }


class SubjectStore:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db[COLLECTION]

    async def list_keys(self) -> List[str]:
        cursor = self.collection.find({}, {"collectionKey": 1}).sort("collectionKey", 1)
        return [doc["collectionKey"] async for doc in cursor]

    async def get(self, key: str) -> Optional[Dict[str, Any]]:
        doc = await self.collection.find_one({"collectionKey": key})
        if doc is None:
            return None
        return doc.get("content") or {}

    async def get_module(self, key: str, module: str) -> Optional[Dict[str, Any]]:
        content = await self.get(key)
        if content is None:
            return None
        modules = content.get("modules") or {}
        return {"modules": {module: modules[module]} if module in modules else {}}

    async def exists(self, key: str) -> bool:
        return await self.collection.count_documents({"collectionKey": key}, limit=1) > 0

    async def create(self, key: str, name: str, color: Optional[str] = None) -> Dict[str, Any]:
        if await self.exists(key):
            raise Conflict("A subject with this collection name already exists")
        now = utcnow()
        content = initial_content(name, color)
        try:
            await self.collection.insert_one(
                {"collectionKey": key, "content": content, "created_at": now, "updated_at": now}
            )
        except DuplicateKeyError:
            raise Conflict("A subject with this collection name already exists") from None
        logger.info("Created subject %s", key)
        return content

    async def replace(self, key: str, content: Dict[str, Any]) -> Dict[str, Any]:
        content = clean_content(content)
        now = utcnow()
        existing = await self.collection.find_one({"collectionKey": key}, {"created_at": 1})
        await self.collection.replace_one(
            {"collectionKey": key},
            {
                "collectionKey": key,
                "content": content,
                "created_at": (existing or {}).get("created_at", now),
                "updated_at": now,
            },
            upsert=True,
        )
        return content

    async def merge(self, key: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        changes = clean_content(changes)
        update = {f"content.{field}": value for field, value in changes.items()}
        update["updated_at"] = utcnow()
        await self.collection.update_one(
            {"collectionKey": key},
            {"$set": update, "$setOnInsert": {"created_at": update["updated_at"]}},
            upsert=True,
        )
        return await self.get(key)

    async def delete(self, key: str) -> None:
        res = await self.collection.delete_one({"collectionKey": key})
        if not res.deleted_count:
            raise NotFound(f"Subject not found: {key}")
        logger.info("Deleted subject %s", key)

    async def module_stats(self, key: str) -> Optional[List[Dict[str, Any]]]:
        content = await self.get(key)
        if content is None:
            return None
        stats = []
        for module_key, module in (content.get("modules") or {}).items():
            module = module or {}
            topics = module.get("topics") or []
            stats.append({
                "key": module_key,
                "notesCount": len(module.get("notesLink") or []),
                "videosCount": sum(len((t or {}).get("videos") or []) for t in topics),
            })
        return sorted(stats, key=lambda s: s["key"])
