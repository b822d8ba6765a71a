import logging
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from notesaid.cache import CacheKeys, CacheTTL, RedisCache, quick_link_invalidation
from notesaid.database import id_filter, normalize, utcnow
from notesaid.errors import NotFound

logger = logging.getLogger(__name__)

COLLECTION = "quick_links"

UPDATABLE_FIELDS = ("templateName", "subjectCollections", "linkType", "links")


class QuickLinkService:
    def __init__(self, db: AsyncIOMotorDatabase, cache: RedisCache):
        self.collection = db[COLLECTION]
        self.cache = cache

    async def list(self, subject: Optional[str] = None) -> Dict[str, Any]:
        async def load():
            query = {"subjectCollections": subject} if subject else {}
            cursor = self.collection.find(query).sort("createdAt", -1)
            return {"quickLinks": [normalize(doc) async for doc in cursor]}

        return await self.cache.get_or_load(CacheKeys.admin_quick_links(subject), load, CacheTTL.LONG)

    async def for_subject(self, subject: str) -> Dict[str, Any]:
        async def load():
            cursor = self.collection.find({"subjectCollections": subject}).sort([("linkType", 1), ("createdAt", -1)])
            return {"quickLinks": [normalize(doc) async for doc in cursor]}

        return await self.cache.get_or_load(CacheKeys.quick_links(subject), load, CacheTTL.LONG)

    async def get(self, quick_link_id: str) -> Dict[str, Any]:
        doc = await self.collection.find_one(id_filter({"id": quick_link_id}))
        if not doc:
            raise NotFound("Quick link not found")
        return normalize(doc)

    async def create(
        self,
        template_name: str,
        subjects: List[str],
        link_type: str,
        links: List[Dict[str, str]],
        created_by: str,
    ) -> Dict[str, Any]:
        now = utcnow()
        doc = {
            "templateName": template_name,
            "subjectCollections": list(subjects),
            "linkType": link_type,
            "links": list(links),
            "createdBy": created_by,
            "createdAt": now,
            "updatedAt": now,
        }
        res = await self.collection.insert_one(doc)
        doc["_id"] = res.inserted_id
        await self.cache.delete(*quick_link_invalidation(subjects))
        return normalize(doc)

    async def update(self, quick_link_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        existing = await self.get(quick_link_id)
        update = {k: v for k, v in fields.items() if k in UPDATABLE_FIELDS and v is not None}
        update["updatedAt"] = utcnow()

        doc = await self.collection.find_one_and_update(
            id_filter({"id": quick_link_id}),
            {"$set": update},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            raise NotFound("Quick link not found")

        affected = list(existing.get("subjectCollections") or [])
        for subject in update.get("subjectCollections") or []:
            if subject not in affected:
                affected.append(subject)
        await self.cache.delete(*quick_link_invalidation(affected))
        return normalize(doc)

    async def delete(self, quick_link_id: str) -> Dict[str, Any]:
        doc = await self.collection.find_one_and_delete(id_filter({"id": quick_link_id}))
        if not doc:
            raise NotFound("Quick link not found")
        await self.cache.delete(*quick_link_invalidation(doc.get("subjectCollections") or []))
        logger.info("Deleted quick link %s", quick_link_id)
        return normalize(doc)
