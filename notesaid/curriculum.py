from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from notesaid.cache import CacheKeys, CacheTTL, RedisCache
from notesaid.database import normalize, utcnow

COLLECTION = "curriculum"


class CurriculumService:
    def __init__(self, db: AsyncIOMotorDatabase, cache: RedisCache):
        self.collection = db[COLLECTION]
        self.cache = cache

    async def find(self, year: Optional[int] = None, branch: Optional[str] = None) -> Dict[str, Any]:
        async def load():
            query: Dict[str, Any] = {}
            if year:
                query["year"] = year
            if branch:
                query["branch"] = branch
            return {"data": [normalize(doc) async for doc in self.collection.find(query)]}

        return await self.cache.get_or_load(CacheKeys.curriculum(year, branch), load, CacheTTL.LONG)

    async def upsert(self, year: int, branch: str, subjects: List[Any]) -> Dict[str, Any]:
        doc = await self.collection.find_one_and_update(
            {"year": year, "branch": branch},
            {"$set": {"subjects": subjects, "updatedAt": utcnow()}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        await self.cache.delete(
            CacheKeys.curriculum(),
            CacheKeys.curriculum(year),
            CacheKeys.curriculum(None, branch),
            CacheKeys.curriculum(year, branch),
        )
        return normalize(doc)
