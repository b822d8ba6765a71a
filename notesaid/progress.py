"""
Per-user study data: progress marks, preferences and analytics events.

Records are keyed by the signed-in user's email.
"""
from typing import Any, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from notesaid.database import normalize, utcnow

PROGRESS_COLLECTION = "user_progress"
PREFERENCES_COLLECTION = "user_preferences"
ANALYTICS_COLLECTION = "user_analytics"

PROGRESS_KEY_FIELDS = ("year", "branch", "semester", "subject", "module", "topic", "videoTitle", "noteTitle")
PROGRESS_FILTER_FIELDS = ("year", "branch", "semester", "subject")
PREFERENCE_FIELDS = ("selectedBranch", "selectedYear", "selectedSemester")


class ProgressService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.progress = db[PROGRESS_COLLECTION]
        self.preferences = db[PREFERENCES_COLLECTION]
        self.analytics = db[ANALYTICS_COLLECTION]

    async def mark_progress(self, user_id: str, item: Dict[str, Any], completed: bool = True) -> Dict[str, Any]:
        key = {"userId": user_id}
        key.update({field: item.get(field) for field in PROGRESS_KEY_FIELDS})
        now = utcnow()
        doc = await self.progress.find_one_and_update(
            key,
            {
                "$set": {
                    "completed": completed,
                    "completedAt": now if completed else None,
                    "updatedAt": now,
                },
                "$setOnInsert": {"createdAt": now},
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return normalize(doc)

    async def get_user_progress(self, user_id: str, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        query = {"userId": user_id}
        for field in PROGRESS_FILTER_FIELDS:
            if (filters or {}).get(field):
                query[field] = filters[field]
        cursor = self.progress.find(query).sort("updatedAt", -1)
        return [normalize(doc) async for doc in cursor]

    async def get_subject_progress(self, user_id: str, year: str, branch: str, semester: str, subject: str) -> Dict[str, int]:
        query = {"userId": user_id, "year": year, "branch": branch, "semester": semester, "subject": subject}
        total = await self.progress.count_documents(query)
        completed = await self.progress.count_documents({**query, "completed": True})
        return {
            "total": total,
            "completed": completed,
            "percentage": round(completed / total * 100) if total else 0,
        }

    async def log_analytics(self, user_id: str, event: Dict[str, Any]) -> Dict[str, Any]:
        doc = {k: v for k, v in event.items() if v is not None}
        doc.update({"userId": user_id, "timestamp": utcnow()})
        res = await self.analytics.insert_one(doc)
        doc["_id"] = res.inserted_id
        return normalize(doc)

    async def get_user_analytics(self, user_id: str, limit: int = 100) -> List[Dict[str, Any]]:
        cursor = self.analytics.find({"userId": user_id}).sort("timestamp", -1).limit(limit)
        return [normalize(doc) async for doc in cursor]

    async def get_preferences(self, user_id: str) -> Optional[Dict[str, Any]]:
        doc = await self.preferences.find_one({"userId": user_id})
        if not doc:
            return None
        return {field: doc.get(field) for field in PREFERENCE_FIELDS}

    async def update_preferences(self, user_id: str, preferences: Dict[str, Any]) -> Dict[str, Any]:
        update = {k: v for k, v in preferences.items() if k in PREFERENCE_FIELDS and v is not None}
        update["updatedAt"] = utcnow()
        doc = await self.preferences.find_one_and_update(
            {"userId": user_id},
            {"$set": update},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return {field: doc.get(field) for field in PREFERENCE_FIELDS}
