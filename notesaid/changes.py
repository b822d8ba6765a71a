"""
Content change requests.

Contributors (through an edit link) and anonymous proposers submit changes to
a subject. Each submission is stored as one change request and waits for the
super-admin to approve or reject it.

State machine::

    pending -> approved   (terminal, applies the change to the subject)
    pending -> rejected   (terminal)

The pending -> reviewed transition is claimed with a single conditional
update, so only one reviewer can ever move a request out of ``pending``. If
applying an approved change fails, the claim is rolled back to ``pending``.
"""
import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from notesaid.cache import CacheKeys, RedisCache
from notesaid.database import normalize, utcnow
from notesaid.errors import AlreadyReviewed, BadRequest, NotFound
from notesaid.subjects import SubjectStore

logger = logging.getLogger(__name__)

COLLECTION = "change_requests"


class ChangeStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ChangeMode(str, Enum):
    REPLACE = "replace"
    MERGE = "merge"


class ChangeSource(str, Enum):
    EDIT_LINK = "edit_link"
    PROPOSAL = "proposal"


ACTIONS = {
    "approve": ChangeStatus.APPROVED,
    "reject": ChangeStatus.REJECTED,
}


def _object_id(change_id: str) -> ObjectId:
    if not change_id or not ObjectId.is_valid(change_id):
        raise NotFound("Change not found")
    return ObjectId(change_id)


class ChangeRequestService:
    def __init__(self, admin_db: AsyncIOMotorDatabase, subjects: SubjectStore, cache: RedisCache):
        self.collection = admin_db[COLLECTION]
        self.subjects = subjects
        self.cache = cache

    async def submit(
        self,
        subject: str,
        editor_name: str,
        change_data: Dict[str, Any],
        mode: ChangeMode = ChangeMode.REPLACE,
        source: ChangeSource = ChangeSource.EDIT_LINK,
        link_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        if not isinstance(change_data, dict) or not change_data:
            raise BadRequest("Missing change data")
        mode = ChangeMode(mode)
        doc = {
            "source": ChangeSource(source).value,
            "linkId": link_id,
            "subjectCollection": subject,
            "editorName": editor_name,
            "mode": mode.value,
            "changeType": "full_update" if mode is ChangeMode.REPLACE else "partial_update",
            "changeData": change_data,
            "status": ChangeStatus.PENDING.value,
            "submittedAt": utcnow(),
            "reviewedAt": None,
            "reviewedBy": None,
            "reviewNotes": None,
        }
        res = await self.collection.insert_one(doc)
        doc["_id"] = res.inserted_id
        logger.info("%s submitted a %s change for %s", editor_name, mode.value, subject)
        return normalize(doc)

    async def get(self, change_id: str) -> Dict[str, Any]:
        doc = await self.collection.find_one({"_id": _object_id(change_id)})
        if not doc:
            raise NotFound("Change not found")
        return normalize(doc)

    async def list(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        try:
            query = {"status": ChangeStatus(status).value} if status else {}
        except ValueError:
            raise BadRequest(f"Unknown status: {status}") from None
        cursor = self.collection.find(query).sort("submittedAt", -1)
        changes = [normalize(doc) async for doc in cursor]
        for change in changes:
            try:
                change["originalData"] = await self.subjects.get(change["subjectCollection"])
            except PyMongoError as e:
                logger.error("Error fetching original data for %s: %s", change["subjectCollection"], e)
                change["originalData"] = None
        return changes

    async def review(self, change_id: str, action: str, reviewer: str, notes: Optional[str] = None) -> Dict[str, Any]:
        target = ACTIONS.get(action)
        if target is None:
            raise BadRequest("Invalid request")
        oid = _object_id(change_id)

        claimed = await self.collection.find_one_and_update(
            {"_id": oid, "status": ChangeStatus.PENDING.value},
            {"$set": {
                "status": target.value,
                "reviewedAt": utcnow(),
                "reviewedBy": reviewer,
                "reviewNotes": notes or "",
            }},
            return_document=ReturnDocument.AFTER,
        )
        if claimed is None:
            existing = await self.collection.find_one({"_id": oid}, {"status": 1})
            if existing is None:
                raise NotFound("Change not found")
            raise AlreadyReviewed("Change already reviewed")

        if target is ChangeStatus.APPROVED:
            try:
                await self.apply(claimed)
            except Exception:
                logger.error("Applying change %s failed, returning it to pending", change_id)
                await self.collection.update_one(
                    {"_id": oid},
                    {"$set": {
                        "status": ChangeStatus.PENDING.value,
                        "reviewedAt": None,
                        "reviewedBy": None,
                        "reviewNotes": None,
                    }},
                )
                raise
            logger.info("%s approved change %s for %s", reviewer, change_id, claimed["subjectCollection"])
        else:
            logger.info("%s rejected change %s for %s", reviewer, change_id, claimed["subjectCollection"])
        return normalize(claimed)

    async def apply(self, change: Dict[str, Any]) -> None:
        subject = change["subjectCollection"]
        if change.get("mode") == ChangeMode.MERGE.value:
            await self.subjects.merge(subject, change["changeData"])
        else:
            await self.subjects.replace(subject, change["changeData"])
        await self.cache.invalidate_subject(subject)
        # an approval may create the subject
        await self.cache.delete(CacheKeys.subjects())
