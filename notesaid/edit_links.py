import hmac
import logging
import secrets
from typing import Any, Dict, List

from motor.motor_asyncio import AsyncIOMotorDatabase

from notesaid.database import normalize, utcnow
from notesaid.errors import Forbidden, NotFound, Unauthorized

logger = logging.getLogger(__name__)

COLLECTION = "edit_links"


def generate_link_id() -> str:
    return secrets.token_hex(12)


def public_link(link: Dict[str, Any]) -> Dict[str, Any]:
    """Strip fields a contributor should not see."""
    return {k: v for k, v in link.items() if k != "password"}


class EditLinkService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db[COLLECTION]

    async def create(self, subject: str, password: str, editor_name: str, created_by: str) -> Dict[str, Any]:
        link = {
            "linkId": generate_link_id(),
            "subjectCollection": subject,
            "password": password,
            "editorName": editor_name,
            "isActive": True,
            "createdBy": created_by,
            "createdAt": utcnow(),
            "lastAccessedAt": None,
        }
        res = await self.collection.insert_one(link)
        link["_id"] = res.inserted_id
        logger.info("%s created edit link %s for %s", created_by, link["linkId"], subject)
        return normalize(link)

    async def list(self) -> List[Dict[str, Any]]:
        cursor = self.collection.find({}).sort("createdAt", -1)
        return [normalize(doc) async for doc in cursor]

    async def get(self, link_id: str) -> Dict[str, Any]:
        link = await self.collection.find_one({"linkId": link_id})
        if not link:
            raise NotFound("Invalid link")
        return normalize(link)

    async def revoke(self, link_id: str) -> None:
        res = await self.collection.update_one({"linkId": link_id}, {"$set": {"isActive": False}})
        if not res.matched_count:
            raise NotFound("Invalid link")
        logger.info("Revoked edit link %s", link_id)

    async def authenticate(self, link_id: str, password: str) -> Dict[str, Any]:
        if not password:
            raise Unauthorized("Password required")
        link = await self.get(link_id)
        if not link.get("isActive"):
            raise Forbidden("This link has been revoked")
        if not hmac.compare_digest(str(link.get("password", "")).encode(), password.encode()):
            raise Unauthorized("Invalid password")
        await self.collection.update_one({"linkId": link_id}, {"$set": {"lastAccessedAt": utcnow()}})
        return link
