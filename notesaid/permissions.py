"""
Admin permissions.

One configured super-admin may do everything and is never stored. Everyone
else is a subject-admin whose record in ``admin_permissions`` lists the
subject keys they may edit.
"""
import logging
from typing import Any, Dict, List, Optional, Union

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from notesaid.database import normalize, utcnow

logger = logging.getLogger(__name__)

COLLECTION = "admin_permissions"

ROLE_SUPER_ADMIN = "super-admin"
ROLE_SUBJECT_ADMIN = "subject-admin"


def is_super_admin(username: Optional[str], super_admin_username: str) -> bool:
    if not username:
        return False
    return username.lower() == super_admin_username.lower()


class PermissionService:
    def __init__(self, db: AsyncIOMotorDatabase, super_admin_username: str):
        self.collection = db[COLLECTION]
        self.super_admin_username = super_admin_username

    def is_super_admin(self, username: Optional[str]) -> bool:
        return is_super_admin(username, self.super_admin_username)

    async def get_admin_permissions(self, username: str) -> Optional[Dict[str, Any]]:
        try:
            doc = await self.collection.find_one({"githubUsername": username})
        except PyMongoError as e:
            logger.error("Error fetching admin permissions for %s: %s", username, e)
            return None
        return normalize(doc)

    async def has_admin_access(self, username: Optional[str]) -> bool:
        if not username:
            return False
        if self.is_super_admin(username):
            return True
        return await self.get_admin_permissions(username) is not None

    async def can_edit_subject(self, username: Optional[str], subject: str) -> bool:
        if not username:
            return False
        if self.is_super_admin(username):
            return True
        permissions = await self.get_admin_permissions(username)
        if not permissions:
            return False
        return subject in (permissions.get("allowedSubjects") or [])

    async def get_allowed_subjects(self, username: Optional[str]) -> Union[str, List[str]]:
        if not username:
            return []
        if self.is_super_admin(username):
            return "all"
        permissions = await self.get_admin_permissions(username)
        if not permissions:
            return []
        return permissions.get("allowedSubjects") or []

    async def set_admin_permissions(
        self,
        requester: str,
        target: str,
        allowed_subjects: List[str],
        name: Optional[str] = None,
    ) -> Dict[str, Any]:
        if not self.is_super_admin(requester):
            return {"success": False, "error": "Unauthorized: Only super admin can manage permissions"}
        if self.is_super_admin(target):
            return {"success": False, "error": "Cannot modify super admin permissions"}

        now = utcnow()
        try:
            await self.collection.update_one(
                {"githubUsername": target},
                {
                    "$set": {
                        "githubUsername": target,
                        "name": name or target,
                        "role": ROLE_SUBJECT_ADMIN,
                        "allowedSubjects": list(allowed_subjects),
                        "createdBy": requester,
                        "updated_at": now,
                    },
                    "$setOnInsert": {"created_at": now},
                },
                upsert=True,
            )
        except PyMongoError as e:
            logger.error("Error setting admin permissions for %s: %s", target, e)
            return {"success": False, "error": "Failed to set permissions"}
        logger.info("%s granted %s access to %s", requester, target, allowed_subjects)
        return {"success": True}

    async def remove_admin_permissions(self, requester: str, target: str) -> Dict[str, Any]:
        if not self.is_super_admin(requester):
            return {"success": False, "error": "Unauthorized: Only super admin can manage permissions"}
        if self.is_super_admin(target):
            return {"success": False, "error": "Cannot remove super admin"}

        try:
            await self.collection.delete_one({"githubUsername": target})
        except PyMongoError as e:
            logger.error("Error removing admin permissions for %s: %s", target, e)
            return {"success": False, "error": "Failed to remove permissions"}
        logger.info("%s removed admin permissions of %s", requester, target)
        return {"success": True}

    async def get_all_admins(self, requester: str) -> Dict[str, Any]:
        if not self.is_super_admin(requester):
            logger.warning("User %s is not super admin, denying admin list", requester)
            return {"success": False, "error": "Unauthorized: Only super admin can view all admins"}

        try:
            admins = [normalize(doc) async for doc in self.collection.find({}).sort("githubUsername", 1)]
        except PyMongoError as e:
            logger.error("Error fetching all admins: %s", e)
            return {"success": False, "error": "Failed to fetch admins"}
        return {"success": True, "admins": admins}
