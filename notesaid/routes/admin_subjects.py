import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, status

from notesaid.auth import SessionUser
from notesaid.cache import CacheKeys, RedisCache
from notesaid.deps import get_cache, get_permission_service, get_subject_store, require_admin, require_super_admin
from notesaid.errors import Forbidden
from notesaid.permissions import ROLE_SUBJECT_ADMIN, ROLE_SUPER_ADMIN, PermissionService
from notesaid.schemas import SubjectCreate
from notesaid.subjects import SubjectStore, validate_subject_key

router = APIRouter(prefix="/api/admin", tags=["admin"])
logger = logging.getLogger(__name__)


@router.get("/me")
async def whoami(
    user: SessionUser = Depends(require_admin),
    permissions: PermissionService = Depends(get_permission_service),
):
    super_admin = permissions.is_super_admin(user.username)
    return {
        "username": user.username,
        "role": ROLE_SUPER_ADMIN if super_admin else ROLE_SUBJECT_ADMIN,
        "isSuperAdmin": super_admin,
        "isAdmin": True,
        "allowedSubjects": await permissions.get_allowed_subjects(user.username),
    }


@router.get("/subjects")
async def admin_list_subjects(
    _: SessionUser = Depends(require_super_admin),
    store: SubjectStore = Depends(get_subject_store),
):
    keys = await store.list_keys()
    return {"success": True, "subjects": [{"name": key} for key in keys]}


@router.post("/subjects", status_code=status.HTTP_201_CREATED)
async def create_subject(
    body: SubjectCreate,
    user: SessionUser = Depends(require_super_admin),
    store: SubjectStore = Depends(get_subject_store),
    cache: RedisCache = Depends(get_cache),
):
    key = validate_subject_key(body.collectionName)
    content = await store.create(key, body.name, body.color)
    await cache.delete(CacheKeys.subjects())
    logger.info("%s created subject %s", user.username, key)
    return {
        "success": True,
        "data": {"name": content["name"], "collectionName": key, "color": content["color"]},
    }


async def _require_subject_edit(user: SessionUser, subject: str, permissions: PermissionService) -> None:
    if not await permissions.can_edit_subject(user.username, subject):
        raise Forbidden("You don't have permission to edit this subject")


@router.put("/subjects/{subject}")
async def update_subject(
    subject: str,
    body: Dict[str, Any] = Body(...),
    user: SessionUser = Depends(require_admin),
    permissions: PermissionService = Depends(get_permission_service),
    store: SubjectStore = Depends(get_subject_store),
    cache: RedisCache = Depends(get_cache),
):
    validate_subject_key(subject)
    await _require_subject_edit(user, subject, permissions)
    content = await store.replace(subject, body)
    await cache.invalidate_subject(subject)
    await cache.delete(CacheKeys.subjects())
    logger.info("%s updated subject %s", user.username, subject)
    return {"success": True, "data": content}


@router.delete("/subjects/{subject}")
async def delete_subject(
    subject: str,
    user: SessionUser = Depends(require_admin),
    permissions: PermissionService = Depends(get_permission_service),
    store: SubjectStore = Depends(get_subject_store),
    cache: RedisCache = Depends(get_cache),
):
    validate_subject_key(subject)
    await _require_subject_edit(user, subject, permissions)
    await store.delete(subject)
    await cache.invalidate_subject(subject)
    await cache.delete(CacheKeys.subjects())
    return {"success": True, "message": f"Subject '{subject}' has been deleted"}
