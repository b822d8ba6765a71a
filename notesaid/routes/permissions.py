import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from notesaid.auth import SessionUser, require_github_user
from notesaid.deps import get_permission_service
from notesaid.errors import Forbidden
from notesaid.permissions import PermissionService
from notesaid.schemas import PermissionGrant

router = APIRouter(prefix="/api/admin/permissions", tags=["permissions"])
logger = logging.getLogger(__name__)


def _checked(result):
    if not result.get("success"):
        raise Forbidden(result.get("error"))
    return result


@router.get("")
async def list_admins(
    user: SessionUser = Depends(require_github_user),
    permissions: PermissionService = Depends(get_permission_service),
):
    result = _checked(await permissions.get_all_admins(user.username))
    return {"admins": result["admins"]}


@router.post("")
async def grant_permissions(
    body: PermissionGrant,
    user: SessionUser = Depends(require_github_user),
    permissions: PermissionService = Depends(get_permission_service),
):
    _checked(await permissions.set_admin_permissions(user.username, body.githubUsername, body.allowedSubjects, body.name))
    return {"success": True}


@router.delete("")
async def revoke_permissions(
    githubUsername: Optional[str] = None,
    user: SessionUser = Depends(require_github_user),
    permissions: PermissionService = Depends(get_permission_service),
):
    if not githubUsername:
        raise HTTPException(status_code=400, detail="GitHub username is required")
    _checked(await permissions.remove_admin_permissions(user.username, githubUsername))
    return {"success": True}
