import logging
from typing import Iterable, Optional

from fastapi import APIRouter, Depends, status

from notesaid.auth import SessionUser
from notesaid.deps import get_permission_service, get_quick_link_service, require_admin
from notesaid.errors import Forbidden
from notesaid.permissions import PermissionService
from notesaid.quick_links import QuickLinkService
from notesaid.schemas import QuickLinkCreate, QuickLinkUpdate
from notesaid.subjects import validate_subject_key

router = APIRouter(prefix="/api/admin/quick-links", tags=["quick-links"])
logger = logging.getLogger(__name__)


async def _require_edit_all(user: SessionUser, subjects: Iterable[str], permissions: PermissionService) -> None:
    for subject in subjects:
        validate_subject_key(subject)
        if not await permissions.can_edit_subject(user.username, subject):
            raise Forbidden(f"You don't have permission to edit {subject}")


@router.get("")
async def list_quick_links(
    subject: Optional[str] = None,
    _: SessionUser = Depends(require_admin),
    quick_links: QuickLinkService = Depends(get_quick_link_service),
):
    return await quick_links.list(subject)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_quick_link(
    body: QuickLinkCreate,
    user: SessionUser = Depends(require_admin),
    permissions: PermissionService = Depends(get_permission_service),
    quick_links: QuickLinkService = Depends(get_quick_link_service),
):
    await _require_edit_all(user, body.subjectCollections, permissions)
    quick_link = await quick_links.create(
        body.templateName,
        body.subjectCollections,
        body.linkType,
        [link.model_dump() for link in body.links],
        user.username,
    )
    return {"quickLink": quick_link}


@router.put("/{quick_link_id}")
async def update_quick_link(
    quick_link_id: str,
    body: QuickLinkUpdate,
    user: SessionUser = Depends(require_admin),
    permissions: PermissionService = Depends(get_permission_service),
    quick_links: QuickLinkService = Depends(get_quick_link_service),
):
    existing = await quick_links.get(quick_link_id)
    affected = set(existing.get("subjectCollections") or []) | set(body.subjectCollections or [])
    await _require_edit_all(user, sorted(affected), permissions)
    quick_link = await quick_links.update(quick_link_id, body.model_dump(exclude_none=True))
    return {"quickLink": quick_link}


@router.delete("/{quick_link_id}")
async def delete_quick_link(
    quick_link_id: str,
    user: SessionUser = Depends(require_admin),
    permissions: PermissionService = Depends(get_permission_service),
    quick_links: QuickLinkService = Depends(get_quick_link_service),
):
    existing = await quick_links.get(quick_link_id)
    await _require_edit_all(user, existing.get("subjectCollections") or [], permissions)
    await quick_links.delete(quick_link_id)
    return {"success": True, "message": "Quick link deleted"}
