"""
Edit links: super-admin management plus the public contributor endpoints.

A contributor opens ``/api/edit/{linkId}`` with the link password, gets the
current subject document and submits a full replacement for review.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from notesaid.auth import SessionUser
from notesaid.changes import ChangeMode, ChangeRequestService, ChangeSource
from notesaid.deps import get_change_service, get_edit_link_service, get_subject_store, require_super_admin
from notesaid.edit_links import EditLinkService, public_link
from notesaid.schemas import EditLinkCreate, EditSubmission
from notesaid.subjects import SubjectStore, validate_subject_key

router = APIRouter(tags=["edit-links"])
logger = logging.getLogger(__name__)


@router.get("/api/admin/edit-links")
async def list_edit_links(
    _: SessionUser = Depends(require_super_admin),
    links: EditLinkService = Depends(get_edit_link_service),
):
    return {"links": await links.list()}


@router.post("/api/admin/edit-links")
async def create_edit_link(
    body: EditLinkCreate,
    user: SessionUser = Depends(require_super_admin),
    links: EditLinkService = Depends(get_edit_link_service),
):
    subject = validate_subject_key(body.subjectCollection)
    link = await links.create(subject, body.password, body.editorName, user.username)
    return {"success": True, "link": link, "editUrl": f"/edit/{link['linkId']}"}


@router.delete("/api/admin/edit-links")
async def revoke_edit_link(
    linkId: Optional[str] = None,
    _: SessionUser = Depends(require_super_admin),
    links: EditLinkService = Depends(get_edit_link_service),
):
    if not linkId:
        raise HTTPException(status_code=400, detail="Link ID required")
    await links.revoke(linkId)
    return {"success": True}


@router.get("/api/edit/{link_id}")
async def open_edit_link(
    link_id: str,
    password: Optional[str] = None,
    links: EditLinkService = Depends(get_edit_link_service),
    store: SubjectStore = Depends(get_subject_store),
):
    link = await links.authenticate(link_id, password or "")
    subject_data = await store.get(link["subjectCollection"])
    return {
        "success": True,
        "editorName": link["editorName"],
        "subjectCollection": link["subjectCollection"],
        "subjectData": subject_data or {},
    }


@router.post("/api/edit/{link_id}")
async def submit_edit(
    link_id: str,
    body: EditSubmission,
    links: EditLinkService = Depends(get_edit_link_service),
    changes: ChangeRequestService = Depends(get_change_service),
):
    if not body.changeData:
        raise HTTPException(status_code=400, detail="Password and change data required")
    link = public_link(await links.authenticate(link_id, body.password))
    change = await changes.submit(
        link["subjectCollection"],
        link["editorName"],
        body.changeData,
        mode=ChangeMode.REPLACE,
        source=ChangeSource.EDIT_LINK,
        link_id=link_id,
    )
    return {"success": True, "message": "Changes submitted for review", "changeId": change["id"]}
