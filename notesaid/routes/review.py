import logging
from typing import Optional

from fastapi import APIRouter, Depends

from notesaid.auth import SessionUser
from notesaid.changes import ChangeRequestService, ChangeStatus
from notesaid.deps import get_change_service, require_super_admin
from notesaid.schemas import ReviewDecision

router = APIRouter(prefix="/api/admin/review-changes", tags=["review"])
logger = logging.getLogger(__name__)


@router.get("")
async def list_changes(
    status: Optional[str] = ChangeStatus.PENDING.value,
    _: SessionUser = Depends(require_super_admin),
    changes: ChangeRequestService = Depends(get_change_service),
):
    # status=all lists every change request
    return {"changes": await changes.list(None if status == "all" else status)}


@router.post("")
async def review_change(
    body: ReviewDecision,
    user: SessionUser = Depends(require_super_admin),
    changes: ChangeRequestService = Depends(get_change_service),
):
    await changes.review(body.changeId, body.action, user.username, body.reviewNotes)
    if body.action == "approve":
        return {"success": True, "message": "Changes approved and applied"}
    return {"success": True, "message": "Changes rejected"}
