"""Signed-in user endpoints: study progress, UI preferences and activity log."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends

from notesaid.auth import SessionUser, require_email_user
from notesaid.deps import get_progress_service
from notesaid.progress import ProgressService
from notesaid.schemas import AnalyticsEvent, Preferences, ProgressMark

router = APIRouter(prefix="/api/user", tags=["user"])
logger = logging.getLogger(__name__)


@router.get("/progress")
async def get_progress(
    year: Optional[str] = None,
    branch: Optional[str] = None,
    semester: Optional[str] = None,
    subject: Optional[str] = None,
    user: SessionUser = Depends(require_email_user),
    progress: ProgressService = Depends(get_progress_service),
):
    if year and branch and semester and subject:
        stats = await progress.get_subject_progress(user.email, year, branch, semester, subject)
        return {"progress": stats}
    filters = {"year": year, "branch": branch, "semester": semester, "subject": subject}
    return {"progress": await progress.get_user_progress(user.email, filters)}


@router.post("/progress")
async def mark_progress(
    body: ProgressMark,
    user: SessionUser = Depends(require_email_user),
    progress: ProgressService = Depends(get_progress_service),
):
    item = body.model_dump(exclude={"completed"})
    doc = await progress.mark_progress(user.email, item, body.completed)
    await progress.log_analytics(user.email, {
        "action": "complete" if body.completed else "uncomplete",
        **{k: item[k] for k in ("year", "branch", "semester", "subject", "module", "topic")},
        "metadata": {"videoTitle": body.videoTitle, "noteTitle": body.noteTitle},
    })
    return {"success": True, "progress": doc}


@router.get("/preferences")
async def get_preferences(
    user: SessionUser = Depends(require_email_user),
    progress: ProgressService = Depends(get_progress_service),
):
    return {"preferences": await progress.get_preferences(user.email)}


@router.post("/preferences")
async def update_preferences(
    body: Preferences,
    user: SessionUser = Depends(require_email_user),
    progress: ProgressService = Depends(get_progress_service),
):
    prefs = await progress.update_preferences(user.email, body.model_dump())
    await progress.log_analytics(user.email, {"action": "update_preferences", "metadata": body.model_dump(exclude_none=True)})
    return {"success": True, "preferences": prefs}


@router.get("/analytics")
async def get_analytics(
    limit: int = 100,
    user: SessionUser = Depends(require_email_user),
    progress: ProgressService = Depends(get_progress_service),
):
    limit = min(max(limit, 1), 500)
    return {"analytics": await progress.get_user_analytics(user.email, limit)}


@router.post("/analytics")
async def log_event(
    body: AnalyticsEvent,
    user: SessionUser = Depends(require_email_user),
    progress: ProgressService = Depends(get_progress_service),
):
    event = await progress.log_analytics(user.email, body.model_dump())
    return {"success": True, "event": event}
