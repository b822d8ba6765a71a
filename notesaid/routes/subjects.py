import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from notesaid.auth import SessionUser
from notesaid.cache import CacheKeys, CacheTTL, RedisCache
from notesaid.changes import ChangeMode, ChangeRequestService, ChangeSource
from notesaid.deps import (
    get_cache,
    get_change_service,
    get_quick_link_service,
    get_subject_store,
    require_super_admin,
)
from notesaid.errors import NotFound
from notesaid.quick_links import QuickLinkService
from notesaid.schemas import Proposal, ProposalReview
from notesaid.subjects import SubjectStore, validate_subject_key

router = APIRouter(prefix="/api/subject", tags=["subjects"])
logger = logging.getLogger(__name__)


@router.get("")
async def list_subjects(store: SubjectStore = Depends(get_subject_store), cache: RedisCache = Depends(get_cache)):
    async def load():
        return {"subjects": await store.list_keys()}

    return await cache.get_or_load(CacheKeys.subjects(), load, CacheTTL.LONG)


@router.get("/{subject}")
async def get_subject(
    subject: str,
    module: Optional[str] = None,
    store: SubjectStore = Depends(get_subject_store),
    cache: RedisCache = Depends(get_cache),
):
    validate_subject_key(subject)
    key = CacheKeys.subject(subject, module)
    cached = await cache.get(key)
    if cached is not None:
        return cached

    content = await store.get_module(subject, module) if module else await store.get(subject)
    if content is None:
        raise NotFound(f"Subject not found: {subject}")
    response = {"subject": subject, "data": [content]}
    await cache.set(key, response, CacheTTL.LONG)
    return response


@router.get("/{subject}/stats")
async def subject_stats(
    subject: str,
    store: SubjectStore = Depends(get_subject_store),
    cache: RedisCache = Depends(get_cache),
):
    validate_subject_key(subject)
    key = CacheKeys.stats(subject)
    cached = await cache.get(key)
    if cached is not None:
        return cached

    modules = await store.module_stats(subject)
    if modules is None:
        raise NotFound(f"Subject not found: {subject}")
    response = {"subject": subject, "modules": modules}
    await cache.set(key, response, CacheTTL.MEDIUM)
    return response


@router.get("/{subject}/quick-links")
async def subject_quick_links(subject: str, quick_links: QuickLinkService = Depends(get_quick_link_service)):
    validate_subject_key(subject)
    return await quick_links.for_subject(subject)


@router.post("/{subject}/propose", status_code=status.HTTP_201_CREATED)
async def propose_change(
    subject: str,
    body: Proposal,
    changes: ChangeRequestService = Depends(get_change_service),
):
    validate_subject_key(subject)
    if not body.changes:
        raise HTTPException(status_code=400, detail="Missing changes payload")
    doc = await changes.submit(
        subject,
        body.proposer or "anonymous",
        body.changes,
        mode=ChangeMode(body.mode),
        source=ChangeSource.PROPOSAL,
    )
    return {"success": True, "proposalId": doc["id"]}


@router.post("/{subject}/review")
async def review_proposal(
    subject: str,
    body: ProposalReview,
    proposal_id: Optional[str] = Query(None, alias="id"),
    user: SessionUser = Depends(require_super_admin),
    changes: ChangeRequestService = Depends(get_change_service),
):
    validate_subject_key(subject)
    if not proposal_id:
        raise HTTPException(status_code=400, detail="Missing proposal id")
    change = await changes.get(proposal_id)
    if change["subjectCollection"] != subject:
        raise NotFound("Change not found")

    await changes.review(proposal_id, body.action, body.reviewer or user.username, body.note)
    if body.action == "approve":
        return {"success": True, "message": "Proposal approved and applied"}
    return {"success": True, "message": "Proposal rejected"}
