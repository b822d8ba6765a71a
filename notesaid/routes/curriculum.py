from typing import Optional

from fastapi import APIRouter, Depends

from notesaid.curriculum import CurriculumService
from notesaid.deps import get_curriculum_service
from notesaid.schemas import CurriculumUpsert

router = APIRouter(prefix="/api/curriculum", tags=["curriculum"])


@router.get("")
async def get_curriculum(
    year: Optional[int] = None,
    branch: Optional[str] = None,
    curriculum: CurriculumService = Depends(get_curriculum_service),
):
    return await curriculum.find(year, branch)


@router.post("")
async def upsert_curriculum(body: CurriculumUpsert, curriculum: CurriculumService = Depends(get_curriculum_service)):
    doc = await curriculum.upsert(body.year, body.branch, body.subjects)
    return {"success": True, "data": doc}
