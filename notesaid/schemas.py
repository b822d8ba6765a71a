"""
Request schemas for the NotesAid API.

Stored documents (collection -> shape):
- notesdb.subjects: {collectionKey, content{name, color, modules}}
- notesaid_admin.edit_links: shareable password-protected edit access to one subject
- notesaid_admin.change_requests: submitted subject changes waiting for review
- notesaid_admin.admin_permissions: subject-admin grants
- notesaid_admin.quick_links: curated books / past papers per subject
- metadata.curriculum: subjects per (year, branch)
- leaderboard.data: student SGPA records
- notesaid_users.*: per-user progress, preferences and analytics events

Subject content itself is schema-less and is accepted as a plain dict.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class SubjectCreate(BaseModel):
    name: str = Field(..., min_length=1, description="Display name")
    collectionName: str = Field(..., min_length=1, description="Subject key")
    color: Optional[str] = Field(None, description="Theme color, defaults to blue")


class EditLinkCreate(BaseModel):
    subjectCollection: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    editorName: str = Field(..., min_length=1)


class EditSubmission(BaseModel):
    password: str = Field(..., min_length=1)
    changeData: Dict[str, Any]


class Proposal(BaseModel):
    proposer: Optional[str] = None
    changes: Dict[str, Any]
    mode: Literal["merge", "replace"] = "merge"


class ReviewDecision(BaseModel):
    changeId: str = Field(..., min_length=1)
    action: Literal["approve", "reject"]
    reviewNotes: Optional[str] = None


class ProposalReview(BaseModel):
    action: Literal["approve", "reject"]
    reviewer: Optional[str] = None
    note: Optional[str] = None


class PermissionGrant(BaseModel):
    githubUsername: str = Field(..., min_length=1)
    allowedSubjects: List[str]
    name: Optional[str] = None


class QuickLinkItem(BaseModel):
    name: str
    url: str


class QuickLinkCreate(BaseModel):
    templateName: str = Field(..., min_length=1)
    subjectCollections: List[str] = Field(..., min_length=1)
    linkType: Literal["books", "pyqs", "other"]
    links: List[QuickLinkItem] = Field(default_factory=list)


class QuickLinkUpdate(BaseModel):
    templateName: Optional[str] = None
    subjectCollections: Optional[List[str]] = None
    linkType: Optional[Literal["books", "pyqs", "other"]] = None
    links: Optional[List[QuickLinkItem]] = None


class CurriculumUpsert(BaseModel):
    year: int
    branch: str = Field(..., min_length=1)
    subjects: List[Any]


class ProgressMark(BaseModel):
    year: str
    branch: str
    semester: str
    subject: str
    module: str
    topic: str
    videoTitle: Optional[str] = None
    noteTitle: Optional[str] = None
    completed: bool = True


class Preferences(BaseModel):
    selectedBranch: Optional[str] = None
    selectedYear: Optional[str] = None
    selectedSemester: Optional[str] = None


class AnalyticsEvent(BaseModel):
    action: str = Field(..., min_length=1)
    year: Optional[str] = None
    branch: Optional[str] = None
    semester: Optional[str] = None
    subject: Optional[str] = None
    module: Optional[str] = None
    topic: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
