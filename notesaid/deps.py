"""
FastAPI dependency providers.

Shared resources (settings, the Mongo connection cache and the Redis cache)
are created by the app factory and kept on ``app.state``; everything here
reads them from the request.
"""
from fastapi import Depends, Request

from notesaid.auth import SessionUser, require_github_user
from notesaid.cache import RedisCache
from notesaid.changes import ChangeRequestService
from notesaid.config import Settings
from notesaid.curriculum import CurriculumService
from notesaid.database import MongoConnections
from notesaid.edit_links import EditLinkService
from notesaid.errors import Forbidden
from notesaid.leaderboard import LeaderboardService
from notesaid.permissions import PermissionService
from notesaid.progress import ProgressService
from notesaid.quick_links import QuickLinkService
from notesaid.subjects import SubjectStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_connections(request: Request) -> MongoConnections:
    return request.app.state.connections


def get_cache(request: Request) -> RedisCache:
    return request.app.state.cache


async def get_notes_db(settings: Settings = Depends(get_settings), conns: MongoConnections = Depends(get_connections)):
    return await conns.connect(settings.notes_db)


async def get_admin_db(settings: Settings = Depends(get_settings), conns: MongoConnections = Depends(get_connections)):
    return await conns.connect(settings.admin_db)


async def get_metadata_db(settings: Settings = Depends(get_settings), conns: MongoConnections = Depends(get_connections)):
    return await conns.connect(settings.metadata_db)


async def get_leaderboard_db(settings: Settings = Depends(get_settings), conns: MongoConnections = Depends(get_connections)):
    return await conns.connect(settings.leaderboard_db)


async def get_users_db(settings: Settings = Depends(get_settings), conns: MongoConnections = Depends(get_connections)):
    return await conns.connect(settings.users_db)


def get_subject_store(db=Depends(get_notes_db)) -> SubjectStore:
    return SubjectStore(db)


def get_permission_service(db=Depends(get_admin_db), settings: Settings = Depends(get_settings)) -> PermissionService:
    return PermissionService(db, settings.super_admin_username)


def get_edit_link_service(db=Depends(get_admin_db)) -> EditLinkService:
    return EditLinkService(db)


def get_change_service(
    db=Depends(get_admin_db),
    subjects: SubjectStore = Depends(get_subject_store),
    cache: RedisCache = Depends(get_cache),
) -> ChangeRequestService:
    return ChangeRequestService(db, subjects, cache)


def get_quick_link_service(db=Depends(get_admin_db), cache: RedisCache = Depends(get_cache)) -> QuickLinkService:
    return QuickLinkService(db, cache)


def get_curriculum_service(db=Depends(get_metadata_db), cache: RedisCache = Depends(get_cache)) -> CurriculumService:
    return CurriculumService(db, cache)


def get_leaderboard_service(db=Depends(get_leaderboard_db)) -> LeaderboardService:
    return LeaderboardService(db)


def get_progress_service(db=Depends(get_users_db)) -> ProgressService:
    return ProgressService(db)


# Access guards
async def require_admin(
    user: SessionUser = Depends(require_github_user),
    permissions: PermissionService = Depends(get_permission_service),
) -> SessionUser:
    if not await permissions.has_admin_access(user.github_username):
        raise Forbidden("Admin access required")
    return user


async def require_super_admin(
    user: SessionUser = Depends(require_github_user),
    permissions: PermissionService = Depends(get_permission_service),
) -> SessionUser:
    if not permissions.is_super_admin(user.github_username):
        raise Forbidden("Super admin access required")
    return user
