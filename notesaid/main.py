import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError

from notesaid import __version__
from notesaid.cache import RedisCache
from notesaid.config import Settings
from notesaid.database import MongoConnections, ensure_indexes
from notesaid.deps import get_cache, get_connections, get_settings
from notesaid.errors import ServiceUnavailable, register_error_handlers
from notesaid.logging_config import configure_logging
from notesaid.routes import (
    admin_subjects,
    curriculum,
    edit_links,
    leaderboard,
    permissions,
    quick_links,
    review,
    subjects,
    user,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = app.state.settings
    try:
        await ensure_indexes(app.state.connections, settings.notes_db, settings.admin_db)
    except (PyMongoError, ServiceUnavailable) as e:
        logger.warning("Could not ensure indexes at startup: %s", e)
    yield
    await app.state.cache.close()
    app.state.connections.close()
    logger.info("NotesAid API shut down")


def create_app(
    settings: Optional[Settings] = None,
    connections: Optional[MongoConnections] = None,
    cache: Optional[RedisCache] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    app = FastAPI(title="NotesAid API", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.connections = connections or MongoConnections(settings.mongodb_uri, settings.connect_timeout)
    app.state.cache = cache or RedisCache.from_url(settings.redis_url)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"]
    )
    register_error_handlers(app)

    # Health & diagnostics
    @app.get("/")
    async def root():
        return {"message": "OK", "app": "NotesAid API", "version": __version__}

    @app.get("/test")
    async def test(
        settings: Settings = Depends(get_settings),
        conns: MongoConnections = Depends(get_connections),
        cache: RedisCache = Depends(get_cache),
    ):
        try:
            db = await conns.connect(settings.notes_db)
            colls = await db.list_collection_names()
            database = {"connection_status": "connected", "database_name": settings.notes_db, "collections": colls}
        except (PyMongoError, ServiceUnavailable) as e:
            database = {"connection_status": f"error: {e}"}
        return {
            "backend": "fastapi",
            "database": "mongodb",
            **database,
            "open_databases": conns.open_databases,
            "cache": "redis" if cache.available else "disabled",
        }

    for module in (subjects, admin_subjects, edit_links, review, permissions, quick_links, curriculum, leaderboard, user):
        app.include_router(module.router)

    logger.info("NotesAid API configured")
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("notesaid.main:app", host="0.0.0.0", port=8000)
