"""
Runtime configuration for the NotesAid API.

Values come from the process environment; a `.env` file in the working
directory is loaded first when present.
"""
import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


def _split(value: str) -> List[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


class Settings(BaseModel):
    mongodb_uri: str = "mongodb://localhost:27017"
    redis_url: Optional[str] = None
    auth_secret: str = "dev-secret-change-me"
    super_admin_username: str = "MinavKaria"
    connect_timeout: float = 35.0

    notes_db: str = "notesdb"
    admin_db: str = "notesaid_admin"
    metadata_db: str = "metadata"
    leaderboard_db: str = "leaderboard"
    users_db: str = "notesaid_users"

    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            mongodb_uri=os.getenv("MONGODB_URI") or os.getenv("DATABASE_URL", "mongodb://localhost:27017"),
            redis_url=os.getenv("REDIS_URL") or None,
            auth_secret=os.getenv("AUTH_SECRET", "dev-secret-change-me"),
            super_admin_username=os.getenv("SUPER_ADMIN_USERNAME", "MinavKaria"),
            connect_timeout=float(os.getenv("MONGODB_CONNECT_TIMEOUT", "35")),
            notes_db=os.getenv("NOTES_DB", "notesdb"),
            admin_db=os.getenv("ADMIN_DB", "notesaid_admin"),
            metadata_db=os.getenv("METADATA_DB", "metadata"),
            leaderboard_db=os.getenv("LEADERBOARD_DB", "leaderboard"),
            users_db=os.getenv("USERS_DB", "notesaid_users"),
            cors_origins=_split(os.getenv("CORS_ORIGINS", "*")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
