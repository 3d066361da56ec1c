"""Environment-based configuration."""

from __future__ import annotations

import logging
from typing import Annotated, Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from nsmigrate.constants import (
    CB_SEARCH_FAILURE_THRESHOLD,
    CB_SEARCH_RECOVERY_TIMEOUT,
    DEFAULT_SKIP_DIRECTORIES,
    NEW_ROOT,
    OLD_ROOT,
)

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Reads from .env file and NSMIGRATE_* environment variables."""

    # Namespace roots
    old_root: str = OLD_ROOT
    new_root: str = NEW_ROOT

    # Metadata search
    metadata_search_enabled: bool = True
    metadata_search_url: str = "https://search.maven.org/solrsearch/select"
    metadata_search_timeout_seconds: float = 10.0
    search_breaker_failure_threshold: int = CB_SEARCH_FAILURE_THRESHOLD
    search_breaker_recovery_seconds: int = CB_SEARCH_RECOVERY_TIMEOUT

    # Refactoring
    batch_max_concurrency: int = 4
    recipe_timeout_seconds: float = 60.0
    max_retries: int = 3

    # Verification
    verification_timeout_seconds: int = 300
    verification_max_memory_mb: int = 2048

    # Database
    database_url: str = "sqlite:///data/nsmigrate.db"

    # Logging
    log_level: str = "INFO"

    # Scanning
    skip_directories: Annotated[list[str], NoDecode] = list(
        DEFAULT_SKIP_DIRECTORIES
    )

    @field_validator("skip_directories", mode="before")
    @classmethod
    def _parse_skip_dirs(cls, v: Any) -> Any:
        """Accept comma-separated string or JSON array."""
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("old_root", "new_root")
    @classmethod
    def _validate_root(cls, v: str) -> str:
        root = v.strip().rstrip(".")
        if not root:
            raise ValueError("namespace root must not be blank")
        return root

    @field_validator("batch_max_concurrency")
    @classmethod
    def _validate_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError("batch_max_concurrency must be >= 1")
        return v

    @field_validator("max_retries")
    @classmethod
    def _validate_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_retries must be >= 0")
        return v

    @field_validator("log_level")
    @classmethod
    def _validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            logger.warning("Unknown LOG_LEVEL %s, using INFO", v)
            return "INFO"
        return level

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "NSMIGRATE_",
        "extra": "ignore",
    }


def create_store_engine(
    url: str, *, echo: bool = False
) -> AsyncEngine:
    """Create async SQLite engine with WAL journal mode.

    Handles URL conversion (sqlite:/// → sqlite+aiosqlite:///)
    and sets WAL mode via a pool-connect event listener so it
    fires once per raw DBAPI connection, not per ORM session.
    """
    if url.startswith("sqlite:///"):
        db_url = "sqlite+aiosqlite:///" + url[len("sqlite:///"):]
    else:
        db_url = url
    engine = create_async_engine(db_url, echo=echo)

    if db_url.startswith("sqlite"):

        @event.listens_for(engine.sync_engine, "connect")
        def _set_wal_mode(
            dbapi_conn: object,
            _connection_record: object,
        ) -> None:
            cursor = dbapi_conn.cursor()  # type: ignore[union-attr]
            cursor.execute("PRAGMA journal_mode=WAL")  # pyright: ignore[reportUnknownMemberType]
            cursor.close()  # pyright: ignore[reportUnknownMemberType]

    return engine
