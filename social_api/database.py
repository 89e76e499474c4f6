"""
Social API — Persistence Boundary
===================================

What:  The hook where a database connection would be attached.
Why:   No endpoint persists anything yet, but the seam is fixed now: the
       connection lives in a holder owned by the app and reaches handlers
       through request-scoped dependency injection, never a module global.
How:   connect() returns an async SQLAlchemy engine when DATABASE_URL is
       set, otherwise None. The app factory stores a DatabaseResources on
       app.state; handlers ask for it with Depends(get_db_resources).

    ┌──────────────┐  connect()   ┌───────────────────┐  Depends()  ┌─────────┐
    │   Settings   │─────────────→│ DatabaseResources │────────────→│ handler │
    └──────────────┘              │   (app.state.db)  │             └─────────┘
                                  └───────────────────┘

The engine connects lazily: creating it opens no connection, so an
unreachable database does not stop the server from starting. /health never
checks it.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from starlette.requests import Request

from social_api.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class DatabaseResources:
    """Holder for the persistence handle; engine is None when none is configured."""
    engine: Optional[AsyncEngine] = None

    @property
    def connected(self) -> bool:
        return self.engine is not None

    async def dispose(self) -> None:
        """Close all pooled connections. Safe to call when no engine exists."""
        if self.engine is not None:
            await self.engine.dispose()
            logger.info("Database engine disposed")
            self.engine = None


def connect(settings: Settings) -> DatabaseResources:
    """
    Build the persistence holder from settings.

    Returns an empty holder when DATABASE_URL is not set.
    """
    if not settings.database_url:
        logger.debug("DATABASE_URL not set; running without persistence")
        return DatabaseResources()

    engine = create_async_engine(
        settings.database_url,
        pool_pre_ping=True,
        echo=settings.log_level == "DEBUG",
    )
    logger.info("Database engine created for %s", engine.url.render_as_string(hide_password=True))
    return DatabaseResources(engine=engine)


def get_db_resources(request: Request) -> DatabaseResources:
    """
    FastAPI dependency returning the app's DatabaseResources.

    Example usage in a route:
        async def handler(db: DatabaseResources = Depends(get_db_resources)):
            if db.connected: ...
    """
    return request.app.state.db
