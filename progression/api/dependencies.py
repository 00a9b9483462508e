"""FastAPI dependency injection helpers.

Provides reusable ``Depends``-compatible callables for:
- ``get_db()``              → async database session
- ``get_settings()``        → application settings
- ``get_snapshot_loader()`` → snapshot loader bound to the request's session
"""

import logging
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from progression.config import Settings
from progression.config import get_settings as _get_settings_impl
from progression.database import get_async_db
from progression.services.snapshot_loader import SnapshotLoader

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Database session
# ---------------------------------------------------------------------------


async def get_db(
    db: AsyncSession = Depends(get_async_db),
) -> AsyncSession:
    """Provide an async database session to route handlers."""
    return db


DBDep = Annotated[AsyncSession, Depends(get_db)]


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def get_settings() -> Settings:
    """Return the cached application settings."""
    return _get_settings_impl()


SettingsDep = Annotated[Settings, Depends(get_settings)]


# ---------------------------------------------------------------------------
# Snapshot loader
# ---------------------------------------------------------------------------


def get_snapshot_loader(db: DBDep, settings: SettingsDep) -> SnapshotLoader:
    """Return a :class:`SnapshotLoader` reading through the request's session.

    Tests override this dependency to serve a prepared snapshot without a
    database.
    """
    return SnapshotLoader(db, assessment_weights=settings.assessment_weights)


SnapshotLoaderDep = Annotated[SnapshotLoader, Depends(get_snapshot_loader)]
