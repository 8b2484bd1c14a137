from __future__ import annotations
import logging
from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy import delete
from sqlalchemy.orm import Session

from .definitions import definition_cache
from .models import AuthSession
from .settings import settings

logger = logging.getLogger(__name__)


def purge_stale_sessions(db: Session, *, now: Optional[datetime] = None) -> int:
	now = now or datetime.utcnow()
	threshold = now - timedelta(days=settings.session_retention_days)
	res = db.execute(delete(AuthSession).where(AuthSession.last_activity_at < threshold))
	db.commit()
	return res.rowcount or 0


def run_maintenance(db: Session) -> dict:
	"""Drop idle auth sessions and expired cached definitions."""
	sessions = purge_stale_sessions(db)
	cached = definition_cache.sweep()
	if sessions or cached:
		logger.info("maintenance removed sessions=%d cached_definitions=%d", sessions, cached)
	return {"sessions": sessions, "cached_definitions": cached}
