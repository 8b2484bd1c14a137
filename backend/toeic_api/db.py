from __future__ import annotations
import logging

from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker, declarative_base
from .settings import settings


logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url or "sqlite:///./app.db"

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=_connect_args, future=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
Base = declarative_base()


def get_db():
	db = SessionLocal()
	try:
		yield db
	finally:
		db.close()


# Additive columns introduced after the first release: table -> {column: DDL}
_ADDED_COLUMNS = {
	"auth_users": {
		"email": "VARCHAR(256)",
		"requests_used": "INTEGER DEFAULT 0 NOT NULL",
		"requests_limit": "INTEGER DEFAULT 1000 NOT NULL",
	},
	"vocabulary_items": {
		"source_id": "VARCHAR(128)",
		"tags": "JSON",
		"definition_error": "BOOLEAN DEFAULT 0 NOT NULL",
		"correct_count": "INTEGER DEFAULT 0 NOT NULL",
		"incorrect_count": "INTEGER DEFAULT 0 NOT NULL",
		"last_reviewed_at": "DATETIME",
	},
}


# Best-effort lightweight migrations for development (SQLite-friendly)
def ensure_schema() -> None:
	try:
		inspector = inspect(engine)
		tables = set(inspector.get_table_names())
	except Exception:
		logger.warning("schema inspection failed", exc_info=True)
		return
	for table, columns in _ADDED_COLUMNS.items():
		if table not in tables:
			continue
		existing = {c["name"] for c in inspector.get_columns(table)}
		missing = [(name, ddl) for name, ddl in columns.items() if name not in existing]
		if not missing:
			continue
		with engine.begin() as conn:
			for name, ddl in missing:
				logger.info("adding column %s.%s", table, name)
				conn.exec_driver_sql(f"ALTER TABLE {table} ADD COLUMN {name} {ddl}")
