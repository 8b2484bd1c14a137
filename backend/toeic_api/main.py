import asyncio
import logging

from fastapi import FastAPI

from .db import Base, engine, SessionLocal, ensure_schema
from .cleanup import run_maintenance
from .settings import settings
from .routers import auth, health, vocabulary

logging.basicConfig(
	level=getattr(logging, settings.log_level.upper(), logging.INFO),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="TOEIC Vocabulary API")
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(vocabulary.router)


@app.get("/info")
def root():
	return {"status": "ok", "gemini_configured": bool(settings.gemini_api_key)}


def _maintenance_once() -> None:
	db = SessionLocal()
	try:
		run_maintenance(db)
	except Exception:
		logger.exception("maintenance sweep failed")
		db.rollback()
	finally:
		db.close()


async def _maintenance_watcher():
	while True:
		await asyncio.sleep(settings.sweep_interval_seconds)
		_maintenance_once()


_background_tasks: set = set()


@app.on_event("startup")
async def startup_event():
	Base.metadata.create_all(bind=engine)
	# Apply lightweight dev migrations
	try:
		ensure_schema()
	except Exception:
		logger.exception("schema migration failed")
	_maintenance_once()
	task = asyncio.create_task(_maintenance_watcher())
	_background_tasks.add(task)


@app.on_event("shutdown")
async def shutdown_event():
	for task in _background_tasks:
		task.cancel()
	_background_tasks.clear()
