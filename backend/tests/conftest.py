import os
import tempfile
from pathlib import Path

# Settings and the engine are built at import time, so point them at a
# throwaway database before anything imports toeic_api.
_tmpdir = tempfile.mkdtemp(prefix="toeic-api-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{Path(_tmpdir) / 'test.db'}"
os.environ.pop("GEMINI_API_KEY", None)
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")

import pytest
from fastapi.testclient import TestClient

from toeic_api.db import Base, SessionLocal, engine
from toeic_api.definitions import definition_cache
from toeic_api.main import app
from toeic_api.models import AuthUser
from toeic_api.routers.vocabulary import get_llm_client


class FakeLLM:
	"""Replays canned replies; an Exception in the list is raised instead."""

	def __init__(self, replies=None):
		self.replies = list(replies or [])
		self.prompts = []

	async def generate(self, prompt: str) -> str:
		self.prompts.append(prompt)
		reply = self.replies.pop(0) if self.replies else "not json"
		if isinstance(reply, Exception):
			raise reply
		return reply


DEFINITION_JSON = """```json
{
  "word": "invoice",
  "phonetic": "/ˈɪnvɔɪs/",
  "meanings": [
    {"partOfSpeech": "noun", "definitions": [{"definition": "a list of goods sent with their prices", "example": "Please pay the invoice within 30 days."}]}
  ],
  "commonality": "common"
}
```"""


@pytest.fixture(autouse=True)
def _schema():
	Base.metadata.create_all(bind=engine)
	definition_cache.clear()
	yield
	app.dependency_overrides.clear()
	Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
	session = SessionLocal()
	try:
		yield session
	finally:
		session.close()


@pytest.fixture()
def owner(db):
	db.add(AuthUser(username="alice", password_hash="x", email="alice@example.com"))
	db.add(AuthUser(username="bob", password_hash="x", email="bob@example.com"))
	db.commit()
	return "alice"


@pytest.fixture()
def llm():
	fake = FakeLLM()

	async def _override():
		yield fake

	app.dependency_overrides[get_llm_client] = _override
	return fake


@pytest.fixture()
def client():
	return TestClient(app)


def login(client, username="alice", password="s3cret-pass"):
	resp = client.post("/auth/register", json={"username": username, "password": password, "email": f"{username}@example.com"})
	assert resp.status_code == 201, resp.text
	resp = client.post("/auth/token", data={"username": username, "password": password})
	assert resp.status_code == 200, resp.text
	return {"Authorization": f"Bearer {resp.json()['access_token']}"}


@pytest.fixture()
def login_as(client):
	return lambda username="alice": login(client, username)


@pytest.fixture()
def auth_headers(login_as):
	return login_as("alice")
