from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy import Boolean, Column, String, DateTime, Float, ForeignKey, Integer, JSON, Text, UniqueConstraint
from .db import Base


def _new_id() -> str:
	return uuid.uuid4().hex


class AuthUser(Base):
	__tablename__ = "auth_users"
	# Primary key is username; it is the owner id of every vocabulary item
	username = Column(String(128), primary_key=True, index=True)
	password_hash = Column(String(256), nullable=False)
	email = Column(String(256), nullable=True)
	requests_used = Column(Integer, default=0, nullable=False)
	requests_limit = Column(Integer, default=1000, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class AuthSession(Base):
	__tablename__ = "auth_sessions"
	# JWT "jti"
	session_id = Column(String(64), primary_key=True)
	username = Column(String(128), nullable=False, index=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	last_activity_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class VocabularyItem(Base):
	__tablename__ = "vocabulary_items"
	__table_args__ = (UniqueConstraint("owner", "word", name="uq_vocabulary_owner_word"),)

	id = Column(String(32), primary_key=True, default=_new_id)
	owner = Column(String(128), ForeignKey("auth_users.username", ondelete="CASCADE"), nullable=False, index=True)
	word = Column(String(100), nullable=False)  # stored lower-cased
	definition = Column(Text, nullable=True)
	phonetic = Column(String(128), nullable=True)
	context = Column(Text, nullable=True)
	source_type = Column(String(16), default="practice", nullable=False)
	source_id = Column(String(128), nullable=True)
	language = Column(String(8), default="en", nullable=False)
	tags = Column(JSON, default=list, nullable=False)
	meanings = Column(JSON, nullable=True)
	notes = Column(Text, default="", nullable=False)
	mastered = Column(Boolean, default=False, nullable=False)
	definition_error = Column(Boolean, default=False, nullable=False)

	# Review state, mutated only through scheduler.schedule_review
	review_count = Column(Integer, default=0, nullable=False)
	correct_count = Column(Integer, default=0, nullable=False)
	incorrect_count = Column(Integer, default=0, nullable=False)
	ease_factor = Column(Float, default=2.5, nullable=False)
	interval = Column(Integer, default=1, nullable=False)
	next_review_date = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
	last_reviewed_at = Column(DateTime, nullable=True)

	added_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
