"""Persistence for per-user vocabulary items and their review state.

Every lookup is scoped to the owner; a word id belonging to someone else is
indistinguishable from a missing one.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .errors import DuplicateWord, WordNotFound
from .models import VocabularyItem
from .scheduler import ReviewState, schedule_review

logger = logging.getLogger(__name__)

SORT_FIELDS = {
	"createdAt": VocabularyItem.added_at,
	"updatedAt": VocabularyItem.updated_at,
	"word": VocabularyItem.word,
	"reviewCount": VocabularyItem.review_count,
	"nextReviewDate": VocabularyItem.next_review_date,
}
RECENT_WINDOW = timedelta(days=7)


def normalize_word(word: str) -> str:
	return (word or "").strip().lower()


def add_word(
	db: Session,
	owner: str,
	word: str,
	*,
	context: Optional[str] = None,
	source_type: str = "practice",
	source_id: Optional[str] = None,
	language: str = "en",
	tags: Optional[Sequence[str]] = None,
	definition: Optional[Dict[str, Any]] = None,
	definition_error: bool = False,
	now: Optional[datetime] = None,
) -> VocabularyItem:
	text = normalize_word(word)
	if find_by_text(db, owner, text) is not None:
		raise DuplicateWord(text)
	now = now or datetime.utcnow()
	definition = definition or {}
	phonetic = definition.get("phonetic")
	item = VocabularyItem(
		owner=owner,
		word=text,
		definition=f"{text} {phonetic}" if phonetic else text,
		phonetic=phonetic,
		context=context,
		source_type=source_type,
		source_id=source_id,
		language=language,
		tags=list(tags or []),
		meanings=definition.get("meanings"),
		notes="",
		mastered=False,
		definition_error=definition_error,
		next_review_date=now,
		added_at=now,
		updated_at=now,
	)
	db.add(item)
	try:
		db.commit()
	except IntegrityError:
		# lost a race with a concurrent add of the same word
		db.rollback()
		raise DuplicateWord(text)
	db.refresh(item)
	return item


def find_by_text(db: Session, owner: str, word: str) -> Optional[VocabularyItem]:
	stmt = select(VocabularyItem).where(VocabularyItem.owner == owner, VocabularyItem.word == normalize_word(word))
	return db.execute(stmt).scalars().first()


def get_word(db: Session, owner: str, word_id: str, *, for_update: bool = False) -> VocabularyItem:
	stmt = select(VocabularyItem).where(VocabularyItem.id == word_id, VocabularyItem.owner == owner)
	if for_update:
		stmt = stmt.with_for_update()
	item = db.execute(stmt).scalars().first()
	if item is None:
		raise WordNotFound(word_id)
	return item


def list_words(
	db: Session,
	owner: str,
	*,
	page: int = 1,
	limit: int = 20,
	sort_by: str = "createdAt",
	sort_order: str = "desc",
) -> Tuple[List[VocabularyItem], int]:
	column = SORT_FIELDS.get(sort_by, VocabularyItem.added_at)
	order = column.asc() if sort_order == "asc" else column.desc()
	stmt = (
		select(VocabularyItem)
		.where(VocabularyItem.owner == owner)
		.order_by(order, VocabularyItem.id)
		.offset((max(page, 1) - 1) * limit)
		.limit(limit)
	)
	items = list(db.execute(stmt).scalars())
	total = db.execute(select(func.count()).select_from(VocabularyItem).where(VocabularyItem.owner == owner)).scalar_one()
	return items, int(total)


def due_words(db: Session, owner: str, *, now: Optional[datetime] = None, limit: int = 20) -> List[VocabularyItem]:
	now = now or datetime.utcnow()
	stmt = (
		select(VocabularyItem)
		.where(VocabularyItem.owner == owner, VocabularyItem.next_review_date <= now)
		.order_by(VocabularyItem.next_review_date.asc(), VocabularyItem.id)
		.limit(limit)
	)
	return list(db.execute(stmt).scalars())


def review_state_of(item: VocabularyItem) -> ReviewState:
	return ReviewState(
		review_count=item.review_count or 0,
		correct_count=item.correct_count or 0,
		incorrect_count=item.incorrect_count or 0,
		ease_factor=item.ease_factor,
		interval=item.interval,
		next_review_date=item.next_review_date,
		last_reviewed_at=item.last_reviewed_at,
	)


def record_review(
	db: Session,
	owner: str,
	word_id: str,
	correct: bool,
	difficulty: Optional[int] = None,
	*,
	now: Optional[datetime] = None,
) -> VocabularyItem:
	"""Apply one review outcome to the owner's word and persist it.

	Raises ``WordNotFound`` before touching anything if the word is not the
	owner's. The row is locked for the read-then-write where the database
	supports ``SELECT ... FOR UPDATE``; otherwise the last write wins.
	"""
	now = now or datetime.utcnow()
	item = get_word(db, owner, word_id, for_update=True)
	try:
		updated = schedule_review(review_state_of(item), correct, difficulty, now=now)
	except ValueError:
		db.rollback()
		raise
	item.review_count = updated.review_count
	item.correct_count = updated.correct_count
	item.incorrect_count = updated.incorrect_count
	item.ease_factor = updated.ease_factor
	item.interval = updated.interval
	item.next_review_date = updated.next_review_date
	item.last_reviewed_at = updated.last_reviewed_at
	item.updated_at = now
	db.commit()
	db.refresh(item)
	logger.debug(
		"review recorded word=%s correct=%s interval=%s ease=%.2f",
		item.id, correct, item.interval, item.ease_factor,
	)
	return item


def update_word(
	db: Session,
	owner: str,
	word_id: str,
	*,
	notes: Optional[str] = None,
	mastered: Optional[bool] = None,
) -> VocabularyItem:
	item = get_word(db, owner, word_id)
	if notes is not None:
		item.notes = notes
	if mastered is not None:
		item.mastered = mastered
	item.updated_at = datetime.utcnow()
	db.commit()
	db.refresh(item)
	return item


def apply_definition(db: Session, item: VocabularyItem, definition: Dict[str, Any]) -> VocabularyItem:
	phonetic = definition.get("phonetic")
	item.phonetic = phonetic
	item.meanings = definition.get("meanings")
	if phonetic:
		item.definition = f"{item.word} {phonetic}"
	item.definition_error = False
	item.updated_at = datetime.utcnow()
	db.commit()
	db.refresh(item)
	return item


def mark_definition_failed(db: Session, item: VocabularyItem) -> VocabularyItem:
	item.definition_error = True
	db.commit()
	db.refresh(item)
	return item


def delete_word(db: Session, owner: str, word_id: str) -> None:
	item = get_word(db, owner, word_id)
	db.delete(item)
	db.commit()


def local_day_start(now: datetime, utc_offset_hours: int) -> datetime:
	"""UTC instant of local midnight for the day containing ``now``."""
	offset = timedelta(hours=utc_offset_hours)
	local = now + offset
	return local.replace(hour=0, minute=0, second=0, microsecond=0) - offset


def stats(db: Session, owner: str, *, now: Optional[datetime] = None, utc_offset_hours: int = 0) -> Dict[str, int]:
	now = now or datetime.utcnow()

	def _count(*conditions) -> int:
		stmt = select(func.count()).select_from(VocabularyItem).where(VocabularyItem.owner == owner, *conditions)
		return int(db.execute(stmt).scalar_one())

	return {
		"totalWords": _count(),
		"masteredWords": _count(VocabularyItem.mastered.is_(True)),
		"recentWords": _count(VocabularyItem.added_at >= now - RECENT_WINDOW),
		"wordsNeedingReview": _count(VocabularyItem.next_review_date <= now, VocabularyItem.mastered.is_(False)),
		"reviewedToday": _count(VocabularyItem.last_reviewed_at >= local_day_start(now, utc_offset_hours)),
	}
