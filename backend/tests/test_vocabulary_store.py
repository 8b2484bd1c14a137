from datetime import datetime, timedelta

import pytest

from toeic_api import vocabulary_store as store
from toeic_api.errors import DuplicateWord, WordNotFound

NOW = datetime(2024, 3, 1, 12, 0)


def test_new_word_starts_due_with_default_state(db, owner):
	item = store.add_word(db, owner, "  Invoice ", context="Pay the invoice.", now=NOW)
	assert item.word == "invoice"
	assert item.review_count == 0
	assert item.interval == 1
	assert item.ease_factor == 2.5
	assert item.next_review_date == NOW
	assert item.tags == []


def test_duplicate_word_is_rejected_case_insensitively(db, owner):
	store.add_word(db, owner, "deadline")
	with pytest.raises(DuplicateWord):
		store.add_word(db, owner, "DEADLINE")
	# another owner may keep the same word
	store.add_word(db, "bob", "deadline")


def test_record_review_persists_scheduled_state(db, owner):
	item = store.add_word(db, owner, "procure", now=NOW)
	updated = store.record_review(db, owner, item.id, True, 3, now=NOW)
	assert updated.review_count == 1
	assert updated.correct_count == 1
	assert updated.incorrect_count == 0
	assert updated.interval == 1
	assert updated.ease_factor == pytest.approx(2.36)
	assert updated.next_review_date == NOW + timedelta(days=1)
	assert updated.last_reviewed_at == NOW

	updated = store.record_review(db, owner, item.id, False, now=NOW)
	assert updated.incorrect_count == 1
	assert updated.ease_factor == pytest.approx(2.16)


def test_review_of_someone_elses_word_is_not_found_and_changes_nothing(db, owner):
	item = store.add_word(db, "bob", "merger", now=NOW)
	with pytest.raises(WordNotFound):
		store.record_review(db, owner, item.id, True, 5, now=NOW)
	db.refresh(item)
	assert item.review_count == 0
	assert item.last_reviewed_at is None


def test_review_of_missing_word_is_not_found(db, owner):
	with pytest.raises(WordNotFound):
		store.record_review(db, owner, "does-not-exist", False)


def test_invalid_difficulty_leaves_row_untouched(db, owner):
	item = store.add_word(db, owner, "audit", now=NOW)
	with pytest.raises(ValueError):
		store.record_review(db, owner, item.id, True, 9, now=NOW)
	item = store.get_word(db, owner, item.id)
	assert item.review_count == 0


def test_due_words_ordered_by_next_review(db, owner):
	a = store.add_word(db, owner, "alpha", now=NOW - timedelta(days=1))
	b = store.add_word(db, owner, "beta", now=NOW - timedelta(days=3))
	c = store.add_word(db, owner, "gamma", now=NOW)
	store.record_review(db, owner, c.id, True, 5, now=NOW)  # due tomorrow
	due = store.due_words(db, owner, now=NOW)
	assert [w.id for w in due] == [b.id, a.id]


def test_list_words_paginates_and_sorts(db, owner):
	for i, w in enumerate(["cargo", "agenda", "budget"]):
		store.add_word(db, owner, w, now=NOW + timedelta(minutes=i))
	items, total = store.list_words(db, owner, page=1, limit=2, sort_by="word", sort_order="asc")
	assert total == 3
	assert [i.word for i in items] == ["agenda", "budget"]
	items, _ = store.list_words(db, owner, page=2, limit=2, sort_by="word", sort_order="asc")
	assert [i.word for i in items] == ["cargo"]
	items, _ = store.list_words(db, owner, sort_by="bogus")
	assert [i.word for i in items] == ["budget", "agenda", "cargo"]


def test_update_and_delete(db, owner):
	item = store.add_word(db, owner, "lease")
	item = store.update_word(db, owner, item.id, notes="rental contract", mastered=True)
	assert item.notes == "rental contract"
	assert item.mastered is True
	store.delete_word(db, owner, item.id)
	with pytest.raises(WordNotFound):
		store.get_word(db, owner, item.id)
	with pytest.raises(WordNotFound):
		store.delete_word(db, owner, item.id)


def test_local_day_start_uses_offset():
	# 20:00 UTC is already the next day at UTC+8
	assert store.local_day_start(datetime(2024, 3, 1, 20, 0), 8) == datetime(2024, 3, 1, 16, 0)
	assert store.local_day_start(datetime(2024, 3, 1, 10, 0), 8) == datetime(2024, 2, 29, 16, 0)
	assert store.local_day_start(datetime(2024, 3, 1, 10, 0), 0) == datetime(2024, 3, 1, 0, 0)


def test_stats(db, owner):
	old = store.add_word(db, owner, "tariff", now=NOW - timedelta(days=30))
	store.add_word(db, owner, "quota", now=NOW - timedelta(days=1))
	fresh = store.add_word(db, owner, "vendor", now=NOW)
	store.update_word(db, owner, old.id, mastered=True)
	store.record_review(db, owner, fresh.id, True, 4, now=NOW)
	store.add_word(db, "bob", "tariff", now=NOW)

	result = store.stats(db, owner, now=NOW, utc_offset_hours=8)
	assert result == {
		"totalWords": 3,
		"masteredWords": 1,
		"recentWords": 2,
		"wordsNeedingReview": 1,
		"reviewedToday": 1,
	}
