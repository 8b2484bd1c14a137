import random
from datetime import datetime, timedelta

import pytest

from toeic_api.scheduler import (
	MIN_EASE_FACTOR,
	ReviewState,
	next_ease_factor,
	next_interval,
	schedule_review,
)

NOW = datetime(2024, 3, 1, 9, 30)


def test_first_correct_review_is_one_day():
	state = schedule_review(ReviewState(review_count=0, interval=1, ease_factor=2.5), True, 3, now=NOW)
	assert state.interval == 1
	assert state.next_review_date == NOW + timedelta(days=1)


def test_second_correct_review_is_six_days():
	state = schedule_review(ReviewState(review_count=1, interval=1, ease_factor=2.5), True, 3, now=NOW)
	assert state.interval == 6
	assert state.next_review_date == NOW + timedelta(days=6)


def test_third_correct_review_multiplies_by_new_ease():
	state = schedule_review(ReviewState(review_count=2, interval=6, ease_factor=2.5), True, 3, now=NOW)
	assert state.ease_factor == pytest.approx(2.36)
	assert state.interval == 14


def test_incorrect_review_resets_interval_and_penalizes_ease():
	state = schedule_review(ReviewState(review_count=5, interval=14, ease_factor=2.36), False, now=NOW)
	assert state.interval == 1
	assert state.ease_factor == pytest.approx(2.16)
	assert state.next_review_date == NOW + timedelta(days=1)


def test_incorrect_review_ignores_difficulty():
	a = schedule_review(ReviewState(review_count=3, interval=10), False, None, now=NOW)
	b = schedule_review(ReviewState(review_count=3, interval=10), False, 5, now=NOW)
	assert a == b


def test_ease_is_floored_after_incorrect():
	state = schedule_review(ReviewState(review_count=4, interval=3, ease_factor=1.35), False, now=NOW)
	assert state.ease_factor == MIN_EASE_FACTOR


def test_repeated_hard_reviews_never_go_below_floor():
	state = ReviewState(ease_factor=1.4)
	for _ in range(10):
		state = schedule_review(state, True, 1, now=NOW)
		assert state.ease_factor >= MIN_EASE_FACTOR
	assert state.ease_factor == MIN_EASE_FACTOR


@pytest.mark.parametrize("difficulty,delta", [(5, 0.1), (4, 0.0), (3, -0.14), (2, -0.32), (1, -0.54)])
def test_ease_delta_by_difficulty(difficulty, delta):
	assert next_ease_factor(2.5, True, difficulty) == pytest.approx(2.5 + delta)


def test_interval_rounds_half_up():
	# 5 * 2.5 = 12.5; Python's round() would give 12
	assert next_interval(review_count=3, interval=5, ease_factor=2.5, correct=True) == 13


def test_counters_advance_by_one():
	before = ReviewState(review_count=7, correct_count=4, incorrect_count=3, interval=9, ease_factor=2.0)
	right = schedule_review(before, True, 4, now=NOW)
	wrong = schedule_review(before, False, now=NOW)
	assert (right.review_count, right.correct_count, right.incorrect_count) == (8, 5, 3)
	assert (wrong.review_count, wrong.correct_count, wrong.incorrect_count) == (8, 4, 4)
	assert right.last_reviewed_at == NOW == wrong.last_reviewed_at


@pytest.mark.parametrize("difficulty", [0, 6, -1, 2.5, "3", True])
def test_out_of_range_difficulty_is_rejected(difficulty):
	with pytest.raises(ValueError):
		schedule_review(ReviewState(), True, difficulty, now=NOW)


def test_missing_difficulty_on_correct_review_is_rejected():
	with pytest.raises(ValueError):
		schedule_review(ReviewState(), True, None, now=NOW)


def test_new_word_reviewed_three_times():
	state = ReviewState(review_count=0, interval=1, ease_factor=2.5)
	intervals = []
	for _ in range(3):
		state = schedule_review(state, True, 3, now=NOW)
		intervals.append(state.interval)
	# ease drops by 0.14 per "medium" review: 2.36, 2.22, 2.08
	assert intervals == [1, 6, 12]
	assert state.ease_factor == pytest.approx(2.08)
	assert state.review_count == 3


def test_random_review_sequences_keep_invariants():
	rng = random.Random(20240301)
	for _ in range(50):
		state = ReviewState()
		now = NOW
		for _ in range(40):
			correct = rng.random() < 0.7
			difficulty = rng.randint(1, 5) if correct else None
			before = state
			state = schedule_review(state, correct, difficulty, now=now)
			assert state.ease_factor >= MIN_EASE_FACTOR
			assert state.interval >= 1
			assert state.next_review_date >= now
			assert state.review_count == before.review_count + 1
			assert (state.correct_count - before.correct_count) + (state.incorrect_count - before.incorrect_count) == 1
			now = now + timedelta(days=rng.randint(0, state.interval))
