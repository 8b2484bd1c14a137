"""Spaced-repetition review scheduling.

A simplified SM-2 variant. A correct answer adjusts the ease factor from a
1-5 difficulty rating (5 = felt easy) and grows the interval: 1 day after
the first review, 6 days after the second, then ``interval * ease``. A wrong
answer resets the interval to 1 day and costs 0.2 ease. Ease never drops
below ``MIN_EASE_FACTOR``.

Unlike full SM-2 the update ignores how overdue the review was.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Optional


MIN_EASE_FACTOR = 1.3
DEFAULT_EASE_FACTOR = 2.5
DEFAULT_INTERVAL = 1
INCORRECT_EASE_PENALTY = 0.2
FIRST_INTERVAL = 1
SECOND_INTERVAL = 6
MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5


@dataclass(frozen=True)
class ReviewState:
	review_count: int = 0
	correct_count: int = 0
	incorrect_count: int = 0
	ease_factor: float = DEFAULT_EASE_FACTOR
	interval: int = DEFAULT_INTERVAL
	next_review_date: Optional[datetime] = None
	last_reviewed_at: Optional[datetime] = None


def validate_difficulty(difficulty: int) -> int:
	# bool is an int subclass; True/False are not ratings
	if isinstance(difficulty, bool) or not isinstance(difficulty, int):
		raise ValueError(f"difficulty must be an integer, got {difficulty!r}")
	if not (MIN_DIFFICULTY <= difficulty <= MAX_DIFFICULTY):
		raise ValueError(f"difficulty must be between {MIN_DIFFICULTY} and {MAX_DIFFICULTY}, got {difficulty}")
	return difficulty


def _round_half_up(value: float) -> int:
	return int(math.floor(value + 0.5))


def next_ease_factor(ease_factor: float, correct: bool, difficulty: Optional[int] = None) -> float:
	if not correct:
		return max(MIN_EASE_FACTOR, ease_factor - INCORRECT_EASE_PENALTY)
	q = 5 - validate_difficulty(difficulty)
	return max(MIN_EASE_FACTOR, ease_factor + (0.1 - q * (0.08 + q * 0.02)))


def next_interval(review_count: int, interval: int, ease_factor: float, correct: bool) -> int:
	"""Interval in days chosen from the review count *before* this review."""
	if not correct:
		return FIRST_INTERVAL
	if review_count == 0:
		return FIRST_INTERVAL
	if review_count == 1:
		return SECOND_INTERVAL
	return max(1, _round_half_up(interval * ease_factor))


def schedule_review(
	current: ReviewState,
	correct: bool,
	difficulty: Optional[int] = None,
	*,
	now: Optional[datetime] = None,
) -> ReviewState:
	"""Return the state after one review of a word.

	``difficulty`` is only read for correct answers and must then be an
	integer in [1, 5]; out-of-range values raise ``ValueError`` rather than
	being clamped.
	"""
	now = now or datetime.utcnow()
	ease = next_ease_factor(current.ease_factor, correct, difficulty)
	interval = next_interval(current.review_count, current.interval, ease, correct)
	return replace(
		current,
		review_count=current.review_count + 1,
		correct_count=current.correct_count + (1 if correct else 0),
		incorrect_count=current.incorrect_count + (0 if correct else 1),
		ease_factor=ease,
		interval=interval,
		next_review_date=now + timedelta(days=interval),
		last_reviewed_at=now,
	)
