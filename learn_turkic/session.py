"""
Session composition and answer recording.

A session mixes due reviews with never-seen words. Due material wins the
available slots; new words fill what is left, most frequent first. The final
order is shuffled so reviews and new words are interleaved.
"""
import datetime
import enum
import os
import random
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from loguru import logger

from . import db, scheduler
from .db import ReviewRecord, UserSettings, Word
from .exceptions import WordNotFoundError

DEFAULT_REVIEW_QUOTA = int(os.environ.get("LEARN_TURKIC_REVIEW_QUOTA", "10"))
DEFAULT_NEW_QUOTA = int(os.environ.get("LEARN_TURKIC_NEW_QUOTA", "5"))


class SessionMode(str, enum.Enum):
    NEW = "new"
    REVIEW = "review"
    MIXED = "mixed"


def quotas_for_mode(mode: SessionMode) -> Tuple[int, int]:
    """Return (review_quota, new_quota) for a session mode."""
    review_quota = 0 if mode == SessionMode.NEW else DEFAULT_REVIEW_QUOTA
    new_quota = 0 if mode == SessionMode.REVIEW else DEFAULT_NEW_QUOTA
    return review_quota, new_quota


def build_session(
    due_records: Sequence[ReviewRecord],
    unseen_words: Sequence[Word],
    review_quota: int,
    new_quota: int,
    words_by_id: Mapping[int, Word],
    rng: Optional[random.Random] = None,
) -> List[Word]:
    """Pick due words first, top up with unseen words, then shuffle.

    ``due_records`` must already be ordered soonest-due first and
    ``unseen_words`` by ascending frequency rank.
    """
    result: List[Word] = []
    included: set = set()

    for record in due_records[:max(0, review_quota)]:
        word = words_by_id.get(record.word_id)
        if word is None:
            logger.debug(f"Skipping due record for unknown word {record.word_id}")
            continue
        if word.id in included:
            continue
        result.append(word)
        included.add(word.id)

    target = review_quota + new_quota
    if len(result) < target:
        remaining_slots = target - len(result)
        limit = max(new_quota, remaining_slots)
        added = 0
        for word in unseen_words:
            if added >= limit:
                break
            if word.id in included:
                continue
            result.append(word)
            included.add(word.id)
            added += 1

    (rng or random.Random()).shuffle(result)
    return result


def get_words_for_session(
    now: Optional[datetime.datetime] = None,
    mode: SessionMode = SessionMode.MIXED,
    review_quota: Optional[int] = None,
    new_quota: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> List[Word]:
    """Compose a session from the stores. Explicit quotas override ``mode``."""
    if now is None:
        now = datetime.datetime.now(datetime.timezone.utc)
    mode_review, mode_new = quotas_for_mode(mode)
    review_quota = mode_review if review_quota is None else review_quota
    new_quota = mode_new if new_quota is None else new_quota

    due = db.due_records(now)[:max(0, review_quota)]
    words_by_id = db.words_by_ids(r.word_id for r in due)
    # the new-word slice can never exceed the whole session size
    unseen = db.unseen_words(limit=review_quota + new_quota)

    words = build_session(due, unseen, review_quota, new_quota, words_by_id, rng=rng)
    logger.info(
        f"Built {mode.value} session with {len(words)} words "
        f"({len(words_by_id)} due, quotas review={review_quota} new={new_quota})"
    )
    return words


class _RecordLocks:
    """One lock per word id so answers to the same word never interleave."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[int, threading.Lock] = {}

    @contextmanager
    def hold(self, word_id: int) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(word_id, threading.Lock())
        with lock:
            yield


_record_locks = _RecordLocks()


def record_answer(
    word_id: int,
    correct: bool,
    now: Optional[datetime.datetime] = None,
) -> ReviewRecord:
    """Apply an answer to the word's review record and persist it.

    Creating the record, updating it and committing happen in one
    transaction, so a failure leaves the store as it was.
    """
    if now is None:
        now = datetime.datetime.now(datetime.timezone.utc)
    if db.word_by_id(word_id) is None:
        raise WordNotFoundError(word_id)

    with _record_locks.hold(word_id):
        with db.session_scope("record_answer") as s:
            record = db.get_or_create_record(s, word_id, now)
            scheduler.update(record, correct, now)
    logger.debug(
        f"Recorded {'correct' if correct else 'incorrect'} answer for word {word_id}: "
        f"reps={record.repetitions} interval={record.interval} status={record.status.value}"
    )
    return record


def complete_session(minutes: int, now: Optional[datetime.datetime] = None) -> UserSettings:
    """Credit study time (at least one minute) and advance the streak."""
    if now is None:
        now = datetime.datetime.now(datetime.timezone.utc)
    settings = db.get_settings()
    settings.add_study_time(max(1, minutes), now)
    db.save_settings(settings)
    logger.info(f"Session complete: streak={settings.current_streak} total_minutes={settings.total_study_minutes}")
    return settings
