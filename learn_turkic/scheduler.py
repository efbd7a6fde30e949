import datetime
import enum
from typing import Any, Optional, Tuple

MIN_EASE_FACTOR = 1.3
DEFAULT_EASE_FACTOR = 2.5
EASE_BONUS = 0.1
EASE_PENALTY = 0.2
MASTERED_REPETITIONS = 5
MASTERED_EASE_FACTOR = 2.5


class LearningStatus(str, enum.Enum):
    NEW = "new"
    LEARNING = "learning"
    REVIEWING = "reviewing"
    MASTERED = "mastered"


def add_calendar_days(moment: datetime.datetime, days: int) -> datetime.datetime:
    """Add ``days`` calendar days on the host's local calendar.

    The wall-clock time is kept across daylight-saving transitions, so the
    result is not always a multiple of 24 hours after ``moment``. Naive
    values are taken to be local time.
    """
    wall = moment.astimezone().replace(tzinfo=None) + datetime.timedelta(days=days)
    return wall.astimezone()


def calendar_days_between(earlier: datetime.datetime, later: datetime.datetime) -> int:
    """Number of local calendar days from ``earlier`` to ``later``."""
    return (later.astimezone().date() - earlier.astimezone().date()).days


def derive_status(
    repetitions: int,
    ease_factor: float,
    correct_count: int,
    incorrect_count: int,
) -> LearningStatus:
    if repetitions >= MASTERED_REPETITIONS and ease_factor >= MASTERED_EASE_FACTOR:
        return LearningStatus.MASTERED
    if repetitions > 0:
        return LearningStatus.REVIEWING
    if correct_count + incorrect_count > 0:
        return LearningStatus.LEARNING
    return LearningStatus.NEW


def accuracy(correct_count: int, incorrect_count: int) -> float:
    total = correct_count + incorrect_count
    if total == 0:
        return 0.0
    return correct_count / total


def as_aware(moment: datetime.datetime) -> datetime.datetime:
    """Naive datetimes are local time, like in ``add_calendar_days``."""
    if moment.tzinfo is None:
        return moment.astimezone()
    return moment


def is_due(
    next_review: datetime.datetime,
    status: LearningStatus,
    now: datetime.datetime,
) -> bool:
    return as_aware(next_review) <= as_aware(now) and status != LearningStatus.MASTERED


def sm2_schedule(
    interval: int,
    ease_factor: float,
    repetitions: int,
    correct: bool,
    now: datetime.datetime,
) -> Tuple[int, float, int, datetime.datetime]:
    """
    Binary-grade SM-2 scheduling.

    A correct answer grows the interval (1 day, then 6 days, then the
    previous interval times the ease factor, truncated to whole days) and
    raises the ease factor by 0.1. An incorrect answer resets repetitions,
    drops the interval back to 1 day and lowers the ease factor by 0.2.
    The ease factor never falls below 1.3.

    Returns:
        (new_interval, new_ease_factor, new_repetitions, next_review)
    """
    if correct:
        if repetitions == 0:
            new_interval = 1
        elif repetitions == 1:
            new_interval = 6
        else:
            new_interval = int(interval * ease_factor)
        new_reps = repetitions + 1
        new_ef = max(MIN_EASE_FACTOR, ease_factor + EASE_BONUS)
    else:
        new_reps = 0
        new_interval = 1
        new_ef = max(MIN_EASE_FACTOR, ease_factor - EASE_PENALTY)

    # a record read from outside the update path may carry interval 0
    new_interval = max(1, new_interval)
    next_review = add_calendar_days(now, new_interval)
    return new_interval, new_ef, new_reps, next_review


def update(record: Any, correct: bool, now: Optional[datetime.datetime] = None) -> Any:
    """Apply one graded answer to ``record`` in place and return it.

    ``record`` needs ``interval``, ``ease_factor``, ``repetitions``,
    ``correct_count``, ``incorrect_count``, ``last_reviewed_at`` and
    ``next_review`` attributes. Its status is derived from those, so nothing
    else is written.
    """
    if now is None:
        now = datetime.datetime.now(datetime.timezone.utc)

    record.last_reviewed_at = now
    if correct:
        record.correct_count = (record.correct_count or 0) + 1
    else:
        record.incorrect_count = (record.incorrect_count or 0) + 1

    new_interval, new_ef, new_reps, next_review = sm2_schedule(
        record.interval, record.ease_factor, record.repetitions, correct, now
    )
    record.interval = new_interval
    record.ease_factor = new_ef
    record.repetitions = new_reps
    record.next_review = next_review
    return record
