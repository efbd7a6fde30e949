import datetime
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from . import db
from .db import ReviewRecord, Word
from .scheduler import LearningStatus
from .structured import LEVELS


@dataclass
class ProgressStatistics:
    new_count: int = 0
    learning_count: int = 0
    reviewing_count: int = 0
    mastered_count: int = 0
    due_count: int = 0
    total_reviews: int = 0
    accuracy: float = 0.0

    @property
    def total_studied(self) -> int:
        return self.learning_count + self.reviewing_count + self.mastered_count


def aggregate(records: Iterable[ReviewRecord], now: datetime.datetime) -> ProgressStatistics:
    """Classify every record by status and due-ness in a single pass."""
    stats = ProgressStatistics()
    total_correct = 0
    total_incorrect = 0
    for record in records:
        status = record.status
        if status == LearningStatus.MASTERED:
            stats.mastered_count += 1
        elif status == LearningStatus.REVIEWING:
            stats.reviewing_count += 1
        elif status == LearningStatus.LEARNING:
            stats.learning_count += 1
        else:
            stats.new_count += 1
        if record.is_due(now):
            stats.due_count += 1
        total_correct += record.correct_count
        total_incorrect += record.incorrect_count

    stats.total_reviews = total_correct + total_incorrect
    stats.accuracy = total_correct / stats.total_reviews if stats.total_reviews else 0.0
    return stats


def get_statistics(now: Optional[datetime.datetime] = None) -> ProgressStatistics:
    if now is None:
        now = datetime.datetime.now(datetime.timezone.utc)
    return aggregate(db.all_records(), now)


def level_progress(
    words: Iterable[Word],
    records: Iterable[ReviewRecord],
) -> Dict[str, Tuple[int, int]]:
    """(learned, total) per level, where learned means the word has a record."""
    learned_ids = {r.word_id for r in records}
    progress: Dict[str, Tuple[int, int]] = {level: (0, 0) for level in LEVELS}
    for word in words:
        learned, total = progress.get(word.level, (0, 0))
        if word.id in learned_ids:
            learned += 1
        progress[word.level] = (learned, total + 1)
    return progress
