from __future__ import annotations
import datetime
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from loguru import logger
from sqlalchemy import Boolean, DateTime, Float, Integer, String, Text, and_, case, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.types import TypeDecorator

from . import scheduler
from .exceptions import SettingsError, StorageError
from .scheduler import LearningStatus
from .structured import LANGUAGE_CODES, WordRow, load_words_file


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class UTCDateTime(TypeDecorator):
    """Persist aware datetimes as naive UTC and hand them back as aware UTC."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value: Any, dialect):  # type: ignore[override]
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.astimezone()
        return value.astimezone(datetime.timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value: Any, dialect):  # type: ignore[override]
        if value is None:
            return None
        return value.replace(tzinfo=datetime.timezone.utc)


class Base(DeclarativeBase):
    pass


DB_PATH: str = os.environ.get("LEARN_TURKIC_DB", "turkic_learning.db")
engine = create_engine(f"sqlite:///{DB_PATH}")
# Prevent attribute expiration on commit so returned objects remain accessible
SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)


class Word(Base):
    """A vocabulary entry with its forms in every supported language."""
    __tablename__ = "words"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    ru: Mapped[str] = mapped_column(String, nullable=False)
    en: Mapped[str] = mapped_column(String, nullable=False)
    pos: Mapped[str] = mapped_column(String, nullable=False)
    level: Mapped[str] = mapped_column(String, nullable=False, default="A1")
    frequency: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    cognate_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    origin: Mapped[str] = mapped_column(String, nullable=False)
    # Kazakh
    kk_native: Mapped[str] = mapped_column(String, nullable=False)
    kk_latin: Mapped[Optional[str]] = mapped_column(String)
    kk_ipa: Mapped[str] = mapped_column(String, nullable=False)
    # Turkish
    tr_native: Mapped[str] = mapped_column(String, nullable=False)
    tr_latin: Mapped[Optional[str]] = mapped_column(String)
    tr_ipa: Mapped[str] = mapped_column(String, nullable=False)
    # Uzbek
    uz_native: Mapped[str] = mapped_column(String, nullable=False)
    uz_latin: Mapped[Optional[str]] = mapped_column(String)
    uz_ipa: Mapped[str] = mapped_column(String, nullable=False)
    # Kyrgyz
    ky_native: Mapped[str] = mapped_column(String, nullable=False)
    ky_latin: Mapped[Optional[str]] = mapped_column(String)
    ky_ipa: Mapped[str] = mapped_column(String, nullable=False)
    # Tatar
    tt_native: Mapped[str] = mapped_column(String, nullable=False)
    tt_latin: Mapped[Optional[str]] = mapped_column(String)
    tt_ipa: Mapped[str] = mapped_column(String, nullable=False)
    # Azerbaijani
    az_native: Mapped[str] = mapped_column(String, nullable=False)
    az_latin: Mapped[Optional[str]] = mapped_column(String)
    az_ipa: Mapped[str] = mapped_column(String, nullable=False)

    @classmethod
    def from_row(cls, row: WordRow) -> "Word":
        columns: Dict[str, Any] = {}
        for code in LANGUAGE_CODES:
            form = row.forms[code]
            columns[f"{code}_native"] = form.native
            columns[f"{code}_latin"] = form.latin
            columns[f"{code}_ipa"] = form.ipa
        return cls(
            id=row.id,
            ru=row.ru,
            en=row.en,
            pos=row.pos,
            level=row.level,
            frequency=row.frequency,
            cognate_score=row.cognate_score,
            origin=row.origin,
            **columns,
        )

    def native(self, code: str) -> str:
        if code not in LANGUAGE_CODES:
            return ""
        return getattr(self, f"{code}_native")

    def latin(self, code: str) -> Optional[str]:
        if code not in LANGUAGE_CODES:
            return None
        return getattr(self, f"{code}_latin")

    def ipa(self, code: str) -> str:
        if code not in LANGUAGE_CODES:
            return ""
        return getattr(self, f"{code}_ipa")

    def forms(self, codes: Optional[Iterable[str]] = None) -> List[str]:
        """Native forms for ``codes`` (all languages by default), in order."""
        return [self.native(code) for code in (codes or LANGUAGE_CODES)]

    def gloss(self, interface_language: str = "ru") -> str:
        return self.en if interface_language == "en" else self.ru


class ReviewRecord(Base):
    """Learning state for one word. Absence of a record means the word is new."""
    __tablename__ = "review_records"
    word_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    ease_factor: Mapped[float] = mapped_column(Float, nullable=False, default=scheduler.DEFAULT_EASE_FACTOR)
    interval: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    repetitions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    next_review: Mapped[datetime.datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow, index=True)
    correct_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    incorrect_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_reviewed_at: Mapped[Optional[datetime.datetime]] = mapped_column(UTCDateTime)
    first_seen_at: Mapped[datetime.datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)

    @classmethod
    def fresh(cls, word_id: int, now: datetime.datetime) -> "ReviewRecord":
        return cls(
            word_id=word_id,
            ease_factor=scheduler.DEFAULT_EASE_FACTOR,
            interval=1,
            repetitions=0,
            next_review=now,
            correct_count=0,
            incorrect_count=0,
            last_reviewed_at=None,
            first_seen_at=now,
        )

    @hybrid_property
    def status(self) -> LearningStatus:
        return scheduler.derive_status(
            self.repetitions, self.ease_factor, self.correct_count, self.incorrect_count
        )

    @status.inplace.expression
    @classmethod
    def _status_expression(cls) -> Any:
        return case(
            (
                and_(
                    cls.repetitions >= scheduler.MASTERED_REPETITIONS,
                    cls.ease_factor >= scheduler.MASTERED_EASE_FACTOR,
                ),
                LearningStatus.MASTERED.value,
            ),
            (cls.repetitions > 0, LearningStatus.REVIEWING.value),
            (cls.correct_count + cls.incorrect_count > 0, LearningStatus.LEARNING.value),
            else_=LearningStatus.NEW.value,
        )

    @property
    def accuracy(self) -> float:
        return scheduler.accuracy(self.correct_count, self.incorrect_count)

    def is_due(self, now: datetime.datetime) -> bool:
        return scheduler.is_due(self.next_review, self.status, now)


MIN_DAILY_GOAL = 5
MAX_DAILY_GOAL = 60
DAILY_GOAL_STEP = 5


class UserSettings(Base):
    __tablename__ = "user_settings"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    interface_language: Mapped[str] = mapped_column(String, nullable=False, default="ru")
    active_languages_raw: Mapped[str] = mapped_column(Text, nullable=False, default="kk,tr,uz")
    daily_goal_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=15)
    sound_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    haptic_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_session_date: Mapped[Optional[datetime.datetime]] = mapped_column(UTCDateTime)
    total_study_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # minutes studied on the local day of last_session_date
    today_study_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime.datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)

    @property
    def active_languages(self) -> List[str]:
        return [code for code in (self.active_languages_raw or "").split(",") if code]

    @active_languages.setter
    def active_languages(self, codes: Iterable[str]) -> None:
        ordered: List[str] = []
        for code in codes:
            if code not in ordered:
                ordered.append(code)
        self.active_languages_raw = ",".join(ordered)

    def is_language_active(self, code: str) -> bool:
        return code in self.active_languages

    def toggle_language(self, code: str) -> List[str]:
        """Add ``code`` to the active languages, or remove it if present."""
        if code not in LANGUAGE_CODES:
            raise SettingsError(f"Unknown language code '{code}'", {"code": code})
        langs = self.active_languages
        if code in langs:
            if len(langs) == 1:
                raise SettingsError("At least one language must stay active", {"code": code})
            langs.remove(code)
        else:
            langs.append(code)
        self.active_languages = langs
        return langs

    def update_streak(self, now: datetime.datetime) -> None:
        """Count consecutive local calendar days with a finished session."""
        if self.last_session_date is not None:
            days = scheduler.calendar_days_between(self.last_session_date, now)
            if days == 0:
                return
            if days == 1:
                self.current_streak = (self.current_streak or 0) + 1
            else:
                self.current_streak = 1
        else:
            self.current_streak = 1
        self.last_session_date = now

    def _studied_today(self, now: datetime.datetime) -> bool:
        return (
            self.last_session_date is not None
            and scheduler.calendar_days_between(self.last_session_date, now) == 0
        )

    def add_study_time(self, minutes: int, now: datetime.datetime) -> None:
        if not self._studied_today(now):
            self.today_study_minutes = 0
        self.today_study_minutes = (self.today_study_minutes or 0) + minutes
        self.total_study_minutes = (self.total_study_minutes or 0) + minutes
        self.update_streak(now)

    def set_daily_goal(self, minutes: int) -> None:
        if not MIN_DAILY_GOAL <= minutes <= MAX_DAILY_GOAL or minutes % DAILY_GOAL_STEP:
            raise SettingsError(
                f"Daily goal must be {MIN_DAILY_GOAL}-{MAX_DAILY_GOAL} minutes in steps of {DAILY_GOAL_STEP}",
                {"minutes": minutes},
            )
        self.daily_goal_minutes = minutes

    def goal_progress(self, now: datetime.datetime) -> Tuple[int, int]:
        """(minutes studied today capped at the goal, goal)."""
        goal = self.daily_goal_minutes or 0
        done = (self.today_study_minutes or 0) if self._studied_today(now) else 0
        return min(done, goal), goal


def init_db() -> None:
    """Initialize the database by creating all tables."""
    Base.metadata.create_all(bind=engine)


def get_session() -> Session:
    return SessionLocal()


@contextmanager
def session_scope(action: str, commit: bool = True) -> Iterator[Session]:
    """Yield a session; storage failures surface as StorageError."""
    session: Session = get_session()
    try:
        yield session
        if commit:
            session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error(f"Storage failure during {action}: {exc}")
        raise StorageError(f"Storage failure during {action}", {"error": str(exc)}) from exc
    finally:
        session.close()


# ----------------------------------------------------------------------
# Item store
# ----------------------------------------------------------------------

def all_words() -> List[Word]:
    with session_scope("all_words", commit=False) as session:
        return session.query(Word).order_by(Word.id).all()


def words_by_frequency() -> List[Word]:
    with session_scope("words_by_frequency", commit=False) as session:
        return session.query(Word).order_by(Word.frequency.asc(), Word.id.asc()).all()


def word_by_id(word_id: int) -> Optional[Word]:
    with session_scope("word_by_id", commit=False) as session:
        return session.get(Word, word_id)


def words_by_ids(word_ids: Iterable[int]) -> Dict[int, Word]:
    ids = list(word_ids)
    if not ids:
        return {}
    with session_scope("words_by_ids", commit=False) as session:
        rows = session.query(Word).filter(Word.id.in_(ids)).all()
        return {w.id: w for w in rows}


def unseen_words(limit: Optional[int] = None) -> List[Word]:
    """Words without a review record, most frequent first."""
    with session_scope("unseen_words", commit=False) as session:
        query = (
            session.query(Word)
            .outerjoin(ReviewRecord, ReviewRecord.word_id == Word.id)
            .filter(ReviewRecord.word_id.is_(None))
            .order_by(Word.frequency.asc(), Word.id.asc())
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()


def search_words(
    query: Optional[str] = None,
    level: Optional[str] = None,
    origin: Optional[str] = None,
) -> List[Word]:
    """Filter the word list by gloss or native form, level and origin.

    Matching is done in Python because SQLite's lower() only folds ASCII.
    """
    words = words_by_frequency()
    if query:
        needle = query.casefold()
        words = [
            w for w in words
            if needle in w.ru.casefold()
            or needle in w.en.casefold()
            or any(needle in form.casefold() for form in w.forms())
        ]
    if level:
        words = [w for w in words if w.level == level]
    if origin:
        words = [w for w in words if w.origin == origin]
    return words


def import_words(path: Union[str, Path]) -> int:
    """Import words from a JSON dataset. Skips ids already present.
    Returns the number of newly imported words."""
    dataset = load_words_file(path)
    imported = 0
    with session_scope("import_words") as session:
        existing = {row[0] for row in session.query(Word.id).all()}
        for row in dataset.words:
            if row.id in existing:
                continue
            session.add(Word.from_row(row))
            existing.add(row.id)
            imported += 1
    logger.info(f"Imported {imported} words from {path} (dataset version {dataset.version})")
    return imported


# ----------------------------------------------------------------------
# Record store
# ----------------------------------------------------------------------

def due_records(now: datetime.datetime) -> List[ReviewRecord]:
    """Non-mastered records whose next review is not after ``now``, soonest first."""
    with session_scope("due_records", commit=False) as session:
        return (
            session.query(ReviewRecord)
            .filter(
                ReviewRecord.next_review <= now,
                ReviewRecord.status != LearningStatus.MASTERED.value,
            )
            .order_by(ReviewRecord.next_review.asc(), ReviewRecord.word_id.asc())
            .all()
        )


def record_by_id(word_id: int) -> Optional[ReviewRecord]:
    with session_scope("record_by_id", commit=False) as session:
        return session.get(ReviewRecord, word_id)


def all_records() -> List[ReviewRecord]:
    with session_scope("all_records", commit=False) as session:
        return session.query(ReviewRecord).order_by(ReviewRecord.word_id).all()


def get_or_create_record(session: Session, word_id: int, now: datetime.datetime) -> ReviewRecord:
    """Load the record for ``word_id`` in ``session``, adding a fresh one if missing.

    Nothing is committed here; the caller's transaction decides.
    """
    record = session.get(ReviewRecord, word_id)
    if record is None:
        record = ReviewRecord.fresh(word_id, now)
        session.add(record)
        session.flush()
        logger.debug(f"Created review record for word {word_id}")
    return record


def find_or_insert(word_id: int, now: datetime.datetime) -> ReviewRecord:
    """Return the record for ``word_id``, creating a fresh one if missing."""
    with session_scope("find_or_insert") as session:
        record = get_or_create_record(session, word_id, now)
        session.expunge(record)
    return record


def upsert(record: ReviewRecord) -> None:
    """Create or overwrite ``record``."""
    with session_scope("upsert") as session:
        session.merge(record)
    logger.debug(
        f"Saved record {record.word_id}: reps={record.repetitions} "
        f"interval={record.interval} ease={record.ease_factor:.2f} status={record.status.value}"
    )


# ----------------------------------------------------------------------
# Settings store
# ----------------------------------------------------------------------

def get_settings() -> UserSettings:
    """Return the learner settings, creating defaults on first use."""
    with session_scope("get_settings") as session:
        settings = session.query(UserSettings).order_by(UserSettings.id).first()
        if settings is None:
            settings = UserSettings(
                interface_language="ru",
                active_languages_raw="kk,tr,uz",
                daily_goal_minutes=15,
                sound_enabled=True,
                haptic_enabled=True,
                current_streak=0,
                total_study_minutes=0,
                today_study_minutes=0,
                created_at=_utcnow(),
            )
            session.add(settings)
            session.flush()
            logger.info("Created default user settings")
        session.expunge(settings)
    return settings


def save_settings(settings: UserSettings) -> None:
    with session_scope("save_settings") as session:
        session.merge(settings)


__all__ = [
    "Base", "Word", "ReviewRecord", "UserSettings",
    "init_db", "get_session", "session_scope",
    "all_words", "words_by_frequency", "word_by_id", "words_by_ids",
    "unseen_words", "search_words", "import_words",
    "due_records", "record_by_id", "all_records",
    "get_or_create_record", "find_or_insert", "upsert",
    "get_settings", "save_settings",
]
