import datetime

import pytest
from sqlalchemy import create_engine

from learn_turkic import db, session
from learn_turkic.db import UserSettings
from learn_turkic.exceptions import SettingsError

NOW = datetime.datetime(2026, 3, 2, 12, 0, tzinfo=datetime.timezone.utc)


@pytest.fixture(autouse=True)
def setup_db(tmp_path, monkeypatch):
    test_db = str(tmp_path / "test_settings.db")
    monkeypatch.setenv("LEARN_TURKIC_DB", test_db)
    db.engine = create_engine(f"sqlite:///{test_db}")
    db.SessionLocal = db.sessionmaker(bind=db.engine, expire_on_commit=False)
    db.init_db()
    yield


def test_settings_created_on_first_use():
    settings = db.get_settings()
    assert settings.active_languages == ["kk", "tr", "uz"]
    assert settings.daily_goal_minutes == 15
    assert settings.current_streak == 0
    assert settings.last_session_date is None

    again = db.get_settings()
    assert again.id == settings.id
    s = db.get_session()
    assert s.query(UserSettings).count() == 1
    s.close()


def test_toggle_language_appends_and_removes():
    settings = db.get_settings()
    assert settings.toggle_language("ky") == ["kk", "tr", "uz", "ky"]
    assert settings.toggle_language("tr") == ["kk", "uz", "ky"]
    db.save_settings(settings)

    stored = db.get_settings()
    assert stored.active_languages == ["kk", "uz", "ky"]
    assert stored.is_language_active("ky")
    assert not stored.is_language_active("tr")


def test_toggle_unknown_language():
    settings = db.get_settings()
    with pytest.raises(SettingsError):
        settings.toggle_language("en")


def test_last_language_cannot_be_removed():
    settings = db.get_settings()
    settings.active_languages = ["tt"]
    with pytest.raises(SettingsError):
        settings.toggle_language("tt")
    assert settings.active_languages == ["tt"]


def test_active_languages_setter_drops_duplicates():
    settings = UserSettings()
    settings.active_languages = ["az", "kk", "az"]
    assert settings.active_languages == ["az", "kk"]


def test_streak_progression():
    settings = UserSettings(current_streak=0, total_study_minutes=0)
    settings.update_streak(NOW)
    assert settings.current_streak == 1

    # same day: nothing changes
    settings.update_streak(NOW + datetime.timedelta(minutes=10))
    assert settings.current_streak == 1
    assert settings.last_session_date == NOW

    next_day = NOW + datetime.timedelta(days=1)
    settings.update_streak(next_day)
    assert settings.current_streak == 2
    assert settings.last_session_date == next_day

    settings.update_streak(next_day + datetime.timedelta(days=3))
    assert settings.current_streak == 1


def test_complete_session_adds_time_and_streak():
    settings = session.complete_session(0, NOW)
    assert settings.total_study_minutes == 1
    assert settings.current_streak == 1

    session.complete_session(12, NOW + datetime.timedelta(days=1))
    stored = db.get_settings()
    assert stored.total_study_minutes == 13
    assert stored.current_streak == 2


def test_daily_goal_defaults_and_validation():
    settings = db.get_settings()
    assert settings.goal_progress(NOW) == (0, 15)

    settings.set_daily_goal(30)
    db.save_settings(settings)
    assert db.get_settings().daily_goal_minutes == 30

    for bad in (0, 3, 65, 12):
        with pytest.raises(SettingsError):
            settings.set_daily_goal(bad)
    assert settings.daily_goal_minutes == 30


def test_goal_progress_counts_today_only():
    settings = session.complete_session(10, NOW)
    assert settings.goal_progress(NOW) == (10, 15)

    settings = session.complete_session(10, NOW + datetime.timedelta(minutes=20))
    assert settings.total_study_minutes == 20
    # capped at the goal
    assert settings.goal_progress(NOW) == (15, 15)

    tomorrow = NOW + datetime.timedelta(days=1)
    assert db.get_settings().goal_progress(tomorrow) == (0, 15)
    settings = session.complete_session(4, tomorrow)
    assert settings.goal_progress(tomorrow) == (4, 15)
    assert settings.total_study_minutes == 24
