import os

import pytest
from click.testing import CliRunner
from sqlalchemy import create_engine

from learn_turkic import db
from learn_turkic.cli import cli

BUNDLED = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "data", "words.json")


@pytest.fixture(autouse=True)
def setup_db(tmp_path, monkeypatch):
    test_db = str(tmp_path / "test_cli.db")
    monkeypatch.setenv("LEARN_TURKIC_DB", test_db)
    db.engine = create_engine(f"sqlite:///{test_db}")
    db.SessionLocal = db.sessionmaker(bind=db.engine, expire_on_commit=False)
    yield


@pytest.fixture
def runner():
    return CliRunner()


def test_init_and_import(runner):
    result = runner.invoke(cli, ["init-db"])
    assert result.exit_code == 0
    assert "Database initialized." in result.output

    result = runner.invoke(cli, ["import-words", BUNDLED])
    assert result.exit_code == 0
    assert "Imported 6 words." in result.output


def test_review_command(runner):
    runner.invoke(cli, ["import-words", BUNDLED])
    result = runner.invoke(cli, ["review", "1", "correct"])
    assert result.exit_code == 0
    assert "reviewing" in result.output
    assert db.record_by_id(1).correct_count == 1


def test_review_unknown_word(runner):
    result = runner.invoke(cli, ["review", "999", "correct"])
    assert result.exit_code != 0
    assert "Word 999 not found" in result.output


def test_stats_command(runner):
    runner.invoke(cli, ["import-words", BUNDLED])
    runner.invoke(cli, ["review", "2", "incorrect"])
    result = runner.invoke(cli, ["stats"])
    assert result.exit_code == 0
    assert "learning: 1" in result.output
    assert "accuracy: 0.0%" in result.output
    assert "A1: 1/4" in result.output


def test_languages_toggle(runner):
    result = runner.invoke(cli, ["languages", "--toggle", "az"])
    assert result.exit_code == 0
    assert "[x] az Azerbaijani" in result.output
    assert db.get_settings().active_languages == ["kk", "tr", "uz", "az"]


def test_similarity_command(runner):
    result = runner.invoke(cli, ["similarity", "kitap", "kitab"])
    assert result.exit_code == 0
    assert "distance: 1" in result.output
    assert "similarity: 0.800" in result.output


def test_explore_command(runner):
    runner.invoke(cli, ["import-words", BUNDLED])
    result = runner.invoke(cli, ["explore", "--origin", "arabic"])
    assert result.exit_code == 0
    assert "#5" in result.output
    assert "кітап" in result.output


def test_session_command(runner):
    runner.invoke(cli, ["import-words", BUNDLED])
    # reveal + answer for each of the six words
    answers = "\ny\n" * 6
    result = runner.invoke(cli, ["session", "--mode", "new", "--seed", "3"], input=answers)
    assert result.exit_code == 0
    assert "Session complete: 5/5 correct" in result.output
    assert len(db.all_records()) == 5
    assert db.get_settings().current_streak == 1


def test_goal_command(runner):
    result = runner.invoke(cli, ["goal"])
    assert result.exit_code == 0
    assert "Daily goal: 0/15 min" in result.output

    result = runner.invoke(cli, ["goal", "25"])
    assert result.exit_code == 0
    assert "Daily goal: 0/25 min" in result.output
    assert db.get_settings().daily_goal_minutes == 25

    result = runner.invoke(cli, ["goal", "7"])
    assert result.exit_code != 0
    assert "steps of 5" in result.output

    result = runner.invoke(cli, ["stats"])
    assert "Daily goal: 0/25 min" in result.output
