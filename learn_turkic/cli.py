import datetime
import time
from typing import Optional

import click

from . import db, session, similarity, stats
from .exceptions import TurkicCoreError
from .log import configure_logging
from .scheduler import LearningStatus
from .structured import LANGUAGE_CODES, LANGUAGE_NAMES, LEVELS, ORIGINS


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _show_word(word: db.Word, languages: list, interface_language: str) -> None:
    click.echo(f"\n{word.gloss(interface_language)}  [{word.pos}, {word.level}, {word.origin}]")
    for code in languages:
        latin = word.latin(code)
        extra = f" ({latin})" if latin else ""
        click.echo(f"  {code}: {word.native(code)}{extra}  /{word.ipa(code)}/")
    band = similarity.score_band(word.cognate_score)
    click.echo(f"  cognate score: {word.cognate_score:.2f} ({band})")


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def cli(debug: bool) -> None:
    """Learn Turkic vocabulary through cognates and spaced repetition."""
    configure_logging(debug)
    db.init_db()


@cli.command("init-db")
def init_db() -> None:
    """Initialize the learning database."""
    db.init_db()
    click.echo("Database initialized.")


@cli.command("import-words")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def import_words(path: str) -> None:
    """Import words from a JSON dataset (existing ids are skipped)."""
    try:
        count = db.import_words(path)
    except TurkicCoreError as exc:
        raise click.ClickException(exc.message)
    click.echo(f"Imported {count} words.")


@cli.command("session")
@click.option("--mode", type=click.Choice([m.value for m in session.SessionMode]), default="mixed")
@click.option("--seed", type=int, default=None, help="Seed the shuffle for a repeatable order")
def run_session(mode: str, seed: Optional[int]) -> None:
    """Study a session of due and new words."""
    import random

    settings = db.get_settings()
    rng = random.Random(seed) if seed is not None else None
    words = session.get_words_for_session(_now(), mode=session.SessionMode(mode), rng=rng)
    if not words:
        click.echo("Nothing to study right now. All caught up!")
        return

    started = time.monotonic()
    correct = 0
    for word in words:
        click.echo(f"\n{word.gloss(settings.interface_language)}")
        click.prompt("Press enter to reveal", default="", show_default=False)
        _show_word(word, settings.active_languages, settings.interface_language)
        remembered = click.confirm("Did you remember it?", default=True)
        session.record_answer(word.id, remembered, _now())
        correct += int(remembered)

    minutes = int((time.monotonic() - started) / 60)
    settings = session.complete_session(minutes, _now())
    click.echo(f"\nSession complete: {correct}/{len(words)} correct. Streak: {settings.current_streak} days.")


@cli.command("review")
@click.argument("word_id", type=int)
@click.argument("result", type=click.Choice(["correct", "incorrect"]))
def review(word_id: int, result: str) -> None:
    """Record an answer for a single word."""
    try:
        record = session.record_answer(word_id, result == "correct", _now())
    except TurkicCoreError as exc:
        raise click.ClickException(exc.message)
    click.echo(
        f"Word {word_id}: {record.status.value}, next review in {record.interval} day(s) "
        f"(ease {record.ease_factor:.2f})"
    )


@cli.command("stats")
def show_stats() -> None:
    """Show learning statistics."""
    now = _now()
    summary = stats.get_statistics(now)
    settings = db.get_settings()
    click.echo(f"Streak: {settings.current_streak} days, {settings.total_study_minutes} minutes studied")
    done, target = settings.goal_progress(now)
    click.echo(f"Daily goal: {done}/{target} min")
    for status, count in (
        (LearningStatus.LEARNING, summary.learning_count),
        (LearningStatus.REVIEWING, summary.reviewing_count),
        (LearningStatus.MASTERED, summary.mastered_count),
    ):
        click.echo(f"  {status.value}: {count}")
    click.echo(f"  due now: {summary.due_count}")
    click.echo(f"  total reviews: {summary.total_reviews}")
    click.echo(f"  accuracy: {summary.accuracy * 100:.1f}%")
    for level, (learned, total) in stats.level_progress(db.all_words(), db.all_records()).items():
        click.echo(f"  {level}: {learned}/{total}")


@cli.command("languages")
@click.option("--toggle", "code", type=click.Choice(LANGUAGE_CODES), default=None)
def languages(code: Optional[str]) -> None:
    """List active languages, or toggle one on or off."""
    settings = db.get_settings()
    if code:
        try:
            settings.toggle_language(code)
        except TurkicCoreError as exc:
            raise click.ClickException(exc.message)
        db.save_settings(settings)
    for lang in LANGUAGE_CODES:
        mark = "x" if settings.is_language_active(lang) else " "
        click.echo(f"[{mark}] {lang} {LANGUAGE_NAMES[lang]}")


@cli.command("goal")
@click.argument("minutes", type=int, required=False)
def goal(minutes: Optional[int]) -> None:
    """Show the daily goal, or set it (5-60 minutes in steps of 5)."""
    settings = db.get_settings()
    if minutes is not None:
        try:
            settings.set_daily_goal(minutes)
        except TurkicCoreError as exc:
            raise click.ClickException(exc.message)
        db.save_settings(settings)
    done, target = settings.goal_progress(_now())
    click.echo(f"Daily goal: {done}/{target} min")


@cli.command("explore")
@click.option("--query", default=None, help="Search glosses and native forms")
@click.option("--level", type=click.Choice(LEVELS), default=None)
@click.option("--origin", type=click.Choice(ORIGINS), default=None)
@click.option("--limit", type=int, default=20)
def explore(query: Optional[str], level: Optional[str], origin: Optional[str], limit: int) -> None:
    """Browse the word list."""
    settings = db.get_settings()
    words = db.search_words(query=query, level=level, origin=origin)
    if not words:
        click.echo("No words found.")
        return
    for word in words[:limit]:
        forms = " · ".join(word.native(code) for code in settings.active_languages)
        click.echo(f"#{word.id} {word.gloss(settings.interface_language)}: {forms} [{word.level}]")
    if len(words) > limit:
        click.echo(f"... and {len(words) - limit} more")


@cli.command("similarity")
@click.argument("forms", nargs=-1, required=True)
def show_similarity(forms: tuple) -> None:
    """Score how similar word forms are."""
    if len(forms) == 2:
        a, b = forms
        click.echo(f"distance: {similarity.edit_distance(a, b)}")
        click.echo(f"similarity: {similarity.similarity(a, b):.3f}")
    score = similarity.cognate_score(forms)
    click.echo(f"cognate score: {score:.3f} ({similarity.score_band(score)})")


if __name__ == "__main__":
    cli()
