"""
Word store backed by the `words` and `daily_words` tables.
"""
import os
import random
import re

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from db.models import Word, DailyWord

W5 = re.compile(r"^[a-z]{5}$")
DEFAULT_PAGE_SIZE = 1000

WORDS_FILE = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data", "fallback_words.txt")


class WordStoreError(Exception):
    """The store cannot answer, e.g. it holds too few words to build a puzzle."""


def normalize_words(words):
    out = set()
    for w in words:
        w = (w or "").strip().lower()
        if W5.match(w):
            out.add(w)
    return out


# Load a newline separated word list from disk
def load_word_file(path=WORDS_FILE):
    with open(path, "r", encoding="utf-8") as f:
        return sorted(normalize_words(f))


class WordStore:
    """Reads and writes daily assignments through a SQLAlchemy session factory."""

    def __init__(self, session_factory, rng=None):
        self.session_factory = session_factory
        self.rng = rng or random

    def _daily(self, db, date):
        return db.query(DailyWord).filter(DailyWord.date == date).first()

    def create_daily_assignment(self, date):
        """
        Assign a secret word and opening bounds to a date.

        Safe to call repeatedly: an existing assignment, including one
        inserted concurrently by another process, is left untouched.

        Args:
            date: ISO calendar date (YYYY-MM-DD)

        Returns:
            Human readable outcome message
        """
        db = self.session_factory()
        try:
            if self._daily(db, date):
                return f"Daily word already set for {date}"

            words = db.query(Word).order_by(Word.word).all()
            if len(words) < 3:
                raise WordStoreError("Not enough words to create a daily puzzle")

            # The secret needs at least one word on each side
            inner = range(1, len(words) - 1)
            candidates = [i for i in inner if not words[i].used] or list(inner)
            index = self.rng.choice(candidates)

            secret = words[index]
            top = self.rng.choice(words[:index])
            bottom = self.rng.choice(words[index + 1:])

            secret.used = True
            db.add(DailyWord(
                date=date,
                word_id=secret.id,
                initial_top_word_id=top.id,
                initial_bottom_word_id=bottom.id,
            ))
            db.commit()
            return f"Daily word set for {date}"
        except IntegrityError:
            db.rollback()
            return f"Daily word already set for {date}"
        finally:
            db.close()

    def get_daily_word(self, date):
        """Get-or-create the secret word for a date."""
        word = self._daily_word(date)
        if word is None:
            self.create_daily_assignment(date)
            word = self._daily_word(date)
        if word is None:
            raise WordStoreError(f"Could not get word after setting {date}")
        return word

    def _daily_word(self, date):
        db = self.session_factory()
        try:
            daily = self._daily(db, date)
            return daily.word.word if daily else None
        finally:
            db.close()

    def get_initial_bounds(self, date):
        """Return (top_word, bottom_word) stored with the date's assignment, or (None, None)."""
        db = self.session_factory()
        try:
            daily = self._daily(db, date)
            if not daily or not daily.initial_top_word or not daily.initial_bottom_word:
                return None, None
            return daily.initial_top_word.word, daily.initial_bottom_word.word
        finally:
            db.close()

    def get_words_page(self, page, page_size=DEFAULT_PAGE_SIZE):
        db = self.session_factory()
        try:
            rows = (
                db.query(Word.word)
                .order_by(Word.id)
                .offset(page * page_size)
                .limit(page_size)
                .all()
            )
            return [row.word for row in rows]
        finally:
            db.close()

    def get_all_words(self, page_size=DEFAULT_PAGE_SIZE):
        """Walk every page and return the whole vocabulary."""
        all_words = []
        page = 0
        while True:
            words = self.get_words_page(page, page_size)
            if not words:
                break
            all_words.extend(words)
            if len(words) < page_size:
                break
            page += 1
        return all_words

    def get_random_word(self, seed=None):
        """Any stored word; the same seed always picks the same word."""
        db = self.session_factory()
        try:
            if seed is None:
                row = db.query(Word.word).order_by(func.random()).first()
                return row.word if row else None

            count = db.query(Word).count()
            if not count:
                return None
            offset = random.Random(seed).randrange(count)
            row = db.query(Word.word).order_by(Word.id).offset(offset).first()
            return row.word if row else None
        finally:
            db.close()

    def add_words(self, words):
        """Insert words that are not stored yet. Returns how many were added."""
        new_words = normalize_words(words)
        db = self.session_factory()
        try:
            existing = {row.word for row in db.query(Word.word).filter(Word.word.in_(sorted(new_words))).all()}
            to_add = sorted(new_words - existing)
            db.add_all([Word(word=w, used=False) for w in to_add])
            db.commit()
            return len(to_add)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
