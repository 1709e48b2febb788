"""
DictionaryOracle: the engine's only view of the word store.

Every store failure is caught here and turned into either a fallback value
or an error field; only resolve_secret raises, and only once the whole
daily -> random -> static chain has failed.
"""
import os
import random
import sys
from datetime import datetime
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError

from db.word_store import WordStoreError, load_word_file, normalize_words

# New puzzles go live at midnight in this zone
PUZZLE_TIMEZONE = os.environ.get("PUZZLE_TIMEZONE", "America/Chicago")

STORE_ERRORS = (SQLAlchemyError, WordStoreError)


class OracleUnavailable(Exception):
    """No source could supply a secret word."""


def load_fallback_words():
    try:
        return load_word_file()
    except OSError as e:
        print(f"[warn] fallback word list unavailable: {e}", file=sys.stderr)
        return []


class DictionaryOracle:
    def __init__(self, store, timezone=PUZZLE_TIMEZONE, fallback_words=None, clock=None):
        self.store = store
        self.timezone = ZoneInfo(timezone)
        self.fallback_words = sorted(normalize_words(
            load_fallback_words() if fallback_words is None else fallback_words
        ))
        self.clock = clock or (lambda tz: datetime.now(tz))
        self._dictionary = None
        self._secrets = {}
        self._bounds = {}

    def current_date(self):
        """The one authoritative 'today' for assignments and rollover."""
        return self.clock(self.timezone).date().isoformat()

    # --------------------
    # Store reads
    # --------------------
    def fetch_daily_secret(self, date):
        try:
            return {"secretWord": self.store.get_daily_word(date), "error": None}
        except STORE_ERRORS as e:
            print(f"[warn] daily word for {date} unavailable: {e}", file=sys.stderr)
            return {"secretWord": None, "error": f"Could not get daily word: {e}"}

    def fetch_initial_bounds(self, date):
        if date in self._bounds:
            return self._bounds[date]
        try:
            top, bottom = self.store.get_initial_bounds(date)
        except STORE_ERRORS as e:
            print(f"[warn] initial bounds for {date} unavailable: {e}", file=sys.stderr)
            return {"topWord": None, "bottomWord": None, "error": str(e)}

        if not top or not bottom:
            result = {"topWord": None, "bottomWord": None, "error": "No initial words found for today"}
        else:
            result = {"topWord": top, "bottomWord": bottom, "error": None}
            self._bounds[date] = result
        return result

    def fetch_dictionary(self):
        """Stored words merged with the static list; the static list alone if the store fails."""
        if self._dictionary is not None:
            return self._dictionary
        try:
            words = self.store.get_all_words()
        except STORE_ERRORS as e:
            print(f"[warn] word list unavailable, using local list: {e}", file=sys.stderr)
            return list(self.fallback_words)

        remote = normalize_words(words)
        if not remote:
            print(f"Using local word list with {len(self.fallback_words)} words")
            return list(self.fallback_words)

        self._dictionary = sorted(remote | set(self.fallback_words))
        print(f"Fetched {len(remote)} words from the store")
        return self._dictionary

    def fetch_random_word(self, date=None):
        try:
            word = self.store.get_random_word(seed=date or self.current_date())
            if word:
                return word
        except STORE_ERRORS as e:
            print(f"[warn] random word unavailable: {e}", file=sys.stderr)

        if not self.fallback_words:
            return None
        # Seeded by date so every caller in this process agrees on the word
        return random.Random(date or self.current_date()).choice(self.fallback_words)

    # --------------------
    # Fallback chain
    # --------------------
    def resolve_secret(self, date):
        """Secret word for a date via daily -> random -> static, cached per date."""
        if date in self._secrets:
            return self._secrets[date]

        daily = self.fetch_daily_secret(date)
        word = daily["secretWord"]
        if not word:
            word = self.fetch_random_word(date)
        if not word:
            raise OracleUnavailable(daily["error"] or "No word available for today")

        self._secrets[date] = word.lower()
        return self._secrets[date]

    def invalidate(self, date=None):
        """Drop cached answers so the next call goes back to the store."""
        self._dictionary = None
        if date is None:
            self._secrets.clear()
            self._bounds.clear()
        else:
            self._secrets.pop(date, None)
            self._bounds.pop(date, None)
