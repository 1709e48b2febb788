"""
Puzzle engine for Frantic Five.

The secret word sits alphabetically between a top word and a bottom word.
Every accepted guess replaces the bound on its side of the secret until the
player lands on the word itself. All functions here are pure: they take a
PuzzleState and return a new one, never touching the one passed in.
"""
import copy
import random
import re

WORD_LENGTH = 5
ALPHABET = "abcdefghijklmnopqrstuvwxyz"
TOP_SENTINEL = "a" * WORD_LENGTH
BOTTOM_SENTINEL = "z" * WORD_LENGTH
POWERUP_LETTERS = 3

IN_PROGRESS = "in_progress"
WON = "won"
EXHAUSTED = "exhausted"
STATUSES = (IN_PROGRESS, WON, EXHAUSTED)

NOT_IN_DICTIONARY = "Word not found in dictionary"
TOO_LOW = "Word must come after the top word"
TOO_HIGH = "Word must come before the bottom word"

WORD_RE = re.compile(r"^[a-z]{5}$")


def is_puzzle_word(word) -> bool:
    return isinstance(word, str) and bool(WORD_RE.match(word))


def empty_guess():
    return [""] * WORD_LENGTH


class PuzzleState:
    """Everything the engine knows about one player's puzzle for one date."""

    def __init__(self, date, secret_word, top_word, bottom_word, dictionary, max_attempts=None):
        self.date = date
        self.secret_word = secret_word
        self.top_word = top_word
        self.bottom_word = bottom_word
        self.dictionary = frozenset(dictionary)
        self.max_attempts = max_attempts

        self.current_guess = empty_guess()
        self.auto_filled_mask = [False] * WORD_LENGTH
        self.attempts = 0
        self.status = IN_PROGRESS
        self.disabled_letters = []
        self.powerup_used = False
        self.top_word_updated = False
        self.bottom_word_updated = False

        self.feedback_message = None
        self.invalid_word = False
        self.feedback_episode = 0

    def copy(self):
        # dictionary is a frozenset and is shared between copies
        clone = copy.copy(self)
        clone.current_guess = list(self.current_guess)
        clone.auto_filled_mask = list(self.auto_filled_mask)
        clone.disabled_letters = list(self.disabled_letters)
        return clone

    @property
    def is_terminal(self):
        return self.status in (WON, EXHAUSTED)

    @property
    def powerup_available(self):
        return self.status == IN_PROGRESS and not self.powerup_used

    def filled_positions(self):
        return sum(1 for letter in self.current_guess if letter)

    def __repr__(self):
        return (
            f"<PuzzleState(date='{self.date}', top='{self.top_word}', "
            f"bottom='{self.bottom_word}', attempts={self.attempts}, status='{self.status}')>"
        )


# --------------------
# Bounds
# --------------------
def derive_bounds(secret_word, dictionary, rng=None):
    """
    Pick a random top and bottom word around the secret.

    Args:
        secret_word: The word the bounds must enclose
        dictionary: Candidate words for either bound
        rng: Source of randomness (defaults to the random module)

    Returns:
        (top_word, bottom_word); a sentinel stands in for an empty side
    """
    rng = rng or random
    words = sorted(set(dictionary))
    before = [w for w in words if w < secret_word]
    after = [w for w in words if w > secret_word]

    top_word = rng.choice(before) if before else TOP_SENTINEL
    bottom_word = rng.choice(after) if after else BOTTOM_SENTINEL
    return top_word, bottom_word


def bounds_enclose(top_word, secret_word, bottom_word) -> bool:
    if not top_word or not bottom_word:
        return False
    return top_word < secret_word < bottom_word


# --------------------
# Auto-fill
# --------------------
def compute_auto_fill_prefix(top_word, bottom_word):
    """Letters shared by both bounds from the start, padded with empty slots."""
    prefix = empty_guess()
    for i in range(WORD_LENGTH):
        if i >= len(top_word) or i >= len(bottom_word):
            break
        if top_word[i] != bottom_word[i]:
            break
        prefix[i] = top_word[i]
    return prefix


def apply_auto_fill(state):
    """Fill empty slots from the bounds' common prefix and lock them."""
    state = state.copy()
    prefix = compute_auto_fill_prefix(state.top_word, state.bottom_word)
    for i, letter in enumerate(prefix):
        if letter and not state.current_guess[i]:
            state.current_guess[i] = letter
            state.auto_filled_mask[i] = True
    return state


def _reset_guess(state):
    state.current_guess = empty_guess()
    state.auto_filled_mask = [False] * WORD_LENGTH


# --------------------
# Input
# --------------------
def handle_key_press(state, letter):
    if state.status != IN_PROGRESS or not isinstance(letter, str):
        return state
    letter = letter.lower()
    if len(letter) != 1 or letter not in ALPHABET:
        return state
    if letter in state.disabled_letters:
        return state

    for i in range(WORD_LENGTH):
        if not state.current_guess[i] and not state.auto_filled_mask[i]:
            state = state.copy()
            state.current_guess[i] = letter
            return state
    return state


def handle_backspace(state):
    if state.status != IN_PROGRESS:
        return state
    for i in reversed(range(WORD_LENGTH)):
        if state.current_guess[i] and not state.auto_filled_mask[i]:
            state = state.copy()
            state.current_guess[i] = ""
            return state
    return state


def remove_letter_at(state, index):
    """Clear one player-filled slot, whatever its position."""
    if state.status != IN_PROGRESS:
        return state
    if not isinstance(index, int) or not 0 <= index < WORD_LENGTH:
        return state
    if state.auto_filled_mask[index] or not state.current_guess[index]:
        return state
    state = state.copy()
    state.current_guess[index] = ""
    return state


# --------------------
# Submission
# --------------------
def _reject(state, message):
    state.feedback_message = message
    state.invalid_word = True
    state.feedback_episode += 1
    return state


def submit_guess(state):
    """
    Judge the full guess row against the dictionary and the current bounds.

    Rejections leave attempts alone and start a new feedback episode; the
    row is emptied later by clear_feedback. An accepted guess either wins
    or narrows the bound on its side of the secret.
    """
    if state.status != IN_PROGRESS:
        return state
    if state.filled_positions() != WORD_LENGTH:
        return state

    state = state.copy()
    word = "".join(state.current_guess).lower()

    if word not in state.dictionary:
        return _reject(state, NOT_IN_DICTIONARY)
    if word <= state.top_word:
        return _reject(state, TOO_LOW)
    if word >= state.bottom_word:
        return _reject(state, TOO_HIGH)

    state.attempts += 1
    state.feedback_message = None
    state.invalid_word = False
    state.feedback_episode += 1

    if word == state.secret_word:
        state.status = WON
        state.current_guess = list(state.secret_word)
        state.auto_filled_mask = [False] * WORD_LENGTH
        return state

    if word < state.secret_word:
        state.top_word = word
        state.top_word_updated = True
    else:
        state.bottom_word = word
        state.bottom_word_updated = True

    if state.max_attempts and state.attempts >= state.max_attempts:
        state.status = EXHAUSTED
        state.current_guess = list(state.secret_word)
        state.auto_filled_mask = [False] * WORD_LENGTH
        return state

    _reset_guess(state)
    return apply_auto_fill(state)


def clear_feedback(state, episode):
    """Finish a rejection: only the episode that raised it may clear it."""
    if episode != state.feedback_episode or not state.invalid_word:
        return state
    state = state.copy()
    state.feedback_message = None
    state.invalid_word = False
    if state.status == IN_PROGRESS:
        _reset_guess(state)
        state = apply_auto_fill(state)
    return state


# --------------------
# Power-up
# --------------------
def use_powerup(state, rng=None):
    """Disable up to three letters that do not appear in the secret word."""
    if not state.powerup_available:
        return state
    rng = rng or random
    eligible = [
        letter for letter in ALPHABET
        if letter not in state.secret_word and letter not in state.disabled_letters
    ]
    picked = rng.sample(eligible, min(POWERUP_LETTERS, len(eligible)))

    state = state.copy()
    state.disabled_letters.extend(picked)
    state.powerup_used = True
    return state


# --------------------
# Initialization and persistence snapshots
# --------------------
def _restore_session(state, record):
    status = record.get("status")
    if status in STATUSES:
        state.status = status
    attempts = record.get("attempts")
    if isinstance(attempts, int) and attempts >= 0:
        state.attempts = attempts

    disabled = record.get("disabledLetters") or []
    state.disabled_letters = [l for l in disabled if isinstance(l, str) and l in ALPHABET]
    state.powerup_used = bool(record.get("powerupUsed"))

    if state.is_terminal:
        state.current_guess = list(state.secret_word)
        return state

    guess = record.get("currentGuessSnapshot")
    mask = record.get("autoFilledMask")
    if (
        isinstance(guess, list) and len(guess) == WORD_LENGTH
        and all(l == "" or (isinstance(l, str) and l in ALPHABET and len(l) == 1) for l in guess)
    ):
        state.current_guess = list(guess)
        if isinstance(mask, list) and len(mask) == WORD_LENGTH:
            state.auto_filled_mask = [bool(m) and bool(g) for m, g in zip(mask, guess)]

    episode = record.get("feedbackEpisode")
    if isinstance(episode, int):
        state.feedback_episode = episode
    if record.get("feedbackMessage"):
        state.feedback_message = record["feedbackMessage"]
        state.invalid_word = True
    return state


def _choose_bounds(secret_word, dictionary, initial_top_word, initial_bottom_word, bounds_record, rng):
    if bounds_record:
        top, bottom = bounds_record.get("topWord"), bounds_record.get("bottomWord")
        narrowed = bounds_record.get("topWordUpdated") or bounds_record.get("bottomWordUpdated")
        if narrowed and bounds_enclose(top, secret_word, bottom):
            return top, bottom, bool(bounds_record.get("topWordUpdated")), bool(bounds_record.get("bottomWordUpdated"))

    if bounds_enclose(initial_top_word, secret_word, initial_bottom_word):
        return initial_top_word, initial_bottom_word, False, False

    if bounds_record:
        top, bottom = bounds_record.get("topWord"), bounds_record.get("bottomWord")
        if bounds_enclose(top, secret_word, bottom):
            return top, bottom, False, False

    top, bottom = derive_bounds(secret_word, dictionary, rng)
    return top, bottom, False, False


def initialize(date, secret_word, dictionary, initial_top_word=None, initial_bottom_word=None,
               bounds_record=None, session_record=None, max_attempts=None, rng=None):
    """
    Build the state for a date, reconciling whatever was persisted before.

    Records belonging to another date are ignored, which resets the game.
    The secret is always part of the dictionary so the puzzle stays winnable.
    """
    secret_word = (secret_word or "").lower()
    if not is_puzzle_word(secret_word):
        raise ValueError(f"Secret word must be {WORD_LENGTH} lowercase letters, got {secret_word!r}")

    words = {w for w in (d.lower() for d in dictionary if isinstance(d, str)) if is_puzzle_word(w)}
    words.add(secret_word)

    if bounds_record and bounds_record.get("date") not in (None, date):
        bounds_record = None
    if session_record and session_record.get("date") != date:
        session_record = None

    top, bottom, top_updated, bottom_updated = _choose_bounds(
        secret_word, words, initial_top_word, initial_bottom_word, bounds_record, rng
    )

    state = PuzzleState(date, secret_word, top, bottom, words, max_attempts=max_attempts)
    state.top_word_updated = top_updated
    state.bottom_word_updated = bottom_updated

    if session_record:
        state = _restore_session(state, session_record)

    if state.is_terminal:
        return state
    return apply_auto_fill(state)


def bounds_record(state):
    """The per-date bounds snapshot; never carries the secret."""
    return {
        "topWord": state.top_word,
        "bottomWord": state.bottom_word,
        "topWordUpdated": state.top_word_updated,
        "bottomWordUpdated": state.bottom_word_updated,
    }


def session_record(state):
    return {
        "date": state.date,
        "status": state.status,
        "attempts": state.attempts,
        "currentGuessSnapshot": list(state.current_guess),
        "autoFilledMask": list(state.auto_filled_mask),
        "disabledLetters": list(state.disabled_letters),
        "powerupUsed": state.powerup_used,
        "feedbackMessage": state.feedback_message,
        "feedbackEpisode": state.feedback_episode,
    }


def share_text(state):
    """Result line a winner can paste; None until the word is found."""
    if state.status != WON:
        return None
    tries = "try" if state.attempts == 1 else "tries"
    return f"Frantic Five {state.date} - Found in {state.attempts} {tries}!"


def public_view(state):
    """Fields the UI renders. The secret is revealed only once the game is over."""
    return {
        "date": state.date,
        "topWord": state.top_word,
        "bottomWord": state.bottom_word,
        "currentGuess": list(state.current_guess),
        "autoFilledMask": list(state.auto_filled_mask),
        "attempts": state.attempts,
        "maxAttempts": state.max_attempts,
        "status": state.status,
        "disabledLetters": list(state.disabled_letters),
        "powerupAvailable": state.powerup_available,
        "feedbackMessage": state.feedback_message,
        "invalidWord": state.invalid_word,
        "feedbackEpisode": state.feedback_episode,
        "secretWord": state.secret_word if state.is_terminal else None,
        "shareText": share_text(state),
    }


# --------------------
# Event dispatch
# --------------------
def transition(state, event, rng=None):
    """
    Apply one UI event.

    Events are dicts with a "type" of key, backspace, remove, submit,
    powerup or clear_feedback.
    """
    if not isinstance(event, dict):
        raise ValueError("Event must be an object")
    kind = event.get("type")

    if kind == "key":
        return handle_key_press(state, event.get("letter"))
    if kind == "backspace":
        return handle_backspace(state)
    if kind == "remove":
        return remove_letter_at(state, event.get("index"))
    if kind == "submit":
        return submit_guess(state)
    if kind == "powerup":
        return use_powerup(state, rng)
    if kind == "clear_feedback":
        return clear_feedback(state, event.get("episode"))
    raise ValueError(f"Unknown event type: {kind!r}")
