"""
Glue between the pure puzzle engine, the oracle and per-player storage.

The UI layer only ever receives {"isLoading", "error", "state"} from here.
"""
import game_logic
import storage
from oracle import OracleUnavailable


def envelope(state=None, error=None):
    return {
        "isLoading": False,
        "error": error,
        "state": game_logic.public_view(state) if state is not None else None,
    }


class PuzzleService:
    def __init__(self, oracle, redis_client, max_attempts=None, rng=None):
        self.oracle = oracle
        self.r = redis_client
        self.max_attempts = max_attempts
        self.rng = rng

    def _build(self, player_id):
        """Today's state for a player, reconciled with whatever they have stored."""
        date = self.oracle.current_date()
        secret = self.oracle.resolve_secret(date)
        bounds = self.oracle.fetch_initial_bounds(date)
        dictionary = self.oracle.fetch_dictionary()

        session = storage.load_session(self.r, player_id)
        if session and session.get("date") != date:
            # Stale day: drop yesterday's progress before starting over
            storage.discard(self.r, player_id, session.get("date"))
            session = None

        return game_logic.initialize(
            date,
            secret,
            dictionary,
            initial_top_word=bounds.get("topWord"),
            initial_bottom_word=bounds.get("bottomWord"),
            bounds_record=storage.load_bounds(self.r, player_id, date),
            session_record=session,
            max_attempts=self.max_attempts,
            rng=self.rng,
        )

    def _persist(self, player_id, state):
        storage.save_bounds(self.r, player_id, state.date, game_logic.bounds_record(state))
        storage.save_session(self.r, player_id, game_logic.session_record(state))

    def start(self, player_id, refresh=False):
        """
        Load (or reload) today's puzzle for a player.

        A later start for the same player supersedes this one: if another
        load claimed a newer token while we were talking to the oracle,
        nothing is written.
        """
        token = storage.claim_load_token(self.r, player_id)
        if refresh:
            self.oracle.invalidate()

        try:
            state = self._build(player_id)
        except (OracleUnavailable, ValueError) as e:
            print(f"[error] could not start puzzle for {player_id}: {e}")
            return envelope(error=str(e))

        if storage.is_current_load(self.r, player_id, token):
            self._persist(player_id, state)
        return envelope(state)

    def handle_event(self, player_id, event):
        """
        Apply one UI event and persist the result.

        Raises ValueError for malformed events; oracle failures come back as
        an error envelope.
        """
        try:
            state = self._build(player_id)
        except (OracleUnavailable, ValueError) as e:
            print(f"[error] could not restore puzzle for {player_id}: {e}")
            return envelope(error=str(e))

        new_state = game_logic.transition(state, event, rng=self.rng)
        self._persist(player_id, new_state)
        return envelope(new_state)
