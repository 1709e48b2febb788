"""
Per-player puzzle records kept in Redis as JSON blobs.

    puzzle:<player>:bounds:<date>   topWord, bottomWord, *Updated flags
    puzzle:<player>:session         date, status, attempts, guess snapshot, ...
    puzzle:<player>:load_token      counter guarding overlapping loads
"""
import json
import sys

# Bounds outlive their day a little so a late reload still finds them
BOUNDS_TTL_SECONDS = 2 * 24 * 60 * 60


def bounds_key(player_id, date):
    return f"puzzle:{player_id}:bounds:{date}"


def session_key(player_id):
    return f"puzzle:{player_id}:session"


def token_key(player_id):
    return f"puzzle:{player_id}:load_token"


def _load_json(r, key):
    raw = r.get(key)
    if raw is None:
        return None
    try:
        record = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        print(f"[warn] discarding malformed record at {key}", file=sys.stderr)
        return None
    if not isinstance(record, dict):
        print(f"[warn] discarding malformed record at {key}", file=sys.stderr)
        return None
    return record


def load_bounds(r, player_id, date):
    return _load_json(r, bounds_key(player_id, date))


def save_bounds(r, player_id, date, record):
    r.set(bounds_key(player_id, date), json.dumps(record), ex=BOUNDS_TTL_SECONDS)


def load_session(r, player_id):
    return _load_json(r, session_key(player_id))


def save_session(r, player_id, record):
    r.set(session_key(player_id), json.dumps(record))


def discard(r, player_id, date=None):
    """Forget the session record, and the bounds for `date` when given."""
    keys = [session_key(player_id)]
    if date:
        keys.append(bounds_key(player_id, date))
    r.delete(*keys)


def claim_load_token(r, player_id):
    return int(r.incr(token_key(player_id)))


def is_current_load(r, player_id, token):
    current = r.get(token_key(player_id))
    return current is not None and int(current) == token
