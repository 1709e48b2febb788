import os
import json
import uuid
import threading
from dotenv import load_dotenv
from flask import Flask, request, jsonify, session
from flask_session import Session
from flask_socketio import SocketIO, emit, join_room
import redis

load_dotenv()

from db.database import SessionLocal, init_database
from db.word_store import WordStore
from oracle import DictionaryOracle
from puzzle_service import PuzzleService

REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")
EVENT_CHANNEL = "events"
FEEDBACK_DELAY_SECONDS = float(os.environ.get("FEEDBACK_DELAY_SECONDS", "1.5"))
# 0 means no cap on accepted guesses
MAX_ATTEMPTS = int(os.environ.get("MAX_ATTEMPTS", "0")) or None


# Flask app setup
def create_app():
    """Factory function to create and configure Flask app."""
    app = Flask(__name__)
    app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "dev-secret-change-in-production")

    # Redis-backed server-side sessions
    app.config["SESSION_TYPE"] = "redis"
    app.config["SESSION_REDIS"] = redis.from_url(REDIS_URL)
    app.config["SESSION_PERMANENT"] = True
    app.config["SESSION_USE_SIGNER"] = True

    Session(app)
    return app

app = create_app()


# SocketIO with Redis message queue for multi-process scaling
socketio = SocketIO(
    app,
    cors_allowed_origins="*",
    message_queue=os.environ.get("REDIS_URL")
)

# Redis connection for puzzle records and pubsub
r = redis.from_url(REDIS_URL, decode_responses=True)

oracle = DictionaryOracle(WordStore(SessionLocal))
service = PuzzleService(oracle, r, max_attempts=MAX_ATTEMPTS)

# Track if pubsub listener has been started
pubsub_listener_started = False


def current_player_id():
    """Anonymous per-browser id, created on first visit."""
    if "player_id" not in session:
        session["player_id"] = uuid.uuid4().hex
    return session["player_id"]


# --------------------
# REST routes
# --------------------
@app.route("/api/puzzle")
def get_puzzle():
    """Load today's puzzle for this browser."""
    return jsonify(service.start(current_player_id()))


@app.route("/api/puzzle/retry", methods=["POST"])
def retry_puzzle():
    """Reload after an error, going back to the word store."""
    return jsonify(service.start(current_player_id(), refresh=True))


@app.route("/api/puzzle/event", methods=["POST"])
def puzzle_event():
    """Apply a key press, backspace, removal, submission or power-up."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Event must be a JSON object"}), 400

    try:
        result = service.handle_event(current_player_id(), data)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(result)


# --------------------
# Socket events
# --------------------
@socketio.on("connect")
def on_connect():
    """Handle new WebSocket connection."""
    global pubsub_listener_started

    player_id = session.get("player_id")
    if not player_id:
        emit("not_ready")
        return False

    # Private room so deferred updates can find this player
    join_room(f"player:{player_id}")
    emit("connected", {"player_id": player_id})

    # Start Redis pubsub listener (only once)
    if not pubsub_listener_started:
        t = threading.Thread(target=start_redis_listener, daemon=True)
        t.start()
        pubsub_listener_started = True


@socketio.on("puzzle_event")
def on_puzzle_event(data):
    """Apply an event and, after a rejection, clear the feedback later."""
    player_id = session.get("player_id")
    if not player_id:
        emit("not_ready")
        return

    try:
        result = service.handle_event(player_id, data)
    except ValueError as e:
        emit("event_error", {"error": str(e)})
        return

    emit("puzzle_state", result)

    state = result["state"]
    if state and state["invalidWord"]:
        socketio.start_background_task(clear_feedback_later, player_id, state["feedbackEpisode"])


def clear_feedback_later(player_id, episode):
    """Deferred end of a rejection; a newer episode makes this a no-op."""
    socketio.sleep(FEEDBACK_DELAY_SECONDS)
    result = service.handle_event(player_id, {"type": "clear_feedback", "episode": episode})
    socketio.emit("puzzle_state", result, room=f"player:{player_id}")


@socketio.on("disconnect")
def on_disconnect():
    """Handle WebSocket disconnection."""
    print(f"Player {session.get('player_id', 'unknown')} disconnected")

# ===== Redis Pubsub Listener =====

def start_redis_listener():
    """
    Background thread listening to Redis pubsub events.
    Re-emits worker events to every connected client.
    """
    pubsub = r.pubsub()
    pubsub.subscribe(EVENT_CHANNEL)

    print("Redis pubsub listener started")

    for msg in pubsub.listen():
        handle_pubsub_message(msg)


def handle_pubsub_message(msg):
    """Re-emit one worker event to the clients it concerns."""
    if msg is None or msg.get("type") != "message":
        return

    try:
        data = json.loads(msg["data"])
        event_type = data.get("type")

        if event_type == "daily_puzzle_ready":
            oracle.invalidate(data.get("date"))
            socketio.emit("puzzle_rollover", {"date": data.get("date")})

    except json.JSONDecodeError:
        print(f"Invalid JSON in pubsub message: {msg.get('data')}")
    except Exception as e:
        print(f"Error processing pubsub message: {e}")


if __name__ == "__main__":
    init_database()
    print("Database tables created")
    port = int(os.environ.get("PORT", 5000))
    socketio.run(app, host="0.0.0.0", port=port, debug=True, allow_unsafe_werkzeug=True)
