import os
import time
import json
import redis
from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError

load_dotenv()

from db.database import SessionLocal, init_database
from db.word_store import WordStore, WordStoreError
from oracle import DictionaryOracle

REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")
EVENT_CHANNEL = "events"
WORKER_POLL_SECONDS = float(os.environ.get("WORKER_POLL_SECONDS", "60"))


def prepare_day(store, r, date):
    """
    Make sure the date has an assignment and tell the web servers about it.

    Returns the store's outcome message.
    """
    message = store.create_daily_assignment(date)
    r.publish(EVENT_CHANNEL, json.dumps({"type": "daily_puzzle_ready", "date": date}))
    return message


def start_daily_worker(store, oracle, r, poll_seconds=WORKER_POLL_SECONDS, max_loops=None):
    """
    Main rollover loop.

    Polls the oracle's calendar date and prepares each new day as soon as
    it starts, so the first player of the day never waits on creation.
    """
    print("Daily worker started")
    print(f"Publishing to: {EVENT_CHANNEL}")

    last_date = None
    loops = 0
    while max_loops is None or loops < max_loops:
        loops += 1
        try:
            date = oracle.current_date()
            if date != last_date:
                message = prepare_day(store, r, date)
                print(f"{date}: {message}")
                last_date = date
            time.sleep(poll_seconds)

        except redis.RedisError as e:
            print(f"Redis error in daily worker: {e}")
            time.sleep(1)
        except (SQLAlchemyError, WordStoreError) as e:
            print(f"Store error in daily worker: {e}")
            time.sleep(1)


if __name__ == "__main__":
    print("=" * 60)
    print("FRANTIC FIVE - DAILY WORKER")
    print("=" * 60)
    init_database()
    store = WordStore(SessionLocal)
    start_daily_worker(store, DictionaryOracle(store), redis.from_url(REDIS_URL, decode_responses=True))
