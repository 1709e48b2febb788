import random

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from db.database import init_database
from db.word_store import WordStore
from oracle import DictionaryOracle

WORDS = ["apple", "mango", "peach", "table", "zebra"]


class FakeRedis:
    """The handful of Redis commands the puzzle storage uses."""

    def __init__(self):
        self.data = {}
        self.published = []

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value, ex=None):
        self.data[key] = value
        return True

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed

    def incr(self, key):
        value = int(self.data.get(key, 0)) + 1
        self.data[key] = str(value)
        return value

    def publish(self, channel, message):
        self.published.append((channel, message))
        return 0


class FixedClock:
    def __init__(self, date):
        self.date = date

    def __call__(self, tz):
        from datetime import datetime
        return datetime.fromisoformat(self.date + "T12:00:00").replace(tzinfo=tz)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_database(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def store(session_factory):
    store = WordStore(session_factory, rng=random.Random(7))
    store.add_words(WORDS)
    return store


@pytest.fixture
def clock():
    return FixedClock("2024-01-01")


@pytest.fixture
def oracle(store, clock):
    return DictionaryOracle(store, fallback_words=[], clock=clock)
