"""
Initialize the database, create all tables and seed the word list.
"""
import sys

from db.database import init_database, DATABASE_URL, SessionLocal
from db.word_store import WordStore, load_word_file

if __name__ == '__main__':
    print("Creating database tables...")
    init_database()

    words = load_word_file(sys.argv[1]) if len(sys.argv) > 1 else load_word_file()
    added = WordStore(SessionLocal).add_words(words)
    print(f"Seeded {added} new words")
    print(f"Database initialized successfully at: {DATABASE_URL}")
