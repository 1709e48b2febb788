"""
Database models for the Frantic Five word store.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime

Base = declarative_base()


class Word(Base):
    """A dictionary word; `used` marks words already served as a daily secret."""
    __tablename__ = 'words'

    id = Column(Integer, primary_key=True)
    word = Column(String(5), unique=True, nullable=False)
    used = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Word(id={self.id}, word='{self.word}', used={self.used})>"


class DailyWord(Base):
    """The secret word assigned to a calendar date, with its opening bounds."""
    __tablename__ = 'daily_words'

    id = Column(Integer, primary_key=True)
    date = Column(String(10), unique=True, nullable=False)
    word_id = Column(Integer, ForeignKey('words.id'), nullable=False)
    initial_top_word_id = Column(Integer, ForeignKey('words.id'), nullable=True)
    initial_bottom_word_id = Column(Integer, ForeignKey('words.id'), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    word = relationship("Word", foreign_keys=[word_id])
    initial_top_word = relationship("Word", foreign_keys=[initial_top_word_id])
    initial_bottom_word = relationship("Word", foreign_keys=[initial_bottom_word_id])

    def __repr__(self):
        return f"<DailyWord(id={self.id}, date='{self.date}', word_id={self.word_id})>"
