"""Core business logic - UI independent."""
from .models import (
    Collection,
    Level,
    LinguisticRecord,
    MasteryStatus,
    PracticeMode,
    Section,
    Song,
    SongFolder,
    Word,
    WordType,
)
from .mastery import compute, status_for
from .practice import FlashcardSession, PoolFilter, QuizSession, RecallSession, build_pool

# VocabularyManager and ContentManager are imported directly where needed
# to avoid circular imports with the storage module

__all__ = [
    "Collection",
    "Level",
    "LinguisticRecord",
    "MasteryStatus",
    "PracticeMode",
    "Section",
    "Song",
    "SongFolder",
    "Word",
    "WordType",
    "compute",
    "status_for",
    "FlashcardSession",
    "PoolFilter",
    "QuizSession",
    "RecallSession",
    "build_pool",
]
