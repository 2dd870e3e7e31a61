"""Vocabulary management: the core's view of the word store."""

import logging
import random
from typing import Iterable, Optional

from vocabmaster.core.errors import DuplicateError, StoreError
from vocabmaster.core.mastery import compute
from vocabmaster.core.models import (
    Collection,
    Level,
    LinguisticRecord,
    PracticeMode,
    Section,
    Word,
)
from vocabmaster.core.practice import PoolFilter, PracticeSession, build_pool, start_session
from vocabmaster.core.vocab_index import VocabularyIndex
from vocabmaster.storage.database import Database

logger = logging.getLogger(__name__)

# Fields an oracle record may fill in
ENRICHABLE_FIELDS = (
    "word_type",
    "level",
    "phonetic",
    "meaning_en",
    "translation",
    "example",
    "related_forms",
    "synonyms",
)


class VocabularyManager:
    """Manages words, sections and collections with cached snapshots.

    Caches are only dropped after the store accepted a change, so a failed
    write leaves the in-memory view as it was.
    """

    def __init__(self, database: Database, default_level: Level = Level.B1):
        self.db = database
        self.default_level = default_level
        self._words_cache: list[Word] | None = None
        self._sections_cache: list[Section] | None = None
        self._collections_cache: list[Collection] | None = None
        self._index_cache: VocabularyIndex | None = None

    def _invalidate_cache(self):
        """Invalidate the cached snapshots."""
        self._words_cache = None
        self._sections_cache = None
        self._collections_cache = None
        self._index_cache = None

    # Snapshots

    def get_all_words(self) -> list[Word]:
        """Get all words (cached)."""
        if self._words_cache is None:
            self._words_cache = self.db.list_words()
        return list(self._words_cache)

    def get_sections(self, collection_id: Optional[int] = None) -> list[Section]:
        if self._sections_cache is None:
            self._sections_cache = self.db.list_sections()
        if collection_id is None:
            return list(self._sections_cache)
        return [s for s in self._sections_cache if s.collection_id == collection_id]

    def get_collections(self) -> list[Collection]:
        if self._collections_cache is None:
            self._collections_cache = self.db.list_collections()
        return list(self._collections_cache)

    def index(self) -> VocabularyIndex:
        """Lookup index over the current vocabulary."""
        if self._index_cache is None:
            self._index_cache = VocabularyIndex(
                self.get_all_words(),
                self.get_sections(),
                self.get_collections(),
            )
        return self._index_cache

    def get_word(self, word_id: int) -> Optional[Word]:
        for word in self.get_all_words():
            if word.id == word_id:
                return word
        return None

    def find_word(self, headword: str) -> Optional[Word]:
        """Find a word by headword, ignoring case."""
        return self.index().get(headword)

    def location(self, word: Word) -> Optional[str]:
        return self.index().location(word)

    def get_stats(self) -> dict[str, int]:
        """Get word counts by mastery status."""
        return self.db.get_vocabulary_stats()

    # Words

    def check_duplicate(self, headword: str, exclude_id: Optional[int] = None) -> None:
        """
        Raise if the headword exists anywhere in the vocabulary.

        Raises:
            DuplicateError: with the location of the existing word
        """
        existing = self.find_word(headword)
        if existing is not None and existing.id != exclude_id:
            raise DuplicateError(headword.strip(), self.location(existing))

    def add_word(self, word: Word) -> Word:
        """Add a new word after checking the whole vocabulary for it."""
        self.check_duplicate(word.word)
        created = self.db.create_word(word)
        self._invalidate_cache()
        return created

    def import_words(self, words: Iterable[Word]) -> tuple[list[Word], list[DuplicateError]]:
        """Add several words; duplicates are collected, not raised."""
        created = []
        duplicates = []
        for word in words:
            try:
                created.append(self.add_word(word))
            except DuplicateError as e:
                duplicates.append(e)
        return created, duplicates

    def update_word(self, word_id: int, **patch) -> Word:
        """Update fields of a word."""
        if "word" in patch:
            self.check_duplicate(patch["word"], exclude_id=word_id)
        updated = self.db.update_word(word_id, **patch)
        self._invalidate_cache()
        return updated

    def delete_word(self, word_id: int) -> bool:
        """Remove a word from vocabulary."""
        result = self.db.delete_word(word_id)
        if result:
            self._invalidate_cache()
        return result

    def enrich_word(self, word_id: int, record: LinguisticRecord) -> Optional[Word]:
        """
        Fill a word's fields from an oracle record.

        Fields the record does not provide keep their stored value. Returns
        the updated word, or None if nothing changed.
        """
        word = self.get_word(word_id)
        if word is None:
            return None
        merged = record.apply_to(word)
        patch = {
            name: getattr(merged, name)
            for name in ENRICHABLE_FIELDS
            if getattr(merged, name) != getattr(word, name)
        }
        if not patch:
            return None
        return self.update_word(word_id, **patch)

    # Practice

    def record_answer(self, word_id: Optional[int], mode: PracticeMode, correct: bool) -> Optional[Word]:
        """
        Store the outcome of one practice answer.

        A store failure is logged and the previous status kept; the
        practice session carries on either way.
        """
        word = self.get_word(word_id) if word_id is not None else None
        if word is None:
            logger.warning("Cannot record %s answer: no word %s", mode.value, word_id)
            return None

        passed, status = compute(word.passed_modes, mode, correct)
        try:
            updated = self.db.update_word(word_id, passed_modes=passed, status=status)
        except StoreError as e:
            logger.warning("Could not save progress for %r: %s", word.word, e)
            return None

        self._invalidate_cache()
        return updated

    def build_pool(self, mode: Optional[PracticeMode], pool_filter: Optional[PoolFilter] = None) -> list[Word]:
        """Current words matching the filters for a practice mode."""
        return build_pool(self.get_all_words(), mode, pool_filter, self.get_sections())

    def start_session(
        self,
        mode: PracticeMode,
        pool_filter: Optional[PoolFilter] = None,
        rng: Optional[random.Random] = None,
    ) -> PracticeSession:
        """
        Start a practice session over the filtered pool.

        Raises:
            EmptyPoolError: no words match
            InsufficientPoolError: a quiz needs at least four words
        """
        return start_session(
            mode,
            self.build_pool(mode, pool_filter),
            recorder=self.record_answer,
            rng=rng,
        )

    def restart_session(self, session: PracticeSession, pool_filter: Optional[PoolFilter] = None) -> None:
        """Restart a session over the pool as it is now."""
        session.restart(self.build_pool(session.mode, pool_filter))

    # Collections and sections

    def add_collection(self, name: str, icon: str = "📚") -> Collection:
        collection = self.db.create_collection(Collection(name=name.strip(), icon=icon))
        self._invalidate_cache()
        return collection

    def rename_collection(self, collection_id: int, name: str) -> None:
        self.db.update_collection(collection_id, name=name.strip())
        self._invalidate_cache()

    def delete_collection(self, collection_id: int) -> bool:
        result = self.db.delete_collection(collection_id)
        if result:
            self._invalidate_cache()
        return result

    def add_section(self, collection_id: int, name: str, icon: str = "📖") -> Section:
        section = self.db.create_section(Section(name=name.strip(), collection_id=collection_id, icon=icon))
        self._invalidate_cache()
        return section

    def rename_section(self, section_id: int, name: str) -> None:
        self.db.update_section(section_id, name=name.strip())
        self._invalidate_cache()

    def delete_section(self, section_id: int) -> bool:
        result = self.db.delete_section(section_id)
        if result:
            self._invalidate_cache()
        return result

    def section_label(self, section_id: Optional[int]) -> str:
        """Label of a section as "Collection › Section"."""
        for section in self.get_sections():
            if section.id == section_id:
                for collection in self.get_collections():
                    if collection.id == section.collection_id:
                        return f"{collection.name} › {section.name}"
                return section.name
        return "No section"
