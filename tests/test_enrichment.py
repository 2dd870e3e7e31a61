"""Tests for batch enrichment."""

import asyncio
import shutil
import tempfile
from pathlib import Path

import pytest

from vocabmaster.core.enrichment import enrich_words, needs_translation
from vocabmaster.core.errors import OracleError
from vocabmaster.core.models import LinguisticRecord, Meaning, Word, WordType
from vocabmaster.core.vocabulary import VocabularyManager
from vocabmaster.storage.database import Database


class FakeOracle:
    """Oracle stand-in with per-word lookups."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.calls = []

    def _check(self, word):
        self.calls.append(word)
        if word in self.failing:
            raise OracleError(f"cannot look up {word}")

    async def lookup(self, word):
        self._check(word)
        return LinguisticRecord(
            word_type=WordType.VERB,
            meanings=(Meaning(translation=f"ru-{word}"),),
        )

    async def related_forms(self, word, word_type=None):
        self._check(word)
        return f"{word}er, {word}ing"

    async def synonyms(self, word, word_type=None):
        self._check(word)
        return f"{word}-like"


class TestEnrichWords:
    """Test enriching several words."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.vocab = VocabularyManager(Database(Path(self.temp_dir) / "test.db"))
        section_id = self.vocab.get_sections()[0].id
        self.words = [
            self.vocab.add_word(Word(word=name, section_id=section_id))
            for name in ("run", "jump", "swim")
        ]

    def teardown_method(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_full_lookup(self):
        result = asyncio.run(enrich_words(self.vocab, FakeOracle(), self.words, delay=0))
        assert len(result.updated) == 3
        run = self.vocab.find_word("run")
        assert run.translation == "ru-run"
        assert run.word_type == WordType.VERB
        assert result.summary() == "Updated 3 words"

    def test_failure_does_not_stop_batch(self):
        oracle = FakeOracle(failing={"jump"})
        result = asyncio.run(enrich_words(self.vocab, oracle, self.words, delay=0))

        assert oracle.calls == ["run", "jump", "swim"]
        assert [w.word for w in result.failed] == ["jump"]
        assert self.vocab.find_word("jump").translation == ""
        assert self.vocab.find_word("swim").translation == "ru-swim"
        assert result.summary() == "Updated 2 words, 1 failed"

    def test_single_field(self):
        result = asyncio.run(enrich_words(
            self.vocab, FakeOracle(), self.words[:1], field_name="synonyms", delay=0,
        ))
        run = self.vocab.find_word("run")
        assert run.synonyms == "run-like"
        assert run.translation == ""
        assert len(result.updated) == 1

    def test_unchanged_words(self):
        oracle = FakeOracle()
        asyncio.run(enrich_words(self.vocab, oracle, self.words[:1], field_name="related_forms", delay=0))
        again = asyncio.run(enrich_words(
            self.vocab, oracle, [self.vocab.find_word("run")], field_name="related_forms", delay=0,
        ))
        assert [w.word for w in again.unchanged] == ["run"]
        assert again.updated == []

    def test_progress(self):
        seen = []
        asyncio.run(enrich_words(
            self.vocab,
            FakeOracle(),
            self.words,
            on_progress=lambda position, total, word: seen.append((position, total, word.word)),
            delay=0,
        ))
        assert seen == [(1, 3, "run"), (2, 3, "jump"), (3, 3, "swim")]

    def test_unknown_field(self):
        with pytest.raises(ValueError):
            asyncio.run(enrich_words(self.vocab, FakeOracle(), self.words, field_name="phonetic"))

    def test_needs_translation(self):
        assert needs_translation(Word(word="run", translation="  "))
        assert not needs_translation(Word(word="run", translation="бежать"))
