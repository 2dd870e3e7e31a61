"""Tests for lyric annotation and the word-mining session."""

import asyncio
import shutil
import tempfile
from pathlib import Path

import pytest

from vocabmaster.core.annotation import (
    AnnotationSession,
    PendingSelection,
    PopupKind,
    SegmentKind,
    TranslationCache,
    annotate,
)
from vocabmaster.core.errors import AlreadySelectedError, DuplicateError, OracleError
from vocabmaster.core.models import Collection, Section, Song, Word, WordType
from vocabmaster.core.vocab_index import VocabularyIndex
from vocabmaster.core.vocabulary import VocabularyManager
from vocabmaster.storage.database import Database


class FakeOracle:
    """Oracle stand-in that records translate calls."""

    def __init__(self, fail=False, delay=0.0):
        self.calls = []
        self.fail = fail
        self.delay = delay

    async def translate(self, text):
        self.calls.append(text)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise OracleError("service unavailable")
        return f"<{text}>"


def make_index(*headwords):
    words = [Word(word=w, section_id=1, id=i) for i, w in enumerate(headwords, start=1)]
    return VocabularyIndex(
        words,
        [Section(name="Topic 1", collection_id=1, id=1)],
        [Collection(name="English", id=1)],
    )


def kinds(segments, kind):
    return [s.text for s in segments if s.kind == kind]


class TestAnnotate:
    """Test splitting text into highlighted segments."""

    def test_segments_cover_text(self):
        index = make_index("york", "new york", "take advantage of", "dance")
        texts = [
            "",
            "I love new york city",
            "  NEW   York!! 123 dancing\n\ttake advantage of it",
            "İstanbul, new york, İzmir",
            "...",
            "ünïcödé dance café",
        ]
        for text in texts:
            segments = annotate(text, index, pending=["city", "love you"])
            assert "".join(s.text for s in segments) == text
            position = 0
            for segment in segments:
                assert segment.start == position
                position = segment.end

    def test_longest_phrase_wins(self):
        segments = annotate("I love new york city", make_index("new york", "york"))
        assert kinds(segments, SegmentKind.KNOWN) == ["new york"]

    def test_phrase_keeps_original_case(self):
        segments = annotate("Welcome to New York", make_index("new york"))
        assert kinds(segments, SegmentKind.KNOWN) == ["New York"]

    def test_single_word_fuzzy(self):
        segments = annotate("She was teaching", make_index("teach"))
        known = [s for s in segments if s.kind == SegmentKind.KNOWN]
        assert [s.text for s in known] == ["teaching"]
        assert known[0].matches[0].word == "teach"

    def test_plain_runs_merged(self):
        segments = annotate("hello there world", make_index())
        assert len(segments) == 1
        assert segments[0].kind == SegmentKind.PLAIN

    def test_root_fragment_related(self):
        segments = annotate("an advantage here", make_index("take advantage of"))
        related = [s for s in segments if s.kind == SegmentKind.RELATED]
        assert [s.text for s in related] == ["advantage"]
        assert related[0].phrases[0].phrase == "take advantage of"

    def test_pending_word(self):
        segments = annotate("the dancer was dancing", make_index(), pending=["dance"])
        assert kinds(segments, SegmentKind.SELECTED) == ["dancer"]
        assert kinds(segments, SegmentKind.PLAIN) == ["the ", " was dancing"]

    def test_pending_phrase_beats_vocabulary(self):
        segments = annotate("dance tonight", make_index("dance"), pending=["dance tonight"])
        assert kinds(segments, SegmentKind.SELECTED) == ["dance tonight"]
        assert kinds(segments, SegmentKind.KNOWN) == []


class TestTranslationCache:
    """Test single-flight caching."""

    def test_failure_not_cached(self):
        cache = TranslationCache()
        calls = []

        async def failing():
            calls.append(1)
            raise OracleError("boom")

        async def scenario():
            for _ in range(2):
                with pytest.raises(OracleError):
                    await cache.fetch("dance", failing)

        asyncio.run(scenario())
        assert len(calls) == 2
        assert "dance" not in cache
        assert not cache.is_inflight("dance")


class AnnotationTestBase:
    """Temp store with one stored word and a song."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.db = Database(Path(self.temp_dir) / "test.db")
        self.vocab = VocabularyManager(self.db)
        self.section_id = self.vocab.get_sections()[0].id
        self.vocab.add_word(Word(word="run", section_id=self.section_id, translation="бежать"))
        self.song = Song.create(title="Dance Tonight", text="Run run, we dance tonight in new york city")
        self.oracle = FakeOracle()
        self.session = AnnotationSession(self.song, self.vocab, self.oracle)

    def teardown_method(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)


class TestPopup(AnnotationTestBase):
    """Test selection popups and translation fetching."""

    def test_short_selection_closes_popup(self):
        self.session.open_popup("dance")
        assert self.session.open_popup(" a ") is None
        assert self.session.popup is None

    def test_existing_word(self):
        popup = self.session.open_popup("Run,")
        assert popup.kind == PopupKind.EXISTING
        assert popup.translation == "бежать"
        assert popup.location == "English › Topic 1"
        assert not popup.loading

    def test_candidate_then_pending(self):
        popup = self.session.open_popup("Dance")
        assert popup.kind == PopupKind.CANDIDATE
        assert popup.can_add
        assert popup.loading

        self.session.add_pending("dance")
        assert self.session.open_popup("dance").kind == PopupKind.PENDING

        self.session.remove_pending("dance")
        assert self.session.popup.kind == PopupKind.CANDIDATE

    def test_no_oracle_not_loading(self):
        session = AnnotationSession(self.song, self.vocab, oracle=None)
        popup = session.open_popup("tonight")
        assert not popup.loading
        assert popup.translation is None

    def test_repeated_selection_uses_cache(self):
        async def scenario():
            await self.session.select("Dance")
            self.session.dismiss()
            return await self.session.select("dance!")

        popup = asyncio.run(scenario())
        assert self.oracle.calls == ["dance"]
        assert popup.translation == "<dance>"
        assert not popup.loading

    def test_concurrent_selection_single_call(self):
        self.oracle.delay = 0.01

        async def scenario():
            first = self.session.open_popup("dance")
            second = self.session.open_popup("Dance")
            await asyncio.gather(
                self.session.fetch_translation(first),
                self.session.fetch_translation(second),
            )

        asyncio.run(scenario())
        assert self.oracle.calls == ["dance"]
        assert self.session.cache.get("dance") == "<dance>"
        assert self.session.popup.translation == "<dance>"

    def test_stale_response_discarded(self):
        self.oracle.delay = 0.01

        async def scenario():
            first = self.session.open_popup("dance")
            fetch = asyncio.ensure_future(self.session.fetch_translation(first))
            await asyncio.sleep(0)
            second = self.session.open_popup("tonight")
            await fetch
            return second

        second = asyncio.run(scenario())
        assert self.session.popup is second
        assert second.translation is None
        assert second.loading
        assert self.session.cache.get("dance") == "<dance>"

    def test_failed_lookup(self):
        self.oracle.fail = True
        popup = asyncio.run(self.session.select("dance"))
        assert popup.failed
        assert not popup.loading
        assert popup.translation is None
        assert "dance" not in self.session.cache

        asyncio.run(self.session.select("dance"))
        assert self.oracle.calls == ["dance", "dance"]


class TestPendingList(AnnotationTestBase):
    """Test the pending selection list."""

    def test_add_existing_word(self):
        with pytest.raises(DuplicateError) as exc:
            self.session.add_pending("RUN")
        assert exc.value.location == "English › Topic 1"

    def test_short_selection_ignored(self):
        assert self.session.add_pending("I") is None
        assert self.session.add_pending(" !! ") is None
        assert self.session.pending_texts == []
        assert not self.session.has_unsaved

    def test_add_twice(self):
        self.session.add_pending("dance")
        with pytest.raises(AlreadySelectedError):
            self.session.add_pending("Dance!")
        assert self.session.pending_texts == ["dance"]

    def test_pending_highlighted(self):
        self.session.add_pending("new york city")
        segments = self.session.render()
        assert kinds(segments, SegmentKind.SELECTED) == ["new york city"]
        assert kinds(segments, SegmentKind.KNOWN) == ["Run", "run"]

    def test_check_all_toggles(self):
        self.session.add_pending("dance")
        self.session.add_pending("tonight")
        self.session.toggle_check("dance")
        self.session.toggle_check_all()
        assert [p.text for p in self.session.checked] == ["dance", "tonight"]
        self.session.toggle_check_all()
        assert self.session.checked == []

    def test_assign_checked(self):
        self.session.add_pending("dance")
        self.session.add_pending("tonight")
        self.session.toggle_check("tonight")
        self.session.assign_checked(self.section_id)
        assert self.session.get_pending("tonight").section_id == self.section_id
        assert self.session.get_pending("dance").section_id is None

    def test_close_discards_everything(self):
        self.session.add_pending("dance")
        self.session.cache.put("dance", "танцевать")
        self.session.close()
        assert not self.session.has_unsaved
        assert len(self.session.cache) == 0


class TestCommit(AnnotationTestBase):
    """Test adding the pending list to the vocabulary."""

    def test_short_items_not_saved(self):
        self.session.pending.append(PendingSelection(text="i", section_id=self.section_id))
        self.session.add_pending("dance")
        self.session.assign_section("dance", self.section_id)

        result = self.session.commit()

        assert [w.word for w in result.created] == ["dance"]
        assert self.vocab.find_word("i") is None
        assert self.session.pending_texts == []

    def test_unassigned_stay_pending(self):
        self.session.add_pending("dance")
        self.session.add_pending("new york city")
        self.session.assign_section("dance", self.section_id)

        result = self.session.commit()

        assert [w.word for w in result.created] == ["dance"]
        assert result.unassigned == ["new york city"]
        assert self.session.pending_texts == ["new york city"]
        stored = self.vocab.find_word("dance")
        assert stored.tags == ["dance-tonight"]
        assert stored.word_type == WordType.NOUN
        assert "Added 1" in result.summary()

    def test_phrase_type_and_cached_translation(self):
        asyncio.run(self.session.select("new york city"))
        self.session.add_pending("new york city")
        self.session.assign_section("new york city", self.section_id)

        result = self.session.commit()

        created = result.created[0]
        assert created.word_type == WordType.PHRASE
        assert created.translation == "<new york city>"
        assert created.level == self.vocab.default_level
        assert not self.session.has_unsaved

    def test_word_added_elsewhere_reported(self):
        self.session.add_pending("dance")
        self.session.assign_section("dance", self.section_id)
        self.vocab.add_word(Word(word="Dance", section_id=self.section_id))

        result = self.session.commit()

        assert result.created == []
        assert [d.word for d in result.duplicates] == ["dance"]
        assert result.duplicates[0].location == "English › Topic 1"
        assert self.session.pending_texts == []

    def test_store_failure_keeps_word(self):
        self.session.add_pending("dance")
        self.session.assign_section("dance", 999)

        result = self.session.commit()

        assert result.failed == ["dance"]
        assert self.session.pending_texts == ["dance"]
        assert self.vocab.find_word("dance") is None

    def test_commit_refreshes_highlighting(self):
        self.session.add_pending("tonight")
        self.session.assign_section("tonight", self.section_id)
        self.session.commit()
        assert "tonight" in kinds(self.session.render(), SegmentKind.KNOWN)

    def test_nothing_to_add(self):
        assert self.session.commit().summary() == "Nothing to add"
