"""Tests for text processing and the vocabulary index."""

from vocabmaster.core.models import Collection, Level, Section, Word, WordType
from vocabmaster.core.text_processor import (
    is_match,
    normalize_selection,
    parse_word_list,
    parse_word_list_line,
    song_tag,
    skip_non_letters,
    word_end,
)
from vocabmaster.core.vocab_index import VocabularyIndex


class TestIsMatch:
    """Test permissive token matching."""

    def test_equal(self):
        assert is_match("run", "run")
        assert is_match("Run", "rUN")

    def test_prefix_for_long_words(self):
        assert is_match("teach", "teaching")
        assert is_match("teacher", "teach")

    def test_short_words_exact_only(self):
        assert not is_match("cat", "cats")
        assert not is_match("abc", "abcd")

    def test_unrelated(self):
        assert not is_match("teach", "reach")


class TestSelections:
    """Test selection cleanup."""

    def test_normalize_selection(self):
        assert normalize_selection("Hello, World!\n") == "hello world"
        assert normalize_selection("  Don't\n  stop  ") == "don t stop"
        assert normalize_selection("(break a leg)") == "break a leg"

    def test_song_tag(self):
        assert song_tag("Hey Jude") == "hey-jude"
        assert song_tag("  Let  It   Be ") == "let-it-be"

    def test_word_end(self):
        assert word_end("hello world", 0) == 5
        assert word_end("hello world", 5) == 5

    def test_skip_non_letters(self):
        assert skip_non_letters("...hello", 0) == 3
        assert skip_non_letters("hello", 0) == 0
        assert skip_non_letters("a, b", 1) == 3
        assert skip_non_letters("end!", 3) == 4


class TestWordListImport:
    """Test parsing pasted word lists."""

    def test_equals_separator(self):
        parsed = parse_word_list_line("apple = a round fruit")
        assert parsed.word == "apple"
        assert parsed.meaning_en == "a round fruit"
        assert parsed.translation == ""

    def test_three_tab_columns(self):
        parsed = parse_word_list_line("run\tбежать\tmove fast")
        assert parsed.word == "run"
        assert parsed.translation == "бежать"
        assert parsed.meaning_en == "move fast"

    def test_single_column_skipped(self):
        assert parse_word_list_line("justoneword") is None
        assert parse_word_list_line("=meaning") is None

    def test_parse_word_list(self):
        text = "apple\tfruit\n\nbreak a leg=good luck\nnonsense\n"
        words = parse_word_list(text, section_id=5, level=Level.A2)
        assert [w.word for w in words] == ["apple", "break a leg"]
        assert all(w.section_id == 5 for w in words)
        assert all(w.level == Level.A2 for w in words)
        assert all(w.word_type == WordType.PHRASE for w in words)
        assert words[1].meaning_en == "good luck"


class TestVocabularyIndex:
    """Test lookup over a vocabulary snapshot."""

    def setup_method(self):
        collections = [Collection(name="English", id=1)]
        sections = [Section(name="Topic 1", collection_id=1, id=1)]
        words = [
            Word(word="Run", section_id=1, id=1, translation="бежать"),
            Word(word="new york", section_id=1, id=2),
            Word(word="new york city", section_id=1, id=3),
            Word(word="take advantage of", section_id=1, id=4, translation="воспользоваться"),
            Word(word="orphan", section_id=None, id=5),
        ]
        self.index = VocabularyIndex(words, sections, collections)

    def test_get_ignores_case(self):
        assert self.index.get(" run ").id == 1
        assert "RUN" in self.index
        assert self.index.get("walk") is None

    def test_phrases_longest_first(self):
        assert self.index.phrases == ["take advantage of", "new york city", "new york"]

    def test_location(self):
        assert self.index.location(self.index.get("run")) == "English › Topic 1"
        assert self.index.location(self.index.get("orphan")) is None

    def test_find_matches(self):
        matches = self.index.find_matches("running")
        assert [m.word for m in matches] == []
        matches = self.index.find_matches("run")
        assert len(matches) == 1
        assert matches[0].translation == "бежать"
        assert matches[0].location == "English › Topic 1"

    def test_root_fragments(self):
        refs = self.index.phrases_containing("Advantage")
        assert [r.phrase for r in refs] == ["take advantage of"]
        assert refs[0].location == "English › Topic 1"
        assert self.index.phrases_containing("take") == []
        assert self.index.phrases_containing("york") == []
