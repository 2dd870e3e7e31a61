"""Tests for theme helpers and the lyric widgets."""

from vocabmaster.core.annotation import SegmentKind, annotate
from vocabmaster.core.models import MasteryStatus, PracticeMode, Word
from vocabmaster.core.vocab_index import VocabularyIndex
from vocabmaster.ui.screens import cycle, mode_badges
from vocabmaster.ui.theme import get_segment_attr, get_status_attr
from vocabmaster.ui.widgets import LyricViewer, split_lines


def segments_for(text, *headwords):
    index = VocabularyIndex([Word(word=w, id=i) for i, w in enumerate(headwords, start=1)])
    return annotate(text, index)


class TestTheme:
    """Test theme attribute helpers."""

    def test_status_attrs(self):
        assert get_status_attr(MasteryStatus.NEW) == "new"
        assert get_status_attr(MasteryStatus.LEARNING) == "learning"
        assert get_status_attr(MasteryStatus.LEARNED) == "learned"

    def test_segment_attrs(self):
        assert get_segment_attr(SegmentKind.PLAIN) == "plain"
        assert get_segment_attr(SegmentKind.KNOWN) == "known_word"
        assert get_segment_attr(SegmentKind.SELECTED) == "pending"
        assert get_segment_attr(SegmentKind.RELATED, is_cursor=True) == "cursor_related"
        assert get_segment_attr(SegmentKind.PLAIN, is_cursor=True) == "cursor"

    def test_selection_overrides_kind(self):
        assert get_segment_attr(SegmentKind.KNOWN, is_selected=True) == "selected"
        assert get_segment_attr(SegmentKind.KNOWN, is_cursor=True, is_selected=True) == "cursor_selected"


class TestScreenHelpers:
    """Test small helpers used by the screens."""

    def test_mode_badges(self):
        word = Word(word="run", passed_modes=frozenset({PracticeMode.FLASHCARD, PracticeMode.RECALL}))
        assert mode_badges(word) == "C·W"
        assert mode_badges(Word(word="walk")) == "···"

    def test_cycle(self):
        assert cycle([None, 1, 2], None) == 1
        assert cycle([None, 1, 2], 2) is None
        assert cycle([None, 1, 2], 5) is None


class TestSplitLines:
    """Test breaking segments into lines."""

    def test_lines_and_words(self):
        lines = split_lines(segments_for("new york\nis big", "new york"))
        assert len(lines) == 2
        assert [t.text for t in lines[0] if t.is_word] == ["new", "york"]
        assert all(t.kind == SegmentKind.KNOWN for t in lines[0])
        assert [t.text for t in lines[1]] == ["is", " ", "big"]

    def test_blank_lines_kept(self):
        lines = split_lines(segments_for("one\n\ntwo"))
        assert len(lines) == 3
        assert lines[1] == []


class TestLyricViewer:
    """Test cursor movement and word selection."""

    def setup_method(self):
        self.viewer = LyricViewer()
        self.viewer.set_segments(segments_for("new york is\n\nbig city", "new york"))

    def test_cursor_starts_at_first_word(self):
        assert self.viewer.current_word.token.text == "new"
        assert self.viewer.current_segment.kind == SegmentKind.KNOWN

    def test_move_down_skips_blank_line(self):
        self.viewer.move_cursor("down")
        assert self.viewer.current_word.token.text == "big"
        self.viewer.move_cursor("up")
        assert self.viewer.current_word.token.text == "new"

    def test_line_end(self):
        self.viewer.move_cursor("line_end")
        assert self.viewer.current_word.token.text == "is"
        self.viewer.move_cursor("forward")
        assert self.viewer.current_word.token.text == "big"

    def test_selection_text(self):
        assert self.viewer.get_selection_text() == "new"
        self.viewer.toggle_select_current()
        self.viewer.move_cursor("forward")
        self.viewer.toggle_select_current()
        assert self.viewer.get_selection_text() == "new york"

    def test_selection_with_gap(self):
        self.viewer.toggle_select_current()
        self.viewer.move_cursor("line_end")
        self.viewer.toggle_select_current()
        assert self.viewer.get_selection_text() is None

    def test_rerender_keeps_cursor(self):
        self.viewer.move_cursor("forward")
        self.viewer.toggle_select_current()
        self.viewer.set_segments(segments_for("new york is\n\nbig city"), keep_cursor=True)
        assert self.viewer.current_word.token.text == "york"
        assert self.viewer.selected_indices == {1}

        self.viewer.set_segments(segments_for("new york is\n\nbig city"))
        assert self.viewer.current_word.token.text == "new"
        assert self.viewer.selected_indices == set()
