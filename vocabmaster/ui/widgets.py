"""Custom urwid widgets for the vocabulary app."""

import re
from dataclasses import dataclass
from typing import Optional

import urwid

from vocabmaster.core.annotation import Segment, SegmentKind
from vocabmaster.core.text_processor import is_letter
from vocabmaster.ui.theme import get_segment_attr

# Letter runs and the text between them
TOKEN = re.compile(r"[A-Za-z]+|[^A-Za-z]+")


@dataclass
class LyricToken:
    """A piece of one lyric line, tagged with its highlight."""
    text: str
    segment: Segment
    is_word: bool

    @property
    def kind(self) -> SegmentKind:
        return self.segment.kind


@dataclass
class WordInfo:
    """Position of a navigable word in the lyrics."""
    token: LyricToken
    line_idx: int
    word_idx: int       # Word index within line
    global_idx: int     # Word index in the whole song
    char_start: int     # Column in line


def split_lines(segments: list[Segment]) -> list[list[LyricToken]]:
    """Break annotated segments into lines of tokens."""
    lines: list[list[LyricToken]] = [[]]
    for segment in segments:
        for i, piece in enumerate(segment.text.split("\n")):
            if i > 0:
                lines.append([])
            for match in TOKEN.finditer(piece):
                text = match.group()
                lines[-1].append(LyricToken(text=text, segment=segment, is_word=is_letter(text[0])))
    return lines


class ListItem(urwid.WidgetWrap):
    """A selectable list row."""

    def __init__(self, id, title: str, subtitle: str = "", on_select=None, attr: str = "list_item"):
        self.id = id
        self.title = title
        self.on_select = on_select

        text = f"{title}\n  {subtitle}" if subtitle else title
        self.text_widget = urwid.Text(text)
        super().__init__(urwid.AttrMap(self.text_widget, attr, focus_map="list_item_focus"))

    def selectable(self):
        return True

    def keypress(self, size, key):
        if key == "enter" and self.on_select:
            self.on_select(self.id)
            return None
        return key

    def mouse_event(self, size, event, button, col, row, focus):
        if event == "mouse press" and button == 1 and self.on_select:
            self.on_select(self.id)
            return True
        return False


class ListBrowser(urwid.WidgetWrap):
    """A scrollable list of ListItems."""

    def __init__(self, on_select=None):
        self.on_select = on_select
        self.walker = urwid.SimpleFocusListWalker([])
        self.listbox = urwid.ListBox(self.walker)
        super().__init__(self.listbox)

    def set_items(self, items: list[tuple], keep_focus: bool = True):
        """Set rows from (id, title, subtitle) or (id, title, subtitle, attr) tuples."""
        focus_id = self.get_focused_id() if keep_focus else None
        self.walker.clear()
        for item in items:
            self.walker.append(ListItem(*item[:3], on_select=self.on_select, attr=item[3] if len(item) > 3 else "list_item"))

        for position, widget in enumerate(self.walker):
            if widget.id == focus_id:
                self.walker.set_focus(position)
                break

    def get_focused_id(self):
        """ID of the focused row, or None."""
        if self.walker and self.walker.focus is not None:
            return self.walker[self.walker.focus].id
        return None


class LyricLine(urwid.WidgetWrap):
    """One line of lyrics with highlighted words."""

    def __init__(self, line_idx: int, tokens: list[LyricToken], on_click=None):
        self.line_idx = line_idx
        self.tokens = tokens
        self.on_click = on_click
        self.cursor_word_idx: Optional[int] = None
        self.selected_word_indices: set[int] = set()

        self.text_widget = urwid.Text("")
        self._update_display()
        super().__init__(self.text_widget)

    def _update_display(self):
        markup = []
        word_idx = 0
        for token in self.tokens:
            if token.is_word:
                attr = get_segment_attr(
                    token.kind,
                    is_cursor=word_idx == self.cursor_word_idx,
                    is_selected=word_idx in self.selected_word_indices,
                )
                word_idx += 1
            else:
                attr = get_segment_attr(token.kind)
            markup.append((attr, token.text))
        # urwid.Text rejects an empty markup list
        self.text_widget.set_text(markup or "")

    def set_cursor(self, word_idx: Optional[int]):
        if self.cursor_word_idx != word_idx:
            self.cursor_word_idx = word_idx
            self._update_display()

    def set_selected(self, word_indices: set[int]):
        if self.selected_word_indices != word_indices:
            self.selected_word_indices = word_indices
            self._update_display()

    def get_word_at_col(self, col: int) -> Optional[int]:
        pos = 0
        word_idx = 0
        for token in self.tokens:
            end = pos + len(token.text)
            if token.is_word:
                if pos <= col < end:
                    return word_idx
                word_idx += 1
            pos = end
        return None

    def selectable(self):
        return True

    def keypress(self, size, key):
        return key

    def mouse_event(self, size, event, button, col, row, focus):
        if event == "mouse press" and button == 1 and self.on_click:
            self.on_click(self.line_idx, self.get_word_at_col(col))
            return True
        return False


class LyricViewer(urwid.WidgetWrap):
    """Annotated lyrics with a word cursor and Space selection."""

    def __init__(self, on_cursor_move=None):
        self.on_cursor_move = on_cursor_move
        self.words: list[WordInfo] = []
        self.lines: list[LyricLine] = []
        self.cursor_pos = 0
        self.selected_indices: set[int] = set()

        self.walker = urwid.SimpleFocusListWalker([])
        self.listbox = urwid.ListBox(self.walker)
        super().__init__(self.listbox)

    def set_segments(self, segments: list[Segment], keep_cursor: bool = False):
        """Show annotated text; the cursor survives a re-render if asked."""
        cursor = self.cursor_pos if keep_cursor else 0
        if not keep_cursor:
            self.selected_indices.clear()

        self.walker.clear()
        self.lines.clear()
        self.words.clear()

        for line_idx, tokens in enumerate(split_lines(segments)):
            char_pos = 0
            word_idx = 0
            for token in tokens:
                if token.is_word:
                    self.words.append(WordInfo(
                        token=token,
                        line_idx=line_idx,
                        word_idx=word_idx,
                        global_idx=len(self.words),
                        char_start=char_pos,
                    ))
                    word_idx += 1
                char_pos += len(token.text)

            line = LyricLine(line_idx, tokens, on_click=self._on_line_click)
            self.lines.append(line)
            self.walker.append(line)

        self.cursor_pos = min(cursor, max(len(self.words) - 1, 0))
        self.selected_indices = {i for i in self.selected_indices if i < len(self.words)}
        self._update_display()

    def _update_display(self):
        selected_by_line: dict[int, set[int]] = {}
        for idx in self.selected_indices:
            word = self.words[idx]
            selected_by_line.setdefault(word.line_idx, set()).add(word.word_idx)

        cursor = self.current_word
        for line in self.lines:
            on_line = cursor is not None and cursor.line_idx == line.line_idx
            line.set_cursor(cursor.word_idx if on_line else None)
            line.set_selected(selected_by_line.get(line.line_idx, set()))

        if cursor is not None:
            self.listbox.set_focus(cursor.line_idx)

    def _notify(self):
        if self.on_cursor_move:
            self.on_cursor_move()

    def _on_line_click(self, line_idx: int, word_idx: Optional[int]):
        if word_idx is None:
            return
        for word in self.words:
            if word.line_idx == line_idx and word.word_idx == word_idx:
                self.cursor_pos = word.global_idx
                self._update_display()
                self._notify()
                return

    @property
    def current_word(self) -> Optional[WordInfo]:
        if self.words and 0 <= self.cursor_pos < len(self.words):
            return self.words[self.cursor_pos]
        return None

    @property
    def current_segment(self) -> Optional[Segment]:
        word = self.current_word
        return word.token.segment if word else None

    def move_cursor(self, direction: str):
        """Move cursor: 'backward', 'forward', 'up', 'down', 'line_start', 'line_end'."""
        current = self.current_word
        if current is None:
            return

        if direction == "backward":
            self.cursor_pos = max(0, self.cursor_pos - 1)
        elif direction == "forward":
            self.cursor_pos = min(len(self.words) - 1, self.cursor_pos + 1)
        elif direction in ("up", "down"):
            step = -1 if direction == "up" else 1
            line_idx = current.line_idx + step
            # Skip blank lines between verses
            while 0 <= line_idx < len(self.lines):
                on_line = [w for w in self.words if w.line_idx == line_idx]
                if on_line:
                    nearest = min(on_line, key=lambda w: abs(w.char_start - current.char_start))
                    self.cursor_pos = nearest.global_idx
                    break
                line_idx += step
        elif direction in ("line_start", "line_end"):
            on_line = [w for w in self.words if w.line_idx == current.line_idx]
            self.cursor_pos = (on_line[0] if direction == "line_start" else on_line[-1]).global_idx

        self._update_display()
        self._notify()

    def toggle_select_current(self):
        if self.current_word is None:
            return
        if self.cursor_pos in self.selected_indices:
            self.selected_indices.remove(self.cursor_pos)
        else:
            self.selected_indices.add(self.cursor_pos)
        self._update_display()
        self._notify()

    def clear_selection(self):
        self.selected_indices.clear()
        self._update_display()

    def is_selection_contiguous(self) -> bool:
        indices = sorted(self.selected_indices)
        return all(b == a + 1 for a, b in zip(indices, indices[1:]))

    def get_selection_text(self) -> Optional[str]:
        """
        Selected words joined as a phrase, or the word under the cursor.

        Returns None for a selection with gaps.
        """
        if not self.selected_indices:
            word = self.current_word
            return word.token.text if word else None
        if not self.is_selection_contiguous():
            return None
        return " ".join(self.words[i].token.text for i in sorted(self.selected_indices))

    def keypress(self, size, key):
        moves = {
            "right": "forward", "ctrl f": "forward",
            "left": "backward", "ctrl b": "backward",
            "down": "down", "ctrl n": "down",
            "up": "up", "ctrl p": "up",
            "home": "line_start", "ctrl a": "line_start",
            "end": "line_end", "ctrl e": "line_end",
        }
        if key in moves:
            self.move_cursor(moves[key])
            return None
        if key == " ":
            self.toggle_select_current()
            return None
        return key


class TabBar(urwid.WidgetWrap):
    """A horizontal tab bar."""

    def __init__(self, tabs: list[str], on_tab_change=None):
        self.tabs = tabs
        self.active_tab = 0
        self.on_tab_change = on_tab_change
        super().__init__(self._build())

    def _build(self) -> urwid.Widget:
        columns = []
        for i, tab in enumerate(self.tabs):
            attr = "tab_active" if i == self.active_tab else "tab_inactive"
            columns.append(("pack", urwid.AttrMap(urwid.Text(f" {i + 1} {tab} "), attr)))
            columns.append(("pack", urwid.Text(" ")))
        return urwid.AttrMap(urwid.Columns(columns), "header")

    def set_active(self, index: int):
        if 0 <= index < len(self.tabs):
            self.active_tab = index
            self._w = self._build()
            if self.on_tab_change:
                self.on_tab_change(index)

    def mouse_event(self, size, event, button, col, row, focus):
        if event == "mouse press" and button == 1:
            x = 0
            for i, tab in enumerate(self.tabs):
                width = len(f" {i + 1} {tab} ") + 1
                if x <= col < x + width:
                    self.set_active(i)
                    return True
                x += width
        return False


class StatusBar(urwid.WidgetWrap):
    """Footer with a message line and a key hint line."""

    def __init__(self):
        self.message_widget = urwid.Text("")
        self.hint_widget = urwid.Text("")
        self.message_map = urwid.AttrMap(self.message_widget, "footer")
        super().__init__(urwid.Pile([
            self.message_map,
            urwid.AttrMap(self.hint_widget, "footer"),
        ]))

    def set_message(self, text: str, attr: str = "footer"):
        self.message_widget.set_text(text)
        self.message_map.set_attr_map({None: attr})

    def set_hint(self, hint: str):
        self.hint_widget.set_text(hint)


class Dialog(urwid.WidgetWrap):
    """A modal dialog with a title, a body and a row of buttons."""

    def __init__(self, title: str, body: urwid.Widget, buttons: list[tuple]):
        button_widgets = []
        for label, callback in buttons:
            button = urwid.Button(label, on_press=lambda b, cb=callback: cb())
            button_widgets.append((len(label) + 4, urwid.AttrMap(button, "button", focus_map="button_focus")))

        pile = urwid.Pile([
            urwid.AttrMap(urwid.Text(title, align="center"), "dialog_title"),
            urwid.Divider(),
            body,
            urwid.Divider(),
            urwid.Padding(urwid.Columns(button_widgets, dividechars=2), align="center", width="pack"),
        ])
        super().__init__(urwid.AttrMap(urwid.LineBox(pile), "dialog"))


class TextArea(urwid.Edit):
    """Multi-line edit that keeps Tab characters, for pasted word lists."""

    def __init__(self, caption="", edit_text=""):
        super().__init__(caption, edit_text, multiline=True)

    def keypress(self, size, key):
        if key == "tab":
            self.insert_text("\t")
            return None
        return super().keypress(size, key)
