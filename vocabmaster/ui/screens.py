"""Screen compositions for the app tabs."""

from typing import Optional

import urwid

from vocabmaster.core.annotation import AnnotationSession, CommitResult, Popup, PopupKind, SegmentKind
from vocabmaster.core.enrichment import enrich_words, needs_translation
from vocabmaster.core.errors import (
    DuplicateError,
    EmptyPoolError,
    InsufficientPoolError,
    StoreError,
)
from vocabmaster.core.models import Level, MasteryStatus, PracticeMode, Word, WordType
from vocabmaster.core.practice import FlashcardSession, PracticeSession, QuizSession, RecallSession
from vocabmaster.core.text_processor import normalize_selection, parse_word_list
from vocabmaster.ui.theme import get_status_attr
from vocabmaster.ui.widgets import ListBrowser, ListItem, LyricViewer


BADGES = [
    (PracticeMode.FLASHCARD, "C"),
    (PracticeMode.QUIZ, "Q"),
    (PracticeMode.RECALL, "W"),
]


def mode_badges(word: Word) -> str:
    """Passed-mode badges, e.g. "C·W" for flashcard and recall passed."""
    return "".join(letter if mode in word.passed_modes else "·" for mode, letter in BADGES)


def cycle(values: list, current):
    """Next value after ``current``, wrapping around."""
    if current not in values:
        return values[0]
    return values[(values.index(current) + 1) % len(values)]


class WordsScreen(urwid.WidgetWrap):
    """Vocabulary browser with scope and filters."""

    def __init__(self, app):
        self.app = app
        self.filter_text = urwid.Text("")
        self.list_browser = ListBrowser(on_select=self._on_word_select)
        self.content_box = urwid.LineBox(self.list_browser, title="Words")

        pile = urwid.Pile([
            ("pack", urwid.AttrMap(self.filter_text, "info")),
            self.content_box,
        ], focus_item=1)
        super().__init__(pile)

    @property
    def vocabulary(self):
        return self.app.vocabulary

    @property
    def pool_filter(self):
        return self.app.pool_filter

    def refresh_list(self):
        """Rebuild the word list for the current filters."""
        words = self.current_pool()
        items = []
        for word in words:
            subtitle = word.translation or word.meaning_en or "(no translation)"
            title = f"[{mode_badges(word)}] {word.word}  {word.level.value}  {word.word_type.value}"
            items.append((word.id, title, subtitle, get_status_attr(word.status)))
        self.list_browser.set_items(items)
        self.content_box.set_title(f"Words ({len(words)})")
        self.filter_text.set_text(self._describe_filter())

    def _describe_filter(self) -> str:
        f = self.pool_filter
        if f.section_id is not None:
            scope = self.vocabulary.section_label(f.section_id)
        elif f.collection_id is not None:
            names = {c.id: c.name for c in self.vocabulary.get_collections()}
            scope = names.get(f.collection_id, "?")
        else:
            scope = "All collections"
        level = f.level.value if f.level else "all levels"
        status = f.status.value if f.status else "any status"
        return f" {scope} | {level} | {status}"

    def focused_word(self) -> Optional[Word]:
        word_id = self.list_browser.get_focused_id()
        return self.vocabulary.get_word(word_id) if word_id is not None else None

    def current_pool(self) -> list[Word]:
        return self.vocabulary.build_pool(None, self.pool_filter)

    # Filters

    def cycle_collection(self):
        ids = [None] + [c.id for c in self.vocabulary.get_collections()]
        self.pool_filter.collection_id = cycle(ids, self.pool_filter.collection_id)
        self.pool_filter.section_id = None

    def cycle_section(self):
        sections = self.vocabulary.get_sections(self.pool_filter.collection_id)
        ids = [None] + [s.id for s in sections]
        self.pool_filter.section_id = cycle(ids, self.pool_filter.section_id)

    def cycle_level(self):
        self.pool_filter.level = cycle([None, *Level], self.pool_filter.level)

    def cycle_status(self):
        self.pool_filter.status = cycle([None, *MasteryStatus], self.pool_filter.status)

    # Actions

    def _on_word_select(self, word_id: int):
        word = self.vocabulary.get_word(word_id)
        if word:
            self.app.show_word_details(word)

    def _add_word(self, values: list[str]):
        headword, translation = values
        if not headword.strip():
            self.app.show_message("Word is required", "warning")
            return
        word = Word(
            word=headword.strip(),
            section_id=self.app.current_section_id(),
            word_type=WordType.PHRASE if " " in headword.strip() else WordType.NOUN,
            level=self.vocabulary.default_level,
            translation=translation.strip(),
        )
        try:
            self.vocabulary.add_word(word)
        except DuplicateError as e:
            self.app.show_message(str(e), "warning")
            return
        except StoreError as e:
            self.app.show_message(f"Could not save: {e}", "error")
            return
        self.app.show_message(f"Added: {word.word}", "success")
        self.refresh_list()

    def _import_words(self, values: list[str]):
        words = parse_word_list(values[0], self.app.current_section_id(), self.vocabulary.default_level)
        if not words:
            self.app.show_message("Nothing to import: use word<Tab>meaning or word=meaning", "warning")
            return
        created, duplicates = self.vocabulary.import_words(words)
        message = f"Imported {len(created)} words"
        if duplicates:
            message += f", skipped {len(duplicates)} already in vocabulary"
        self.app.show_message(message, "success")
        self.refresh_list()

    def _delete_word(self, word: Word):
        def confirm():
            self.app.close_overlay()
            if self.vocabulary.delete_word(word.id):
                self.app.show_message(f"Deleted: {word.word}")
            self.refresh_list()

        self.app.confirm(f'Delete "{word.word}"?', confirm)

    def _enrich(self, words: list[Word], field_name: Optional[str] = None):
        if not self.app.require_oracle():
            return
        if not words:
            self.app.show_message("Nothing to update")
            return

        def progress(position, total, word):
            self.app.show_message(f"Looking up {position}/{total}: {word.word}")
            self.app.redraw()

        def done(result):
            self.app.show_message(result.summary(), "success" if not result.failed else "warning")
            self.refresh_list()

        self.app.run_async(
            enrich_words(self.vocabulary, self.app.oracle, words, field_name, on_progress=progress),
            on_done=done,
        )

    def keypress(self, size, key):
        filters = {
            "c": self.cycle_collection,
            "s": self.cycle_section,
            "l": self.cycle_level,
            "f": self.cycle_status,
        }
        if key in filters:
            filters[key]()
            self.refresh_list()
            return None

        word = self.focused_word()

        if key == "n":
            self.app.show_form("Add Word", [("Word", ""), ("Translation", "")], self._add_word)
        elif key == "I":
            self.app.show_form(
                "Import Words (word<Tab>meaning or word=meaning per line)",
                [("Lines", "", True)],
                self._import_words,
            )
        elif key == "d" and word:
            self._delete_word(word)
        elif key == "e" and word:
            self._enrich([word])
        elif key == "T":
            self._enrich([w for w in self.current_pool() if needs_translation(w)])
        elif key == "R":
            self._enrich(self.current_pool(), "related_forms")
        elif key == "S":
            self._enrich(self.current_pool(), "synonyms")
        elif key == "C":
            self.app.show_form("New Collection", [("Name", "")], self._add_collection)
        elif key == "A":
            self.app.show_form("New Section", [("Name", "")], self._add_section)
        elif key in ("p", "P") and word:
            self.app.pronounce(word.word, slow=key == "P")
        else:
            return super().keypress(size, key)
        return None

    def _add_collection(self, values: list[str]):
        if values[0].strip():
            collection = self.vocabulary.add_collection(values[0])
            self.pool_filter.collection_id = collection.id
            self.pool_filter.section_id = None
            self.refresh_list()

    def _add_section(self, values: list[str]):
        collection_id = self.pool_filter.collection_id
        if collection_id is None:
            collections = self.vocabulary.get_collections()
            if not collections:
                self.app.show_message("Create a collection first", "warning")
                return
            collection_id = collections[0].id
        if values[0].strip():
            section = self.vocabulary.add_section(collection_id, values[0])
            self.pool_filter.collection_id = collection_id
            self.pool_filter.section_id = section.id
            self.refresh_list()

    def hint(self) -> str:
        return ("[c]ollection [s]ection [l]evel [f]ilter status | [n]ew [I]mport [d]elete "
                "[e]nrich [T]ranslate all [R]elated [S]ynonyms | [C]ollection+ [A] section+ [p]ronounce")


class PracticeScreen(urwid.WidgetWrap):
    """One practice drill: cards, quiz or write."""

    TITLES = {
        PracticeMode.FLASHCARD: "Cards",
        PracticeMode.QUIZ: "Quiz",
        PracticeMode.RECALL: "Write",
    }

    def __init__(self, app, mode: PracticeMode):
        self.app = app
        self.mode = mode
        self.session: Optional[PracticeSession] = None
        self.box = urwid.LineBox(urwid.SolidFill(" "), title=self.TITLES[mode])
        super().__init__(self.box)

    def start(self):
        """Start a session over the current filters."""
        try:
            self.session = self.app.vocabulary.start_session(self.mode, self.app.pool_filter)
        except (EmptyPoolError, InsufficientPoolError) as e:
            self.session = None
            self._show_lines([("card_hint", str(e)), "", ("card_hint", "Change the filters on the Words tab")])
            return
        self._render()

    def _show_lines(self, lines: list, extra: Optional[urwid.Widget] = None):
        widgets = [urwid.Text(line, align="center") for line in lines]
        if extra is not None:
            widgets.append(extra)
        self.box.original_widget = urwid.Filler(urwid.Pile(widgets), valign="middle")

    def _render(self):
        session = self.session
        if session is None:
            return
        if session.completed:
            self._render_complete()
        elif isinstance(session, FlashcardSession):
            self._render_card(session)
        elif isinstance(session, QuizSession):
            self._render_quiz(session)
        elif isinstance(session, RecallSession):
            self._render_recall(session)
        self.app.update_status()

    def _render_card(self, session: FlashcardSession):
        word = session.current_word
        lines = [("card_hint", session.progress), "", ("card_word", word.word)]
        if word.phonetic:
            lines.append(("card_hint", word.phonetic))
        lines.append("")
        if session.revealed:
            lines.append(("card_answer", word.translation or "?"))
            if word.meaning_en:
                lines.append(word.meaning_en)
            if word.example:
                lines.extend(["", ("card_hint", word.example)])
        else:
            lines.append(("card_hint", "[Space] to flip"))
        self._show_lines(lines)

    def _prompt_lines(self, word: Word) -> list:
        lines = []
        if word.meaning_en:
            lines.append(("card_word", word.meaning_en))
        if word.translation:
            lines.append(("card_answer", word.translation))
        if not lines:
            lines.append(("card_hint", f"({word.word_type.value}, {word.level.value})"))
        return lines

    def _render_quiz(self, session: QuizSession):
        word = session.current_word
        lines = [("card_hint", session.progress), ""] + self._prompt_lines(word) + [""]
        for number, option in enumerate(session.options, start=1):
            attr = "option"
            if session.answered and option is word:
                attr = "option_correct"
            elif session.answered and option is session.selected:
                attr = "option_wrong"
            lines.append((attr, f" {number}. {option.word} "))
        if session.answered:
            verdict = ("success", "Correct!") if session.last_correct else ("error", f"Answer: {word.word}")
            lines.extend(["", verdict, ("card_hint", "[Enter] next")])
        self._show_lines(lines)

    def _render_recall(self, session: RecallSession):
        word = session.current_word
        lines = [("card_hint", session.progress), ""] + self._prompt_lines(word) + [""]
        if session.answered:
            lines.append(("card_word", session.input_text or "(empty)"))
            verdict = ("success", "Correct!") if session.verdict else ("error", f"Answer: {word.word}")
            lines.extend(["", verdict, ("card_hint", "[Enter] next")])
            self._show_lines(lines)
        else:
            self.edit = urwid.Edit("> ")
            self._show_lines(lines, extra=urwid.Padding(urwid.AttrMap(self.edit, "list_item_focus"), align="center", width=40))

    def _render_complete(self):
        result = self.session.result()
        lines = [
            ("content_title", "Session complete!"),
            "",
            f"{result.correct} / {result.total} correct ({result.percent}%)",
        ]
        if result.wrong_words:
            lines.extend(["", ("warning", "To review:")])
            lines.extend(w.word for w in result.wrong_words)
        lines.extend(["", ("card_hint", "[r]estart")])
        self._show_lines(lines)

    def _current_text(self) -> Optional[str]:
        word = self.session.current_word if self.session else None
        return word.word if word else None

    def keypress(self, size, key):
        session = self.session
        if session is None:
            return key

        if session.completed:
            if key == "r":
                try:
                    self.app.vocabulary.restart_session(session, self.app.pool_filter)
                except (EmptyPoolError, InsufficientPoolError) as e:
                    self.app.show_message(str(e), "warning")
                    return None
                self._render()
                return None
            return key

        if isinstance(session, RecallSession) and not session.answered:
            if key == "enter":
                session.check(self.edit.edit_text)
                self._render()
                return None
            return super().keypress(size, key)

        if key in ("p", "P"):
            text = self._current_text()
            if text:
                self.app.pronounce(text, slow=key == "P")
            return None

        if isinstance(session, FlashcardSession):
            if key == " ":
                session.flip()
            elif key == "k":
                session.judge(True)
            elif key in ("a", "j"):
                session.judge(False)
            else:
                return key
        elif isinstance(session, QuizSession):
            if key in ("1", "2", "3", "4") and not session.answered:
                options = session.options
                index = int(key) - 1
                if index < len(options):
                    session.select(options[index])
            elif key in ("enter", "n"):
                session.next()
            else:
                return key
        elif isinstance(session, RecallSession):
            if key in ("enter", "n"):
                session.next()
            else:
                return key

        self._render()
        return None

    def hint(self) -> str:
        if self.session is None:
            return "[1-5] tabs | [q]uit"
        if self.session.completed:
            return "[r]estart | [q]uit"
        return {
            PracticeMode.FLASHCARD: "[Space] flip  [k]now  [a]gain  [p]ronounce",
            PracticeMode.QUIZ: "[1-4] answer  [Enter] next  [p]ronounce  | Tab to switch tabs",
            PracticeMode.RECALL: "Type the word, [Enter] check / next",
        }[self.mode]


class PendingListView(urwid.WidgetWrap):
    """Overlay body for reviewing pending selections before commit."""

    def __init__(self, screen: "SongsScreen"):
        self.screen = screen
        self.walker = urwid.SimpleFocusListWalker([])
        super().__init__(urwid.ListBox(self.walker))
        self.refresh()

    @property
    def session(self) -> AnnotationSession:
        return self.screen.session

    def refresh(self):
        vocabulary = self.screen.app.vocabulary
        focus = self.walker.focus or 0
        self.walker.clear()
        for item in self.session.pending:
            mark = "[x]" if item.checked else "[ ]"
            translation = self.session.cache.get(item.text) or ""
            title = f"{mark} {item.text}  {translation}"
            self.walker.append(ListItem(item.text, title, f"  → {vocabulary.section_label(item.section_id)}"))
        if self.walker:
            self.walker.set_focus(min(focus, len(self.walker) - 1))

    def focused_text(self) -> Optional[str]:
        if self.walker and self.walker.focus is not None:
            return self.walker[self.walker.focus].id
        return None

    def keypress(self, size, key):
        text = self.focused_text()
        if key == " " and text:
            self.session.toggle_check(text)
        elif key == "a":
            self.session.toggle_check_all()
        elif key == "s" and self.session.pending:
            self.screen.cycle_pending_section(text)
        elif key == "x" and text:
            self.session.remove_pending(text)
            self.screen.rerender()
        elif key == "c":
            self.screen.commit()
        else:
            return super().keypress(size, key)
        self.refresh()
        return None


class SongsScreen(urwid.WidgetWrap):
    """Song lyrics: pick words and phrases to learn."""

    def __init__(self, app):
        self.app = app
        self.session: Optional[AnnotationSession] = None
        self.folder_id: Optional[str] = None

        self.list_browser = ListBrowser(on_select=self._on_song_select)
        self.viewer = LyricViewer(on_cursor_move=self._on_cursor_move)
        self.info_text = urwid.Text("")

        self.list_box = urwid.LineBox(self.list_browser, title="Songs")
        self.lyrics_box = urwid.LineBox(self.viewer, title="Lyrics")
        self.info_box = urwid.LineBox(urwid.AttrMap(self.info_text, "info"), title="Info")

        right = urwid.Pile([self.lyrics_box, ("pack", self.info_box)])
        self.columns = urwid.Columns([("weight", 1, self.list_box), ("weight", 3, right)])
        super().__init__(self.columns)

    # Song list

    def refresh_list(self):
        folders = self.app.content.list_folders()
        if self.folder_id not in [f.id for f in folders]:
            self.folder_id = None
        summaries = self.app.content.list_songs(self.folder_id)
        self.list_browser.set_items([(s.id, s.title, s.subtitle) for s in summaries])
        folder_name = next((f.name for f in folders if f.id == self.folder_id), "All songs")
        self.list_box.set_title(f"Songs: {folder_name}")

    def cycle_folder(self):
        ids = [None] + [f.id for f in self.app.content.list_folders()]
        self.folder_id = cycle(ids, self.folder_id)
        self.refresh_list()

    def _on_song_select(self, song_id: str):
        song = self.app.content.get_song(song_id)
        if song is None:
            return
        self.leave()
        self.session = AnnotationSession(
            song,
            self.app.vocabulary,
            oracle=self.app.oracle,
            default_section_id=self.app.current_section_id(),
        )
        self.lyrics_box.set_title(song.title)
        self.viewer.set_segments(self.session.render())
        self.columns.focus_position = 1
        self._on_cursor_move()

    def _add_song(self, values: list[str]):
        title, text = values
        if not text.strip():
            self.app.show_message("Lyrics are required", "warning")
            return
        song = self.app.content.add_song(title, text, folder_id=self.folder_id)
        self.refresh_list()
        self._on_song_select(song.id)

    def _delete_song(self, song_id: str):
        song = self.app.content.get_song(song_id)
        if song is None:
            return

        def confirm():
            self.app.close_overlay()
            if self.session and self.session.song.id == song_id:
                self.leave()
                self.viewer.set_segments([])
            self.app.content.delete_song(song_id)
            self.refresh_list()

        self.app.confirm(f'Delete song "{song.title}"?', confirm)

    def leave(self):
        """Discard the annotation session."""
        if self.session is None:
            return
        if self.session.has_unsaved:
            self.app.show_message(f"Discarded {len(self.session.pending)} unsaved selections", "warning")
        self.session.close()
        self.session = None

    # Annotation

    def rerender(self):
        if self.session:
            self.viewer.set_segments(self.session.render(), keep_cursor=True)
            self._on_cursor_move()

    def _on_cursor_move(self):
        """Tooltip for the highlighted word under the cursor."""
        if self.session is None or self.session.popup is not None:
            return
        segment = self.viewer.current_segment
        if segment is None:
            self.info_text.set_text("")
        elif segment.kind == SegmentKind.KNOWN and segment.matches:
            self.info_text.set_text("\n".join(
                f"{m.word} {m.phonetic}  {m.translation}  ({m.location})" for m in segment.matches
            ))
        elif segment.kind == SegmentKind.RELATED:
            self.info_text.set_text("In phrases: " + "; ".join(
                f"{p.phrase} ({p.translation})" for p in segment.phrases
            ))
        elif segment.kind == SegmentKind.SELECTED:
            self.info_text.set_text(f"Selected: {segment.text}")
        else:
            self.info_text.set_text(self._pending_summary())
        self.app.update_status()

    def _pending_summary(self) -> str:
        if not self.session or not self.session.pending:
            return ""
        return f"{len(self.session.pending)} selected: " + ", ".join(self.session.pending_texts)

    def _show_popup(self, popup: Optional[Popup] = None):
        popup = popup or (self.session.popup if self.session else None)
        if popup is None or self.session is None or popup is not self.session.popup:
            return
        if popup.loading:
            translation = "Translating..."
        elif popup.failed:
            translation = "Translation unavailable"
        else:
            translation = popup.translation or ""

        lines = [f'"{popup.original}"  {translation}']
        if popup.kind == PopupKind.EXISTING:
            lines.append(f"Already in vocabulary: {popup.location or 'Unknown'}")
        elif popup.kind == PopupKind.PENDING:
            lines.append("[x] remove from selection")
        else:
            lines.append("[a] add to selection")
        self.info_text.set_text("\n".join(lines))

    def translate_selection(self):
        text = self.viewer.get_selection_text()
        if text is None:
            self.app.show_message("Select adjacent words for a phrase", "warning")
            return
        popup = self.session.open_popup(text)
        if popup is None:
            self.info_text.set_text("")
            return
        self._show_popup(popup)
        if popup.loading:
            self.app.run_async(
                self.session.fetch_translation(popup),
                on_done=lambda _: self._show_popup(),
            )

    def add_selection(self):
        popup = self.session.popup
        text = popup.original if popup else self.viewer.get_selection_text()
        if not text:
            return
        try:
            item = self.session.add_pending(text)
        except DuplicateError as e:
            self.app.show_message(str(e), "warning")
            return
        if item is None:
            return
        self.viewer.clear_selection()
        self.rerender()
        self.app.show_message(f'Selected "{item.text}" → {self.app.vocabulary.section_label(item.section_id)}')

    def remove_selection(self):
        popup = self.session.popup
        text = popup.text if popup else self.viewer.get_selection_text()
        if text and self.session.remove_pending(normalize_selection(text)):
            self.rerender()
            self._show_popup()

    def cycle_pending_section(self, text: Optional[str]):
        """Move checked items (or the focused one) to the next section."""
        ids = [s.id for s in self.app.vocabulary.get_sections()]
        if not ids:
            return
        targets = self.session.checked or [p for p in self.session.pending if p.text == text]
        if not targets:
            return
        section_id = cycle(ids, targets[0].section_id)
        for item in targets:
            item.section_id = section_id

    def commit(self):
        result: CommitResult = self.session.commit()
        attr = "success" if result.created and not (result.duplicates or result.failed) else "warning"
        self.app.show_message(result.summary(), attr)
        self.rerender()

    def show_pending(self):
        if not self.session.pending:
            self.app.show_message("Nothing selected yet")
            return
        view = PendingListView(self)

        def on_key(key):
            if key in ("esc", "q"):
                self.app.close_overlay()
                self.rerender()
                return True
            return False

        self.app.open_overlay(
            view,
            title="Selected: [Space] check [a]ll [s]ection [x] remove [c]ommit [Esc] close",
            on_key=on_key,
        )

    def explain(self):
        if not self.app.require_oracle(allow_cached=bool(self.app.content.get_explanation(self.session.song))):
            return
        song = self.session.song
        self.app.show_message(f"Explaining {song.title}...")

        def done(explanation):
            if explanation is None:
                self.app.show_message("Could not explain this song", "warning")
                return
            self.app.show_text_overlay(f"About: {song.title}", explanation)

        self.app.run_async(self.app.content.explain_song(song, self.app.oracle), on_done=done)

    def keypress(self, size, key):
        if key == "n":
            self.app.show_form("New Song", [("Title", ""), ("Lyrics", "", True)], self._add_song)
            return None
        if key == "F":
            self.cycle_folder()
            return None
        if key == "D" and self.columns.focus_position == 0:
            song_id = self.list_browser.get_focused_id()
            if song_id:
                self._delete_song(song_id)
            return None

        if self.session is not None and self.columns.focus_position == 1:
            actions = {
                "t": self.translate_selection,
                "enter": self.translate_selection,
                "a": self.add_selection,
                "x": self.remove_selection,
                "L": self.show_pending,
                "c": self.commit,
                "E": self.explain,
            }
            if key in actions:
                actions[key]()
                return None
            if key in ("p", "P"):
                text = self.viewer.get_selection_text()
                if text:
                    self.app.pronounce(text, slow=key == "P")
                return None
            if key == "esc":
                self.session.dismiss()
                self.viewer.clear_selection()
                self._on_cursor_move()
                return None

        key = super().keypress(size, key)
        if key is None and self.session is not None and self.session.popup is not None:
            # Cursor moved away from the selection
            if self.viewer.get_selection_text() != self.session.popup.original:
                self.session.dismiss()
                self._on_cursor_move()
        return key

    def hint(self) -> str:
        if self.session is None or self.columns.focus_position == 0:
            return "[Enter] open song  [n]ew song  [F]older  [D]elete  | Tab/1-5 tabs"
        return ("arrows move  [Space] select  [t]ranslate  [a]dd  [x] remove  [L]ist  "
                "[c]ommit  [E]xplain  [p]ronounce  [Esc] clear")
