"""Main application entry point."""

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional

import urwid
from dotenv import load_dotenv

from vocabmaster.ai.oracle import TranslationOracle
from vocabmaster.config import create_provider, default_level, load_config
from vocabmaster.core.content_manager import ContentManager
from vocabmaster.core.errors import VocabError
from vocabmaster.core.models import PracticeMode, Word
from vocabmaster.core.practice import PoolFilter
from vocabmaster.core.tts import TextToSpeech, TTSError
from vocabmaster.core.vocabulary import VocabularyManager
from vocabmaster.storage.database import Database
from vocabmaster.ui.screens import PracticeScreen, SongsScreen, WordsScreen
from vocabmaster.ui.theme import PALETTE
from vocabmaster.ui.widgets import Dialog, StatusBar, TabBar, TextArea

# Load .env file if present
load_dotenv()

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

HELP_TEXT = """
VocabMaster

Navigation:
  1-5, Tab    Switch between tabs
  ↑/↓         Navigate lists
  Enter       Select item
  ?           This help
  q           Quit

Words:
  c / s       Cycle collection / section scope
  l / f       Cycle level / status filter
  n           Add a word
  I           Import word list (word<Tab>meaning)
  e           Look up the focused word
  T / R / S   Translate all / related forms / synonyms
  d           Delete word

Cards:        Space flip, k know, a again
Quiz:         1-4 answer, Enter next
Write:        type the word, Enter check

Songs:
  n           Paste a new song
  Space       Select word under cursor
  t           Translate selection
  a / x       Add to / remove from selection list
  L           Review selection list, assign sections
  c           Add selection list to vocabulary
  E           Explain the song
  p / P       Pronounce (normal/slow)

Press Esc to close...
"""


def setup_logging(config: dict, base_path: Path) -> None:
    """Send logs to a file so they do not draw over the UI."""
    log_config = config.get("logging", {})
    level = getattr(logging, str(log_config.get("level") or "WARNING").upper(), logging.WARNING)
    log_file = Path(log_config.get("file") or base_path / "vocabmaster.log").expanduser()
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(level=level, filename=str(log_file), format=LOG_FORMAT)


class App:
    """Main application class."""

    TAB_NAMES = ["Words", "Cards", "Quiz", "Write", "Songs"]

    def __init__(self, config_path: Optional[str] = None):
        self.config = load_config(config_path)

        data_config = self.config["data"]
        base_path = Path(data_config["base_path"]).expanduser()
        setup_logging(self.config, base_path)

        self.db = Database(base_path / data_config["database"])
        self.vocabulary = VocabularyManager(self.db, default_level=default_level(self.config))
        self.content = ContentManager(
            songs_dir=base_path / data_config["songs_dir"],
            folders_dir=base_path / data_config["song_folders_dir"],
            database=self.db,
        )

        self.oracle = self._init_oracle()
        tts_config = self.config["tts"]
        self.tts = TextToSpeech(lang=tts_config["lang"], tld=tts_config["tld"])

        # Shared by the word list and the practice tabs
        self.pool_filter = PoolFilter()

        self.loop: Optional[urwid.MainLoop] = None
        self.aloop: Optional[asyncio.AbstractEventLoop] = None
        self._tasks: set[asyncio.Task] = set()

        self._init_ui()

    def _init_oracle(self) -> Optional[TranslationOracle]:
        """Translation oracle if an AI provider is configured."""
        provider = create_provider(self.config)
        if provider is None:
            logger.info("No AI provider configured; translations disabled")
            return None
        language = self.config["learning"]["translation_language"]
        logger.info("Using %s for %s translations", provider.name, language)
        return TranslationOracle(provider, language=language)

    def _init_ui(self):
        self.tab_bar = TabBar(self.TAB_NAMES, on_tab_change=self._on_tab_change)

        self.words_screen = WordsScreen(self)
        self.cards_screen = PracticeScreen(self, PracticeMode.FLASHCARD)
        self.quiz_screen = PracticeScreen(self, PracticeMode.QUIZ)
        self.write_screen = PracticeScreen(self, PracticeMode.RECALL)
        self.songs_screen = SongsScreen(self)
        self.screens = [
            self.words_screen,
            self.cards_screen,
            self.quiz_screen,
            self.write_screen,
            self.songs_screen,
        ]

        self.status_bar = StatusBar()
        self.body = urwid.WidgetPlaceholder(self.screens[0])
        self.frame = urwid.Frame(header=self.tab_bar, body=self.body, footer=self.status_bar)

        self._refresh_current_screen()

    # Tabs

    @property
    def current_screen(self):
        return self.body.original_widget

    def _on_tab_change(self, index: int):
        if self.current_screen is self.songs_screen and index != self.screens.index(self.songs_screen):
            self.songs_screen.leave()
        self.body.original_widget = self.screens[index]
        self._refresh_current_screen()

    def _refresh_current_screen(self):
        current = self.current_screen
        if current is self.words_screen:
            self.words_screen.refresh_list()
        elif current is self.songs_screen:
            self.songs_screen.refresh_list()
        elif isinstance(current, PracticeScreen):
            current.start()
        self.update_status()

    def switch_tab(self, index: int):
        self.tab_bar.set_active(index)

    # Status

    def update_status(self):
        stats = self.vocabulary.get_stats()
        counts = f"New {stats['new']} | Learning {stats['learning']} | Learned {stats['learned']}"
        ai = "AI on" if self.oracle else "AI off"
        self.status_bar.set_hint(f"{counts} | {ai} | {self.current_screen.hint()}")

    def show_message(self, message: str, attr: str = "footer"):
        self.status_bar.set_message(message, attr)

    def redraw(self):
        if self.loop is not None:
            self.loop.draw_screen()

    def current_section_id(self) -> Optional[int]:
        """Section new words go to: the filtered section, else the first in scope."""
        if self.pool_filter.section_id is not None:
            return self.pool_filter.section_id
        sections = self.vocabulary.get_sections(self.pool_filter.collection_id)
        return sections[0].id if sections else None

    def require_oracle(self, allow_cached: bool = False) -> bool:
        if self.oracle is None and not allow_cached:
            self.show_message("AI not configured - set ANTHROPIC_API_KEY or OPENAI_API_KEY", "warning")
            return False
        return True

    # Background work

    def run_async(self, coro, on_done: Optional[Callable] = None):
        """Run a coroutine on the UI event loop and call ``on_done`` with its result."""
        task = self.aloop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._task_done(t, on_done))
        return task

    def _task_done(self, task: asyncio.Task, on_done: Optional[Callable]):
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if isinstance(error, (VocabError, TTSError)):
            self.show_message(str(error), "error")
        elif error is not None:
            logger.error("Background task failed", exc_info=error)
            self.show_message(f"Error: {error}", "error")
        elif on_done is not None:
            on_done(task.result())
        self.update_status()
        self.redraw()

    def pronounce(self, text: str, slow: bool = False):
        self.show_message(f"Speaking: {text}")
        self.run_async(asyncio.to_thread(self.tts.speak, text, slow))

    # Overlays

    def open_overlay(self, widget: urwid.Widget, title: str = "", on_key=None,
                     width=("relative", 80), height=("relative", 80)):
        """Show a boxed widget over the frame; ``on_key`` gets unhandled keys."""
        box = urwid.LineBox(widget, title=title)
        self.loop.widget = urwid.Overlay(box, self.frame, align="center", width=width,
                                         valign="middle", height=height)

        def handle(key):
            if on_key is not None and on_key(key):
                return
            if key in ("esc", "q", "Q"):
                self.close_overlay()

        self.loop.unhandled_input = handle

    def close_overlay(self):
        self.loop.widget = self.frame
        self.loop.unhandled_input = self.handle_input
        self.update_status()

    def show_text_overlay(self, title: str, text: str):
        listbox = urwid.ListBox(urwid.SimpleFocusListWalker([urwid.Text(text)]))
        self.open_overlay(listbox, title=title)

    def show_form(self, title: str, fields: list[tuple], on_submit: Callable[[list[str]], None]):
        """
        Dialog with one edit per field, calling ``on_submit`` with the values.

        Fields are (label, initial) or (label, initial, multiline).
        """
        edits = []
        rows = []
        for label, initial, *rest in fields:
            multiline = bool(rest and rest[0])
            edit = TextArea("", initial) if multiline else urwid.Edit("", initial)
            edits.append(edit)
            rows.append(urwid.Text(f"{label}:"))
            widget = urwid.AttrMap(edit, "list_item_focus")
            if multiline:
                widget = urwid.BoxAdapter(urwid.Filler(widget, valign="top"), height=15)
            rows.extend([widget, urwid.Divider()])

        def submit():
            values = [e.edit_text for e in edits]
            self.close_overlay()
            on_submit(values)

        dialog = Dialog(title, urwid.Pile(rows), [("Save", submit), ("Cancel", self.close_overlay)])
        self.loop.widget = urwid.Overlay(
            urwid.Filler(dialog, valign="middle"),
            self.frame,
            align="center",
            width=("relative", 85),
            valign="middle",
            height=("relative", 85),
        )

        def handle(key):
            if key == "esc":
                self.close_overlay()

        self.loop.unhandled_input = handle

    def confirm(self, question: str, on_yes: Callable[[], None]):
        dialog = Dialog("Confirm", urwid.Text(question, align="center"),
                        [("Yes", on_yes), ("No", self.close_overlay)])
        self.loop.widget = urwid.Overlay(dialog, self.frame, align="center", width=50,
                                         valign="middle", height="pack")

        def handle(key):
            if key in ("esc", "n"):
                self.close_overlay()
            elif key == "y":
                on_yes()

        self.loop.unhandled_input = handle

    def show_word_details(self, word: Word):
        fields = [
            ("Type", word.word_type.value),
            ("Level", word.level.value),
            ("Phonetic", word.phonetic),
            ("Meaning", word.meaning_en),
            ("Translation", word.translation),
            ("Example", word.example),
            ("My example", word.my_example),
            ("Related", word.related_forms),
            ("Synonyms", word.synonyms),
            ("Tags", ", ".join(word.tags)),
            ("Status", word.status.value),
            ("Location", self.vocabulary.location(word) or "No section"),
        ]
        text = "\n".join(f"{label:12} {value}" for label, value in fields if value)
        self.show_text_overlay(word.word, text)

    def _show_help(self):
        self.open_overlay(
            urwid.Filler(urwid.Text(HELP_TEXT), valign="top"),
            title="Help",
            width=60,
            height=42,
        )

    # Input

    def handle_input(self, key):
        """Handle keys no screen consumed."""
        if not isinstance(key, str):
            return

        if key in ("q", "Q"):
            raise urwid.ExitMainLoop()

        if key in ("1", "2", "3", "4", "5"):
            self.switch_tab(int(key) - 1)
        elif key == "tab":
            self.switch_tab((self.tab_bar.active_tab + 1) % len(self.TAB_NAMES))
        elif key == "?":
            self._show_help()
        else:
            return
        self.update_status()

    def run(self):
        """Run the application."""
        self.aloop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.aloop)
        self.loop = urwid.MainLoop(
            self.frame,
            palette=PALETTE,
            unhandled_input=self.handle_input,
            handle_mouse=True,
            event_loop=urwid.AsyncioEventLoop(loop=self.aloop),
        )

        try:
            self.loop.run()
        except KeyboardInterrupt:
            pass
        finally:
            self.songs_screen.leave()
            self.tts.cleanup()
            self.aloop.close()


def main():
    """Entry point."""
    parser = argparse.ArgumentParser(description="English vocabulary trainer")
    parser.add_argument(
        "-c", "--config",
        help="Path to config file",
        default=None,
    )
    args = parser.parse_args()

    app = App(config_path=args.config)
    app.run()


if __name__ == "__main__":
    main()
