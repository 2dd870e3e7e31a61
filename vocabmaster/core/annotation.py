"""Lyric annotation: match highlighting and the word-mining workflow."""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Awaitable, Callable, Iterable, Optional

from vocabmaster.core.errors import (
    AlreadySelectedError,
    DuplicateError,
    OracleError,
    StoreError,
)
from vocabmaster.core.models import Song, Word, WordType
from vocabmaster.core.text_processor import (
    is_letter,
    is_match,
    normalize_selection,
    skip_non_letters,
    song_tag,
    word_end,
)
from vocabmaster.core.vocab_index import PhraseRef, VocabularyIndex, WordMatch

if TYPE_CHECKING:
    from vocabmaster.ai.oracle import TranslationOracle
    from vocabmaster.core.vocabulary import VocabularyManager

logger = logging.getLogger(__name__)

MIN_SELECTION_LENGTH = 2


class SegmentKind(Enum):
    """How a span of lyric text is highlighted."""
    PLAIN = "plain"
    SELECTED = "selected"
    KNOWN = "known"
    RELATED = "related"


@dataclass(frozen=True)
class Segment:
    """A span of the original text with its highlight."""
    kind: SegmentKind
    text: str
    start: int
    matches: tuple[WordMatch, ...] = ()
    phrases: tuple[PhraseRef, ...] = ()

    @property
    def end(self) -> int:
        return self.start + len(self.text)


def _lower(text: str) -> str:
    # Keep offsets aligned with the original text
    return "".join(c.lower() if len(c.lower()) == 1 else c for c in text)


def _match_phrase(lowered: str, pos: int, phrases: list[str]) -> Optional[tuple[int, str]]:
    """Find the first phrase starting after any non-letters at ``pos``."""
    start = skip_non_letters(lowered, pos)
    for phrase in phrases:
        if lowered.startswith(phrase, start):
            return start, phrase
    return None


def annotate(
    text: str,
    index: VocabularyIndex,
    pending: Iterable[str] = (),
) -> list[Segment]:
    """
    Split text into highlighted segments, scanning left to right.

    At each position, pending phrases win over vocabulary phrases (both
    longest first), which win over single words. Joining the text of all
    segments reproduces ``text`` exactly.
    """
    pending = [p.lower() for p in pending]
    pending_phrases = sorted({p for p in pending if " " in p}, key=len, reverse=True)
    pending_tokens = [p for p in pending if " " not in p]

    lowered = _lower(text)
    segments: list[Segment] = []

    def emit(kind: SegmentKind, start: int, end: int, **extra) -> None:
        if start >= end:
            return
        if kind == SegmentKind.PLAIN and segments and segments[-1].kind == SegmentKind.PLAIN:
            last = segments.pop()
            start = last.start
        segments.append(Segment(kind=kind, text=text[start:end], start=start, **extra))

    i = 0
    while i < len(text):
        found = _match_phrase(lowered, i, pending_phrases)
        if found:
            start, phrase = found
            emit(SegmentKind.PLAIN, i, start)
            emit(SegmentKind.SELECTED, start, start + len(phrase))
            i = start + len(phrase)
            continue

        found = _match_phrase(lowered, i, index.phrases)
        if found:
            start, phrase = found
            emit(SegmentKind.PLAIN, i, start)
            emit(
                SegmentKind.KNOWN,
                start,
                start + len(phrase),
                matches=tuple(index.find_matches(phrase)),
            )
            i = start + len(phrase)
            continue

        if is_letter(text[i]):
            end = word_end(text, i)
            token = lowered[i:end]
            if any(is_match(token, p) for p in pending_tokens):
                emit(SegmentKind.SELECTED, i, end)
            else:
                matches = index.find_matches(token)
                phrases = index.phrases_containing(token)
                if matches:
                    emit(SegmentKind.KNOWN, i, end, matches=tuple(matches))
                elif phrases:
                    emit(SegmentKind.RELATED, i, end, phrases=tuple(phrases))
                else:
                    emit(SegmentKind.PLAIN, i, end)
            i = end
        else:
            emit(SegmentKind.PLAIN, i, i + 1)
            i += 1

    return segments


class TranslationCache:
    """Per-session translations, with one oracle call in flight per key."""

    def __init__(self):
        self._values: dict[str, str] = {}
        self._inflight: dict[str, asyncio.Future] = {}

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def put(self, key: str, value: str) -> None:
        self._values[key] = value

    def is_inflight(self, key: str) -> bool:
        return key in self._inflight

    async def fetch(self, key: str, factory: Callable[[], Awaitable[str]]) -> str:
        """
        Return the cached value or fetch it once.

        Concurrent callers for the same key share a single call. Failures
        are not cached, so a later call retries.
        """
        if key in self._values:
            return self._values[key]

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._inflight[key] = task

        try:
            value = await asyncio.shield(task)
        finally:
            if task.done() and self._inflight.get(key) is task:
                del self._inflight[key]

        self._values[key] = value
        return value

    def clear(self) -> None:
        self._values.clear()
        self._inflight.clear()


class PopupKind(Enum):
    """What the selection popup offers."""
    EXISTING = "existing"
    PENDING = "pending"
    CANDIDATE = "candidate"


@dataclass
class Popup:
    """Translation popup for the current text selection."""
    text: str
    original: str
    kind: PopupKind
    translation: Optional[str] = None
    location: Optional[str] = None
    loading: bool = False
    failed: bool = False

    @property
    def can_add(self) -> bool:
        return self.kind == PopupKind.CANDIDATE

    @property
    def can_remove(self) -> bool:
        return self.kind == PopupKind.PENDING


@dataclass
class PendingSelection:
    """A word or phrase waiting to be added to the vocabulary."""
    text: str
    section_id: Optional[int] = None
    checked: bool = False


@dataclass
class CommitResult:
    """Outcome of adding the pending list to the vocabulary."""
    created: list[Word] = field(default_factory=list)
    duplicates: list[DuplicateError] = field(default_factory=list)
    unassigned: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    def summary(self) -> str:
        parts = []
        if self.created:
            parts.append(f"Added {len(self.created)}")
        if self.duplicates:
            names = ", ".join(f'"{d.word}" ({d.location or "Unknown"})' for d in self.duplicates)
            parts.append(f"Already exists: {names}")
        if self.unassigned:
            parts.append(f"Select sections for: {', '.join(self.unassigned)}")
        if self.failed:
            parts.append(f"Could not save: {', '.join(self.failed)}")
        return " | ".join(parts) if parts else "Nothing to add"


class AnnotationSession:
    """State of one song being mined for vocabulary.

    Owned by the song view; leaving the view discards it along with its
    translation cache and pending list.
    """

    def __init__(
        self,
        song: Song,
        vocabulary: "VocabularyManager",
        oracle: Optional["TranslationOracle"] = None,
        default_section_id: Optional[int] = None,
    ):
        self.song = song
        self.vocabulary = vocabulary
        self.oracle = oracle
        self.default_section_id = default_section_id
        self.index: VocabularyIndex = vocabulary.index()
        self.pending: list[PendingSelection] = []
        self.popup: Optional[Popup] = None
        self.cache = TranslationCache()

    # Rendering

    def render(self) -> list[Segment]:
        """Segments for the song text with the current highlights."""
        return annotate(self.song.text, self.index, self.pending_texts)

    @property
    def pending_texts(self) -> list[str]:
        return [p.text for p in self.pending]

    @property
    def has_unsaved(self) -> bool:
        return bool(self.pending)

    def get_pending(self, text: str) -> Optional[PendingSelection]:
        for item in self.pending:
            if item.text == text:
                return item
        return None

    def refresh_index(self) -> None:
        """Take a new vocabulary snapshot."""
        self.index = self.vocabulary.index()

    # Selection popup

    def open_popup(self, raw: str) -> Optional[Popup]:
        """
        Classify a text selection and show its popup.

        Selections shorter than two characters close the popup. The popup
        is left in the loading state when a translation must be fetched.
        """
        original = raw.strip()
        text = normalize_selection(raw)
        if len(original) < MIN_SELECTION_LENGTH or len(text) < MIN_SELECTION_LENGTH:
            self.popup = None
            return None

        existing = self.index.get(text)
        if existing is not None:
            self.popup = Popup(
                text=text,
                original=original,
                kind=PopupKind.EXISTING,
                translation=existing.translation or "No translation",
                location=self.index.location(existing),
            )
            return self.popup

        kind = PopupKind.PENDING if self.get_pending(text) else PopupKind.CANDIDATE
        cached = self.cache.get(text)
        self.popup = Popup(
            text=text,
            original=original,
            kind=kind,
            translation=cached,
            loading=cached is None and self.oracle is not None,
        )
        return self.popup

    async def fetch_translation(self, popup: Optional[Popup] = None) -> Optional[str]:
        """
        Fetch the translation for a loading popup.

        The result goes to the cache and, if the popup on screen still
        shows the same text, into that popup. A response for a dismissed
        or replaced selection only fills the cache.
        """
        popup = popup or self.popup
        if popup is None or not popup.loading or self.oracle is None:
            return popup.translation if popup else None

        text = popup.text
        failed = False
        try:
            translation = await self.cache.fetch(text, lambda: self.oracle.translate(text))
        except OracleError as e:
            logger.warning("Translation lookup failed for %r: %s", text, e)
            translation = None
            failed = True

        current = self.popup
        if current is None or current.text != text:
            logger.debug("Discarding translation for superseded selection %r", text)
            return translation

        current.translation = translation
        current.loading = False
        current.failed = failed
        return translation

    async def select(self, raw: str) -> Optional[Popup]:
        """Open the popup for a selection and wait for its translation."""
        popup = self.open_popup(raw)
        if popup is not None and popup.loading:
            await self.fetch_translation(popup)
        return popup

    def dismiss(self) -> None:
        self.popup = None

    # Pending list

    def add_pending(self, raw: str) -> Optional[PendingSelection]:
        """
        Add a selection to the pending list.

        Selections shorter than two characters are ignored and give None.

        Raises:
            DuplicateError: the text is already in the vocabulary
            AlreadySelectedError: the text is already pending
        """
        text = normalize_selection(raw)
        self.popup = None
        if len(text) < MIN_SELECTION_LENGTH:
            return None

        existing = self.index.get(text)
        if existing is not None:
            raise DuplicateError(text, self.index.location(existing))
        if self.get_pending(text) is not None:
            raise AlreadySelectedError(text)

        item = PendingSelection(text=text, section_id=self.default_section_id)
        self.pending.append(item)
        return item

    def remove_pending(self, text: str) -> bool:
        item = self.get_pending(text)
        if item is None:
            return False
        self.pending.remove(item)
        if self.popup is not None and self.popup.text == text:
            self.popup.kind = PopupKind.CANDIDATE
        return True

    def toggle_check(self, text: str) -> None:
        item = self.get_pending(text)
        if item is not None:
            item.checked = not item.checked

    def toggle_check_all(self) -> None:
        """Check everything, or uncheck everything if all are checked."""
        check = not all(p.checked for p in self.pending)
        for item in self.pending:
            item.checked = check

    @property
    def checked(self) -> list[PendingSelection]:
        return [p for p in self.pending if p.checked]

    def assign_section(self, text: str, section_id: Optional[int]) -> None:
        item = self.get_pending(text)
        if item is not None:
            item.section_id = section_id

    def assign_checked(self, section_id: Optional[int]) -> None:
        for item in self.checked:
            item.section_id = section_id

    def commit(self) -> CommitResult:
        """
        Add pending words to the vocabulary, each on its own.

        Words without a section stay pending. Words that reached the
        vocabulary some other way are dropped and reported. Store failures
        leave the word pending. Items shorter than two characters are
        dropped.
        """
        self.refresh_index()
        result = CommitResult()
        remaining = []
        tag = song_tag(self.song.title)

        for item in self.pending:
            if len(item.text) < MIN_SELECTION_LENGTH:
                continue
            existing = self.index.get(item.text)
            if existing is not None:
                result.duplicates.append(DuplicateError(item.text, self.index.location(existing)))
                continue
            if item.section_id is None:
                result.unassigned.append(item.text)
                remaining.append(item)
                continue

            word = Word(
                word=item.text,
                section_id=item.section_id,
                word_type=WordType.PHRASE if " " in item.text else WordType.NOUN,
                level=self.vocabulary.default_level,
                translation=self.cache.get(item.text) or "",
                tags=[tag],
            )
            try:
                result.created.append(self.vocabulary.add_word(word))
            except DuplicateError as e:
                result.duplicates.append(e)
            except StoreError as e:
                logger.warning("Could not save %r: %s", item.text, e)
                result.failed.append(item.text)
                remaining.append(item)

        self.pending = remaining
        self.refresh_index()
        logger.info(
            "Committed song %r: %d added, %d duplicates, %d without section",
            self.song.title,
            len(result.created),
            len(result.duplicates),
            len(result.unassigned),
        )
        return result

    def close(self) -> None:
        """End the session; nothing here is persisted."""
        self.cache.clear()
        self.pending.clear()
        self.popup = None
