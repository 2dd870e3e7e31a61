"""Practice sessions: flashcards, multiple-choice quiz and recall typing."""

import random
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from vocabmaster.core.errors import EmptyPoolError, InsufficientPoolError
from vocabmaster.core.models import Level, MasteryStatus, PracticeMode, Section, Word

# Called once per judged answer with (word id, mode, correct).
AnswerRecorder = Callable[[Optional[int], PracticeMode, bool], object]

QUIZ_OPTION_COUNT = 4


@dataclass
class PoolFilter:
    """Scope and filters for building a practice pool.

    ``None`` means "all" for every field. A section scope takes priority
    over a collection scope.
    """
    collection_id: Optional[int] = None
    section_id: Optional[int] = None
    level: Optional[Level] = None
    status: Optional[MasteryStatus] = None


def build_pool(
    words: Iterable[Word],
    mode: Optional[PracticeMode] = None,
    pool_filter: Optional[PoolFilter] = None,
    sections: Iterable[Section] = (),
) -> list[Word]:
    """
    Filter words into a practice pool, preserving input order.

    Flashcard pools also drop words already passed in flashcard mode.
    """
    pool_filter = pool_filter or PoolFilter()
    pool = list(words)

    if pool_filter.section_id is not None:
        pool = [w for w in pool if w.section_id == pool_filter.section_id]
    elif pool_filter.collection_id is not None:
        section_ids = {
            s.id for s in sections if s.collection_id == pool_filter.collection_id
        }
        pool = [w for w in pool if w.section_id in section_ids]

    if pool_filter.level is not None:
        pool = [w for w in pool if w.level == pool_filter.level]
    if pool_filter.status is not None:
        pool = [w for w in pool if w.status == pool_filter.status]

    if mode == PracticeMode.FLASHCARD:
        pool = [w for w in pool if PracticeMode.FLASHCARD not in w.passed_modes]

    return pool


@dataclass
class SessionResult:
    """Final tally of a completed session."""
    correct: int
    total: int
    wrong_words: list[Word] = field(default_factory=list)

    @property
    def wrong(self) -> int:
        return self.total - self.correct

    @property
    def percent(self) -> int:
        if self.total == 0:
            return 0
        return round(self.correct / self.total * 100)


class PracticeSession:
    """Shared state machine for the three practice drills.

    The word pool is copied when the session starts, so later changes to
    the vocabulary do not affect a session in progress.
    """

    mode: PracticeMode

    def __init__(self, words: Iterable[Word], recorder: Optional[AnswerRecorder] = None):
        self.recorder = recorder
        self._start(words)

    def _check_pool(self, words: list[Word]) -> None:
        if not words:
            raise EmptyPoolError()

    def _start(self, words: Iterable[Word]) -> None:
        pool = list(words)
        self._check_pool(pool)
        self.words = pool
        self.index = 0
        self.correct = 0
        self.wrong_words: list[Word] = []
        self.completed = False
        self._reset_card()

    def _reset_card(self) -> None:
        """Clear per-card transient state."""
        pass

    @property
    def current_word(self) -> Optional[Word]:
        if self.completed or self.index >= len(self.words):
            return None
        return self.words[self.index]

    @property
    def total(self) -> int:
        return len(self.words)

    @property
    def wrong(self) -> int:
        return len(self.wrong_words)

    @property
    def progress(self) -> str:
        return f"{min(self.index + 1, self.total)}/{self.total}"

    def _record(self, word: Word, correct: bool) -> None:
        """Count an answer and hand it to the recorder."""
        if self.recorder is not None:
            self.recorder(word.id, self.mode, correct)
        if correct:
            self.correct += 1
        else:
            self.wrong_words.append(word)

    def _advance(self) -> None:
        self.index += 1
        self._reset_card()
        if self.index >= len(self.words):
            self.completed = True

    def result(self) -> SessionResult:
        return SessionResult(
            correct=self.correct,
            total=self.total,
            wrong_words=list(self.wrong_words),
        )

    def restart(self, words: Iterable[Word]) -> None:
        """Start over with a fresh snapshot of the live pool."""
        self._start(words)


class FlashcardSession(PracticeSession):
    """Flip a card, then judge yourself: know it or not."""

    mode = PracticeMode.FLASHCARD

    def _reset_card(self) -> None:
        self.revealed = False

    def flip(self) -> None:
        """Toggle between the front and the back of the card."""
        if not self.completed:
            self.revealed = not self.revealed

    def judge(self, know: bool) -> None:
        """Record the self-assessment and move to the next card."""
        word = self.current_word
        if word is None:
            return
        self._record(word, know)
        self._advance()


class QuizSession(PracticeSession):
    """Pick the headword matching a definition from four options."""

    mode = PracticeMode.QUIZ

    def __init__(
        self,
        words: Iterable[Word],
        recorder: Optional[AnswerRecorder] = None,
        rng: Optional[random.Random] = None,
    ):
        self.rng = rng or random.Random()
        super().__init__(words, recorder)

    def _check_pool(self, words: list[Word]) -> None:
        super()._check_pool(words)
        if len(words) < QUIZ_OPTION_COUNT:
            raise InsufficientPoolError(QUIZ_OPTION_COUNT, len(words))

    def _reset_card(self) -> None:
        self._options: list[Word] = []
        self.selected: Optional[Word] = None
        self.answered = False
        self.last_correct: Optional[bool] = None

    @property
    def options(self) -> list[Word]:
        """Options for the current card, generated once per card."""
        word = self.current_word
        if word is None:
            return []
        if not self._options:
            self._options = generate_options(word, self.words, self.rng)
        return list(self._options)

    def select(self, option: Word) -> Optional[bool]:
        """
        Answer the current card.

        Only the first selection per card counts; later ones return None
        until ``next`` is called. Words that are not among the options are
        ignored.
        """
        word = self.current_word
        if word is None or self.answered:
            return None
        if not any(same_word(option, o) for o in self.options):
            return None
        correct = same_word(option, word)
        self.selected = option
        self.answered = True
        self.last_correct = correct
        self._record(word, correct)
        return correct

    def next(self) -> None:
        """Advance after the current card was answered."""
        if self.answered:
            self._advance()


class RecallSession(PracticeSession):
    """Type the headword for a definition."""

    mode = PracticeMode.RECALL

    def _reset_card(self) -> None:
        self.input_text = ""
        self.verdict: Optional[bool] = None

    @property
    def answered(self) -> bool:
        return self.verdict is not None

    def check(self, text: Optional[str] = None) -> Optional[bool]:
        """Compare the typed text with the headword, ignoring case and edges."""
        word = self.current_word
        if word is None or self.answered:
            return None
        if text is not None:
            self.input_text = text
        correct = self.input_text.strip().lower() == word.word.strip().lower()
        self.verdict = correct
        self._record(word, correct)
        return correct

    def next(self) -> None:
        if self.answered:
            self._advance()


def same_word(a: Word, b: Word) -> bool:
    """Identity by stored id, or by object for words not yet stored."""
    if a.id is not None and b.id is not None:
        return a.id == b.id
    return a is b


def generate_options(target: Word, pool: list[Word], rng: random.Random) -> list[Word]:
    """Three distinct distractors from ``pool`` plus ``target``, shuffled."""
    others = [w for w in pool if not same_word(w, target)]
    options = rng.sample(others, QUIZ_OPTION_COUNT - 1) + [target]
    rng.shuffle(options)
    return options


SESSION_TYPES: dict[PracticeMode, type[PracticeSession]] = {
    PracticeMode.FLASHCARD: FlashcardSession,
    PracticeMode.QUIZ: QuizSession,
    PracticeMode.RECALL: RecallSession,
}


def start_session(
    mode: PracticeMode,
    words: Iterable[Word],
    recorder: Optional[AnswerRecorder] = None,
    rng: Optional[random.Random] = None,
) -> PracticeSession:
    """Create a session of the given mode over ``words``."""
    if mode == PracticeMode.QUIZ:
        return QuizSession(words, recorder, rng=rng)
    return SESSION_TYPES[mode](words, recorder)
