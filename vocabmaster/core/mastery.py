"""Mastery status derived from per-mode practice history."""

from typing import Iterable

from vocabmaster.core.models import MasteryStatus, PracticeMode


def status_for(passed_modes: Iterable[PracticeMode]) -> MasteryStatus:
    """Status for a set of passed modes; depends only on its size."""
    count = len(set(passed_modes))
    if count >= 3:
        return MasteryStatus.LEARNED
    if count > 0:
        return MasteryStatus.LEARNING
    return MasteryStatus.NEW


def compute(
    passed_modes: Iterable[PracticeMode],
    mode: PracticeMode,
    correct: bool,
) -> tuple[frozenset[PracticeMode], MasteryStatus]:
    """
    Apply one practice answer to a word's passed modes.

    A correct answer adds ``mode``. A wrong answer removes ``mode`` and
    always revokes flashcard credit as well, so a quiz or recall miss
    also sends the word back to the flashcard pool.

    Returns:
        (passed modes after the answer, resulting status)
    """
    passed = set(passed_modes)
    if correct:
        passed.add(mode)
    else:
        passed.discard(mode)
        passed.discard(PracticeMode.FLASHCARD)

    result = frozenset(passed)
    return result, status_for(result)
