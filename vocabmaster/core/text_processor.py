"""Text processing for English lyrics and pasted word lists."""

import re
from dataclasses import dataclass
from typing import Optional

from vocabmaster.core.models import Level, Word, WordType


# ASCII letters only; apostrophes and digits split words
WORD_PATTERN = re.compile(r"[A-Za-z]+")

# Lowercase text only
NON_LETTERS = re.compile(r"[^a-z]*")

# Characters a text selection is cut at before lookup
SELECTION_PUNCTUATION = re.compile(r"[.,!?;:()\"'\-–—\n]")
WHITESPACE = re.compile(r"\s+")

# Separators for pasted "word<TAB>translation" lines
IMPORT_SEPARATOR = re.compile(r"\t|=")

FUZZY_MIN_LENGTH = 4


def is_letter(char: str) -> bool:
    """True for an ASCII letter."""
    return ("a" <= char <= "z") or ("A" <= char <= "Z")


def word_end(text: str, start: int) -> int:
    """End of the letter run starting at ``start``."""
    match = WORD_PATTERN.match(text, start)
    return match.end() if match else start


def is_match(a: str, b: str) -> bool:
    """
    Permissive token match: equal, or a shared prefix for long words.

    "teach" matches "teaching" and "teacher"; "cat" does not match
    "cats". This is inflection tolerance, not stemming.
    """
    a = a.lower()
    b = b.lower()
    if a == b:
        return True
    if len(a) >= FUZZY_MIN_LENGTH and len(b) >= FUZZY_MIN_LENGTH:
        return a.startswith(b) or b.startswith(a)
    return False


def skip_non_letters(text: str, pos: int) -> int:
    """Position of the first lowercase letter at or after ``pos``."""
    return NON_LETTERS.match(text, pos).end()


def normalize_selection(text: str) -> str:
    """Lowercase, cut punctuation and newlines, collapse whitespace."""
    cleaned = SELECTION_PUNCTUATION.sub(" ", text.lower())
    return WHITESPACE.sub(" ", cleaned).strip()


def song_tag(title: str) -> str:
    """Tag used for words mined from a song: "Hey Jude" -> "hey-jude"."""
    return WHITESPACE.sub("-", title.strip().lower())


@dataclass
class ParsedLine:
    """One line of a pasted word list."""
    word: str
    meaning_en: str
    translation: str = ""


def parse_word_list_line(line: str) -> Optional[ParsedLine]:
    """
    Parse ``word=gloss`` or ``word<TAB>translation<TAB>gloss``.

    Returns None for lines with fewer than two parts.
    """
    parts = [p.strip() for p in IMPORT_SEPARATOR.split(line)]
    if len(parts) < 2 or not parts[0]:
        return None
    if len(parts) == 3:
        return ParsedLine(word=parts[0], translation=parts[1], meaning_en=parts[2])
    return ParsedLine(word=parts[0], meaning_en=parts[1])


def parse_word_list(
    text: str,
    section_id: Optional[int],
    level: Level = Level.B1,
) -> list[Word]:
    """Turn pasted word-list text into new, unsaved words."""
    words = []
    for line in text.split("\n"):
        if not line.strip():
            continue
        parsed = parse_word_list_line(line)
        if parsed is None:
            continue
        words.append(Word(
            word=parsed.word,
            section_id=section_id,
            word_type=WordType.PHRASE,
            level=level,
            meaning_en=parsed.meaning_en,
            translation=parsed.translation,
        ))
    return words
