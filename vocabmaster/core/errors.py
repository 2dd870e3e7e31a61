"""Exceptions raised by the vocabulary core."""

from typing import Optional


class VocabError(Exception):
    """Base class for all vocabulary errors."""
    pass


class DuplicateError(VocabError):
    """Headword already present in the vocabulary (case-insensitive)."""

    def __init__(self, word: str, location: Optional[str] = None):
        self.word = word
        self.location = location
        if location:
            message = f'"{word}" already exists in: {location}'
        else:
            message = f'"{word}" already exists in vocabulary'
        super().__init__(message)


class AlreadySelectedError(DuplicateError):
    """Text is already in the pending selection list."""

    def __init__(self, word: str):
        super().__init__(word)
        self.args = (f'"{word}" already in selection list',)


class StoreError(VocabError):
    """The word store failed to read or write."""
    pass


class NotFoundError(StoreError):
    """No stored item with the requested identifier."""
    pass


class OracleError(VocabError):
    """The translation oracle failed or is not configured."""
    pass


class ParseError(OracleError):
    """The oracle answered with content that could not be parsed."""
    pass


class EmptyPoolError(VocabError):
    """No words match the practice filters."""

    def __init__(self):
        super().__init__("No words to practice")


class InsufficientPoolError(VocabError):
    """Not enough words to build a quiz."""

    def __init__(self, needed: int, available: int):
        self.needed = needed
        self.available = available
        super().__init__(f"Need at least {needed} words for a quiz, have {available}")
