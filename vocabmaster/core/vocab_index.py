"""Read-only lookup structures over a snapshot of the vocabulary."""

from dataclasses import dataclass
from typing import Iterable, Optional

from vocabmaster.core.models import Collection, Section, Word
from vocabmaster.core.text_processor import WHITESPACE, is_match

ROOT_FRAGMENT_MIN_LENGTH = 6


@dataclass(frozen=True)
class WordMatch:
    """A vocabulary entry matched in a text, for tooltips."""
    word: str
    phonetic: str
    translation: str
    section: str
    collection: str

    @property
    def location(self) -> str:
        return f"{self.collection} › {self.section}"


@dataclass(frozen=True)
class PhraseRef:
    """A multi-word vocabulary phrase a lone word belongs to."""
    phrase: str
    translation: str
    section: str
    collection: str

    @property
    def location(self) -> str:
        return f"{self.collection} › {self.section}"


class VocabularyIndex:
    """Snapshot of the vocabulary for matching inside free text.

    Built once per vocabulary state; rebuild it after the vocabulary
    changes instead of mutating it.
    """

    def __init__(
        self,
        words: Iterable[Word],
        sections: Iterable[Section] = (),
        collections: Iterable[Collection] = (),
    ):
        self.words = list(words)
        self._sections = {s.id: s for s in sections}
        self._collections = {c.id: c for c in collections}

        self._by_key: dict[str, Word] = {}
        for word in self.words:
            self._by_key.setdefault(word.key, word)

        # Longest first so "new york city" wins over "new york"
        self.phrases: list[str] = sorted(
            (key for key in self._by_key if " " in key),
            key=len,
            reverse=True,
        )
        self.root_fragments = self._build_root_fragments()

    def _build_root_fragments(self) -> dict[str, list[PhraseRef]]:
        fragments: dict[str, list[PhraseRef]] = {}
        for word in self.words:
            if not word.is_phrase:
                continue
            section, collection = self._location_parts(word)
            for part in WHITESPACE.split(word.word.lower()):
                fragment = "".join(c for c in part if "a" <= c <= "z")
                if len(fragment) < ROOT_FRAGMENT_MIN_LENGTH:
                    continue
                fragments.setdefault(fragment, []).append(PhraseRef(
                    phrase=word.word,
                    translation=word.translation,
                    section=section,
                    collection=collection,
                ))
        return fragments

    def _location_parts(self, word: Word) -> tuple[str, str]:
        section = self._sections.get(word.section_id)
        if section is None:
            return "", ""
        collection = self._collections.get(section.collection_id)
        return section.name, collection.name if collection else ""

    def location(self, word: Word) -> Optional[str]:
        """Location of a word as "Collection › Section", or None."""
        section, collection = self._location_parts(word)
        if not section:
            return None
        return f"{collection} › {section}"

    def __contains__(self, text: str) -> bool:
        return text.strip().lower() in self._by_key

    def __len__(self) -> int:
        return len(self.words)

    def get(self, text: str) -> Optional[Word]:
        """Exact case-insensitive headword lookup."""
        return self._by_key.get(text.strip().lower())

    def find_matches(self, token: str) -> list[WordMatch]:
        """All entries whose headword fuzzily matches ``token``."""
        matches = []
        seen = set()
        for key, word in self._by_key.items():
            if key in seen or not is_match(token, key):
                continue
            seen.add(key)
            section, collection = self._location_parts(word)
            matches.append(WordMatch(
                word=word.word,
                phonetic=word.phonetic,
                translation=word.translation,
                section=section,
                collection=collection,
            ))
        return matches

    def phrases_containing(self, token: str) -> list[PhraseRef]:
        """Phrases registered under ``token`` as a root fragment."""
        return list(self.root_fragments.get(token.lower(), []))
