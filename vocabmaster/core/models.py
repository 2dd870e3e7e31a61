"""Data models for the vocabulary trainer."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional
import uuid


class WordType(Enum):
    """Word class of a headword."""
    NOUN = "noun"
    VERB = "verb"
    ADJECTIVE = "adjective"
    ADVERB = "adverb"
    PHRASAL_VERB = "phrasal verb"
    IDIOM = "idiom"
    PHRASE = "phrase"
    PREPOSITION = "preposition"
    CONJUNCTION = "conjunction"
    INTERJECTION = "interjection"


class Level(Enum):
    """CEFR proficiency level."""
    A1 = "A1"
    A2 = "A2"
    B1 = "B1"
    B2 = "B2"
    C1 = "C1"
    C2 = "C2"


class MasteryStatus(Enum):
    """Derived learning status of a word."""
    NEW = "new"
    LEARNING = "learning"
    LEARNED = "learned"


class PracticeMode(Enum):
    """Practice drills a word can be passed in."""
    FLASHCARD = "cards"
    QUIZ = "quiz"
    RECALL = "write"


def _modes_from(values) -> frozenset[PracticeMode]:
    return frozenset(PracticeMode(v) for v in values or [])


@dataclass
class Word:
    """A headword in the user's vocabulary."""
    word: str
    section_id: Optional[int] = None
    id: Optional[int] = None
    word_type: WordType = WordType.NOUN
    level: Level = Level.B1
    phonetic: str = ""
    meaning_en: str = ""
    translation: str = ""
    example: str = ""
    my_example: str = ""
    related_forms: str = ""
    synonyms: str = ""
    tags: list[str] = field(default_factory=list)
    status: MasteryStatus = MasteryStatus.NEW
    passed_modes: frozenset[PracticeMode] = frozenset()
    added_at: datetime = field(default_factory=datetime.now)

    @property
    def key(self) -> str:
        """Case-insensitive identity of the headword."""
        return self.word.strip().lower()

    @property
    def is_phrase(self) -> bool:
        return " " in self.word.strip()

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "section_id": self.section_id,
            "word": self.word,
            "type": self.word_type.value,
            "level": self.level.value,
            "phonetic": self.phonetic,
            "meaning_en": self.meaning_en,
            "translation": self.translation,
            "example": self.example,
            "my_example": self.my_example,
            "related_forms": self.related_forms,
            "synonyms": self.synonyms,
            "tags": list(self.tags),
            "status": self.status.value,
            "passed_modes": sorted(m.value for m in self.passed_modes),
            "added_at": self.added_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Word":
        """Create from dictionary."""
        added_at = data.get("added_at")
        if isinstance(added_at, str):
            added_at = datetime.fromisoformat(added_at)
        elif added_at is None:
            added_at = datetime.now()

        return cls(
            id=data.get("id"),
            section_id=data.get("section_id"),
            word=data["word"],
            word_type=WordType(data.get("type", WordType.NOUN.value)),
            level=Level(data.get("level", Level.B1.value)),
            phonetic=data.get("phonetic") or "",
            meaning_en=data.get("meaning_en") or "",
            translation=data.get("translation") or "",
            example=data.get("example") or "",
            my_example=data.get("my_example") or "",
            related_forms=data.get("related_forms") or "",
            synonyms=data.get("synonyms") or "",
            tags=list(data.get("tags") or []),
            status=MasteryStatus(data.get("status", MasteryStatus.NEW.value)),
            passed_modes=_modes_from(data.get("passed_modes")),
            added_at=added_at,
        )


@dataclass
class Collection:
    """A top-level grouping of sections."""
    name: str
    icon: str = "📚"
    id: Optional[int] = None


@dataclass
class Section:
    """A named group of words inside a collection."""
    name: str
    collection_id: int
    icon: str = "📖"
    id: Optional[int] = None


@dataclass
class SongFolder:
    """A folder of songs."""
    id: str
    name: str
    created_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def create(cls, name: str, **kwargs) -> "SongFolder":
        """Create a new folder with generated ID."""
        return cls(id=str(uuid.uuid4()), name=name, **kwargs)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SongFolder":
        created_at = data.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        elif created_at is None:
            created_at = datetime.now()

        return cls(id=data["id"], name=data["name"], created_at=created_at)


@dataclass
class Song:
    """Song lyrics to mine for new vocabulary."""
    id: str
    title: str
    text: str
    folder_id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def create(cls, title: str, text: str, **kwargs) -> "Song":
        """Create a new song with generated ID."""
        return cls(
            id=str(uuid.uuid4()),
            title=title,
            text=text,
            **kwargs
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "text": self.text,
            "folder_id": self.folder_id,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Song":
        """Create from dictionary."""
        created_at = data.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        elif created_at is None:
            created_at = datetime.now()

        return cls(
            id=data["id"],
            title=data["title"],
            text=data.get("text", ""),
            folder_id=data.get("folder_id"),
            created_at=created_at,
        )


@dataclass(frozen=True)
class Meaning:
    """One sense returned by the translation oracle."""
    translation: str
    example: str = ""
    meaning_en: str = ""


@dataclass(frozen=True)
class LinguisticRecord:
    """Best-effort linguistic data for a word or phrase.

    Every field is optional. A missing field means "no information", never
    "clear the stored value".
    """
    word_type: Optional[WordType] = None
    level: Optional[Level] = None
    phonetic: Optional[str] = None
    meaning_en: Optional[str] = None
    meanings: tuple[Meaning, ...] = ()
    related_forms: Optional[str] = None
    synonyms: Optional[str] = None

    @property
    def translation(self) -> Optional[str]:
        """Translation of the primary meaning, if any."""
        for meaning in self.meanings:
            if meaning.translation:
                return meaning.translation
        return None

    @property
    def example(self) -> Optional[str]:
        for meaning in self.meanings:
            if meaning.example:
                return meaning.example
        return None

    def apply_to(self, word: Word) -> Word:
        """Return a copy of ``word`` with every present field filled in."""
        changes = {}
        if self.word_type is not None:
            changes["word_type"] = self.word_type
        if self.level is not None:
            changes["level"] = self.level
        for name in ("phonetic", "meaning_en", "related_forms", "synonyms"):
            value = getattr(self, name)
            if value:
                changes[name] = value
        if self.translation:
            changes["translation"] = self.translation
        if self.example:
            changes["example"] = self.example
        return replace(word, **changes)
